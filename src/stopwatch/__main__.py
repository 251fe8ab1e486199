"""Allow running stopwatch as a module: python -m stopwatch."""

from stopwatch.cli import main

if __name__ == "__main__":
    main()

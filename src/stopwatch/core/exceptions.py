"""Shared exceptions for the Stopwatch package."""

from __future__ import annotations


class StopwatchError(Exception):
    """Base class for all Stopwatch errors."""


class ConfigurationError(StopwatchError):
    """Raised when required settings (e.g. CircleCI credentials) are missing."""


class UnrepresentableValueError(StopwatchError):
    """Raised when a value cannot be emitted as YAML.

    Sets, callables and arbitrary objects have no plain YAML form, so
    emission of the whole document fails instead of writing a lossy tag.
    """

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"Value of type {type_name} is not allowed when converting to YAML")


class UndefinedStatisticError(StopwatchError):
    """Raised when a statistic has no defined value (e.g. a zero-day span)."""


class CircleCIAPIError(StopwatchError):
    """Exception raised for CircleCI API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.status_code:
            return f"CircleCI API Error ({self.status_code}): {self.message}"
        return f"CircleCI API Error: {self.message}"


class RateLimitedError(CircleCIAPIError):
    """CircleCI answered 429 Too Many Requests.

    ``retry_after`` holds the seconds from the ``Retry-After`` header, if any.
    """

    def __init__(self, message: str = "Rate limit exceeded", retry_after: float | None = None):
        self.retry_after = retry_after
        super().__init__(message, status_code=429)

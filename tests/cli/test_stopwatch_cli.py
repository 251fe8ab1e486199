"""Tests for the Stopwatch Typer CLI."""

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from typer.testing import CliRunner

from stopwatch.cli import app, run_analyze, run_fetch
from stopwatch.config import Settings
from stopwatch.storage import write_json
from tests.factories import (
    make_entry,
    make_job,
    make_job_detail,
    make_timed_out_action,
    make_workflow,
)

runner = CliRunner()


def seed_fetched_data(layout, details):
    """Write jobs.json, workflows.json and one detail file per (number, name, detail)."""
    jobs = []
    for number, name, detail in details:
        jobs.append(make_job(job_number=number, name=name, job_uuid=f"job-{number}"))
        write_json(layout.job_detail_path(number, name), detail)
    write_json(layout.jobs_path, jobs)
    write_json(layout.workflows_path, [make_workflow()])


def invoke(layout, *args, **kwargs):
    return runner.invoke(app, ["--outputs-dir", str(layout.root), *args], **kwargs)


class TestTyperCLI:
    """Test suite for the Typer app."""

    def test_no_args_shows_help(self):
        """Running without a command prints usage."""
        result = runner.invoke(app, [])

        assert "Usage" in result.output

    def test_help_lists_commands(self):
        """All commands should be listed in help."""
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("fetch", "retry", "analyze", "report", "clear"):
            assert command in result.output


class TestAnalyzeCommand:
    """Test suite for `stopwatch analyze`."""

    def test_writes_snapshot_tree_and_yaml(self, layout):
        """Analysis saves entries with tree and the tree YAML."""
        # Given
        seed_fetched_data(
            layout,
            [
                (1, "build", make_job_detail()),
                (2, "build", make_job_detail()),
            ],
        )

        # When
        result = invoke(layout, "analyze")

        # Then
        assert result.exit_code == 0, result.output
        snapshot = json.loads(layout.timedout_path.read_text())
        assert len(snapshot["entries"]) == 2
        assert snapshot["tree"] == {
            "Error: boom": {"count": 2, "children": {"  at bar": {"count": 2}}}
        }
        assert layout.tree_yaml_path.read_text().startswith('tree:\n  "Error: boom":\n')
        assert "Found 2 timed out actions" in result.output

    def test_skipped_jobs_are_logged(self, layout):
        """Jobs without detail files are written to analysis.log."""
        seed_fetched_data(layout, [(1, "build", make_job_detail())])
        jobs = json.loads(layout.jobs_path.read_text())
        jobs.append(make_job(job_number=9, name="lint", job_uuid="job-9"))
        write_json(layout.jobs_path, jobs)

        result = invoke(layout, "analyze")

        assert result.exit_code == 0, result.output
        assert "Job detail file not found: 9-lint.json" in layout.error_log_path.read_text()

    def test_previous_analysis_is_cleared(self, layout):
        """Stale files in the analysis directory are removed first."""
        seed_fetched_data(layout, [(1, "build", make_job_detail())])
        stale = layout.analysis_dir / "stale.txt"
        stale.parent.mkdir(parents=True, exist_ok=True)
        stale.write_text("old")

        invoke(layout, "analyze")

        assert not stale.exists()

    def test_missing_fetched_data(self, layout):
        """Without jobs.json the command fails and logs the error."""
        result = invoke(layout, "analyze")

        assert result.exit_code == 1
        assert "Failed to read fetched data" in layout.error_log_path.read_text()

    def test_test_features_tally_is_shown(self, layout):
        """test_features jobs are summarized per file."""
        seed_fetched_data(
            layout,
            [(3, "test_features", make_job_detail(actions=[], status="success"))],
        )

        result = invoke(layout, "analyze")

        assert "test_features.json" in result.output


class TestReportCommand:
    """Test suite for `stopwatch report`."""

    def test_report_after_analyze(self, layout):
        """The report is derived from the saved snapshot and written to disk."""
        # Given
        first = make_timed_out_action(start_time="2024-01-01T10:00:00Z")
        second = make_timed_out_action(start_time="2024-01-03T08:00:00Z")
        seed_fetched_data(
            layout,
            [
                (1, "build", make_job_detail(actions=[first])),
                (2, "build", make_job_detail(actions=[second])),
            ],
        )
        invoke(layout, "analyze")

        # When
        result = invoke(layout, "report", "--threshold", "2")

        # Then
        assert result.exit_code == 0, result.output
        report = json.loads(layout.report_path.read_text())
        assert report["stats"]["total_timeouts"] == 2
        assert report["stats"]["days_covered"] == 2
        assert report["type_breakdown"] == {"Error: boom": 2}
        assert "Total timeouts analyzed" in result.output

    def test_report_without_snapshot(self, layout):
        """Reporting before analyzing fails with a hint."""
        result = invoke(layout, "report")

        assert result.exit_code == 1
        assert "stopwatch analyze" in result.output

    def test_report_with_no_entries(self, layout):
        """An empty snapshot reports no statistics."""
        write_json(layout.timedout_path, {"entries": []})

        result = invoke(layout, "report")

        assert result.exit_code == 0
        assert json.loads(layout.report_path.read_text())["stats"] is None

    @pytest.mark.parametrize("start_time", [None, "not-a-date"])
    def test_report_with_invalid_start_time(self, layout, start_time):
        """Entries with unusable timestamps fail the report without a traceback."""
        # Given
        entry = make_entry().to_dict()
        entry["start_time"] = start_time
        write_json(layout.timedout_path, {"entries": [entry, make_entry().to_dict()]})

        # When
        result = invoke(layout, "report")

        # Then
        assert result.exit_code == 1
        assert "Invalid entries" in result.output
        assert not layout.report_path.exists()


class TestClearCommand:
    """Test suite for `stopwatch clear`."""

    def test_clear_with_yes(self, layout):
        """--yes deletes everything without asking."""
        write_json(layout.jobs_path, [])

        result = invoke(layout, "clear", "--yes")

        assert result.exit_code == 0
        assert list(layout.root.iterdir()) == []

    def test_clear_aborted(self, layout):
        """Answering no keeps the files."""
        write_json(layout.jobs_path, [])

        result = invoke(layout, "clear", input="n\n")

        assert result.exit_code == 1
        assert layout.jobs_path.exists()


class TestFetchCommand:
    """Test suite for `stopwatch fetch` and `stopwatch retry`."""

    def test_fetch_requires_credentials(self, layout):
        """Missing credentials fail with the variable names."""
        result = invoke(layout, "fetch")

        assert result.exit_code == 1
        assert "STOPWATCH_CIRCLE_CI_TOKEN" in result.output

    def test_fetch_uses_settings_defaults(self, layout, monkeypatch):
        """Days and max items default to settings."""
        monkeypatch.setenv("STOPWATCH_FETCH_DAYS", "3")
        mock_run = AsyncMock(return_value=0)

        with patch("stopwatch.cli.commands.run_fetch", mock_run):
            result = invoke(layout, "fetch", "--max-items", "5")

        assert result.exit_code == 0
        assert mock_run.await_args.kwargs["days"] == 3
        assert mock_run.await_args.kwargs["max_items"] == 5

    def test_retry_with_empty_queue(self, layout):
        """Nothing queued means nothing to do."""
        result = invoke(layout, "retry")

        assert result.exit_code == 0
        assert "No job details queued" in result.output


def circleci_handler(request):
    """Route MockTransport requests to canned CircleCI responses."""
    path = request.url.path
    created = (datetime.now(tz=UTC) - timedelta(hours=1)).isoformat()

    if path.endswith("/project/gh/org/repo/pipeline"):
        return httpx.Response(
            200,
            json={
                "items": [{"id": "p1", "created_at": created, "vcs": {"branch": "main"}}],
                "next_page_token": None,
            },
        )
    if path.endswith("/pipeline/p1/workflow"):
        return httpx.Response(
            200,
            json={"items": [{"id": "w1", "name": "test", "pipeline_id": "p1"}]},
        )
    if path.endswith("/workflow/w1/job"):
        return httpx.Response(
            200,
            json={"items": [{"id": "j1", "job_number": 5, "name": "unit tests"}]},
        )
    if path.endswith("/project/gh/org/repo/5"):
        return httpx.Response(
            200,
            json={
                "status": "timedout",
                "steps": [
                    {
                        "actions": [
                            {
                                "index": 0,
                                "timedout": True,
                                "start_time": created,
                                "output_url": "https://output.test/5",
                            }
                        ]
                    }
                ],
            },
        )
    if request.url.host == "output.test":
        return httpx.Response(
            200,
            json=[{"message": "Error: boom\r\n  at foo\r\n  at bar"}, {"message": "footer"}],
        )
    return httpx.Response(404)


class TestFetchThenAnalyze:
    """Fetch against a mocked API, then analyze the saved data."""

    @pytest.mark.asyncio
    async def test_fetch_then_analyze(self, layout):
        """Fetched data flows into the timeout analysis."""
        # Given
        settings = Settings(
            _env_file=None,
            circle_ci_token="token",
            circle_ci_org_slug="gh/org",
            circle_ci_project_name="repo",
        )

        # When
        exit_code = await run_fetch(
            settings,
            layout,
            days=7,
            max_items=None,
            transport=httpx.MockTransport(circleci_handler),
        )

        # Then
        assert exit_code == 0
        jobs = json.loads(layout.jobs_path.read_text())
        assert jobs[0]["id"] == "w1/j1"
        assert layout.job_detail_path(5, "unit tests").exists()
        assert json.loads(layout.workflows_path.read_text())[0]["branch"] == "main"

        assert run_analyze(layout) == 0
        snapshot = json.loads(layout.timedout_path.read_text())
        entry = snapshot["entries"][0]
        assert entry["workflow_id"] == "w1"
        assert entry["branch"] == "main"
        assert entry["job_name"] == "unit tests"
        assert entry["processed_classification"] == ["Error: boom", "  at bar"]

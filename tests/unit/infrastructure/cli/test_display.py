import pytest
from rich.console import Console

from ratepipe.domain.models.common import FetchFailure, FetchSuccess, JobId, Result
from ratepipe.domain.models.pipeline import PipelineStats
from ratepipe.infrastructure.cli.display import ConsoleDisplay


@pytest.fixture
def console():
    return Console(record=True, width=120)


@pytest.fixture
def display(console):
    return ConsoleDisplay(console=console)


def make_results():
    return [
        Result(job_id=JobId("job-a"), outcome=FetchSuccess({"trades": []}), batch_number=1, position=0, latency_ms=12.0),
        Result(job_id=JobId("job-b"), outcome=FetchFailure("TransientFetchError", "upstream 502"), batch_number=1, position=1),
    ]


def test_display_results_shows_each_job(display, console):
    display.display_results(make_results())

    output = console.export_text()
    assert "Results (2)" in output
    assert "job-a" in output and "ok" in output and "12ms" in output
    assert "job-b" in output and "TransientFetchError: upstream 502" in output


def test_display_results_respects_limit(display, console):
    display.display_results(make_results(), limit=1)

    output = console.export_text()
    assert "job-a" in output
    assert "job-b" not in output
    assert "1 more results not shown" in output


def test_display_summary(display, console):
    stats = PipelineStats(
        jobs_produced=5,
        batches_dispatched=2,
        results_succeeded=4,
        results_failed=1,
        batch_sizes=[3, 2],
        batch_start_times=[10.0, 11.25],
    )

    display.display_summary(stats, stop_reason="source exhausted")

    output = console.export_text()
    assert "Pipeline Summary" in output
    assert "3, 2" in output
    assert "1250ms" in output
    assert "source exhausted" in output


def test_display_error_and_warning(display, console):
    display.display_error("bad things")
    display.display_warning("careful")

    output = console.export_text()
    assert "Error" in output and "bad things" in output
    assert "Warning" in output and "careful" in output


def test_display_config(display, console):
    display.display_config({"pipeline.batch_size": 5})

    output = console.export_text()
    assert "Effective configuration" in output
    assert "pipeline.batch_size" in output


def test_preview_truncates_long_payloads():
    preview = ConsoleDisplay._preview({"data": "x" * 200})
    assert len(preview) == 60
    assert preview.endswith("...")

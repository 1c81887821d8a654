import pytest

from ratepipe.infrastructure.config.settings import set_config_for_testing
from ratepipe.main import app


@pytest.fixture(autouse=True)
def quiet_bootstrap(mocker):
    """Keeps CLI runs from reading user config files or reconfiguring logging."""
    mocker.patch("ratepipe.main.load_configuration")
    mocker.patch("ratepipe.main.setup_logging")


def test_run_finite_jobs(runner):
    result = runner.invoke(
        app,
        ["run", "--jobs", "5", "--batch-size", "2", "--cooldown-ms", "0", "--latency-ms", "0", "--seed", "1"],
    )

    assert result.exit_code == 0, result.output
    assert "Results (5)" in result.output
    assert "Pipeline Summary" in result.output
    assert "source exhausted" in result.output


def test_run_with_quota_and_short_cooldown(runner):
    result = runner.invoke(
        app,
        ["run", "-n", "4", "-b", "2", "-c", "50", "--latency-ms", "0", "--hide-results"],
    )

    assert result.exit_code == 0, result.output
    assert "Results (" not in result.output


def test_run_rejects_invalid_batch_size(runner):
    result = runner.invoke(app, ["run", "--jobs", "1", "--batch-size", "0"])

    assert result.exit_code == 2
    assert "Invalid configuration" in result.output


def test_run_reports_unsupported_exchange(runner):
    set_config_for_testing({"exchange.name": "kraken"})

    result = runner.invoke(app, ["run", "--jobs", "1", "--cooldown-ms", "0"])

    assert result.exit_code == 1
    assert "Unsupported exchange" in result.output


def test_show_config_uses_configured_values(runner):
    set_config_for_testing({"pipeline.batch_size": 3, "exchange.latency_ms": 10})

    result = runner.invoke(app, ["show-config"])

    assert result.exit_code == 0, result.output
    assert "pipeline.batch_size" in result.output
    assert "exchange.latency_ms" in result.output

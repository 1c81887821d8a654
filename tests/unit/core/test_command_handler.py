import pytest

from conftest import ScriptedFetcher
from ratepipe.core.command_handler import CommandHandler
from ratepipe.domain.exceptions import UnsupportedExchangeError
from ratepipe.domain.interfaces.user_interface import UserInterface
from ratepipe.domain.models.pipeline import PipelineConfig
from ratepipe.infrastructure.exchange.factory import make_fetcher


@pytest.fixture
def mock_ui(mocker):
    """Provides a mock UserInterface."""
    return mocker.MagicMock(spec=UserInterface)


@pytest.fixture
def fetcher():
    return ScriptedFetcher()


@pytest.fixture
def handler(mock_ui, fetcher):
    return CommandHandler(ui=mock_ui, fetcher_factory=lambda **options: fetcher)


@pytest.fixture
def config():
    return PipelineConfig(batch_size=2, cooldown_ms=0, queue_capacity=4)


@pytest.mark.asyncio
async def test_handle_run_displays_results_and_summary(handler, mock_ui, fetcher, config):
    stats = await handler.handle_run(config, {}, max_jobs=5)

    assert stats.jobs_produced == 5
    assert stats.results_total == 5
    assert fetcher.closed is True
    mock_ui.display_error.assert_not_called()
    mock_ui.display_results.assert_called_once()
    results = mock_ui.display_results.call_args.args[0]
    assert [result.job_id for result in results] == fetcher.calls
    mock_ui.display_summary.assert_called_once_with(stats, stop_reason="source exhausted")
    mock_ui.display_warning.assert_not_called()


@pytest.mark.asyncio
async def test_handle_run_can_hide_results(handler, mock_ui, config):
    await handler.handle_run(config, {}, max_jobs=1, show_results=False)

    mock_ui.display_results.assert_not_called()
    mock_ui.display_summary.assert_called_once()


@pytest.mark.asyncio
async def test_handle_run_without_limits_warns_and_stops_on_duration(handler, mock_ui, config):
    stats = await handler.handle_run(config, {}, duration=0.05)

    mock_ui.display_info.assert_called_once()
    assert "running until interrupted" in mock_ui.display_info.call_args.args[0]
    assert mock_ui.display_summary.call_args.kwargs["stop_reason"] == "duration elapsed"
    assert stats.jobs_produced == stats.results_total


@pytest.mark.asyncio
async def test_handle_run_passes_options_to_factory(mock_ui, config, mocker):
    factory = mocker.MagicMock(return_value=ScriptedFetcher())
    handler = CommandHandler(ui=mock_ui, fetcher_factory=factory)

    await handler.handle_run(config, {"latency_ms": 0, "seed": 7}, max_jobs=1)

    kwargs = factory.call_args.kwargs
    assert kwargs["latency_ms"] == 0
    assert kwargs["seed"] == 7
    assert callable(kwargs["on_event"])


@pytest.mark.asyncio
async def test_handle_run_reports_unsupported_exchange(mock_ui, config):
    handler = CommandHandler(ui=mock_ui, fetcher_factory=make_fetcher)

    stats = await handler.handle_run(config, {"exchange": "kraken"}, max_jobs=1)

    assert stats is None
    mock_ui.display_error.assert_called_once()
    assert "kraken" in mock_ui.display_error.call_args.args[0]
    mock_ui.display_summary.assert_not_called()


@pytest.mark.asyncio
async def test_handle_run_reports_pipeline_failure(mock_ui, config, fetcher, mocker):
    handler = CommandHandler(ui=mock_ui, fetcher_factory=lambda **options: fetcher)
    mocker.patch(
        "ratepipe.core.command_handler.CollectingSink.emit",
        side_effect=RuntimeError("sink exploded"),
    )

    stats = await handler.handle_run(config, {}, max_jobs=2)

    assert stats is None
    assert "sink exploded" in mock_ui.display_error.call_args.args[0]
    assert fetcher.closed is True


def test_make_fetcher_rejects_unknown_exchange():
    with pytest.raises(UnsupportedExchangeError):
        make_fetcher(exchange="kraken")


def test_handle_show_config_flattens_options(handler, mock_ui, config):
    handler.handle_show_config(config, {"latency_ms": 10})

    shown = mock_ui.display_config.call_args.args[0]
    assert shown["pipeline.batch_size"] == 2
    assert shown["pipeline.overflow_policy"] == "block"
    assert shown["exchange.latency_ms"] == 10

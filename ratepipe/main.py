"""Main entry point for the ratepipe application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, Optional

import typer
from typing_extensions import Annotated

from ratepipe.core.command_handler import CommandHandler
from ratepipe.domain.exceptions import ConfigurationError
from ratepipe.domain.models.pipeline import OverflowPolicy, PipelineConfig
from ratepipe.infrastructure.cli.display import ConsoleDisplay
from ratepipe.infrastructure.config.settings import (
    get_config,
    get_exchange_options,
    get_pipeline_config,
    load_configuration,
)
from ratepipe.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, resolve_log_level, setup_logging

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

_dependencies: Optional[Dict[str, Any]] = None


def create_dependencies(verbose: bool = False) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    load_configuration()
    log_level = logging.DEBUG if verbose else resolve_log_level(get_config('logging.level', 'WARNING'))
    setup_logging(
        log_level=log_level,
        log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
        log_file=get_config('logging.file'),
    )
    logger.info("Configuration and logging initialized.")

    dependencies: Dict[str, Any] = {}
    dependencies['ui'] = ConsoleDisplay()
    dependencies['command_handler'] = CommandHandler(ui=dependencies['ui'])
    logger.info("All dependencies initialized successfully.")
    return dependencies


def get_dependencies(verbose: bool = False) -> Dict[str, Any]:
    global _dependencies
    if _dependencies is None:
        _dependencies = create_dependencies(verbose=verbose)
    return _dependencies


def reset_dependencies() -> None:
    """Drops the cached container (used by tests)."""
    global _dependencies
    _dependencies = None


# --- Typer App Definition ---
app = typer.Typer(
    name="ratepipe",
    help="ratepipe: rate-limited request pipeline with a bounded queue, batch-paced dispatcher and kill switch.",
    add_completion=False,
)


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Runs an async command handler from a sync Typer command."""
    return asyncio.run(coro)


def _load_pipeline_config(ui: ConsoleDisplay, **overrides: Any) -> PipelineConfig:
    try:
        return get_pipeline_config(**overrides)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        ui.display_error(f"Invalid configuration: {e}")
        raise typer.Exit(code=2)


# --- CLI Commands ---

@app.command()
def run(
    batch_size: Annotated[Optional[int], typer.Option("--batch-size", "-b", help="Requests per quota window.")] = None,
    cooldown_ms: Annotated[Optional[int], typer.Option("--cooldown-ms", "-c", help="Quota window length in milliseconds.")] = None,
    queue_capacity: Annotated[Optional[int], typer.Option("--queue-capacity", "-q", help="Maximum pending jobs.")] = None,
    interval_ms: Annotated[Optional[int], typer.Option("--interval-ms", help="Pause between produced jobs.")] = None,
    reject_when_full: Annotated[bool, typer.Option("--reject-when-full", help="Reject jobs instead of blocking when the queue is full.")] = False,
    no_drain: Annotated[bool, typer.Option("--no-drain", help="Drop queued jobs instead of draining them on stop.")] = False,
    jobs: Annotated[Optional[int], typer.Option("--jobs", "-n", min=1, help="Stop producing after this many jobs.")] = None,
    duration: Annotated[Optional[float], typer.Option("--duration", "-d", min=0.0, help="Fire the kill switch after this many seconds.")] = None,
    latency_ms: Annotated[Optional[int], typer.Option("--latency-ms", help="Simulated request latency.")] = None,
    failure_rate: Annotated[Optional[float], typer.Option("--failure-rate", min=0.0, max=1.0, help="Fraction of simulated requests that fail.")] = None,
    seed: Annotated[Optional[int], typer.Option("--seed", help="Seed for the simulated exchange.")] = None,
    retries: Annotated[Optional[int], typer.Option("--retries", min=0, help="Retries per failed fetch (exponential backoff).")] = None,
    enforce_quota: Annotated[bool, typer.Option("--enforce-quota/--no-enforce-quota", help="Have the simulated exchange reject requests beyond batch-size per cooldown.")] = True,
    show_results: Annotated[bool, typer.Option("--show-results/--hide-results", help="Print the results table.")] = True,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Run the pipeline against the simulated exchange."""
    deps = get_dependencies(verbose=verbose)
    ui: ConsoleDisplay = deps['ui']
    handler: CommandHandler = deps['command_handler']

    config = _load_pipeline_config(
        ui,
        batch_size=batch_size,
        cooldown_ms=cooldown_ms,
        queue_capacity=queue_capacity,
        production_interval_ms=interval_ms,
        overflow_policy=OverflowPolicy.REJECT if reject_when_full else None,
        drain_on_stop=False if no_drain else None,
    )

    exchange_options = get_exchange_options()
    cli_exchange = {
        'latency_ms': latency_ms,
        'failure_rate': failure_rate,
        'seed': seed,
        'max_retries': retries,
    }
    exchange_options.update({key: value for key, value in cli_exchange.items() if value is not None})
    if enforce_quota and config.cooldown_ms > 0:
        exchange_options.setdefault('quota_requests', config.batch_size)
        exchange_options.setdefault('quota_window_s', config.cooldown_s)

    stats = run_async(handler.handle_run(
        config,
        exchange_options,
        max_jobs=jobs,
        duration=duration,
        show_results=show_results,
    ))
    if stats is None:
        raise typer.Exit(code=1)


@app.command(name="show-config")
def show_config_command(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Show the effective pipeline and exchange configuration."""
    deps = get_dependencies(verbose=verbose)
    handler: CommandHandler = deps['command_handler']
    config = _load_pipeline_config(deps['ui'])
    handler.handle_show_config(config, get_exchange_options())


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()

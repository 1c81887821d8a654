"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), assembles a pipeline
run from configuration and delegates presentation to the UserInterface.
"""

import asyncio
import logging
import signal
from typing import Any, Callable, Dict, Optional

from ratepipe.core.services.pipeline_service import RequestPipeline
from ratepipe.domain.exceptions import RatePipeError
from ratepipe.domain.interfaces.fetcher import RemoteFetcher
from ratepipe.domain.interfaces.user_interface import UserInterface
from ratepipe.domain.models.pipeline import PipelineConfig, PipelineStats
from ratepipe.infrastructure.exchange.factory import make_fetcher
from ratepipe.infrastructure.monitoring.event_recorder import EventRecorder
from ratepipe.infrastructure.sinks.result_sinks import CollectingSink

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to the pipeline services."""

    def __init__(
        self,
        ui: UserInterface,
        fetcher_factory: Callable[..., RemoteFetcher] = make_fetcher,
    ):
        """Initializes the CommandHandler.

        Args:
            ui: Where results, summaries and errors are shown.
            fetcher_factory: Builds the RemoteFetcher from exchange options.
        """
        self.ui = ui
        self.fetcher_factory = fetcher_factory

    async def handle_run(
        self,
        config: PipelineConfig,
        exchange_options: Dict[str, Any],
        max_jobs: Optional[int] = None,
        duration: Optional[float] = None,
        show_results: bool = True,
        results_limit: Optional[int] = 50,
    ) -> Optional[PipelineStats]:
        """Handles the 'run' command: runs one pipeline to completion.

        Returns:
            The run's statistics, or None if the run could not start or failed.
        """
        logger.info(f"Handling 'run' command: {config}, exchange={exchange_options}")
        recorder = EventRecorder()
        try:
            fetcher = self.fetcher_factory(**exchange_options, on_event=recorder)
        except (RatePipeError, ValueError) as e:
            logger.error(f"Could not create fetcher: {e}")
            self.ui.display_error(f"Could not create fetcher: {e}")
            return None

        sink = CollectingSink()
        pipeline = RequestPipeline(config, fetcher, sink, on_event=recorder, max_jobs=max_jobs)

        if max_jobs is None and duration is None:
            self.ui.display_info("No --jobs or --duration given: running until interrupted (Ctrl-C drains and stops).")

        loop = asyncio.get_running_loop()
        signal_installed = self._install_interrupt(loop, pipeline)
        try:
            stats = await pipeline.run(duration=duration)
        except Exception as e:
            logger.error(f"Pipeline run failed: {e}", exc_info=True)
            self.ui.display_error(f"Pipeline run failed: {e}")
            return None
        finally:
            if signal_installed:
                loop.remove_signal_handler(signal.SIGINT)
            await fetcher.close()

        if show_results:
            self.ui.display_results(sink.results, limit=results_limit)
        self.ui.display_summary(stats, stop_reason=pipeline.kill_switch.reason)
        if stats.jobs_dropped:
            self.ui.display_warning(f"{stats.jobs_dropped} queued jobs were dropped at shutdown.")
        return stats

    def handle_show_config(self, config: PipelineConfig, exchange_options: Dict[str, Any]) -> None:
        """Handles the 'show-config' command."""
        logger.info("Handling 'show-config' command.")
        flat: Dict[str, Any] = {f"pipeline.{key}": value for key, value in config.to_dict().items()}
        flat.update({f"exchange.{key}": value for key, value in exchange_options.items()})
        self.ui.display_config(flat)

    @staticmethod
    def _install_interrupt(loop: asyncio.AbstractEventLoop, pipeline: RequestPipeline) -> bool:
        try:
            loop.add_signal_handler(signal.SIGINT, pipeline.kill, "interrupted")
        except (NotImplementedError, RuntimeError, ValueError) as e:
            # Not available on Windows event loops or outside the main thread.
            logger.debug(f"SIGINT handler not installed: {e}")
            return False
        return True

import json
import logging
from typing import Any, Dict, Optional, Sequence

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ratepipe.domain.interfaces.user_interface import UserInterface
from ratepipe.domain.models.common import Result
from ratepipe.domain.models.pipeline import PipelineStats

logger = logging.getLogger(__name__)

PAYLOAD_PREVIEW_CHARS = 60


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self.console = console or Console()

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style."""
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message."""
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message."""
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_results(self, results: Sequence[Result], **kwargs: Any) -> None:
        """Displays one row per Result, in emission order.

        Args:
            results: Results as emitted by the dispatcher.
            **kwargs: ``limit`` caps the number of rows shown.
        """
        limit = kwargs.get("limit")
        shown = list(results if limit is None else results[:limit])
        table = Table(title=f"Results ({len(results)})", box=ROUNDED, border_style="cyan")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Batch", justify="right")
        table.add_column("Job", style="bold")
        table.add_column("Status")
        table.add_column("Latency", justify="right")
        table.add_column("Detail", overflow="fold")

        for index, result in enumerate(shown, start=1):
            if result.ok:
                status = "[green]ok[/green]"
                detail = self._preview(result.payload)
            else:
                status = "[red]failed[/red]"
                detail = f"{result.error.error_type}: {result.error.error_message}"
            latency = f"{result.latency_ms:.0f}ms" if result.latency_ms is not None else "-"
            table.add_row(str(index), str(result.batch_number), result.job_id, status, latency, detail)

        self.console.print(table)
        if len(shown) < len(results):
            self.console.print(f"[dim]... {len(results) - len(shown)} more results not shown[/dim]")

    def display_summary(self, stats: PipelineStats, **kwargs: Any) -> None:
        """Displays run counters and the observed spacing between batches."""
        table = Table(show_header=False, box=SIMPLE, border_style="cyan", padding=(0, 1))
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right", style="bold")

        table.add_row("Jobs produced", str(stats.jobs_produced))
        table.add_row("Jobs rejected", str(stats.jobs_rejected))
        table.add_row("Batches dispatched", str(stats.batches_dispatched))
        table.add_row("Batch sizes", ", ".join(str(size) for size in stats.batch_sizes) or "-")
        table.add_row("Results succeeded", f"[green]{stats.results_succeeded}[/green]")
        table.add_row("Results failed", f"[red]{stats.results_failed}[/red]")
        table.add_row("Jobs dropped", str(stats.jobs_dropped))

        starts = stats.batch_start_times
        if len(starts) > 1:
            gaps = [later - earlier for earlier, later in zip(starts, starts[1:])]
            table.add_row("Min gap between batches", f"{min(gaps) * 1000:.0f}ms")

        reason = kwargs.get("stop_reason")
        if reason:
            table.add_row("Stopped because", str(reason))

        self.console.print(Panel(table, title="[bold cyan]Pipeline Summary[/bold cyan]", border_style="cyan", box=ROUNDED))

    def display_config(self, config: Dict[str, Any]) -> None:
        """Displays the effective configuration as a two-column table."""
        table = Table(title="Effective configuration", box=ROUNDED, border_style="cyan")
        table.add_column("Option", style="cyan")
        table.add_column("Value", style="bold")
        for key, value in config.items():
            table.add_row(key, str(value))
        self.console.print(table)

    @staticmethod
    def _preview(payload: Any) -> str:
        try:
            text = json.dumps(payload, default=str)
        except (TypeError, ValueError):
            text = repr(payload)
        if len(text) > PAYLOAD_PREVIEW_CHARS:
            return text[:PAYLOAD_PREVIEW_CHARS - 3] + "..."
        return text

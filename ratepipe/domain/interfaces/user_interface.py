"""Interface for presenting pipeline activity to the user.

Allows different UI implementations (console, tests, a future web view).
"""

import abc
from typing import Any, Dict, Sequence

from ratepipe.domain.models.common import Result
from ratepipe.domain.models.pipeline import PipelineStats


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user.

        Args:
            warning_message: The warning message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user.

        Args:
            info_message: The informational message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_results(self, results: Sequence[Result], **kwargs: Any) -> None:
        """Displays emitted Results, one row per job, in emission order."""
        pass

    @abc.abstractmethod
    def display_summary(self, stats: PipelineStats, **kwargs: Any) -> None:
        """Displays the counters of a finished run."""
        pass

    def display_config(self, config: Dict[str, Any]) -> None:
        """Displays the effective configuration.

        Args:
            config: Flat mapping of option name to value.
        """
        pass

"""Cooperative, level-triggered cancellation signal.

Every checkpoint observes the switch with ``is_fired()``; nothing consumes
it, so any number of tasks see the same final state regardless of the
order in which they look.
"""

import asyncio
import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

KillSwitchListener = Callable[[Optional[str]], None]


class KillSwitch:
    """Single-fire, idempotent broadcast cancellation token."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._listeners: List[KillSwitchListener] = []

    @property
    def reason(self) -> Optional[str]:
        """Reason given to the first ``fire()`` call, if any."""
        return self._reason

    def fire(self, reason: Optional[str] = None) -> bool:
        """Fires the switch. Subsequent calls are no-ops.

        Args:
            reason: Free-form description, kept from the first call only.

        Returns:
            True if this call fired the switch, False if it was already fired.
        """
        if self._event.is_set():
            logger.debug(f"Kill switch already fired ({self._reason}); ignoring '{reason}'.")
            return False
        self._reason = reason
        self._event.set()
        logger.info(f"Kill switch fired: {reason or 'no reason given'}")
        for listener in self._listeners:
            self._notify(listener, reason)
        return True

    def is_fired(self) -> bool:
        """Non-blocking check; safe to call from any number of observers."""
        return self._event.is_set()

    async def wait(self) -> None:
        """Suspends until the switch fires."""
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """Sleeps for up to ``seconds``, waking early if the switch fires.

        Returns:
            True if the switch is fired when the call returns.
        """
        if self._event.is_set():
            return True
        if seconds <= 0:
            await asyncio.sleep(0)
            return self._event.is_set()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    def add_listener(self, listener: KillSwitchListener) -> None:
        """Registers a callback run once when the switch fires.

        A listener added after the switch has fired runs immediately.
        """
        if self._event.is_set():
            self._notify(listener, self._reason)
            return
        self._listeners.append(listener)

    def _notify(self, listener: KillSwitchListener, reason: Optional[str]) -> None:
        try:
            listener(reason)
        except Exception as e:
            logger.error(f"Kill switch listener {listener!r} failed: {e}", exc_info=True)

    def __repr__(self) -> str:
        state = f"fired ({self._reason})" if self.is_fired() else "armed"
        return f"<KillSwitch {state}>"

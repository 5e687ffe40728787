"""
Release-on-Interrupt Guard.

Scoped acquisition for the database handle: once a handle is acquired,
a termination signal releases it exactly once and then ends the process
with a success status. Shutdown paths that run without a signal (API
lifespan, CLI teardown) call ``release()`` on the same guard, so the
handle is never closed twice.
"""

import asyncio
import logging
import signal
import sys
from typing import Any, Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class InterruptGuard:
    """
    One-shot termination handler guarding acquired handles.

    Signal handlers are registered on the first ``install()`` call only;
    later calls just add handles to the set released on interrupt.

    Args:
        signals: Signals that trigger release and exit
        exit_process: Called with the exit status after release
    """

    def __init__(
        self,
        signals: Sequence[int] = DEFAULT_SIGNALS,
        exit_process: Callable[[int], Any] = sys.exit,
    ):
        self._signals = tuple(signals)
        self._exit_process = exit_process
        self._handles: List[Any] = []
        self._released: List[Any] = []
        self._installed = False
        self._lock = asyncio.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown_task: Optional[asyncio.Task] = None

    @property
    def installed(self) -> bool:
        """Whether the signal handlers have been registered."""
        return self._installed

    @property
    def released(self) -> bool:
        """Whether every guarded handle has been released."""
        return bool(self._handles) and len(self._released) == len(self._handles)

    def install(self, handle: Any) -> bool:
        """
        Guard a handle, registering the termination handler if needed.

        Must be called from a running event loop.

        Args:
            handle: Object with an async ``close()`` method

        Returns:
            True if this call registered the signal handlers
        """
        self._handles.append(handle)
        if self._installed:
            logger.debug("Interrupt handler already registered, handle added to guard")
            return False

        self._loop = asyncio.get_running_loop()
        for signum in self._signals:
            try:
                self._loop.add_signal_handler(signum, self.handle_signal, signum)
            except (NotImplementedError, RuntimeError):
                # Event loops without add_signal_handler (Windows)
                signal.signal(signum, self._threadsafe_handler)
        self._installed = True
        logger.debug(f"Interrupt handler registered for signals {list(self._signals)}")
        return True

    def uninstall(self) -> None:
        """Remove the registered signal handlers."""
        if not self._installed or self._loop is None:
            return
        for signum in self._signals:
            try:
                self._loop.remove_signal_handler(signum)
            except (NotImplementedError, RuntimeError):
                signal.signal(signum, signal.SIG_DFL)
        self._installed = False

    def _threadsafe_handler(self, signum: int, frame: Any) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.handle_signal, signum)

    def handle_signal(self, signum: int) -> None:
        """Schedule release followed by a successful exit."""
        if self._shutdown_task is not None:
            return
        logger.info(f"Received signal {signum}, releasing database connection")
        self._shutdown_task = asyncio.ensure_future(self._release_and_exit())

    async def _release_and_exit(self) -> None:
        await self.release()
        self._exit_process(0)

    async def release(self) -> bool:
        """
        Release every guarded handle that has not been released yet.

        Returns:
            True if at least one handle was closed by this call
        """
        closed_any = False
        async with self._lock:
            for handle in self._handles:
                if any(handle is done for done in self._released):
                    continue
                try:
                    await handle.close()
                    closed_any = True
                except Exception as e:
                    logger.error(f"Error closing database connection: {e}")
                finally:
                    self._released.append(handle)
        if closed_any:
            logger.info("Database connection closed through app termination")
        return closed_any


# Global guard instance
_interrupt_guard: Optional[InterruptGuard] = None


def get_interrupt_guard() -> InterruptGuard:
    """
    Get or create the process-wide interrupt guard.

    Returns:
        InterruptGuard instance
    """
    global _interrupt_guard
    if _interrupt_guard is None:
        _interrupt_guard = InterruptGuard()
    return _interrupt_guard

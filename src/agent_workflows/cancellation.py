"""Cancellation tokens for cooperative workflow interruption.

A runner checks its token at natural boundaries: before each sequential
step, between retry attempts, before each evaluator iteration. Requests in
flight are never interrupted; the run stops at the next checked boundary.

Key design:
- Token uses asyncio.Event internally for async-friendly waiting
- Tokens can be linked so a caller-supplied token also cancels a runner's own
- Raising uses the library's WorkflowCancelledError
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from .errors import WorkflowCancelledError

logger = logging.getLogger(__name__)


@dataclass
class CancellationToken:
    """Mutable token for cooperative cancellation.

    Usage:
        token = CancellationToken()

        # In a long-running loop:
        for agent in agents:
            token.raise_if_cancelled()
            await run(agent)

        # From elsewhere:
        token.cancel()
    """

    _event: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _callbacks: list[Callable[[], Any]] = field(default_factory=list, init=False)

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation (idempotent).

        Triggers all registered callbacks on the first call only.
        """
        if self._event.is_set():
            return
        self._event.set()
        for cb in self._callbacks:
            try:
                cb()
            except Exception:
                # A broken callback must not stop cancellation from propagating
                logger.exception("Cancellation callback failed")

    async def wait(self) -> None:
        """Block until cancel() is called."""
        await self._event.wait()

    def on_cancel(self, callback: Callable[[], Any]) -> None:
        """Register callback for cancellation.

        Callback is invoked immediately if already cancelled.
        """
        self._callbacks.append(callback)
        if self._event.is_set():
            callback()

    def remove_callback(self, callback: Callable[[], Any]) -> None:
        """Unregister a callback added with on_cancel(); unknown callbacks are ignored."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def link(self, parent: CancellationToken | None) -> CancellationToken:
        """Cancel this token whenever ``parent`` is cancelled. Returns self."""
        if parent is not None and parent is not self:
            parent.on_cancel(self.cancel)
        return self

    def unlink(self, parent: CancellationToken | None) -> None:
        """Undo link(); ``parent`` no longer cancels this token."""
        if parent is not None and parent is not self:
            parent.remove_callback(self.cancel)

    def raise_if_cancelled(self, message: str | None = None) -> None:
        """Raise WorkflowCancelledError if cancelled.

        Raises:
            WorkflowCancelledError: If cancellation was requested.
        """
        if self._event.is_set():
            if message is None:
                raise WorkflowCancelledError()
            raise WorkflowCancelledError(message)


__all__ = ["CancellationToken"]

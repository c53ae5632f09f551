"""
Cancellation registry for in-flight generations.

WHAT: Track every outstanding completion so all of them can be stopped at once
WHY: "Stop everything the user is waiting on" without per-request bookkeeping
HOW: One GenerationHandle per request, cooperative checks between fragments
"""

import asyncio
from typing import AsyncIterator, Callable

from ..utils.logger import get_logger

logger = get_logger(__name__)


class GenerationHandle:
    """Cancelable token for one outstanding completion request."""

    def __init__(self):
        self._event = asyncio.Event()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Trigger the signal. Idempotent."""
        if self._event.is_set():
            return
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Cancellation callback failed: {e}")

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Run callback when the signal fires (immediately if it already has)."""
        if self._event.is_set():
            callback()
        else:
            self._callbacks.append(callback)

    async def wait(self) -> None:
        await self._event.wait()


class CancellationRegistry:
    """Collection of active GenerationHandles."""

    def __init__(self):
        self._handles: list[GenerationHandle] = []

    def register(self) -> GenerationHandle:
        handle = GenerationHandle()
        self._handles.append(handle)
        return handle

    def release(self, handle: GenerationHandle) -> None:
        """Forget a handle whose stream has finished."""
        try:
            self._handles.remove(handle)
        except ValueError:
            pass

    def cancel_all(self) -> int:
        """Trigger every registered handle, then clear the collection."""
        handles, self._handles = self._handles, []
        for handle in handles:
            handle.cancel()
        if handles:
            logger.info(f"Cancelled {len(handles)} in-flight generation(s)")
        return len(handles)

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, handle: GenerationHandle) -> bool:
        return handle in self._handles


async def guard_stream(
    stream: AsyncIterator[str],
    handle: GenerationHandle
) -> AsyncIterator[str]:
    """
    Stop a fragment stream cleanly once the handle is cancelled.

    The signal is checked before every pull and before every yield, so a
    cancellation observed mid-iteration ends the sequence without raising.
    """
    try:
        while not handle.cancelled:
            try:
                fragment = await stream.__anext__()
            except StopAsyncIteration:
                return
            if handle.cancelled:
                return
            yield fragment
    finally:
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            await aclose()

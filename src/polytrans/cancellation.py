"""
Cooperative cancellation for multi-step, multi-request operations.

A single CancellationToken is threaded explicitly through the router, every
provider call and every timeout race. Tokens can be polled
(``raise_if_cancelled``) or subscribed to (``register`` / ``wait``).
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import structlog

from .exceptions import RequestAbortedError, RequestTimeoutError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

CancelCallback = Callable[[Optional[str]], Any]


class CancellationToken:
    """Handle that lets a caller abort an in-flight operation."""

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._callbacks: List[CancelCallback] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: Optional[str] = None) -> None:
        """
        Signal cancellation. Idempotent; only the first reason is kept.

        Args:
            reason: Optional description reported by RequestAbortedError
        """
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(reason)
            except Exception as e:
                logger.warning("Cancellation callback failed", error=str(e))

    def register(self, callback: CancelCallback) -> Callable[[], None]:
        """
        Subscribe to cancellation.

        The callback runs immediately if the token is already cancelled.

        Returns:
            A function that removes the subscription
        """
        if self.cancelled:
            callback(self._reason)
            return lambda: None

        self._callbacks.append(callback)

        def unregister() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unregister

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestAbortedError(self._reason)

    async def wait(self) -> None:
        await self._event.wait()


class CancellationSlot:
    """
    One logical slot (e.g. "the translate box") with at most one live token.

    Beginning a new operation supersedes and cancels the previous one.
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self._token: Optional[CancellationToken] = None

    @property
    def current(self) -> Optional[CancellationToken]:
        return self._token

    def begin(self) -> CancellationToken:
        if self._token is not None:
            self._token.cancel("superseded by a newer request")
        self._token = CancellationToken()
        return self._token

    def cancel(self, reason: str = "cancelled by caller") -> bool:
        """Cancel the live operation, if any. Returns True when one was cancelled."""
        if self._token is None or self._token.cancelled:
            return False
        self._token.cancel(reason)
        return True

    def release(self, token: CancellationToken) -> None:
        """Forget ``token`` once its operation settled, unless it was already superseded."""
        if self._token is token:
            self._token = None


async def run_cancellable(
    awaitable: Awaitable[T],
    cancel_token: Optional[CancellationToken] = None,
    timeout: Optional[float] = None,
) -> T:
    """
    Race ``awaitable`` against the cancellation token and a timeout.

    Whichever fires first tears down the awaitable's task.

    Args:
        awaitable: Usually an HTTP request coroutine
        cancel_token: Caller's cancellation token
        timeout: Seconds before RequestTimeoutError is raised

    Returns:
        The awaitable's result

    Raises:
        RequestAbortedError: The token fired first
        RequestTimeoutError: The timeout fired first
    """
    if cancel_token is not None and cancel_token.cancelled:
        # Never start work for an operation that is already aborted
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        cancel_token.raise_if_cancelled()

    task = asyncio.ensure_future(awaitable)
    waiters = {task}
    cancel_waiter = None
    if cancel_token is not None:
        cancel_waiter = asyncio.ensure_future(cancel_token.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        if cancel_waiter is not None and not cancel_waiter.done():
            cancel_waiter.cancel()
            await asyncio.gather(cancel_waiter, return_exceptions=True)
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    if task in done:
        return task.result()

    if cancel_token is not None and cancel_token.cancelled:
        logger.debug("Request aborted by caller", reason=cancel_token.reason)
        raise RequestAbortedError(cancel_token.reason)

    logger.debug("Request timed out", timeout=timeout)
    raise RequestTimeoutError(timeout)

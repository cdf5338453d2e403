"""
Request/response correlation over a shared completion channel.

The transport delivers every completion to one callback (resolve) instead of
returning it to the caller. Each outbound request carries a locally unique
token; the correlator matches completions to waiting callers by token and
guarantees each request settles exactly once: resolved or timed out, never
both. A completion arriving after its caller timed out finds no pending
entry and is discarded.
"""

import logging
import threading
import uuid
from concurrent.futures import Future, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Completion:
    """Outcome of one dispatched request as reported by the transport."""

    token: str
    body: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RequestCorrelator:
    """Token-keyed map of futures awaiting a transport completion."""

    def __init__(self, prefix: str = "fundsync"):
        self._prefix = prefix
        self._pending: dict[str, Future] = {}
        self._lock = threading.Lock()

    def register(self) -> tuple[str, Future]:
        """Create a pending entry; returns its token and the future to wait on."""
        token = f"{self._prefix}_{uuid.uuid4().hex}"
        future: Future = Future()
        with self._lock:
            self._pending[token] = future
        return token, future

    def resolve(self, completion: Completion) -> bool:
        """
        Deliver a completion to its waiting caller.

        Returns False when the token is unknown (already timed out or already
        resolved); the completion is dropped.
        """
        with self._lock:
            future = self._pending.pop(completion.token, None)
            if future is None:
                logger.debug("Discarding completion for settled request %s", completion.token)
                return False
            future.set_result(completion)
        return True

    def wait(self, token: str, future: Future, timeout: float) -> Completion:
        """
        Block until the request settles.

        Raises concurrent.futures.TimeoutError when no completion arrived in
        time; the pending entry is removed so the map does not grow.
        """
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            with self._lock:
                if self._pending.pop(token, None) is None and future.done():
                    # Resolved between the timeout and taking the lock
                    return future.result()
            raise

    def discard(self, token: str) -> None:
        """Forget a pending request whose dispatch never happened."""
        with self._lock:
            self._pending.pop(token, None)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

"""Fire-and-forget HTTP transport for provider requests."""

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

import requests

from fundsync.providers.correlator import Completion

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[Completion], None]

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Referer": "https://fund.eastmoney.com/",
}


@dataclass(frozen=True)
class OutboundRequest:
    """A GET request tagged with its correlation token."""

    token: str
    url: str
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    # How long the caller will wait; the transport need not try longer
    timeout: Optional[float] = None


class Transport(Protocol):
    """
    Protocol for provider transports.

    dispatch() returns immediately. The request cannot be cancelled once
    dispatched; its outcome is delivered later, from any thread, by calling
    on_complete exactly once with a Completion carrying the request token.
    """

    def dispatch(self, request: OutboundRequest, on_complete: CompletionCallback) -> None:
        ...

    def close(self) -> None:
        ...


class RequestsTransport:
    """
    Transport backed by a shared requests Session.

    Every dispatch runs on its own daemon thread, so a request that hangs
    past its caller's timeout never delays another request from being sent.
    The socket timeout is the request's own timeout, capped by
    timeout_seconds, which bounds how long an abandoned request lingers.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout_seconds: float = 30.0,
    ):
        self._session = session or requests.Session()
        self._session.headers.update(DEFAULT_HEADERS)
        self._timeout = timeout_seconds
        self._closed = False
        self._lock = threading.Lock()
        self._counter = itertools.count(1)

    def dispatch(self, request: OutboundRequest, on_complete: CompletionCallback) -> None:
        """Start the request; raises RuntimeError once the transport is closed."""
        with self._lock:
            if self._closed:
                raise RuntimeError("transport is closed")
            name = f"fundsync-http-{next(self._counter)}"
        threading.Thread(
            target=self._perform,
            args=(request, on_complete),
            name=name,
            daemon=True,
        ).start()

    def socket_timeout(self, request: OutboundRequest) -> float:
        if request.timeout is None:
            return self._timeout
        return min(request.timeout, self._timeout)

    def _perform(self, request: OutboundRequest, on_complete: CompletionCallback) -> None:
        try:
            response = self._session.get(
                request.url,
                params=request.params or None,
                headers=request.headers or None,
                timeout=self.socket_timeout(request),
            )
            response.raise_for_status()
            if not response.encoding:
                response.encoding = "utf-8"
            completion = Completion(token=request.token, body=response.text)
        except requests.RequestException as exc:
            logger.debug("Request %s to %s failed: %s", request.token, request.url, exc)
            completion = Completion(token=request.token, error=exc)

        on_complete(completion)

    def close(self) -> None:
        """Stop accepting requests; in-flight requests run to completion."""
        with self._lock:
            self._closed = True
        self._session.close()

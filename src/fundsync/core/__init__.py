"""Core utilities and shared functionality."""

from fundsync.core.timezone import (
    now_market,
    today_market,
    from_epoch_ms,
    parse_date,
    MARKET_TZ,
)
from fundsync.core.exceptions import (
    AppError,
    ValidationError,
    NotFoundError,
    DuplicateHoldingError,
    FetchError,
    FetchTimeoutError,
    MalformedResponseError,
    TransportFailureError,
    PersistenceError,
)

__all__ = [
    "now_market",
    "today_market",
    "from_epoch_ms",
    "parse_date",
    "MARKET_TZ",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "DuplicateHoldingError",
    "FetchError",
    "FetchTimeoutError",
    "MalformedResponseError",
    "TransportFailureError",
    "PersistenceError",
]

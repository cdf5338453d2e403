"""Timezone utilities for China fund market time."""

from datetime import date, datetime

import pytz
from dateutil import parser as date_parser

MARKET_TZ = pytz.timezone("Asia/Shanghai")


def now_market() -> datetime:
    """Return current time in the fund market timezone."""
    return datetime.now(MARKET_TZ)


def today_market() -> date:
    """Return today's date in the fund market timezone."""
    return now_market().date()


def from_epoch_ms(value: float) -> datetime:
    """Convert a provider epoch-milliseconds timestamp to market time."""
    return datetime.fromtimestamp(value / 1000, tz=pytz.utc).astimezone(MARKET_TZ)


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD (or any dateutil-readable) string to a date."""
    return date_parser.parse(value).date()

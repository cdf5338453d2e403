"""Valuation provider client: live estimate with settled-value fallback."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError, wait
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Union

from fundsync.config.settings import Settings
from fundsync.core.exceptions import (
    FetchError,
    FetchTimeoutError,
    TransportFailureError,
    ValidationError,
)
from fundsync.core.timezone import now_market
from fundsync.domain.models import FundInfo, HistoryPage, ValuationResult, parse_fund_code
from fundsync.domain.views import ValuationBatch
from fundsync.providers.correlator import RequestCorrelator
from fundsync.providers.decoding import (
    FUND_DIRECTORY_LABEL,
    decode_fund_codes,
    decode_history,
    decode_live_estimate,
    decode_settled_value,
)
from fundsync.providers.transport import OutboundRequest, Transport
from fundsync.services.valuation_cache import ValuationCache

logger = logging.getLogger(__name__)

DEFAULT_LIVE_ESTIMATE_URL = "https://fundgz.1234567.com.cn/js/{code}.js"
DEFAULT_SETTLED_VALUE_URL = "https://fund.eastmoney.com/pingzhongdata/{code}.js"
DEFAULT_HISTORY_URL = "https://api.fund.eastmoney.com/f10/lsjz"
DEFAULT_FUND_SEARCH_URL = "https://fund.eastmoney.com/js/fundcode_search.js"
DEFAULT_LIVE_TIMEOUT_SECONDS = 3.0
DEFAULT_SETTLED_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_WORKERS = 8
DEFAULT_FUND_CODES_TTL = timedelta(days=7)
SEARCH_RESULT_LIMIT = 20


class ValuationProviderClient:
    """
    Fetches per-fund valuations from the external provider.

    Tries the live-estimate endpoint with a short timeout; when that yields
    nothing (timeout, transport error, malformed payload or no estimate), falls
    back to the settled net value with a longer timeout, whose failures are
    raised as FetchError. Results are read through and written to the
    optional ValuationCache. The fund code directory behind search_funds is
    held in memory until fund_codes_ttl has passed.
    """

    def __init__(
        self,
        transport: Transport,
        cache: Optional[ValuationCache] = None,
        correlator: Optional[RequestCorrelator] = None,
        live_estimate_url: str = DEFAULT_LIVE_ESTIMATE_URL,
        settled_value_url: str = DEFAULT_SETTLED_VALUE_URL,
        history_url: str = DEFAULT_HISTORY_URL,
        fund_search_url: str = DEFAULT_FUND_SEARCH_URL,
        live_timeout_seconds: float = DEFAULT_LIVE_TIMEOUT_SECONDS,
        settled_timeout_seconds: float = DEFAULT_SETTLED_TIMEOUT_SECONDS,
        max_workers: int = DEFAULT_MAX_WORKERS,
        fund_codes_ttl: timedelta = DEFAULT_FUND_CODES_TTL,
        clock: Callable[[], datetime] = now_market,
    ):
        self._transport = transport
        self._cache = cache
        self._correlator = correlator or RequestCorrelator()
        self._live_estimate_url = live_estimate_url
        self._settled_value_url = settled_value_url
        self._history_url = history_url
        self._fund_search_url = fund_search_url
        self._live_timeout = live_timeout_seconds
        self._settled_timeout = settled_timeout_seconds
        self._max_workers = max(1, max_workers)
        self._fund_codes_ttl = fund_codes_ttl
        self._clock = clock
        self._directory: Optional[list[FundInfo]] = None
        self._directory_expires_at: Optional[datetime] = None
        self._directory_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Transport,
        cache: Optional[ValuationCache] = None,
        clock: Callable[[], datetime] = now_market,
    ) -> "ValuationProviderClient":
        return cls(
            transport=transport,
            cache=cache,
            live_estimate_url=settings.live_estimate_url,
            settled_value_url=settings.settled_value_url,
            history_url=settings.history_url,
            fund_search_url=settings.fund_search_url,
            live_timeout_seconds=settings.live_estimate_timeout_seconds,
            settled_timeout_seconds=settings.settled_value_timeout_seconds,
            max_workers=settings.fetch_max_workers,
            fund_codes_ttl=timedelta(days=settings.fund_codes_ttl_days),
            clock=clock,
        )

    @property
    def correlator(self) -> RequestCorrelator:
        return self._correlator

    @property
    def cache(self) -> Optional[ValuationCache]:
        return self._cache

    def fetch_valuation(self, code: str) -> ValuationResult:
        """
        Fetch one fund's valuation.

        Raises ValidationError for a code that is not 6 digits and a
        FetchError subclass when the settled fallback fails.
        """
        fund_code = self._require_code(code)

        if self._cache is not None:
            cached = self._cache.get(fund_code)
            if cached is not None:
                return cached

        result = self._fetch_live_estimate(fund_code)
        if result is None:
            logger.debug("No live estimate for %s, falling back to settled net value", fund_code)
            result = self._fetch_settled_value(fund_code)

        if self._cache is not None:
            self._cache.put(fund_code, result)
        return result

    def fetch_valuation_batch(self, codes: Iterable[str]) -> ValuationBatch:
        """
        Fetch valuations for many funds concurrently.

        Never raises for a single fund's failure: every code maps to either
        its ValuationResult or the FetchError that ended it. Returns once all
        requests have settled.
        """
        unique_codes = list(dict.fromkeys(codes))
        batch = ValuationBatch()
        if not unique_codes:
            return batch

        workers = min(self._max_workers, len(unique_codes))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fundsync-batch") as executor:
            futures = {code: executor.submit(self._settle_one, code) for code in unique_codes}
            wait(futures.values())

        for code in unique_codes:
            batch.results[code] = futures[code].result()

        logger.info(
            "Valuation batch settled: %d succeeded, %d failed",
            len(batch.succeeded),
            len(batch.failed),
        )
        return batch

    def fetch_history(self, code: str, page_size: int = 20, page_index: int = 1) -> HistoryPage:
        """Fetch one page of settled net value history."""
        fund_code = self._require_code(code)
        if page_size <= 0 or page_index <= 0:
            raise ValidationError("page_size and page_index must be positive")

        body = self._request(
            fund_code,
            self._history_url,
            params={
                "fundCode": fund_code,
                "pageIndex": str(page_index),
                "pageSize": str(page_size),
            },
            headers={"Referer": "https://fundf10.eastmoney.com/"},
            timeout=self._settled_timeout,
        )
        return decode_history(fund_code, body)

    def fetch_fund_codes(self) -> list[FundInfo]:
        """
        The provider's fund directory, loaded at most once per TTL.

        Raises a FetchError subclass when the directory has to be loaded and
        cannot be.
        """
        with self._directory_lock:
            now = self._clock()
            if self._directory is not None and now < self._directory_expires_at:
                return list(self._directory)

            body = self._request(
                FUND_DIRECTORY_LABEL,
                self._fund_search_url,
                params={"t": self._cache_buster()},
                timeout=self._settled_timeout,
            )
            funds = decode_fund_codes(body)
            self._directory = funds
            self._directory_expires_at = now + self._fund_codes_ttl
            logger.info("Loaded fund directory with %d funds", len(funds))
            return list(funds)

    def search_funds(self, keyword: Optional[str], limit: int = SEARCH_RESULT_LIMIT) -> list[FundInfo]:
        """
        Funds whose code, name or pinyin initials contain `keyword`.

        Code and pinyin match case-insensitively, the name as typed. The
        first `limit` matches are kept in directory order, then an exact
        code match is moved to the front. A blank keyword returns [] without
        loading the directory.
        """
        term = (keyword or "").strip()
        if not term:
            return []
        upper = term.upper()

        matches: list[FundInfo] = []
        for fund in self.fetch_fund_codes():
            if len(matches) >= limit:
                break
            if upper in fund.code or term in fund.name or upper in fund.pinyin.upper():
                matches.append(fund)

        matches.sort(key=lambda fund: fund.code != upper)
        return matches

    def _settle_one(self, code: str) -> Union[ValuationResult, FetchError]:
        try:
            return self.fetch_valuation(code)
        except FetchError as exc:
            logger.warning("Valuation fetch failed for %s: %s", code, exc.message)
            return exc
        except ValidationError as exc:
            logger.warning("Skipping valuation for %s: %s", code, exc.message)
            return FetchError(code, exc.message, code="INVALID_CODE", cause=exc)
        except Exception as exc:
            logger.exception("Unexpected error fetching valuation for %s", code)
            return FetchError(code, str(exc), cause=exc)

    def _fetch_live_estimate(self, code: str) -> Optional[ValuationResult]:
        try:
            body = self._request(
                code,
                self._live_estimate_url.format(code=code),
                params={"rt": self._cache_buster()},
                timeout=self._live_timeout,
            )
            return decode_live_estimate(code, body, fetched_at=self._clock())
        except FetchError as exc:
            logger.debug("Live estimate unavailable for %s: %s", code, exc.message)
            return None

    def _fetch_settled_value(self, code: str) -> ValuationResult:
        body = self._request(
            code,
            self._settled_value_url.format(code=code),
            params={"v": self._cache_buster()},
            timeout=self._settled_timeout,
        )
        return decode_settled_value(code, body, fetched_at=self._clock())

    def _request(
        self,
        code: str,
        url: str,
        params: dict[str, str],
        timeout: float,
        headers: Optional[dict[str, str]] = None,
    ) -> Optional[str]:
        """Dispatch one correlated request and wait for its completion."""
        token, future = self._correlator.register()
        request = OutboundRequest(
            token=token,
            url=url,
            params=params,
            headers=headers or {},
            timeout=timeout,
        )
        try:
            self._transport.dispatch(request, self._correlator.resolve)
        except RuntimeError as exc:
            self._correlator.discard(token)
            raise TransportFailureError(code, exc) from exc

        try:
            completion = self._correlator.wait(token, future, timeout)
        except FuturesTimeoutError:
            raise FetchTimeoutError(code, timeout) from None

        if completion.error is not None:
            raise TransportFailureError(code, completion.error)
        return completion.body

    def _cache_buster(self) -> str:
        return str(int(self._clock().timestamp() * 1000))

    @staticmethod
    def _require_code(code: str) -> str:
        fund_code = parse_fund_code(code)
        if fund_code is None:
            raise ValidationError(f"Invalid fund code: {code!r}")
        return fund_code

"""Refresh scheduler: decides when to fetch valuations and merges the results."""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from fundsync.core.exceptions import PersistenceError
from fundsync.core.timezone import now_market
from fundsync.domain.models import Holding, RefreshStatus, ValuationResult
from fundsync.domain.views import PortfolioSummary, RefreshReport
from fundsync.providers.valuation_provider import ValuationProvider
from fundsync.repositories.protocols import HoldingsStore, SettingsStore
from fundsync.services.portfolio_calculator import calculate_summary
from fundsync.services.portfolio_state import PortfolioState
from fundsync.services.valuation_cache import ValuationCache

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 300
INTERVAL_SETTING_KEY = "refresh_interval_seconds"

UPDATED_NOTICE = "Valuations updated"
FAILED_NOTICE = "Refresh failed, please try again later"

SummaryListener = Callable[[PortfolioSummary], None]


class RefreshScheduler:
    """
    Runs valuation refresh cycles over the resident holdings.

    Every trigger first recomputes the summary from what is already in
    memory and publishes it to listeners. The provider is contacted only
    when no successful refresh has happened yet or the interval has
    elapsed (or the trigger is forced), and never while another cycle holds
    the portfolio state.
    """

    def __init__(
        self,
        provider: ValuationProvider,
        holdings_store: HoldingsStore,
        state: Optional[PortfolioState] = None,
        cache: Optional[ValuationCache] = None,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
        settings_store: Optional[SettingsStore] = None,
        clock: Callable[[], datetime] = now_market,
    ):
        self._provider = provider
        self._holdings_store = holdings_store
        self._state = state or PortfolioState()
        self._cache = cache
        self._default_interval = interval_seconds
        self._settings_store = settings_store
        self._clock = clock
        self._listeners: list[SummaryListener] = []

    @property
    def state(self) -> PortfolioState:
        return self._state

    @property
    def interval_seconds(self) -> int:
        """Configured interval, overridden by a valid stored setting."""
        if self._settings_store is None:
            return self._default_interval

        stored = self._settings_store.get(INTERVAL_SETTING_KEY)
        if stored is None:
            return self._default_interval
        try:
            if isinstance(stored, bool):
                raise TypeError("boolean interval")
            interval = int(stored)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid refresh interval setting %r", stored)
            return self._default_interval
        if interval <= 0:
            logger.warning("Ignoring non-positive refresh interval setting %r", stored)
            return self._default_interval
        return interval

    def load_holdings(self) -> list[Holding]:
        """Load the durable holdings into memory (process start)."""
        holdings = self._holdings_store.get()
        with self._state.exclusive():
            self._state.replace_holdings(holdings)
        logger.info("Loaded %d holdings", len(holdings))
        return holdings

    def subscribe(self, listener: SummaryListener) -> Callable[[], None]:
        """Register a summary listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def is_due(self, now: Optional[datetime] = None) -> bool:
        last = self._state.last_refresh_at
        if last is None:
            return True
        now = now or self._clock()
        return (now - last).total_seconds() >= self.interval_seconds

    def refresh(self, force: bool = False) -> RefreshReport:
        """
        Handle one refresh trigger.

        force skips the interval check only; a trigger that arrives while
        another cycle is running is a no-op (SKIPPED_BUSY).
        """
        summary = self._publish_summary()

        if not self._state.holdings:
            return self._report(RefreshStatus.NO_HOLDINGS, summary)
        if not force and not self.is_due():
            return self._report(RefreshStatus.NOT_DUE, summary)

        if not self._state.try_begin_refresh():
            logger.debug("Refresh already in progress, ignoring trigger")
            return self._report(RefreshStatus.SKIPPED_BUSY, summary)

        try:
            # Another trigger may have completed a cycle while we checked
            if not force and not self.is_due():
                return self._report(RefreshStatus.NOT_DUE, summary)
            return self._run_cycle()
        except Exception:
            logger.exception("Valuation refresh aborted")
            return self._report(
                RefreshStatus.FAILED,
                calculate_summary(self._state.holdings),
                notice=FAILED_NOTICE,
            )
        finally:
            self._state.end_refresh()

    def _run_cycle(self) -> RefreshReport:
        holdings = self._state.holdings
        codes = [holding.code for holding in holdings]

        if self._cache is not None:
            self._cache.sweep()

        logger.info("Refreshing valuations for %d funds", len(codes))
        batch = self._provider.fetch_valuation_batch(codes)
        succeeded = batch.succeeded
        failed = [code for code in codes if code not in succeeded]

        if not succeeded:
            logger.warning("Valuation refresh failed for all %d funds", len(codes))
            summary = self._publish_summary()
            return self._report(
                RefreshStatus.FAILED,
                summary,
                failed=failed,
                notice=FAILED_NOTICE,
            )

        now = self._clock()
        merged = [self._merge(holding, succeeded.get(holding.code), now) for holding in holdings]
        self._state.replace_holdings(merged)
        persisted = self._persist(merged)
        self._state.mark_refreshed(now)

        summary = self._publish_summary()
        logger.info(
            "Refresh finished: %d updated, %d kept stale values",
            len(succeeded),
            len(failed),
        )
        return self._report(
            RefreshStatus.PARTIAL if failed else RefreshStatus.SUCCESS,
            summary,
            succeeded=[code for code in codes if code in succeeded],
            failed=failed,
            notice=UPDATED_NOTICE,
            persisted=persisted,
        )

    @staticmethod
    def _merge(holding: Holding, result: Optional[ValuationResult], now: datetime) -> Holding:
        if result is None:
            return holding
        return replace(
            holding,
            name=holding.name or result.name,
            last_value=result.current_value,
            day_change=result.day_growth,
            valuation_time=result.observed_at,
            updated_at=now,
        )

    def _persist(self, holdings: list[Holding]) -> bool:
        try:
            self._holdings_store.put(holdings)
        except PersistenceError as exc:
            logger.warning("Keeping refreshed valuations in memory only: %s", exc.message)
            return False
        return True

    def _publish_summary(self) -> PortfolioSummary:
        summary = calculate_summary(self._state.holdings)
        for listener in list(self._listeners):
            try:
                listener(summary)
            except Exception:
                logger.exception("Summary listener %r failed", listener)
        return summary

    def _report(
        self,
        status: RefreshStatus,
        summary: PortfolioSummary,
        succeeded: Optional[list[str]] = None,
        failed: Optional[list[str]] = None,
        notice: Optional[str] = None,
        persisted: bool = False,
    ) -> RefreshReport:
        return RefreshReport(
            status=status,
            summary=summary,
            succeeded=succeeded or [],
            failed=failed or [],
            notice=notice,
            persisted=persisted,
            finished_at=self._clock(),
        )

"""
Unit tests for RefreshScheduler.

Tests cover:
- Interval policy (first refresh, not due, due, forced)
- Merge of successful valuations; stale values kept for failures
- Refresh clock only advancing on at least one success
- Non-fatal persistence failures
- Mutual exclusion: triggers during a running cycle are no-ops
- Recovery to IDLE after unexpected exceptions
- Summary listeners and settings overrides
"""

import threading
from decimal import Decimal
from typing import Iterable, Optional, Union

import pytest

from fundsync.core.exceptions import FetchError, FetchTimeoutError, PersistenceError
from fundsync.domain.models import (
    Holding,
    HistoryPage,
    RefreshStatus,
    SchedulerState,
    ValuationResult,
)
from fundsync.domain.views import ValuationBatch
from fundsync.services import PortfolioState, RefreshScheduler, ValuationCache
from fundsync.services.refresh_scheduler import FAILED_NOTICE, UPDATED_NOTICE

from tests.conftest import FakeClock, make_holding


def _valuation(code: str, estimate: str = "12.50", growth: str = "2.00") -> ValuationResult:
    return ValuationResult(
        code=code,
        name=f"基金{code}",
        estimate=Decimal(estimate),
        day_growth=Decimal(growth),
        settled_value=Decimal("12.00"),
        observed_at="2024-06-14 14:30",
    )


class FakeProvider:
    """Provider returning scripted per-code outcomes; unknown codes fail."""

    def __init__(self, outcomes: Optional[dict[str, Union[ValuationResult, FetchError]]] = None):
        self.outcomes = outcomes or {}
        self.batches: list[list[str]] = []

    def fetch_valuation(self, code: str) -> ValuationResult:
        outcome = self.outcomes.get(code) or FetchError(code, "no data")
        if isinstance(outcome, FetchError):
            raise outcome
        return outcome

    def fetch_valuation_batch(self, codes: Iterable[str]) -> ValuationBatch:
        codes = list(codes)
        self.batches.append(codes)
        return ValuationBatch(results={
            code: self.outcomes.get(code) or FetchError(code, "no data") for code in codes
        })

    def fetch_history(self, code: str, page_size: int = 20, page_index: int = 1) -> HistoryPage:
        raise FetchError(code, "no history")


class BlockingProvider(FakeProvider):
    """Provider whose batch blocks until the test releases it."""

    def __init__(self, outcomes=None):
        super().__init__(outcomes)
        self.entered = threading.Event()
        self.release = threading.Event()

    def fetch_valuation_batch(self, codes: Iterable[str]) -> ValuationBatch:
        self.entered.set()
        self.release.wait(timeout=5)
        return super().fetch_valuation_batch(codes)


class ExplodingProvider(FakeProvider):
    """Provider whose batch raises an unexpected error until disarmed."""

    def __init__(self, outcomes=None):
        super().__init__(outcomes)
        self.armed = True

    def fetch_valuation_batch(self, codes: Iterable[str]) -> ValuationBatch:
        if self.armed:
            raise RuntimeError("provider exploded")
        return super().fetch_valuation_batch(codes)


class FailingHoldingsStore:
    """Holdings store whose writes always fail."""

    def __init__(self, holdings: list[Holding]):
        self._holdings = list(holdings)
        self.put_attempts = 0

    def get(self) -> list[Holding]:
        return list(self._holdings)

    def put(self, holdings: list[Holding]) -> None:
        self.put_attempts += 1
        raise PersistenceError("disk full")


@pytest.fixture
def fund_a() -> Holding:
    return make_holding(code="000001", shares="100", cost_price="10.00")


@pytest.fixture
def fund_b() -> Holding:
    return make_holding(code="110022", shares="200", cost_price="5.00",
                        last_value="5.50", day_change="1.00")


@pytest.fixture
def make_scheduler(holdings_store, settings_store, state, clock):
    """Factory building a scheduler over the given provider and holdings."""

    def _make(
        provider,
        holdings: list[Holding],
        store=None,
        cache: Optional[ValuationCache] = None,
    ) -> RefreshScheduler:
        target_store = store or holdings_store
        if store is None:
            holdings_store.put(holdings)
        state.replace_holdings(holdings)
        return RefreshScheduler(
            provider=provider,
            holdings_store=target_store,
            state=state,
            cache=cache,
            interval_seconds=300,
            settings_store=settings_store,
            clock=clock,
        )

    return _make


# =============================================================================
# INTERVAL POLICY TESTS
# =============================================================================


class TestRefreshPolicy:
    """Tests for when a refresh contacts the provider."""

    def test_first_refresh_fetches(self, make_scheduler, fund_a, clock: FakeClock):
        """
        GIVEN no prior successful refresh
        WHEN refresh is triggered
        THEN the provider is contacted and the holding is updated
        """
        provider = FakeProvider({"000001": _valuation("000001")})
        scheduler = make_scheduler(provider, [fund_a])

        report = scheduler.refresh()

        assert report.status == RefreshStatus.SUCCESS
        assert report.succeeded == ["000001"]
        assert report.notice == UPDATED_NOTICE
        assert report.persisted is True
        assert provider.batches == [["000001"]]
        assert scheduler.state.last_refresh_at == clock.now

        holding = scheduler.state.holdings[0]
        assert holding.last_value == Decimal("12.50")
        assert holding.day_change == Decimal("2.00")
        assert holding.valuation_time == "2024-06-14 14:30"
        assert report.summary.total_current == Decimal("1250.00")

    def test_not_due_recomputes_summary_without_fetch(
        self, make_scheduler, fund_a, clock: FakeClock
    ):
        """
        GIVEN a successful refresh 60 seconds ago
        WHEN refresh is triggered again
        THEN no fetch happens but the summary is still returned
        """
        provider = FakeProvider({"000001": _valuation("000001")})
        scheduler = make_scheduler(provider, [fund_a])
        scheduler.refresh()
        clock.advance(seconds=60)

        report = scheduler.refresh()

        assert report.status == RefreshStatus.NOT_DUE
        assert report.summary.total_current == Decimal("1250.00")
        assert report.notice is None
        assert len(provider.batches) == 1
        assert scheduler.is_due() is False

    def test_due_after_interval(self, make_scheduler, fund_a, clock: FakeClock):
        provider = FakeProvider({"000001": _valuation("000001")})
        scheduler = make_scheduler(provider, [fund_a])
        scheduler.refresh()
        clock.advance(seconds=300)

        report = scheduler.refresh()

        assert report.status == RefreshStatus.SUCCESS
        assert len(provider.batches) == 2

    def test_force_bypasses_interval(self, make_scheduler, fund_a, clock: FakeClock):
        provider = FakeProvider({"000001": _valuation("000001")})
        scheduler = make_scheduler(provider, [fund_a])
        scheduler.refresh()
        clock.advance(seconds=1)

        report = scheduler.refresh(force=True)

        assert report.status == RefreshStatus.SUCCESS
        assert len(provider.batches) == 2

    def test_no_holdings(self, make_scheduler):
        provider = FakeProvider()
        scheduler = make_scheduler(provider, [])

        report = scheduler.refresh()

        assert report.status == RefreshStatus.NO_HOLDINGS
        assert report.summary.holding_count == 0
        assert provider.batches == []


# =============================================================================
# BATCH OUTCOME TESTS
# =============================================================================


class TestRefreshOutcomes:
    """Tests for merging batch results."""

    def test_partial_success_keeps_stale_value_and_advances_clock(
        self, make_scheduler, fund_a, fund_b, holdings_store, clock: FakeClock
    ):
        """
        GIVEN fund A succeeds and fund B times out
        WHEN the refresh completes
        THEN A is updated, B keeps its prior valuation, and the clock advances
        """
        provider = FakeProvider({
            "000001": _valuation("000001"),
            "110022": FetchTimeoutError("110022", 10.0),
        })
        scheduler = make_scheduler(provider, [fund_a, fund_b])

        report = scheduler.refresh()

        assert report.status == RefreshStatus.PARTIAL
        assert report.succeeded == ["000001"]
        assert report.failed == ["110022"]
        assert report.notice == UPDATED_NOTICE
        assert scheduler.state.last_refresh_at == clock.now

        a, b = scheduler.state.holdings
        assert a.last_value == Decimal("12.50")
        assert b == fund_b

        stored = {h.code: h for h in holdings_store.get()}
        assert stored["000001"].last_value == Decimal("12.5000")
        assert stored["110022"].last_value == Decimal("5.5000")

    def test_zero_success_does_not_advance_clock(self, make_scheduler, fund_a, fund_b):
        """
        GIVEN every fund fails
        WHEN the refresh completes
        THEN nothing changes, a failure notice is set, and the next trigger fetches again
        """
        provider = FakeProvider()
        scheduler = make_scheduler(provider, [fund_a, fund_b])

        report = scheduler.refresh()

        assert report.status == RefreshStatus.FAILED
        assert report.failed == ["000001", "110022"]
        assert report.notice == FAILED_NOTICE
        assert report.persisted is False
        assert scheduler.state.last_refresh_at is None
        assert scheduler.state.holdings == [fund_a, fund_b]

        scheduler.refresh()
        assert len(provider.batches) == 2

    def test_persistence_failure_is_non_fatal(self, make_scheduler, fund_a, clock: FakeClock):
        """
        GIVEN a holdings store whose writes fail
        WHEN a refresh succeeds
        THEN valuations stay in memory, persisted is False, and the clock advances
        """
        provider = FakeProvider({"000001": _valuation("000001")})
        store = FailingHoldingsStore([fund_a])
        scheduler = make_scheduler(provider, [fund_a], store=store)

        report = scheduler.refresh()

        assert report.status == RefreshStatus.SUCCESS
        assert report.persisted is False
        assert store.put_attempts == 1
        assert scheduler.state.holdings[0].last_value == Decimal("12.50")
        assert scheduler.state.last_refresh_at == clock.now

    def test_fetch_cycle_sweeps_cache(self, make_scheduler, fund_a, clock: FakeClock):
        cache = ValuationCache(ttl_minutes=5, clock=clock)
        cache.put("999999", _valuation("999999"))
        clock.advance(minutes=10)
        provider = FakeProvider({"000001": _valuation("000001")})
        scheduler = make_scheduler(provider, [fund_a], cache=cache)

        scheduler.refresh()

        assert len(cache) == 0


# =============================================================================
# MUTUAL EXCLUSION TESTS
# =============================================================================


class TestMutualExclusion:
    """Tests for the Idle/Refreshing state machine."""

    def test_trigger_during_refresh_is_a_no_op(self, make_scheduler, fund_a):
        """
        GIVEN a refresh blocked inside the provider fetch
        WHEN another (forced) refresh is triggered
        THEN it returns SKIPPED_BUSY without fetching or changing state
        """
        provider = BlockingProvider({"000001": _valuation("000001")})
        scheduler = make_scheduler(provider, [fund_a])
        reports = []
        worker = threading.Thread(target=lambda: reports.append(scheduler.refresh()))
        worker.start()
        assert provider.entered.wait(timeout=5)

        try:
            assert scheduler.state.scheduler_state == SchedulerState.REFRESHING
            skipped = scheduler.refresh(force=True)

            assert skipped.status == RefreshStatus.SKIPPED_BUSY
            assert skipped.summary.total_current == Decimal("1000.00")
            assert scheduler.state.holdings == [fund_a]
        finally:
            provider.release.set()
            worker.join(timeout=5)

        assert reports[0].status == RefreshStatus.SUCCESS
        assert len(provider.batches) == 1
        assert scheduler.state.scheduler_state == SchedulerState.IDLE

    def test_unexpected_error_returns_to_idle(self, make_scheduler, fund_a):
        """
        GIVEN a provider that raises an unexpected error
        WHEN refresh is triggered
        THEN the report is FAILED, the state is IDLE, and a later refresh still runs
        """
        provider = ExplodingProvider({"000001": _valuation("000001")})
        scheduler = make_scheduler(provider, [fund_a])

        report = scheduler.refresh()

        assert report.status == RefreshStatus.FAILED
        assert report.notice == FAILED_NOTICE
        assert scheduler.state.scheduler_state == SchedulerState.IDLE
        assert scheduler.state.last_refresh_at is None

        provider.armed = False
        assert scheduler.refresh().status == RefreshStatus.SUCCESS

    def test_holding_mutation_waits_for_running_refresh(self, make_scheduler, fund_a):
        """
        GIVEN a refresh in flight
        WHEN a mutation takes the portfolio state
        THEN it only proceeds after the refresh has merged its results
        """
        provider = BlockingProvider({"000001": _valuation("000001")})
        scheduler = make_scheduler(provider, [fund_a])
        worker = threading.Thread(target=scheduler.refresh)
        worker.start()
        assert provider.entered.wait(timeout=5)

        seen = []

        def mutate() -> None:
            with scheduler.state.exclusive() as holdings:
                seen.append(holdings[0].last_value)

        mutator = threading.Thread(target=mutate)
        mutator.start()
        mutator.join(timeout=0.2)
        assert seen == []

        provider.release.set()
        worker.join(timeout=5)
        mutator.join(timeout=5)
        assert seen == [Decimal("12.50")]


# =============================================================================
# LISTENER AND SETTINGS TESTS
# =============================================================================


class TestListenersAndSettings:
    """Tests for summary listeners and the interval override."""

    def test_listeners_get_summary_before_and_after_fetch(self, make_scheduler, fund_a):
        provider = FakeProvider({"000001": _valuation("000001")})
        scheduler = make_scheduler(provider, [fund_a])
        received = []
        scheduler.subscribe(received.append)

        scheduler.refresh()

        assert [s.total_current for s in received] == [Decimal("1000.00"), Decimal("1250.00")]

    def test_unsubscribe_and_failing_listener(self, make_scheduler, fund_a):
        provider = FakeProvider({"000001": _valuation("000001")})
        scheduler = make_scheduler(provider, [fund_a])
        received = []

        def broken(summary) -> None:
            raise ValueError("listener bug")

        scheduler.subscribe(broken)
        unsubscribe = scheduler.subscribe(received.append)
        unsubscribe()

        assert scheduler.refresh().status == RefreshStatus.SUCCESS
        assert received == []

    def test_interval_override_from_settings_store(
        self, make_scheduler, fund_a, settings_store, clock: FakeClock
    ):
        provider = FakeProvider({"000001": _valuation("000001")})
        scheduler = make_scheduler(provider, [fund_a])
        settings_store.put("refresh_interval_seconds", 60)
        scheduler.refresh()
        clock.advance(seconds=61)

        assert scheduler.interval_seconds == 60
        assert scheduler.refresh().status == RefreshStatus.SUCCESS

    @pytest.mark.parametrize("stored", ["soon", 0, -30, True, [5]])
    def test_invalid_override_is_ignored(self, make_scheduler, settings_store, stored):
        scheduler = make_scheduler(FakeProvider(), [])
        settings_store.put("refresh_interval_seconds", stored)

        assert scheduler.interval_seconds == 300

    def test_load_holdings_from_store(self, holdings_store, settings_store, clock, fund_a, fund_b):
        holdings_store.put([fund_a, fund_b])
        state = PortfolioState()
        scheduler = RefreshScheduler(
            provider=FakeProvider(),
            holdings_store=holdings_store,
            state=state,
            settings_store=settings_store,
            clock=clock,
        )

        loaded = scheduler.load_holdings()

        assert [h.code for h in loaded] == ["000001", "110022"]
        assert [h.code for h in state.holdings] == ["000001", "110022"]

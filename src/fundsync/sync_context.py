"""Process-scoped context owning the valuation sync engine and its collaborators.

One SyncContext holds the settings, database session, stores, valuation
cache, provider client, portfolio state and services. The HTTP app keeps
its instance on ``app.state.context``; tests build their own.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session, scoped_session, sessionmaker

from fundsync.config.settings import Settings, get_settings
from fundsync.core.timezone import now_market
from fundsync.providers import (
    RequestsTransport,
    StubTransport,
    Transport,
    ValuationProviderClient,
)
from fundsync.repositories.sqlalchemy import (
    SqlAlchemyHoldingsStore,
    SqlAlchemySettingsStore,
    SqlAlchemyTransactionRepository,
)
from fundsync.repositories.sqlalchemy.database import get_session_factory
from fundsync.services import (
    AnalysisService,
    HoldingService,
    PeriodicRefresher,
    PortfolioState,
    RefreshScheduler,
    ValuationCache,
)

logger = logging.getLogger(__name__)


class SyncContext:
    """
    Owned context for the sync engine.

    Collaborators are created lazily on first access and shared for the
    life of the context. Call initialize() once to load the durable
    holdings into memory, start_auto_refresh() to refresh in the background,
    and close() to stop that and release the transport and session.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[sessionmaker] = None,
        transport: Optional[Transport] = None,
        clock: Callable[[], datetime] = now_market,
    ):
        """
        Args:
            settings: Settings to use. Defaults to the global settings.
            session_factory: Session factory; defaults to the configured database.
            transport: Provider transport. Defaults to a StubTransport when
                use_stub_provider is set, otherwise a RequestsTransport.
            clock: Time source shared by the cache, client and scheduler.
        """
        self._settings = settings or get_settings()
        self._session = scoped_session(session_factory or get_session_factory())
        self._transport = transport
        self._clock = clock
        self._initialized = False

        self._cache: Optional[ValuationCache] = None
        self._provider: Optional[ValuationProviderClient] = None
        self._state: Optional[PortfolioState] = None
        self._scheduler: Optional[RefreshScheduler] = None
        self._holding_service: Optional[HoldingService] = None
        self._analysis_service: Optional[AnalysisService] = None
        self._refresher: Optional[PeriodicRefresher] = None

    def initialize(self) -> None:
        """Load holdings from the store; the store is the source of truth at start."""
        self.scheduler.load_holdings()
        self._initialized = True

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def session(self) -> Session:
        """Thread-local session for the calling thread."""
        return self._session()

    # Store accessors
    @property
    def holdings_store(self) -> SqlAlchemyHoldingsStore:
        return SqlAlchemyHoldingsStore(self._session)

    @property
    def settings_store(self) -> SqlAlchemySettingsStore:
        return SqlAlchemySettingsStore(self._session)

    @property
    def transaction_repo(self) -> SqlAlchemyTransactionRepository:
        return SqlAlchemyTransactionRepository(self._session)

    # Engine accessors
    @property
    def transport(self) -> Transport:
        if self._transport is None:
            if self._settings.use_stub_provider:
                logger.info("Using stub valuation provider")
                self._transport = StubTransport()
            else:
                self._transport = RequestsTransport(
                    timeout_seconds=self._settings.transport_timeout_seconds,
                )
        return self._transport

    @property
    def cache(self) -> ValuationCache:
        if self._cache is None:
            self._cache = ValuationCache(
                ttl_minutes=self._settings.valuation_cache_ttl_minutes,
                clock=self._clock,
            )
        return self._cache

    @property
    def provider(self) -> ValuationProviderClient:
        if self._provider is None:
            self._provider = ValuationProviderClient.from_settings(
                self._settings,
                transport=self.transport,
                cache=self.cache,
                clock=self._clock,
            )
        return self._provider

    @property
    def state(self) -> PortfolioState:
        if self._state is None:
            self._state = PortfolioState()
        return self._state

    @property
    def scheduler(self) -> RefreshScheduler:
        if self._scheduler is None:
            self._scheduler = RefreshScheduler(
                provider=self.provider,
                holdings_store=self.holdings_store,
                state=self.state,
                cache=self.cache,
                interval_seconds=self._settings.refresh_interval_seconds,
                settings_store=self.settings_store,
                clock=self._clock,
            )
        return self._scheduler

    # Service accessors
    @property
    def holdings(self) -> HoldingService:
        if self._holding_service is None:
            self._holding_service = HoldingService(
                state=self.state,
                holdings_store=self.holdings_store,
                transaction_repo=self.transaction_repo,
                clock=self._clock,
            )
        return self._holding_service

    @property
    def analysis(self) -> AnalysisService:
        if self._analysis_service is None:
            self._analysis_service = AnalysisService(state=self.state, provider=self.provider)
        return self._analysis_service

    @property
    def refresher(self) -> PeriodicRefresher:
        if self._refresher is None:
            self._refresher = PeriodicRefresher(
                self.scheduler,
                check_seconds=self._settings.auto_refresh_check_seconds,
            )
        return self._refresher

    def start_auto_refresh(self) -> None:
        """Refresh now and then whenever the interval has elapsed."""
        self.refresher.start()

    def stop_auto_refresh(self) -> None:
        if self._refresher is not None:
            self._refresher.stop()

    def close(self) -> None:
        """Clean up resources."""
        self.stop_auto_refresh()
        if self._transport is not None:
            self._transport.close()
        self._session.remove()

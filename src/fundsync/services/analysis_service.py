"""Analysis service for portfolio analytics."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from fundsync.core.exceptions import FetchError, NotFoundError
from fundsync.domain.models import Holding
from fundsync.domain.views import (
    DistributionItem,
    HoldingSnapshot,
    NetValueSnapshot,
    PortfolioSummary,
    TrendPoint,
)
from fundsync.providers.valuation_provider import ValuationProvider
from fundsync.services import portfolio_calculator as calculator
from fundsync.services.portfolio_state import PortfolioState

logger = logging.getLogger(__name__)

DEFAULT_TREND_DAYS = 30


class AnalysisService:
    """
    Service for portfolio analytics and reporting.

    Works on the resident holdings; only the trend reaches the provider.
    """

    def __init__(self, state: PortfolioState, provider: ValuationProvider):
        self._state = state
        self._provider = provider

    def snapshots(self) -> list[HoldingSnapshot]:
        """Per-holding profit snapshot and day profit."""
        return [calculator.calculate_snapshot(h) for h in self._state.holdings]

    def summary(self) -> PortfolioSummary:
        return calculator.calculate_summary(self._state.holdings)

    def distribution(self) -> list[DistributionItem]:
        return calculator.calculate_distribution(self._state.holdings)

    def annualized_return(self, holding_id: str, end: Optional[date] = None) -> Decimal:
        """
        Annualized profit rate of one holding since its add date.

        A holding without an add date, or added today, annualizes to 0.
        """
        holding = self._get(holding_id)
        if holding.add_date is None:
            return calculator.round_decimal(calculator.ZERO)
        profit = calculator.calculate_profit(holding)
        days = calculator.calculate_holding_days(holding.add_date, end)
        return calculator.calculate_annualized_rate(profit.profit_rate, days)

    def profit_trend(self, page_size: int = DEFAULT_TREND_DAYS) -> list[TrendPoint]:
        """
        Total portfolio value over the last `page_size` settled dates.

        Funds whose history cannot be fetched are valued at their current
        value on every date.
        """
        holdings = self._state.holdings
        if not holdings:
            return []

        by_date: dict[str, dict[str, Decimal]] = {}
        for holding in holdings:
            try:
                page = self._provider.fetch_history(holding.code, page_size=page_size)
            except FetchError as exc:
                logger.warning("No history for %s, using current value: %s", holding.code, exc.message)
                continue
            for record in page.records:
                if record.net_value > 0:
                    by_date.setdefault(record.date, {})[holding.code] = record.net_value

        snapshots = [
            NetValueSnapshot(date=day, net_values=values)
            for day, values in sorted(by_date.items())
        ]
        return calculator.calculate_profit_trend(holdings, snapshots)

    def _get(self, holding_id: str) -> Holding:
        for holding in self._state.holdings:
            if holding.holding_id == holding_id:
                return holding
        raise NotFoundError("Holding", holding_id)

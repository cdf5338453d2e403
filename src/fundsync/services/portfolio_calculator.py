"""
Portfolio calculator: profit/loss, distribution and trend arithmetic.

Pure functions over domain models; no I/O and no clock except the
`calculate_holding_days` default end date. Money amounts and rates are
rounded half-up to 2 places, cost prices to 4 places, shares to 2 places.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Iterable, Optional, Sequence

from fundsync.core.exceptions import ValidationError
from fundsync.core.timezone import today_market
from fundsync.domain.models import Holding, Transaction, TransactionType
from fundsync.domain.views import (
    DistributionItem,
    HoldingSnapshot,
    NetValueSnapshot,
    PortfolioSummary,
    ProfitSnapshot,
    TrendPoint,
)

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
DAYS_PER_YEAR = 365

MONEY_PLACES = 2
SHARE_PLACES = 2
PRICE_PLACES = 4


def round_decimal(value: Decimal, places: int = MONEY_PLACES) -> Decimal:
    """Round half-up to a fixed number of decimal places."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def calculate_profit(holding: Holding, current_value: Optional[Decimal] = None) -> ProfitSnapshot:
    """
    Profit of one holding at `current_value` (defaults to its last valuation,
    or its cost price when it has never been valued).

    profit is derived from the rounded amounts, so
    profit == current_amount - cost_amount holds exactly.
    """
    value = current_value if current_value is not None else holding.current_value

    cost_amount = round_decimal(holding.shares * holding.cost_price)
    current_amount = round_decimal(holding.shares * value)
    profit = current_amount - cost_amount

    return ProfitSnapshot(
        cost_amount=cost_amount,
        current_amount=current_amount,
        profit=profit,
        profit_rate=calculate_rate(profit, cost_amount),
    )


def calculate_day_profit(holding: Holding, day_change_rate: Decimal) -> Decimal:
    """Day profit = current amount * (day change rate / 100)."""
    current_amount = holding.shares * holding.current_value
    return round_decimal(current_amount * (day_change_rate / HUNDRED))


def calculate_snapshot(holding: Holding) -> HoldingSnapshot:
    """Profit snapshot plus day profit (None when the holding has no day change)."""
    day_profit = None
    if holding.day_change is not None:
        day_profit = calculate_day_profit(holding, holding.day_change)
    return HoldingSnapshot(
        holding=holding,
        profit=calculate_profit(holding),
        day_profit=day_profit,
    )


def calculate_summary(holdings: Iterable[Holding]) -> PortfolioSummary:
    """
    Aggregate all holdings into a PortfolioSummary.

    has_day_profit is True as soon as any single holding carries a day
    change; holdings without one contribute nothing to the day total.
    """
    total_cost = ZERO
    total_current = ZERO
    total_day_profit = ZERO
    has_day_profit = False
    count = 0

    for holding in holdings:
        count += 1
        profit = calculate_profit(holding)
        total_cost += profit.cost_amount
        total_current += profit.current_amount

        if holding.day_change is not None:
            total_day_profit += calculate_day_profit(holding, holding.day_change)
            has_day_profit = True

    total_profit = total_current - total_cost
    day_profit_rate = ZERO
    if total_current > 0:
        day_profit_rate = round_decimal(total_day_profit / total_current * HUNDRED)

    return PortfolioSummary(
        total_cost=round_decimal(total_cost),
        total_current=round_decimal(total_current),
        total_profit=round_decimal(total_profit),
        total_profit_rate=calculate_rate(total_profit, total_cost),
        total_day_profit=round_decimal(total_day_profit),
        day_profit_rate=day_profit_rate,
        has_day_profit=has_day_profit,
        holding_count=count,
    )


def apply_transaction(holding: Holding, transaction: Transaction) -> Holding:
    """
    Return a copy of `holding` re-based by `transaction`.

    BUY: cost price becomes the shares-weighted average of the old cost
    basis and the transaction amount, and must stay greater than 0.
    SELL: shares drop (never below 0); cost price is unchanged and no
    realized gain is recorded.
    """
    if transaction.shares <= 0:
        raise ValidationError("Transaction shares must be greater than 0")

    if transaction.txn_type == TransactionType.BUY:
        new_shares = holding.shares + transaction.shares
        total_cost = holding.shares * holding.cost_price + transaction.amount
        new_cost_price = round_decimal(total_cost / new_shares, PRICE_PLACES)
        if new_cost_price <= 0:
            raise ValidationError("Buy amount must leave a cost price greater than 0")
        return replace(
            holding,
            shares=round_decimal(new_shares, SHARE_PLACES),
            cost_price=new_cost_price,
        )

    remaining = round_decimal(holding.shares - transaction.shares, SHARE_PLACES)
    return replace(holding, shares=max(ZERO, remaining))


def calculate_rate(profit: Decimal, cost: Decimal) -> Decimal:
    """profit / cost as a percentage; 0 when cost is not positive."""
    if cost <= 0:
        return round_decimal(ZERO)
    return round_decimal(profit / cost * HUNDRED)


def calculate_holding_days(start: date, end: Optional[date] = None) -> int:
    """Whole days between two dates (order-insensitive); end defaults to today."""
    end = end or today_market()
    return abs((end - start).days)


def calculate_annualized_rate(total_rate: Decimal, days: int) -> Decimal:
    """
    ((1 + total_rate/100) ** (365/days) - 1) * 100.

    days == 0 yields 0. A total loss (rate <= -100) annualizes to -100.
    """
    if days < 0:
        raise ValidationError("Holding days cannot be negative")
    if days == 0:
        return round_decimal(ZERO)

    base = ONE + total_rate / HUNDRED
    if base <= 0:
        return round_decimal(-HUNDRED)

    exponent = Decimal(DAYS_PER_YEAR) / Decimal(days)
    growth = (base ** exponent - ONE) * HUNDRED
    with localcontext() as ctx:
        # quantize needs every integer digit plus the fraction in precision
        ctx.prec = max(ctx.prec, growth.adjusted() + MONEY_PLACES + 2)
        return round_decimal(growth)


def calculate_distribution(holdings: Sequence[Holding]) -> list[DistributionItem]:
    """Each holding's share of total current value, largest first."""
    values = [(h, h.shares * h.current_value) for h in holdings]
    total_value = sum((value for _, value in values), ZERO)

    items = []
    for holding, value in values:
        percentage = value / total_value * HUNDRED if total_value > 0 else ZERO
        items.append(
            DistributionItem(
                code=holding.code,
                name=holding.name,
                value=round_decimal(value),
                percentage=round_decimal(percentage),
            )
        )

    items.sort(key=lambda item: item.percentage, reverse=True)
    return items


def calculate_profit_trend(
    holdings: Sequence[Holding],
    snapshots: Sequence[NetValueSnapshot],
) -> list[TrendPoint]:
    """
    Total portfolio value per snapshot date.

    A fund missing from a snapshot is valued at its current value.
    """
    points = []
    for snapshot in snapshots:
        total = ZERO
        for holding in holdings:
            net_value = snapshot.net_values.get(holding.code) or holding.current_value
            total += holding.shares * net_value
        points.append(TrendPoint(date=snapshot.date, value=round_decimal(total)))
    return points

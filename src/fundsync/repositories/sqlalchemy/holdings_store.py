"""SQLAlchemy implementation of HoldingsStore."""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fundsync.core.exceptions import PersistenceError
from fundsync.domain.models import Holding
from fundsync.repositories.sqlalchemy.orm_models import HoldingORM

logger = logging.getLogger(__name__)


class SqlAlchemyHoldingsStore:
    """SQLAlchemy-backed holdings store; put() rewrites the collection in one commit."""

    def __init__(self, db: Session):
        self._db = db

    def get(self) -> list[Holding]:
        """Load all holdings in display order."""
        orm_holdings = (
            self._db.query(HoldingORM)
            .order_by(HoldingORM.position, HoldingORM.code)
            .all()
        )
        return [self._to_domain(h) for h in orm_holdings]

    def put(self, holdings: list[Holding]) -> None:
        """Replace the stored holdings; raises PersistenceError on failure."""
        try:
            self._db.query(HoldingORM).delete()
            for position, holding in enumerate(holdings):
                self._db.add(self._to_orm(holding, position))
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.warning("Failed to save %d holdings: %s", len(holdings), exc)
            raise PersistenceError(f"Failed to save holdings: {exc}") from exc

    @staticmethod
    def _to_orm(holding: Holding, position: int) -> HoldingORM:
        return HoldingORM(
            holding_id=holding.holding_id,
            position=position,
            code=holding.code,
            name=holding.name,
            shares=holding.shares,
            cost_price=holding.cost_price,
            last_value=holding.last_value,
            day_change=holding.day_change,
            valuation_time=holding.valuation_time,
            add_date=holding.add_date,
            updated_at=holding.updated_at,
        )

    @staticmethod
    def _to_domain(orm: HoldingORM) -> Holding:
        """Convert ORM holding to domain model."""
        return Holding(
            holding_id=orm.holding_id,
            code=orm.code,
            name=orm.name,
            shares=Decimal(str(orm.shares)) if orm.shares is not None else Decimal("0"),
            cost_price=Decimal(str(orm.cost_price)),
            last_value=_optional_decimal(orm.last_value),
            day_change=_optional_decimal(orm.day_change),
            valuation_time=orm.valuation_time,
            add_date=orm.add_date,
            updated_at=orm.updated_at,
        )


def _optional_decimal(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None

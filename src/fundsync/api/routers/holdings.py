"""Holding and transaction endpoints."""

from fastapi import APIRouter, Depends

from fundsync.api.deps import get_holding_service
from fundsync.api.schemas import (
    HoldingCreateRequest,
    HoldingUpdateRequest,
    HoldingResponse,
    TransactionCreateRequest,
    TransactionResponse,
    TransactionListResponse,
    TransactionAppliedResponse,
)
from fundsync.domain.models import Holding
from fundsync.services import (
    HoldingService,
    HoldingCreate,
    HoldingUpdate,
    TransactionCreate,
)
from fundsync.services.portfolio_calculator import calculate_snapshot

router = APIRouter(tags=["holdings"])


def to_holding_response(holding: Holding) -> HoldingResponse:
    """Build a response carrying the holding's derived profit figures."""
    snapshot = calculate_snapshot(holding)
    return HoldingResponse(
        holding_id=holding.holding_id,
        code=holding.code,
        name=holding.name,
        shares=holding.shares,
        cost_price=holding.cost_price,
        last_value=holding.last_value,
        day_change=holding.day_change,
        valuation_time=holding.valuation_time,
        add_date=holding.add_date,
        updated_at=holding.updated_at,
        cost_amount=snapshot.profit.cost_amount,
        current_amount=snapshot.profit.current_amount,
        profit=snapshot.profit.profit,
        profit_rate=snapshot.profit.profit_rate,
        day_profit=snapshot.day_profit,
    )


@router.get("/holdings", response_model=list[HoldingResponse])
def list_holdings(
    service: HoldingService = Depends(get_holding_service),
) -> list[HoldingResponse]:
    """List all holdings with profit figures."""
    return [to_holding_response(h) for h in service.list_holdings()]


@router.post("/holdings", response_model=HoldingResponse, status_code=201)
def add_holding(
    request: HoldingCreateRequest,
    service: HoldingService = Depends(get_holding_service),
) -> HoldingResponse:
    """Add a holding."""
    holding = service.add_holding(
        HoldingCreate(
            code=request.code,
            name=request.name,
            shares=request.shares,
            cost_price=request.cost_price,
            add_date=request.add_date,
        )
    )
    return to_holding_response(holding)


@router.get("/holdings/{holding_id}", response_model=HoldingResponse)
def get_holding(
    holding_id: str,
    service: HoldingService = Depends(get_holding_service),
) -> HoldingResponse:
    """Get a single holding."""
    return to_holding_response(service.get_holding(holding_id))


@router.patch("/holdings/{holding_id}", response_model=HoldingResponse)
def update_holding(
    holding_id: str,
    request: HoldingUpdateRequest,
    service: HoldingService = Depends(get_holding_service),
) -> HoldingResponse:
    """Edit a holding (partial update)."""
    holding = service.update_holding(
        holding_id,
        HoldingUpdate(
            name=request.name,
            shares=request.shares,
            cost_price=request.cost_price,
        ),
    )
    return to_holding_response(holding)


@router.delete("/holdings/{holding_id}", status_code=204)
def delete_holding(
    holding_id: str,
    service: HoldingService = Depends(get_holding_service),
) -> None:
    """Delete a holding and its transactions."""
    service.delete_holding(holding_id)


@router.get("/holdings/{holding_id}/transactions", response_model=TransactionListResponse)
def list_transactions(
    holding_id: str,
    service: HoldingService = Depends(get_holding_service),
) -> TransactionListResponse:
    """List a holding's transactions, newest first."""
    service.get_holding(holding_id)
    transactions = service.list_transactions(holding_id)
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        total=len(transactions),
    )


@router.post(
    "/holdings/{holding_id}/transactions",
    response_model=TransactionAppliedResponse,
    status_code=201,
)
def apply_transaction(
    holding_id: str,
    request: TransactionCreateRequest,
    service: HoldingService = Depends(get_holding_service),
) -> TransactionAppliedResponse:
    """Record a buy or sell and re-base the holding."""
    holding, transaction = service.apply_transaction(
        TransactionCreate(
            holding_id=holding_id,
            txn_type=request.txn_type,
            shares=request.shares,
            amount=request.amount,
            txn_date=request.txn_date,
            note=request.note,
        )
    )
    return TransactionAppliedResponse(
        transaction=TransactionResponse.model_validate(transaction),
        holding=to_holding_response(holding),
    )


@router.delete("/transactions/{txn_id}", status_code=204)
def delete_transaction(
    txn_id: str,
    service: HoldingService = Depends(get_holding_service),
) -> None:
    """Delete a transaction record; the holding is left as it is."""
    service.delete_transaction(txn_id)

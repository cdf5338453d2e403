"""Fund lookup endpoints."""

from fastapi import APIRouter, Depends, Query

from fundsync.api.deps import get_provider
from fundsync.api.schemas import (
    FundInfoResponse,
    ValuationResponse,
    NetValueRecordResponse,
    HistoryPageResponse,
)
from fundsync.providers import ValuationProviderClient

router = APIRouter(prefix="/funds", tags=["funds"])


@router.get("/search", response_model=list[FundInfoResponse])
def search_funds(
    q: str = Query("", max_length=50),
    provider: ValuationProviderClient = Depends(get_provider),
) -> list[FundInfoResponse]:
    """Funds matching a code, name or pinyin fragment (at most 20)."""
    return [FundInfoResponse.model_validate(fund) for fund in provider.search_funds(q)]


@router.get("/{code}/valuation", response_model=ValuationResponse)
def get_valuation(
    code: str,
    provider: ValuationProviderClient = Depends(get_provider),
) -> ValuationResponse:
    """Current valuation of one fund (live estimate or settled net value)."""
    return ValuationResponse.model_validate(provider.fetch_valuation(code))


@router.get("/{code}/history", response_model=HistoryPageResponse)
def get_history(
    code: str,
    page_size: int = Query(20, ge=1, le=100),
    page_index: int = Query(1, ge=1),
    provider: ValuationProviderClient = Depends(get_provider),
) -> HistoryPageResponse:
    """One page of settled net value history."""
    page = provider.fetch_history(code, page_size=page_size, page_index=page_index)
    return HistoryPageResponse(
        code=page.code,
        records=[NetValueRecordResponse.model_validate(r) for r in page.records],
        total=page.total,
        page_size=page.page_size,
        page_index=page.page_index,
        total_pages=page.total_pages,
    )

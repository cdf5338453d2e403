"""Portfolio summary, refresh and analytics endpoints."""

from fastapi import APIRouter, Depends, Query

from fundsync.api.deps import get_analysis_service, get_scheduler
from fundsync.api.schemas import (
    PortfolioSummaryResponse,
    RefreshResponse,
    DistributionItemResponse,
    TrendPointResponse,
)
from fundsync.services import AnalysisService, RefreshScheduler

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


@router.get("/summary", response_model=PortfolioSummaryResponse)
def get_summary(
    analysis: AnalysisService = Depends(get_analysis_service),
) -> PortfolioSummaryResponse:
    """Summary of the resident holdings; never contacts the provider."""
    return PortfolioSummaryResponse.model_validate(analysis.summary())


@router.post("/refresh", response_model=RefreshResponse)
def refresh(
    force: bool = Query(False, description="Refresh even if the interval has not elapsed"),
    scheduler: RefreshScheduler = Depends(get_scheduler),
) -> RefreshResponse:
    """Trigger a valuation refresh."""
    report = scheduler.refresh(force=force)
    return RefreshResponse(
        status=report.status,
        summary=PortfolioSummaryResponse.model_validate(report.summary) if report.summary else None,
        succeeded=report.succeeded,
        failed=report.failed,
        notice=report.notice,
        persisted=report.persisted,
        last_refresh_at=scheduler.state.last_refresh_at,
    )


@router.get("/distribution", response_model=list[DistributionItemResponse])
def get_distribution(
    analysis: AnalysisService = Depends(get_analysis_service),
) -> list[DistributionItemResponse]:
    """Each holding's share of total current value, largest first."""
    return [DistributionItemResponse.model_validate(item) for item in analysis.distribution()]


@router.get("/trend", response_model=list[TrendPointResponse])
def get_trend(
    days: int = Query(30, ge=1, le=365, description="Number of settled dates"),
    analysis: AnalysisService = Depends(get_analysis_service),
) -> list[TrendPointResponse]:
    """Total portfolio value per settled date."""
    return [TrendPointResponse.model_validate(point) for point in analysis.profit_trend(days)]

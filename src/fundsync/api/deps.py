"""Dependency injection for FastAPI."""

from fastapi import Depends, Request

from fundsync.providers import ValuationProviderClient
from fundsync.services import AnalysisService, HoldingService, RefreshScheduler
from fundsync.sync_context import SyncContext


def get_context(request: Request) -> SyncContext:
    """Provide the process-scoped SyncContext installed on the app."""
    return request.app.state.context


def get_holding_service(context: SyncContext = Depends(get_context)) -> HoldingService:
    """Provide HoldingService instance."""
    return context.holdings


def get_analysis_service(context: SyncContext = Depends(get_context)) -> AnalysisService:
    """Provide AnalysisService instance."""
    return context.analysis


def get_scheduler(context: SyncContext = Depends(get_context)) -> RefreshScheduler:
    """Provide RefreshScheduler instance."""
    return context.scheduler


def get_provider(context: SyncContext = Depends(get_context)) -> ValuationProviderClient:
    """Provide the valuation provider client."""
    return context.provider

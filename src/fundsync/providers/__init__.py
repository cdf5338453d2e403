"""Valuation provider module."""

from fundsync.providers.valuation_provider import ValuationProvider
from fundsync.providers.correlator import Completion, RequestCorrelator
from fundsync.providers.transport import OutboundRequest, RequestsTransport, Transport
from fundsync.providers.stub_transport import StubTransport
from fundsync.providers.valuation_client import ValuationProviderClient

__all__ = [
    "ValuationProvider",
    "Completion",
    "RequestCorrelator",
    "OutboundRequest",
    "RequestsTransport",
    "Transport",
    "StubTransport",
    "ValuationProviderClient",
]

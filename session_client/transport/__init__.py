"""
Transport module - Authenticated HTTP

Provides:
- RequestPipeline: bearer auth + single refresh-and-retry
- PipelineResponse / PendingRequest / RefreshOutcome
- RefreshError hierarchy
"""

from .request_pipeline import (
    RequestPipeline,
    PipelineResponse,
    PendingRequest,
    RefreshOutcome,
    RefreshError,
    RefreshRejectedError,
    RefreshNetworkError,
)

__all__ = [
    "RequestPipeline",
    "PipelineResponse",
    "PendingRequest",
    "RefreshOutcome",
    "RefreshError",
    "RefreshRejectedError",
    "RefreshNetworkError",
]

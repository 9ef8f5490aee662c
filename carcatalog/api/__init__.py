"""
API module for the car catalog.

Provides REST API endpoints exposing catalog browsing sessions.
"""
from carcatalog.api.models import (
    CreateSessionRequest,
    QueryRequest,
    FocusRequest,
    ReadModelResponse,
    AdvanceResponse,
    HealthResponse,
)

__all__ = [
    "CreateSessionRequest",
    "QueryRequest",
    "FocusRequest",
    "ReadModelResponse",
    "AdvanceResponse",
    "HealthResponse",
]

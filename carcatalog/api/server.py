"""
FastAPI server for the car catalog.

Exposes catalog browsing sessions (strategy, pipeline and pagination state)
over REST.

Usage:
    python -m carcatalog.api.server
    # or
    uvicorn carcatalog.api.server:app --reload --port 8000
"""
import dataclasses
import uuid
from contextlib import asynccontextmanager
from typing import Callable, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from carcatalog import __version__
from carcatalog.api.models import (
    AdvanceResponse,
    CreateSessionRequest,
    FocusRequest,
    HealthResponse,
    QueryRequest,
    ReadModelResponse,
)
from carcatalog.core.config import get_config
from carcatalog.core.session import CatalogSession
from carcatalog.pipeline.filters import FilterQuery
from carcatalog.pipeline.grouping import OrderBy
from carcatalog.utils.logger import get_logger
from carcatalog.utils.platform import PlatformFacts

logger = get_logger("api.server")

SessionFactory = Callable[[str, Optional[str]], CatalogSession]

# Session storage: session_id -> CatalogSession
sessions: Dict[str, CatalogSession] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Tear down every open session on shutdown
    for session_id in list(sessions):
        await sessions.pop(session_id).teardown()
    logger.info("All sessions torn down")


# Initialize FastAPI app
app = FastAPI(
    title="Car Catalog API",
    description="Brand and model catalog browsing sessions",
    version=__version__,
    lifespan=lifespan,
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def build_session(route: str, platform: Optional[str] = None) -> CatalogSession:
    """Create a session from the global config, optionally for another platform."""
    config = get_config()
    if platform is not None and platform != config.platform:
        config = dataclasses.replace(config, platform=platform)
    return CatalogSession.from_config(route, config, platform=PlatformFacts(config.platform))


def get_session_factory() -> SessionFactory:
    return build_session


def get_session(session_id: str) -> CatalogSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _respond(session_id: str, session: CatalogSession) -> ReadModelResponse:
    return ReadModelResponse.from_read_model(session_id, session.read_model(), session.filter_options())


# API Endpoints

@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    config = get_config()
    return HealthResponse(
        status="online",
        service="Car Catalog API",
        version=__version__,
        config={
            "platform": config.platform,
            "build_mode": config.build_mode,
            "page_size": config.page_size,
            "sessions": len(sessions),
        },
    )


@app.post("/sessions", response_model=ReadModelResponse)
async def create_session(
    request: CreateSessionRequest,
    factory: SessionFactory = Depends(get_session_factory),
):
    """Open a browsing session on a route and run its first load."""
    try:
        order_by = OrderBy(request.order_by)
        session = factory(request.route, request.platform)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    session.order_by = order_by
    session.grouped = request.grouped

    session_id = str(uuid.uuid4())
    sessions[session_id] = session
    logger.info(f"Created new session: {session_id} (route={request.route}, strategy={session.strategy.value})")

    await session.set_focused(request.focused)
    if session.resolver.is_synchronous:
        await session.load()
    return _respond(session_id, session)


@app.get("/sessions/{session_id}", response_model=ReadModelResponse)
async def get_read_model(session_id: str, session: CatalogSession = Depends(get_session)):
    return _respond(session_id, session)


@app.post("/sessions/{session_id}/query", response_model=ReadModelResponse)
async def update_query(
    session_id: str,
    request: QueryRequest,
    session: CatalogSession = Depends(get_session),
):
    """Replace the filter query and/or ordering. Pagination restarts at page 1."""
    filters = request.model_dump(exclude={"order_by", "grouped"})
    query = FilterQuery.from_mapping(filters)
    try:
        if request.order_by is not None or request.grouped is not None:
            session.order_by = OrderBy(request.order_by or session.order_by)
            if request.grouped is not None:
                session.grouped = request.grouped
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await session.set_query(query)
    return _respond(session_id, session)


@app.post("/sessions/{session_id}/advance", response_model=AdvanceResponse)
async def advance(session_id: str, session: CatalogSession = Depends(get_session)):
    """Show one more page (constrained platforms)."""
    advanced = await session.advance()
    response = AdvanceResponse.from_read_model(session_id, session.read_model(), session.filter_options())
    response.advanced = advanced
    return response


@app.post("/sessions/{session_id}/reset", response_model=ReadModelResponse)
async def reset(session_id: str, session: CatalogSession = Depends(get_session)):
    session.reset()
    return _respond(session_id, session)


@app.post("/sessions/{session_id}/refetch", response_model=ReadModelResponse)
async def refetch(session_id: str, session: CatalogSession = Depends(get_session)):
    await session.refetch()
    return _respond(session_id, session)


@app.post("/sessions/{session_id}/focus", response_model=ReadModelResponse)
async def focus(
    session_id: str,
    request: FocusRequest,
    session: CatalogSession = Depends(get_session),
):
    await session.set_focused(request.focused)
    return _respond(session_id, session)


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    """Tear down a session and release its caches."""
    session = sessions.pop(session_id, None)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    await session.teardown()
    return {"status": "deleted", "session_id": session_id}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)

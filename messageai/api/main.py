"""FastAPI application for the MessageAI agent runtime.

Provides the app instance with routers, CORS and the exception handlers
that translate domain errors into HTTP status codes.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

# Configure logging to stdout for uvicorn to capture
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logging.getLogger("messageai").setLevel(logging.INFO)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from messageai.api.routes import agents, conversations
from messageai.config import RuntimeConfig
from messageai.db.connection import close_db, init_db
from messageai.errors import (
    ConflictError,
    DomainError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_config = RuntimeConfig.from_env()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup and dispose of the engine on shutdown."""
    init_db()
    app.state.config = _config
    logger.info(
        "MessageAI API started model=%s context_messages=%d",
        _config.model,
        _config.context_messages,
    )
    yield
    backend = getattr(app.state, "backend", None)
    if backend is not None and hasattr(backend, "aclose"):
        await backend.aclose()
    close_db()


app = FastAPI(
    title="MessageAI Agent API",
    description="Conversational agents for product, campaign and lead workflows",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(_config.allowed_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-User-Id", "X-Team-Id"],
)


def _error_response(status_code: int, exc: DomainError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error_code": exc.code},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(404, exc)


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return _error_response(409, exc)


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error_response(400, exc)


@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(
    request: Request, exc: UnauthorizedError
) -> JSONResponse:
    return _error_response(401, exc)


# Include routers
app.include_router(agents.router, prefix="/api/v1")
app.include_router(conversations.router, prefix="/api/v1")


@app.get("/health")
def health_check() -> dict:
    """Liveness check."""
    return {"status": "healthy", "model": _config.model}

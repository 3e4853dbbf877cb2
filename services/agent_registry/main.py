"""
Agent Registry Service - Main Application
=========================================

FastAPI application exposing agent proof generation, the verification
registry, paid queries and proof inheritance.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.agent_registry.routes import agents, proofs, queries
from shared.blockchain import (
    AgentNotFoundError,
    AlreadyRegisteredError,
    InsufficientPaymentError,
    InvalidProofError,
    LedgerError,
    QueryAlreadyProcessedError,
    QueryNotFoundError,
    UnauthorizedCallerError,
    get_contracts,
)
from shared.config import settings
from shared.logging import get_logger, setup_logging
from shared.models.common import ErrorResponse, HealthResponse
from shared.payments import PaymentRailError, get_payment_rail
from shared.storage import ContentNotFoundError
from shared.zk import get_proof_backend


SERVICE_NAME = "agent_registry"
VERSION = "0.1.0"

# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name=SERVICE_NAME,
)

logger = get_logger(__name__)

# Ledger error -> HTTP status; first match wins, so subclasses come first
LEDGER_ERROR_STATUS: tuple[tuple[type[LedgerError], int], ...] = (
    (AgentNotFoundError, status.HTTP_404_NOT_FOUND),
    (QueryNotFoundError, status.HTTP_404_NOT_FOUND),
    (AlreadyRegisteredError, status.HTTP_409_CONFLICT),
    (QueryAlreadyProcessedError, status.HTTP_409_CONFLICT),
    (InvalidProofError, status.HTTP_400_BAD_REQUEST),
    (InsufficientPaymentError, status.HTTP_402_PAYMENT_REQUIRED),
    (UnauthorizedCallerError, status.HTTP_403_FORBIDDEN),
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "agent_registry_service_starting",
        environment=settings.environment.value,
        port=settings.ports.agent_registry,
    )

    try:
        backend = get_proof_backend()
        logger.info("proof_backend_ready", backend=backend.name)

        rail = get_payment_rail()
        logger.info("payment_rail_ready", mode=rail.mode.value)

        contracts = get_contracts()
        logger.info("ledger_ready", block_number=contracts.ledger.block_number)

    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    logger.info("agent_registry_service_shutting_down")


# Create FastAPI application
app = FastAPI(
    title="ZK AgentMesh Registry Service",
    description="Zero-knowledge agent verification, paid queries and proof royalties",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Returns health status of the service and its collaborators.
    """
    components: dict[str, dict[str, Any]] = {
        "ledger": await get_contracts().health_check(),
        "payment_rail": await get_payment_rail().health_check(),
        "proof_backend": {"status": "healthy", "backend": get_proof_backend().name},
    }

    all_healthy = all(c.get("status") == "healthy" for c in components.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        service=SERVICE_NAME,
        version=VERSION,
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "ZK AgentMesh Registry Service",
        "version": VERSION,
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    agents.router,
    prefix="/api/v1/agents",
    tags=["Agents"],
)

app.include_router(
    proofs.router,
    prefix="/api/v1/proofs",
    tags=["ZK Proofs"],
)

app.include_router(
    queries.router,
    prefix="/api/v1/queries",
    tags=["Queries"],
)


# ============================================================================
# Error Handlers
# ============================================================================


def _error_response(status_code: int, error: str, error_code: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, error_code=error_code, status_code=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Map ledger contract failures to HTTP statuses."""
    status_code = next(
        (code for error_type, code in LEDGER_ERROR_STATUS if isinstance(exc, error_type)),
        status.HTTP_409_CONFLICT,
    )

    logger.warning(
        "ledger_operation_rejected",
        code=exc.code,
        status_code=status_code,
        detail=exc.message,
        path=request.url.path,
    )
    return _error_response(status_code, exc.message, exc.code)


@app.exception_handler(ContentNotFoundError)
async def content_not_found_handler(request: Request, exc: ContentNotFoundError) -> JSONResponse:
    logger.warning("stored_content_missing", ref=str(exc), path=request.url.path)
    return _error_response(status.HTTP_404_NOT_FOUND, "Stored content not found", "CONTENT_NOT_FOUND")


@app.exception_handler(PaymentRailError)
async def payment_rail_exception_handler(request: Request, exc: PaymentRailError) -> JSONResponse:
    """The rail refused a distribution; the settlement was reverted."""
    logger.error("payment_rail_failed", error=str(exc), path=request.url.path)
    return _error_response(status.HTTP_502_BAD_GATEWAY, "Payment rail failed", "PAYMENT_RAIL_FAILED")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.agent_registry.main:app",
        host="0.0.0.0",
        port=settings.ports.agent_registry,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )

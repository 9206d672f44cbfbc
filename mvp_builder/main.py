"""
FastAPI application entry point.

Run with: uvicorn mvp_builder.main:app --reload
"""

from contextlib import asynccontextmanager
import uuid

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from mvp_builder.core.config import settings
from mvp_builder.core.logging import configure_logging, get_logger, bind_context, clear_context
from mvp_builder.persistence.database import init_database
from mvp_builder.api.routes import access, customers, exports, feedback, health, sessions, stages
from mvp_builder.api.exception_handlers import setup_exception_handlers
from mvp_builder.services.integration_status import VERSION
from mvp_builder.stages.catalog import load_stage_catalog

# Configure logging before anything else
configure_logging()
log = get_logger(__name__)

API_PREFIX = "/api"


# =============================================================================
# Correlation ID Middleware
# =============================================================================


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique correlation ID to each request.

    - Generates a UUID4 request_id for each incoming request
    - Binds it to structlog context for all logs in that request
    - Adds X-Request-ID header to responses
    """

    async def dispatch(self, request: Request, call_next):
        """Process request and add correlation ID."""
        request_id = str(uuid.uuid4())
        bind_context(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()


def check_api_keys() -> list[str]:
    """
    Report missing model configuration.

    Unlike storage problems, a missing key is not fatal: every stage has a
    default artifact, so the wizard keeps working in a degraded mode.

    Returns:
        Names of missing environment variables
    """
    missing = [] if settings.openai_api_key else ["OPENAI_API_KEY"]
    if missing:
        log.warning("api_keys_missing", missing=missing, mode="degraded")
    else:
        log.info("api_keys_validated", provider="openai", model=settings.llm_model)
    return missing


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    log.info(
        "application_starting",
        debug=settings.debug,
        environment=settings.environment,
        database_path=str(settings.database_path) if settings.database_path else None,
    )

    check_api_keys()

    # Fail fast on a broken stage catalog
    load_stage_catalog()

    if settings.database_path is not None:
        await init_database(settings.database_path)
    else:
        log.info("using_memory_store")

    log.info("application_started")

    yield

    log.info("application_shutting_down")


app = FastAPI(
    title="MVP Builder",
    description="Ten-stage wizard that turns a founder's problem into a prioritised MVP brief",
    version=VERSION,
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware for development
if settings.debug:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(CorrelationIDMiddleware)

setup_exception_handlers(app)

app.include_router(health.router, prefix=API_PREFIX, tags=["system"])
app.include_router(sessions.router, prefix=API_PREFIX)
app.include_router(stages.router, prefix=API_PREFIX)
app.include_router(feedback.router, prefix=API_PREFIX)
app.include_router(exports.router, prefix=API_PREFIX)
app.include_router(customers.router, prefix=API_PREFIX)
app.include_router(access.router, prefix=API_PREFIX)


@app.get("/")
async def root():
    """Root endpoint with basic info."""
    return {"name": "MVP Builder", "version": VERSION, "status": "running"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mvp_builder.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

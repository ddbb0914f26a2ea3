"""MapMyGap Backend - FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mapmygap.config import get_settings
from mapmygap.errors import MapMyGapError, ValidationError
from mapmygap.routers import analysis, control_text, diagnostics, frameworks, history
from mapmygap.services.ai_client import create_ai_client
from mapmygap.services.framework_catalog import get_framework_catalog

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown."""
    logger.info("Starting MapMyGap Backend...")
    settings = get_settings()

    catalog = get_framework_catalog()
    logger.info(f"Framework catalog loaded: {', '.join(catalog.ids)}")

    app.state.ai_client = create_ai_client(settings)

    if not settings.history_configured:
        logger.warning("Supabase not configured, analysis history is disabled")

    logger.info("MapMyGap Backend started successfully")

    yield

    logger.info("MapMyGap Backend shutdown complete")


app = FastAPI(
    title="MapMyGap Backend",
    description="Compliance gap analysis of policy documents against NIST CSF, "
    "NIST 800-53, PCI DSS, ISO 27001 and SOC 2",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in get_settings().cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(analysis.router)
app.include_router(control_text.router)
app.include_router(frameworks.router)
app.include_router(history.router)
app.include_router(diagnostics.router)


@app.exception_handler(MapMyGapError)
async def mapmygap_error_handler(request: Request, exc: MapMyGapError) -> JSONResponse:
    """Render domain errors as ``{error, details, suggestion}``."""
    logger.warning(f"{request.method} {request.url.path}: {exc.status_code} {exc.error}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render schema violations (wrong field types, bad JSON) as a 400 ValidationError."""
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body') or 'body'}: {err['msg']}"
        for err in exc.errors()
    )
    return await mapmygap_error_handler(request, ValidationError(details))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
    )


@app.get("/health")
async def health_check(request: Request) -> dict:
    """
    Health check endpoint for monitoring.

    Reports whether the AI provider and the history store are configured.
    The service is "degraded" when analysis would only use the fallback.
    """
    settings = get_settings()
    ai_client = getattr(request.app.state, "ai_client", None)
    ai_configured = bool(ai_client and ai_client.is_configured)

    return {
        "status": "healthy" if ai_configured else "degraded",
        "services": {
            "ai": {
                "status": "configured" if ai_configured else "not_configured",
                "provider": ai_client.provider if ai_client else "none",
            },
            "history": {
                "status": "configured" if settings.history_configured else "disabled",
            },
            "catalog": {"frameworks": get_framework_catalog().ids},
        },
    }

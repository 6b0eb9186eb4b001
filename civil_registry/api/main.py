"""
FastAPI Application: Civil Registry.

Architecture:
  - PostgreSQL (prod) / SQLite (dev, tests) for storage
  - Cloudinary for hosted files
  - Stripe Checkout for payments
  - Bearer session tokens (HS256 JWT), role-based access table

Every response uses the `{success, data?, message?}` envelope.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from civil_registry.api.routes.admin import router as admin_router
from civil_registry.api.routes.agent import router as agent_router
from civil_registry.api.routes.citizen import router as citizen_router
from civil_registry.api.routes.document_requests import router as document_requests_router
from civil_registry.api.routes.payment import router as payment_router
from civil_registry.api.schemas.responses import HealthResponse
from civil_registry.config.settings import get_settings
from civil_registry.core.errors import WorkflowError
from civil_registry.infrastructure.db.database import get_db, init_db

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="Civil Registry",
    description="Municipal civil-registry requests: birth declarations, birth certificates, documents and payments.",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _envelope(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


# ── Error mapping ──
@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc.__cause__)
    return _envelope(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.debug(f"{request.method} {request.url.path} rejected: {exc.errors()}")
    return _envelope(400, "Données invalides")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Erreur"
    return _envelope(exc.status_code, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _envelope(500, "Erreur interne du serveur")


# ── Startup ──
@app.on_event("startup")
async def startup():
    init_db()
    logger.info(f"Civil Registry API started ({settings.env})")


# Register routes
app.include_router(citizen_router, prefix="/api", tags=["Citizen"])
app.include_router(document_requests_router, prefix="/api", tags=["Document requests"])
app.include_router(agent_router, prefix="/api", tags=["Agent"])
app.include_router(admin_router, prefix="/api", tags=["Admin"])
app.include_router(payment_router, prefix="/api", tags=["Payment"])


# ── Health ──
@app.get("/api/health", response_model=HealthResponse)
def health():
    database = "ok"
    try:
        with get_db() as db:
            db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Health check: database unreachable: {e}")
        database = "unavailable"
    return HealthResponse(status="ok", version=VERSION, database=database)

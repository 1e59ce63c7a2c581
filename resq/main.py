"""
ResQ API — Application entry point.

Bootstraps FastAPI, wires up middleware and error handlers, registers
route groups, and manages the MongoDB connection lifecycle.

Run locally:
    uvicorn resq.main:app --reload --port 8000

Extension points:
  - Add new route groups with app.include_router() below
  - Map new domain exceptions in the error-handler block
  - Change startup behaviour in the lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from resq.core import database
from resq.core.config import VERSION, settings
from resq.core.errors import NotFound, StoreError, ValidationError
from resq.core.rate_limit import limiter
from resq.routes.analytics import router as analytics_router
from resq.routes.health import router as health_router
from resq.routes.reports import router as reports_router
from resq.services.report_store import ReportStore

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Open the database and ensure report indexes before serving;
    close the connection on shutdown.
    """
    logger.info("Starting ResQ API (env: %s)", settings.environment)
    await database.connect_to_mongo()
    if database.db_client.db is not None:
        try:
            await ReportStore(database.db_client.db).ensure_indexes()
        except StoreError as exc:
            logger.warning("Could not ensure report indexes: %s", exc)
    yield
    logger.info("Shutting down ResQ API")
    await database.close_mongo_connection()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="ResQ API",
    description=(
        "Crowdsourced coastal hazard reports: submission and triage, "
        "proximity search, and dashboard analytics."
    ),
    version=VERSION,
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Routes opt-in with @limiter.limit(...) + a `request: Request` parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ─── Error handlers ────────────────────────────────────────────────────────────
@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"message": exc.message, "fields": exc.fields})


@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError):
    err = ValidationError.from_errors(exc.errors())
    return JSONResponse(status_code=400, content={"message": err.message, "fields": err.fields})


@app.exception_handler(NotFound)
async def _not_found(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"message": exc.message})


@app.exception_handler(StoreError)
async def _store_error(request: Request, exc: StoreError):
    # Full driver detail outside production only
    message = "Something went wrong!" if settings.is_production else exc.message
    return JSONResponse(status_code=500, content={"message": message})


# ─── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(reports_router)
app.include_router(analytics_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "ResQ API",
        "version": VERSION,
        "status": "running",
        "environment": settings.environment,
        "docs": None if settings.is_production else "/docs",
    }

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from . import config
from . import models  # noqa: F401
from .auth import require_admin
from .database import Base, SessionLocal, engine
from .domain.appointments import router as appointments_router
from .domain.barbers import router as barbers_router
from .domain.billing import router as billing_router
from .domain.branches import router as branches_router
from .domain.categories import router as categories_router
from .domain.categories.loyalty import seed_default_categories
from .domain.haircuts import router as haircuts_router
from .domain.schedules import router as schedules_router
from .domain.users import router as users_router
from .models import User
from .rate_limiter import get_client_ip
from .security_headers import SecurityHeadersMiddleware
from .security_monitor import security_monitor
from .security_utils import log_security_event
from .token_blacklist import cleanup_expired_tokens

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    if config.SEED_DEFAULT_CATEGORIES:
        db = SessionLocal()
        try:
            seed_default_categories(db)
        except Exception as e:
            logger.error(f"Failed to seed default categories: {e}")
            db.rollback()
        finally:
            db.close()

    db = SessionLocal()
    try:
        cleanup_expired_tokens(db)
    except Exception as e:
        logger.error(f"Failed to clean up expired refresh tokens: {e}")
        db.rollback()
    finally:
        db.close()

    from .rate_limiter import get_redis_client

    if get_redis_client() is None:
        logger.warning("Redis not available - rate limit counters kept in memory")
    else:
        logger.info("Redis connection established")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Barbershop API", version="1.0.0", lifespan=lifespan)


def jsonable_errors(errors) -> list[dict]:
    """Pydantic errors may carry the raised exception in ctx"""
    cleaned = []
    for error in errors:
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        error.pop("input", None)
        cleaned.append(error)
    return cleaned


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors to 401 when the issue is the Authorization
    header; every other validation error is recorded as a security event
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={"detail": "No autenticado. Envíe un token Bearer en el header Authorization."},
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    log_security_event(
        "validation_error",
        ip_address=get_client_ip(request),
        details={"path": request.url.path, "errors": len(exc.errors())},
    )
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc.errors())})


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error for {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=409,
        content={"detail": "La operación viola una restricción de datos (registro duplicado o en uso)"},
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise
    elapsed_ms = (time.time() - start) * 1000
    if response.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {response.status_code} ({elapsed_ms:.0f}ms)")
    return response


if config.SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/docs", "/openapi.json", "/redoc"])
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")


# CORS Configuration
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    f"{config.FRONTEND_URL},http://localhost:5173,http://localhost:3000",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["Retry-After", "X-Token-Expired"],
)

# Routes
app.include_router(users_router.auth_router)
app.include_router(users_router.router)
app.include_router(barbers_router.router)
app.include_router(branches_router.router)
app.include_router(categories_router.router)
app.include_router(haircuts_router.router)
app.include_router(schedules_router.router)
app.include_router(appointments_router.router)
app.include_router(billing_router.router)


@app.get("/")
def root():
    return {"message": "Barbershop API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/security/events")
async def security_events(
    limit: int = Query(50, ge=1, le=100),
    tipo: Optional[str] = Query(None, description="rate_limit, duplicate_request, validation_error, auth_failure"),
    current_user: User = Depends(require_admin),
):
    """Recent security events, newest first"""
    return {
        "events": security_monitor.recent(limit=limit, event_type=tipo),
        "stats": security_monitor.stats(),
    }

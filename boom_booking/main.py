import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from boom_booking.core.config import (
    CORS_ORIGINS,
    DATABASE_URL,
    SUPER_ADMIN_EMAIL,
    SUPER_ADMIN_NAME,
    SUPER_ADMIN_PASSWORD,
)
from boom_booking.core.database import Base, SessionLocal, engine
from boom_booking.core.errors import BookingAppError, Unauthorized
from boom_booking.core.logging_setup import configure_logging
from boom_booking.core.startup_checks import (
    apply_migrations,
    ensure_migrations_applied,
    validate_database_environment,
    validate_security_environment,
)
from boom_booking.middleware.observability import ObservabilityMiddleware
import boom_booking.models  # garante que os models são importados antes do create_all
import boom_booking.services.realtime  # registra o hub no event bus

from boom_booking.services.admin_bootstrap import ensure_users_table, upsert_super_admin
from boom_booking.routers.auth import router as auth_router
from boom_booking.routers.tenants import router as tenants_router
from boom_booking.routers.admin_tenants import router as admin_tenants_router
from boom_booking.routers.rooms import router as rooms_router
from boom_booking.routers.business_hours import router as business_hours_router
from boom_booking.routers.bookings import router as bookings_router
from boom_booking.routers.realtime import router as realtime_router
from boom_booking.routers.internal_metrics import router as internal_metrics_router

configure_logging()

logger = logging.getLogger(__name__)
BOOTSTRAP_PREFIX = "[ADMIN_BOOTSTRAP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Boom Booking API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)


@app.exception_handler(BookingAppError)
async def booking_app_error_handler(request: Request, exc: BookingAppError):
    if exc.status_code >= 500:
        logger.error("request failed code=%s", exc.code)
    else:
        logger.info(
            "request rejected code=%s",
            exc.code,
            extra={"endpoint": request.url.path, "method": request.method, "status_code": exc.status_code},
        )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        "database error",
        exc_info=exc,
        extra={"endpoint": request.url.path, "method": request.method},
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error", "code": "internal"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled error",
        exc_info=exc,
        extra={"endpoint": request.url.path, "method": request.method},
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error", "code": "internal"})


def _bootstrap_super_admin() -> None:
    if not SUPER_ADMIN_EMAIL or not SUPER_ADMIN_PASSWORD:
        logger.info("%s skipped: configure SUPER_ADMIN_EMAIL and SUPER_ADMIN_PASSWORD.", BOOTSTRAP_PREFIX)
        return

    ensure_users_table(engine)
    db = SessionLocal()
    try:
        user, created = upsert_super_admin(
            db,
            email=SUPER_ADMIN_EMAIL,
            name=SUPER_ADMIN_NAME,
            password=SUPER_ADMIN_PASSWORD,
        )
        logger.info(
            "%s %s id=%s email=%s",
            BOOTSTRAP_PREFIX,
            "created" if created else "updated",
            user.id,
            user.email,
        )
    except Exception:
        logger.exception("%s ERROR bootstrap failed", BOOTSTRAP_PREFIX)
        raise
    finally:
        db.close()


def _startup_tasks() -> None:
    try:
        validate_database_environment()
        validate_security_environment()
        apply_migrations(alembic_config_path=ALEMBIC_CONFIG_PATH)
        if DATABASE_URL.startswith("sqlite"):
            # Cria tabelas (dev). Em produção, use migrations.
            Base.metadata.create_all(bind=engine)
        else:
            ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
        _bootstrap_super_admin()
    except Exception:
        logger.exception("%s ERROR startup failed", BOOTSTRAP_PREFIX)
        raise


# Routers
app.include_router(auth_router)
app.include_router(tenants_router)
app.include_router(admin_tenants_router)
app.include_router(rooms_router)
app.include_router(business_hours_router)
app.include_router(bookings_router)
app.include_router(realtime_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}

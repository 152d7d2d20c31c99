import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tableside.core.config import ALEMBIC_CONFIG, CORS_ORIGINS, DATABASE_URL, ENV
from tableside.core.database import Base, engine
from tableside.core.errors import register_error_handlers
from tableside.core.logging_setup import configure_logging
from tableside.core.startup_checks import ensure_migrations_applied, validate_database_environment
from tableside.middleware.observability import ObservabilityMiddleware
import tableside.models  # registers every model on Base.metadata before create_all

from tableside.routers.analytics import router as analytics_router
from tableside.routers.internal_metrics import router as internal_metrics_router
from tableside.routers.menu import router as menu_router
from tableside.routers.orders import router as orders_router
from tableside.routers.payments import router as payments_router
from tableside.routers.realtime import router as realtime_router
from tableside.routers.reservations import router as reservations_router
from tableside.routers.reviews import router as reviews_router
from tableside.routers.tables import router as tables_router
from tableside.routers.waiter_calls import router as waiter_calls_router

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(ALEMBIC_CONFIG or str(REPO_ROOT / "alembic.ini"))


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Tableside API",
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
register_error_handlers(app)


def _startup_tasks() -> None:
    try:
        logger.info("%s env=%s", STARTUP_PREFIX, ENV)
        validate_database_environment()
        if DATABASE_URL.startswith("sqlite"):
            # Local databases are created in place; everything else goes through alembic
            Base.metadata.create_all(bind=engine)
        else:
            ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise


# Routers
app.include_router(tables_router)
app.include_router(menu_router)
app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(waiter_calls_router)
app.include_router(reservations_router)
app.include_router(reviews_router)
app.include_router(analytics_router)
app.include_router(realtime_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}

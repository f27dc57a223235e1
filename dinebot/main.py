import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dinebot.core.config import CORS_ORIGINS, DATABASE_URL
from dinebot.core.database import Base, engine
from dinebot.core.logging_setup import configure_logging
from dinebot.core.startup_checks import ensure_migrations_applied, validate_database_environment
from dinebot.middleware.observability import ObservabilityMiddleware
import dinebot.models  # registers every table on Base.metadata
import dinebot.services.event_handlers  # subscribes order event handlers

from dinebot.routers.internal_metrics import router as internal_metrics_router
from dinebot.routers.simulator import router as simulator_router
from dinebot.routers.webhook import router as webhook_router

configure_logging()

logger = logging.getLogger(__name__)
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


def _startup_tasks() -> None:
    try:
        validate_database_environment()
        if DATABASE_URL.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
        ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    except Exception:
        logger.exception("[STARTUP] failed")
        raise


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="DineBot WhatsApp Ordering API",
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

app.include_router(webhook_router)
app.include_router(simulator_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}

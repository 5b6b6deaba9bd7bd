import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rivr_api.core.config import CORS_ORIGINS, ENV
from rivr_api.core.database import Base, get_engine
from rivr_api.core.errors import register_exception_handlers
from rivr_api.core.logging_setup import configure_logging
from rivr_api.core.startup_checks import ensure_migrations_applied, validate_database_environment
from rivr_api.middleware.observability import ObservabilityMiddleware
from rivr_api.middleware.tenant_context import TenantContextMiddleware
import rivr_api.models  # registers every platform model on Base.metadata

from rivr_api.routers.admin_business_settings import router as admin_business_settings_router
from rivr_api.routers.auth import router as auth_router
from rivr_api.routers.public import router as public_router
from rivr_api.routers.tenant_data import router as tenant_data_router

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini")))


def _startup_tasks() -> None:
    try:
        database_url = validate_database_environment()
        engine = get_engine()
        if database_url.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
        else:
            ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
        logger.info("%s ready env=%s", STARTUP_PREFIX, ENV)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="RIVR Platform API",
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
app.add_middleware(TenantContextMiddleware)
register_exception_handlers(app)

app.include_router(auth_router)
app.include_router(admin_business_settings_router)
app.include_router(public_router)
app.include_router(tenant_data_router)


@app.get("/health")
def health():
    return {"status": "ok"}

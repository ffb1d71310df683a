import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.api.deps import get_settings
from src.api.errors import register_error_handlers
from src.app_shell.config import validate_ops_rules
from src.rules.loader import load_rules

logger = logging.getLogger("api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = app.dependency_overrides.get(get_settings, get_settings)()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Load rules, validate and migrate on startup (fail-fast)
    try:
        rules = load_rules(settings.rules_path)
        validate_ops_rules(rules, settings.data_dir)
        applied = SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()
        logger.info("Rules loaded from %s; %d migration(s) applied", settings.rules_path, len(applied))
    except Exception as e:
        logger.critical("Startup failed: %s", e)
        sys.exit(1)

    yield
    # Shutdown cleanup if needed


app = FastAPI(
    title="Pagelyzer Audit Core API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

register_error_handlers(app)

# --- Routers ---
from src.api.routes import (  # noqa: E402
    admin,
    audits,
    billing,
    entitlements,
    public_reports,
    shares,
)

app.include_router(audits.router, prefix="/api/audits", tags=["Audits"])
app.include_router(shares.router, prefix="/api/audits", tags=["Sharing"])
app.include_router(public_reports.router, prefix="/api/public", tags=["Public"])
app.include_router(entitlements.router, prefix="/api/me", tags=["Entitlements"])
app.include_router(billing.router, prefix="/api/billing", tags=["Billing"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])


# CORS (Allow Frontend)
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "https://pagelyzer.io",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Request

from . import __version__
from .admin import auctions as admin_auctions
from .admin import config as admin_config
from .admin import health as admin_health
from .admin import stats as admin_stats
from .config import ServerConfig, get_server_config
from .reconcile import DiagnosticsService, ReconciliationSweep
from .storage import build_storage
from .validation.validator import get_schema_registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    server_config = get_server_config()
    schema_registry = get_schema_registry()
    storage = build_storage(server_config)

    app.state.server_config = server_config
    app.state.schema_registry = schema_registry
    app.state.storage = storage
    app.state.sweep = ReconciliationSweep.from_config(
        server_config, storage, schema_registry
    )
    app.state.diagnostics = DiagnosticsService.from_config(
        server_config, storage, schema_registry
    )
    app.state.start_time = datetime.now(timezone.utc)

    yield

    close = getattr(storage, "close", None)
    if close is not None:
        await close()


app = FastAPI(
    title="Auction Settlement Service",
    version=__version__,
    docs_url="/docs",
    lifespan=lifespan,
)

app.include_router(admin_health.router)
app.include_router(admin_stats.router)
app.include_router(admin_config.router)
app.include_router(admin_auctions.router)


def get_server_settings(request: Request) -> ServerConfig:
    return request.app.state.server_config


@app.get("/", tags=["meta"])
async def root(settings: ServerConfig = Depends(get_server_settings)) -> dict[str, Any]:
    return {
        "service": "auction-settlement",
        "version": app.version,
        "storage_backend": settings.storage.backend,
        "sweep": {
            "concurrency": settings.sweep.concurrency,
            "candidate_statuses": [s.value for s in settings.sweep.candidate_statuses],
        },
    }


@app.get("/ping", tags=["meta"])
async def ping() -> dict[str, Any]:
    return {"status": "ok", "version": app.version}

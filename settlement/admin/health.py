"""Admin health endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

from ..timing import format_instant, utc_now

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    state = request.app.state
    started = getattr(state, "start_time", None)
    config = state.server_config
    return {
        "status": "healthy",
        "started_at": format_instant(started) if started else None,
        "uptime_seconds": int((utc_now() - started).total_seconds()) if started else 0,
        "version": request.app.version,
        "storage_backend": config.storage.backend,
        "sweep_concurrency": config.sweep.concurrency,
    }

"""Expose currently loaded server config for debugging."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ..config import ServerConfig

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_config(request: Request) -> ServerConfig:
    return request.app.state.server_config


@router.get("/config")
async def config(request: Request, config: ServerConfig = Depends(_get_config)) -> dict:
    return {
        "version": request.app.version,
        "storage_backend": config.storage.backend,
        "sweep": {
            "concurrency": config.sweep.concurrency,
            "candidate_statuses": [status.value for status in config.sweep.candidate_statuses],
            "listing_status": config.sweep.listing_status,
        },
        "currency": config.currency,
    }

"""Operational stats endpoint."""

from __future__ import annotations

from collections import Counter
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from ..config import ServerConfig
from ..errors import InvalidTimestampFormat, PersistenceReadFailure
from ..storage import AuctionStore
from ..timing import resolve_instant, utc_now, window_elapsed

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_storage(request: Request) -> AuctionStore:
    return request.app.state.storage


def _get_config(request: Request) -> ServerConfig:
    return request.app.state.server_config


@router.get("/stats")
async def stats(
    storage: AuctionStore = Depends(_get_storage),
    config: ServerConfig = Depends(_get_config),
) -> dict[str, Any]:
    try:
        records = await storage.list_auctions(None)
    except PersistenceReadFailure as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    now = utc_now()
    candidates = {status.value for status in config.sweep.candidate_statuses}
    by_status: Counter[str] = Counter()
    awaiting_settlement = 0
    candidates_past_end = 0
    unreadable_end_times = 0
    for record in records:
        status = str(record.get("status"))
        by_status[status] += 1
        if status not in candidates:
            continue
        try:
            ends_at = resolve_instant(record.get("ends_at"))
        except InvalidTimestampFormat:
            unreadable_end_times += 1
            continue
        if not window_elapsed(ends_at, now):
            continue
        candidates_past_end += 1
        if status == "active":
            awaiting_settlement += 1
    return {
        "total_auctions": len(records),
        "by_status": dict(by_status),
        "active_past_end": awaiting_settlement,
        # Every auction the next sweep will recompute.
        "candidates_past_end": candidates_past_end,
        "unreadable_end_times": unreadable_end_times,
    }

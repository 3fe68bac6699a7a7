"""Diagnosis and reconciliation endpoints for operators."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from jsonschema import ValidationError

from ..errors import PersistenceReadFailure, SettlementError
from ..reconcile import DiagnosticsService, ReconciliationSweep
from ..validation.validator import SchemaRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_diagnostics(request: Request) -> DiagnosticsService:
    return request.app.state.diagnostics


def _get_sweep(request: Request) -> ReconciliationSweep:
    return request.app.state.sweep


def _get_schemas(request: Request) -> SchemaRegistry:
    return request.app.state.schema_registry


@router.get("/auctions/{auction_id}/diagnosis")
async def diagnose_auction(
    auction_id: str,
    diagnostics: DiagnosticsService = Depends(_get_diagnostics),
) -> dict[str, Any]:
    lookup: Any = int(auction_id) if auction_id.isdigit() else auction_id
    try:
        return await diagnostics.diagnose(lookup)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"auction {auction_id} not found") from exc
    except PersistenceReadFailure as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except SettlementError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post("/reconcile")
async def reconcile(
    payload: dict[str, Any] | None = Body(default=None),
    sweep: ReconciliationSweep = Depends(_get_sweep),
    schemas: SchemaRegistry = Depends(_get_schemas),
) -> dict[str, Any]:
    payload = payload or {}
    try:
        schemas.validate("reconcile_request", payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc.message)) from exc
    try:
        report = await sweep.run(
            auction_ids=payload.get("auction_ids"),
            dry_run=bool(payload.get("dry_run", False)),
        )
    except PersistenceReadFailure as exc:
        logger.error("reconciliation aborted, candidates could not be listed: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return report.to_dict()

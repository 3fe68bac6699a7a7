"""Configuration helpers for the settlement service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml

from ..auction.fsm import RECONCILABLE_STATUSES, AuctionStatus, parse_statuses

_DEFAULT_SERVER_CONFIG = Path(__file__).resolve().parent / "server.yaml"


@dataclass(frozen=True)
class StorageConfig:
    backend: str
    options: Mapping[str, Any]


@dataclass(frozen=True)
class SweepConfig:
    concurrency: int
    candidate_statuses: tuple[AuctionStatus, ...]
    listing_status: str
    repair_listings: bool = True
    open_listing_statuses: tuple[str, ...] = ("active", "featured")


@dataclass(frozen=True)
class ServerConfig:
    listen: Mapping[str, Any]
    storage: StorageConfig
    sweep: SweepConfig
    currency: str
    log_level: str


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    return yaml.safe_load(path.read_text()) or {}


def load_server_config(path: Path) -> ServerConfig:
    data = _load_yaml(path)
    storage = data.get("storage", {})
    sweep = data.get("sweep", {})
    statuses = sweep.get("candidate_statuses") or [s.value for s in RECONCILABLE_STATUSES]
    concurrency = int(sweep.get("concurrency", 4))
    if concurrency < 1:
        raise ValueError("sweep.concurrency must be at least 1")
    return ServerConfig(
        listen=data.get("listen", {}),
        storage=StorageConfig(
            backend=str(storage.get("backend", "in_memory")),
            options=dict(storage.get("options") or {}),
        ),
        sweep=SweepConfig(
            concurrency=concurrency,
            candidate_statuses=parse_statuses(statuses),
            listing_status=str(sweep.get("listing_status", AuctionStatus.PENDING.value)),
            repair_listings=bool(sweep.get("repair_listings", True)),
            open_listing_statuses=tuple(
                str(status)
                for status in sweep.get("open_listing_statuses") or ("active", "featured")
            ),
        ),
        currency=str((data.get("display") or {}).get("currency", "RM")),
        log_level=str((data.get("logging") or {}).get("level", "INFO")).upper(),
    )


def get_config_path() -> Path:
    return Path(os.getenv("SETTLEMENT_CONFIG_PATH", _DEFAULT_SERVER_CONFIG))


@lru_cache(maxsize=1)
def get_server_config() -> ServerConfig:
    return load_server_config(get_config_path())

"""Sweep report structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import orjson

from ..timing import format_instant

CORRECTED = "corrected"
UNCHANGED = "unchanged"
WOULD_CORRECT = "would_correct"
CONFLICT = "conflict"
ERRORED = "errored"
LISTING_REPAIRED = "listing_repaired"


@dataclass
class SweepEntry:
    auction_id: Any
    previous_status: str | None
    recomputed_status: str | None = None
    reason: str | None = None
    action: str = UNCHANGED
    changes: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def corrected(self) -> bool:
        return self.action == CORRECTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "auction_id": self.auction_id,
            "previous_status": self.previous_status,
            "recomputed_status": self.recomputed_status,
            "reason": self.reason,
            "action": self.action,
            "corrected": self.corrected,
            "changes": self.changes,
            "error": self.error,
            "warnings": list(self.warnings),
        }


@dataclass
class SweepReport:
    started_at: datetime
    dry_run: bool = False
    finished_at: datetime | None = None
    cancelled: bool = False
    entries: list[SweepEntry] = field(default_factory=list)
    # Listings of already settled auctions brought back in line with their auction.
    repairs: list[SweepEntry] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def inspected(self) -> int:
        return len(self.entries)

    @property
    def corrected(self) -> int:
        return sum(1 for entry in self.entries if entry.action == CORRECTED)

    @property
    def would_correct(self) -> int:
        return sum(1 for entry in self.entries if entry.action == WOULD_CORRECT)

    @property
    def errored(self) -> int:
        return sum(1 for entry in self.entries if entry.action == ERRORED)

    @property
    def unchanged(self) -> int:
        return self.inspected - self.corrected - self.would_correct - self.errored

    @property
    def listings_repaired(self) -> int:
        return sum(1 for entry in self.repairs if entry.action == LISTING_REPAIRED)

    def counts(self) -> dict[str, int]:
        return {
            "inspected": self.inspected,
            "corrected": self.corrected,
            "would_correct": self.would_correct,
            "unchanged": self.unchanged,
            "errored": self.errored,
            "listings_repaired": self.listings_repaired,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": format_instant(self.started_at),
            "finished_at": format_instant(self.finished_at) if self.finished_at else None,
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "summary": self.counts(),
            "entries": [entry.to_dict() for entry in self.entries],
            "repairs": [entry.to_dict() for entry in self.repairs],
            "warnings": list(self.warnings),
        }

    def render_json(self, *, indent: bool = False) -> str:
        option = orjson.OPT_INDENT_2 if indent else 0
        return orjson.dumps(self.to_dict(), option=option).decode()

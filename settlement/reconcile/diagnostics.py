"""One-off investigation of a single auction's settlement."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..auction.fsm import RECONCILABLE_STATUSES, AuctionStatus
from ..auction.models import Money, auction_from_record, bid_from_record
from ..config import ServerConfig
from ..storage import AuctionStore
from ..timing import format_instant, utc_now
from ..validation.validator import SchemaRegistry
from .assessment import assess


def _money(value: Money | None, currency: str) -> dict[str, Any] | None:
    if value is None:
        return None
    return {"minor_units": value.minor_units, "display": value.format(currency)}


@dataclass
class DiagnosticsService:
    store: AuctionStore
    registry: SchemaRegistry
    currency: str = "RM"
    candidate_statuses: tuple[AuctionStatus, ...] = RECONCILABLE_STATUSES

    @classmethod
    def from_config(
        cls, config: ServerConfig, store: AuctionStore, registry: SchemaRegistry
    ) -> "DiagnosticsService":
        return cls(
            store,
            registry,
            currency=config.currency,
            candidate_statuses=tuple(config.sweep.candidate_statuses),
        )

    async def diagnose(self, auction_id: Any, now: datetime | None = None) -> dict[str, Any]:
        """Dump an auction with its bids and the decision a sweep would reach.

        Errors are not caught here: unknown auctions raise KeyError, bad
        persisted data raises the matching SettlementError.
        """
        now = now or utc_now()
        record = await self.store.get_auction(auction_id)
        bid_records = await self.store.list_bids(auction_id)
        auction = auction_from_record(record, self.registry)
        bids = [bid_from_record(bid, self.registry) for bid in bid_records]
        assessment = assess(
            auction,
            bids,
            now,
            currency=self.currency,
            candidate_statuses=self.candidate_statuses,
        )
        summary = assessment.summary
        correction = assessment.correction
        return {
            "auction_id": auction.id,
            "evaluated_at": format_instant(now),
            "stored": record,
            "parsed": {
                "status": auction.status.value,
                "reserve_price": _money(auction.reserve_price, self.currency),
                "current_bid": _money(auction.current_bid, self.currency),
                "current_bidder_id": auction.current_bidder_id,
                "ends_at": format_instant(auction.ends_at),
                "seconds_past_end": int((now - auction.ends_at).total_seconds()),
                "window_elapsed": assessment.elapsed,
            },
            "bids": [
                {
                    "id": bid.id,
                    "bidder_id": bid.bidder_id,
                    "amount": _money(bid.amount, self.currency),
                    "placed_at": format_instant(bid.placed_at),
                    "is_winning": bid.is_winning,
                }
                for bid in bids
            ],
            "ledger": None
            if summary is None
            else {
                "highest_amount": _money(summary.highest_amount, self.currency),
                "highest_bidder_id": summary.highest_bidder_id,
                "winning_bid_id": summary.winning_bid_id,
                "flagged_bid_ids": list(summary.flagged_bid_ids),
                "flags_consistent": summary.flags_consistent,
                "bid_count": summary.bid_count,
            },
            "decision": {
                "status": assessment.decision.status.value,
                "reason": assessment.decision.reason,
            },
            "sweep_candidate": assessment.candidate,
            "sweep_note": None
            if assessment.candidate
            else f"status {auction.status.value} is not a sweep candidate",
            "would_correct": correction is not None,
            "changes": correction.changes if correction else {},
        }

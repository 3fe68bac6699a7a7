"""Recompute an auction's settlement and the correction it needs, if any."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Collection, Sequence

from ..auction.evaluator import SettlementDecision, evaluate
from ..auction.fsm import RECONCILABLE_STATUSES, AuctionStatus, is_sticky
from ..auction.ledger import BidSummary, summarize
from ..auction.models import Auction, AuctionCorrection, Bid, same_id
from ..timing import window_elapsed


@dataclass(frozen=True)
class Assessment:
    auction: Auction
    bids: Sequence[Bid]
    summary: BidSummary | None
    elapsed: bool
    decision: SettlementDecision
    correction: AuctionCorrection | None
    candidate: bool = True


def _minor(value) -> int | None:
    return value.minor_units if value is not None else None


def assess(
    auction: Auction,
    bids: Sequence[Bid],
    now: datetime,
    *,
    currency: str = "RM",
    candidate_statuses: Collection[AuctionStatus] = RECONCILABLE_STATUSES,
) -> Assessment:
    """Recompute the settlement of one auction.

    A correction is only built for auctions the sweep would enumerate: the
    window has elapsed, the stored status is not sticky and it is one of
    ``candidate_statuses``.
    """
    summary = summarize(bids)
    elapsed = window_elapsed(auction.ends_at, now)
    decision = evaluate(
        auction.reserve_price,
        summary.highest_amount if summary else None,
        elapsed,
        auction.status,
        currency=currency,
    )
    candidate = auction.status in candidate_statuses
    correction = None
    if elapsed and candidate and not is_sticky(auction.status):
        correction = _build_correction(auction, summary, decision, now)
    return Assessment(auction, tuple(bids), summary, elapsed, decision, correction, candidate)


def _build_correction(
    auction: Auction,
    summary: BidSummary | None,
    decision: SettlementDecision,
    now: datetime,
) -> AuctionCorrection | None:
    highest = summary.highest_amount if summary else None
    bidder = summary.highest_bidder_id if summary else None
    changes: dict[str, Any] = {}
    if decision.status != auction.status:
        changes["status"] = [auction.status.value, decision.status.value]
    if auction.current_bid != highest:
        changes["current_bid"] = [_minor(auction.current_bid), _minor(highest)]
    if not same_id(auction.current_bidder_id, bidder):
        changes["current_bidder_id"] = [auction.current_bidder_id, bidder]
    if summary is not None and not summary.flags_consistent:
        changes["winning_bid_id"] = [list(summary.flagged_bid_ids), summary.winning_bid_id]
    if not changes:
        return None
    return AuctionCorrection(
        auction_id=auction.id,
        expected_status=auction.status,
        status=decision.status,
        current_bid=highest,
        current_bidder_id=bidder,
        winning_bid_id=summary.winning_bid_id if summary else None,
        updated_at=now,
        changes=changes,
    )

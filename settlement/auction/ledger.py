"""Bid ledger: pick the standing highest bid from an auction's history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from .models import Bid, Money, same_id


@dataclass(frozen=True)
class BidSummary:
    highest_amount: Money
    highest_bidder_id: Any
    winning_bid_id: Any
    flagged_bid_ids: tuple[Any, ...] = ()
    bid_count: int = 0

    @property
    def flags_consistent(self) -> bool:
        """Exactly one bid is flagged winning and it is the selected winner."""
        return len(self.flagged_bid_ids) == 1 and same_id(
            self.flagged_bid_ids[0], self.winning_bid_id
        )


def _rank(bid: Bid) -> tuple:
    # Highest amount first, then earliest placement, then id for a stable order.
    return (-bid.amount.minor_units, bid.placed_at, str(bid.id))


def select_winner(bids: Iterable[Bid]) -> Bid | None:
    return min(bids, key=_rank, default=None)


def summarize(bids: Iterable[Bid]) -> BidSummary | None:
    bids = list(bids)
    winner = select_winner(bids)
    if winner is None:
        return None
    return BidSummary(
        highest_amount=winner.amount,
        highest_bidder_id=winner.bidder_id,
        winning_bid_id=winner.id,
        flagged_bid_ids=tuple(bid.id for bid in bids if bid.is_winning),
        bid_count=len(bids),
    )

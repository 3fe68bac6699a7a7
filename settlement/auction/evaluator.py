"""Settlement decision for an auction whose window may have closed.

The decision is a pure function of the reserve price, the highest bid and
whether the window has elapsed. Both the reconciliation sweep and the
diagnostics service go through :func:`evaluate`, so the two paths cannot
disagree about an auction's outcome.

Decision table once the window has elapsed:

=============  ==============  ===================
reserve        highest bid     status
=============  ==============  ===================
absent         absent          ``expired_no_bids``
absent         present         ``pending``
present        absent          ``reserve_not_met``
present        >= reserve      ``pending``
present        < reserve       ``reserve_not_met``
=============  ==============  ===================

A reserve of zero imposes no minimum and is treated as absent.
"""

from __future__ import annotations

from dataclasses import dataclass

from .fsm import AuctionStatus, is_sticky
from .models import Money


@dataclass(frozen=True)
class SettlementDecision:
    status: AuctionStatus
    reason: str


def evaluate(
    reserve_price: Money | None,
    highest_amount: Money | None,
    window_elapsed: bool,
    current_status: AuctionStatus | None = None,
    *,
    currency: str = "RM",
) -> SettlementDecision:
    if current_status is not None and is_sticky(current_status):
        return SettlementDecision(
            current_status, f"status {current_status.value} is final for settlement"
        )
    if not window_elapsed:
        return SettlementDecision(AuctionStatus.ACTIVE, "auction window has not elapsed")

    has_reserve = reserve_price is not None and reserve_price.minor_units > 0
    if highest_amount is None:
        if has_reserve:
            return SettlementDecision(
                AuctionStatus.RESERVE_NOT_MET,
                f"no bids against reserve {reserve_price.format(currency)}",
            )
        return SettlementDecision(AuctionStatus.EXPIRED_NO_BIDS, "no bids were placed")

    bid_text = highest_amount.format(currency)
    if not has_reserve:
        return SettlementDecision(
            AuctionStatus.PENDING, f"highest bid {bid_text} with no reserve price"
        )
    reserve_text = reserve_price.format(currency)
    if highest_amount >= reserve_price:
        return SettlementDecision(
            AuctionStatus.PENDING, f"highest bid {bid_text} meets reserve {reserve_text}"
        )
    return SettlementDecision(
        AuctionStatus.RESERVE_NOT_MET,
        f"highest bid {bid_text} is below reserve {reserve_text}",
    )

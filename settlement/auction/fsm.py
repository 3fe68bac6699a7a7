"""Auction status vocabulary and the settlement transitions it allows."""

from __future__ import annotations

from enum import Enum


class AuctionStatus(str, Enum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    PENDING = "pending"
    RESERVE_NOT_MET = "reserve_not_met"
    COMPLETED = "completed"
    EXPIRED_NO_BIDS = "expired_no_bids"
    CANCELLED = "cancelled"


# Statuses the evaluator never moves an auction out of.
STICKY_STATUSES = frozenset(
    {AuctionStatus.PENDING, AuctionStatus.COMPLETED, AuctionStatus.CANCELLED}
)

RECONCILABLE_STATUSES = (
    AuctionStatus.ACTIVE,
    AuctionStatus.RESERVE_NOT_MET,
    AuctionStatus.EXPIRED_NO_BIDS,
)


def is_sticky(status: AuctionStatus) -> bool:
    return status in STICKY_STATUSES


def parse_statuses(values) -> tuple[AuctionStatus, ...]:
    values = tuple(values)
    try:
        return tuple(AuctionStatus(value) for value in values)
    except ValueError as exc:
        raise ValueError(f"unknown auction status in {list(values)}") from exc

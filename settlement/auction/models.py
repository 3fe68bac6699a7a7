"""Auction and bid records converted once at the store boundary."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from jsonschema import ValidationError

from ..errors import InvalidMoneyValue, InvalidRecordError
from ..timing import resolve_instant
from ..validation.validator import SchemaRegistry
from .fsm import AuctionStatus

_CENT = Decimal("0.01")


@dataclass(frozen=True, order=True)
class Money:
    """Money amount held as an integer count of minor units (sen)."""

    minor_units: int

    def __post_init__(self) -> None:
        if isinstance(self.minor_units, bool) or not isinstance(self.minor_units, int):
            raise InvalidMoneyValue(f"minor units must be an integer, got {self.minor_units!r}")
        if self.minor_units < 0:
            raise InvalidMoneyValue(f"money cannot be negative ({self.minor_units})")

    @classmethod
    def parse(cls, value: Any) -> "Money":
        """Build money from a persisted value.

        Integers are taken as minor units. Strings and Decimals are major-unit
        amounts as emitted by numeric columns (``"120.00"``). Floats are
        rejected outright.
        """
        if isinstance(value, Money):
            return value
        if isinstance(value, bool) or isinstance(value, float):
            raise InvalidMoneyValue(f"unsupported money value {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            text = value.strip()
            if not text:
                raise InvalidMoneyValue("money value is empty")
            try:
                value = Decimal(text)
            except InvalidOperation as exc:
                raise InvalidMoneyValue(f"money value {text!r} is not numeric") from exc
        if not isinstance(value, Decimal):
            raise InvalidMoneyValue(f"unsupported money value {value!r}")
        if not value.is_finite():
            raise InvalidMoneyValue(f"money value {value} is not finite")
        try:
            cents = value.quantize(_CENT)
        except InvalidOperation as exc:
            raise InvalidMoneyValue(f"money value {value} is out of range") from exc
        if value != cents:
            raise InvalidMoneyValue(f"money value {value} has sub-cent precision")
        return cls(int(cents * 100))

    @classmethod
    def parse_optional(cls, value: Any) -> "Money | None":
        if value is None:
            return None
        return cls.parse(value)

    def to_decimal(self) -> Decimal:
        return (Decimal(self.minor_units) / 100).quantize(_CENT)

    def format(self, currency: str = "RM") -> str:
        return f"{currency}{self.to_decimal()}"

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class Bid:
    id: Any
    auction_id: Any
    bidder_id: Any
    amount: Money
    placed_at: datetime
    is_winning: bool = False


@dataclass(frozen=True)
class Auction:
    id: Any
    product_id: Any
    status: AuctionStatus
    ends_at: datetime
    reserve_price: Money | None = None
    current_bid: Money | None = None
    current_bidder_id: Any = None


@dataclass(frozen=True)
class AuctionCorrection:
    """A guarded write: applied only while the stored status is ``expected_status``."""

    auction_id: Any
    expected_status: AuctionStatus
    status: AuctionStatus
    current_bid: Money | None
    current_bidder_id: Any
    winning_bid_id: Any
    updated_at: datetime
    changes: dict[str, Any] = field(default_factory=dict)

    def auction_updates(self) -> dict[str, Any]:
        """Auction fields in the canonical document form (minor units, ISO text)."""
        return {
            "status": self.status.value,
            "current_bid": self.current_bid.minor_units if self.current_bid else None,
            "current_bidder_id": self.current_bidder_id,
            "updated_at": self.updated_at.isoformat(),
        }


def same_id(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    return str(left) == str(right)


def _validate(registry: SchemaRegistry, schema: str, record: dict[str, Any]) -> None:
    try:
        registry.validate(schema, record)
    except ValidationError as exc:
        record_id = record.get("id") if isinstance(record, dict) else None
        raise InvalidRecordError(f"{schema} {record_id}: {exc.message}") from exc


def auction_from_record(record: dict[str, Any], registry: SchemaRegistry) -> Auction:
    _validate(registry, "auction_record", record)
    return Auction(
        id=record["id"],
        product_id=record.get("product_id"),
        status=AuctionStatus(record["status"]),
        ends_at=resolve_instant(record["ends_at"]),
        reserve_price=Money.parse_optional(record.get("reserve_price")),
        current_bid=Money.parse_optional(record.get("current_bid")),
        current_bidder_id=record.get("current_bidder_id"),
    )


def bid_from_record(record: dict[str, Any], registry: SchemaRegistry) -> Bid:
    _validate(registry, "bid_record", record)
    return Bid(
        id=record["id"],
        auction_id=record["auction_id"],
        bidder_id=record["bidder_id"],
        amount=Money.parse(record["amount"]),
        placed_at=resolve_instant(record["placed_at"]),
        is_winning=bool(record.get("is_winning", False)),
    )

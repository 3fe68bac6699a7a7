"""Unit tests for money parsing and record conversion at the store boundary."""

from __future__ import annotations

from decimal import Decimal

import pytest

from settlement.auction.fsm import AuctionStatus
from settlement.auction.models import Money, auction_from_record, bid_from_record
from settlement.errors import InvalidMoneyValue, InvalidRecordError, InvalidTimestampFormat

from factories import auction_record, bid_record


class TestMoneyParse:
    @pytest.mark.parametrize(
        "value, minor",
        [
            (12000, 12000),
            ("120.00", 12000),
            ("120", 12000),
            (" 99.5 ", 9950),
            (Decimal("100.00"), 10000),
            (Decimal("0.01"), 1),
            ("0", 0),
        ],
    )
    def test_parses_to_minor_units(self, value, minor):
        assert Money.parse(value) == Money(minor)

    @pytest.mark.parametrize(
        "value", [120.0, True, "12.345", "abc", "", "-5.00", -1, "NaN", [100]]
    )
    def test_rejects_values_outside_minor_units(self, value):
        with pytest.raises(InvalidMoneyValue):
            Money.parse(value)

    def test_text_comparison_pitfall_is_avoided(self):
        """'99.00' sorts after '100.00' as text; as money it is smaller."""
        assert Money.parse("99.00") < Money.parse("100.00")

    def test_parse_optional_passes_none(self):
        assert Money.parse_optional(None) is None

    def test_format(self):
        assert Money(12000).format() == "RM120.00"
        assert str(Money(5)) == "RM0.05"
        assert Money(12000).to_decimal() == Decimal("120.00")


class TestAuctionFromRecord:
    def test_converts_text_money_and_timestamp(self, registry):
        auction = auction_from_record(
            auction_record(58, reserve_price="100.00", current_bid="120.00", current_bidder_id=7),
            registry,
        )
        assert auction.status is AuctionStatus.ACTIVE
        assert auction.reserve_price == Money(10000)
        assert auction.current_bid == Money(12000)
        assert auction.ends_at.isoformat() == "2025-06-21T14:21:44.615000+00:00"

    def test_schema_violation(self, registry):
        with pytest.raises(InvalidRecordError):
            auction_from_record(auction_record(1, status="sold"), registry)

    def test_missing_end_time(self, registry):
        record = auction_record(1)
        del record["ends_at"]
        with pytest.raises(InvalidRecordError):
            auction_from_record(record, registry)

    def test_unparseable_end_time(self, registry):
        with pytest.raises(InvalidTimestampFormat):
            auction_from_record(auction_record(1, ends_at="next tuesday"), registry)

    def test_float_money_rejected(self, registry):
        with pytest.raises(InvalidMoneyValue):
            auction_from_record(auction_record(1, reserve_price=100.0), registry)


class TestBidFromRecord:
    def test_converts_bid(self, registry):
        bid = bid_from_record(
            bid_record(1, 58, 7, "120.00", "2025-06-21T14:00:00Z", winning=True), registry
        )
        assert bid.amount == Money(12000)
        assert bid.is_winning is True

    def test_missing_amount(self, registry):
        record = bid_record(1, 58, 7, 100, "2025-06-21T14:00:00Z")
        del record["amount"]
        with pytest.raises(InvalidRecordError):
            bid_from_record(record, registry)

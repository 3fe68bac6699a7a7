"""Unit tests for persisted timestamp resolution."""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone

import pytest

from settlement.errors import InvalidTimestampFormat
from settlement.timing import format_instant, resolve_instant, window_elapsed

EXPECTED = datetime(2025, 6, 21, 14, 21, 44, 615000, tzinfo=timezone.utc)


class TestResolveInstant:
    """Every accepted shape resolves to the same absolute instant."""

    @pytest.mark.parametrize(
        "raw",
        [
            "2025-06-21 14:21:44.615+00",
            "2025-06-21T14:21:44.615+00",
            "2025-06-21T14:21:44.615Z",
            "2025-06-21T14:21:44.615+00:00",
            "2025-06-21 15:21:44.615+01",
            "2025-06-21T22:21:44.615+0800",
        ],
    )
    def test_shapes_resolve_to_same_instant(self, raw):
        resolved = resolve_instant(raw)
        assert resolved == EXPECTED
        assert resolved.utcoffset() == timedelta(0)

    def test_trimmed_fraction_is_padded(self):
        """Postgres drops trailing zeros from fractional seconds."""
        assert resolve_instant("2025-06-21 14:21:44.61+00").microsecond == 610000

    def test_nanosecond_fraction_is_truncated(self):
        assert resolve_instant("2025-06-21T14:21:44.615123999Z").microsecond == 615123

    def test_missing_seconds(self):
        assert resolve_instant("2025-06-21 14:21+00") == datetime(
            2025, 6, 21, 14, 21, tzinfo=timezone.utc
        )

    def test_aware_datetime_is_normalized_to_utc(self):
        local = EXPECTED.astimezone(timezone(timedelta(hours=8)))
        assert resolve_instant(local) == EXPECTED
        assert resolve_instant(local).tzinfo == timezone.utc

    @pytest.mark.parametrize(
        "raw",
        [
            "2025-06-21 14:21:44.615",
            "2025-06-21T14:21:44",
            "21/06/2025 14:21",
            "not a timestamp",
            "",
            "2025-13-40 14:21:44+00",
            None,
        ],
    )
    def test_rejects_unresolvable_values(self, raw):
        with pytest.raises(InvalidTimestampFormat):
            resolve_instant(raw)

    def test_rejects_naive_datetime(self):
        with pytest.raises(InvalidTimestampFormat):
            resolve_instant(datetime(2025, 6, 21, 14, 21, 44))

    def test_independent_of_host_timezone(self, monkeypatch):
        if not hasattr(time, "tzset"):
            pytest.skip("tzset unavailable on this platform")
        monkeypatch.setenv("TZ", "Europe/London")
        time.tzset()
        try:
            assert resolve_instant("2025-06-21 14:21:44.615+00") == EXPECTED
        finally:
            monkeypatch.delenv("TZ", raising=False)
            time.tzset()


class TestWindowElapsed:
    def test_strictly_after_end(self):
        assert window_elapsed(EXPECTED, EXPECTED + timedelta(milliseconds=1))

    def test_end_instant_itself_is_not_elapsed(self):
        assert not window_elapsed(EXPECTED, EXPECTED)

    def test_before_end(self):
        assert not window_elapsed(EXPECTED, EXPECTED - timedelta(hours=1))

    def test_compares_instants_across_offsets(self):
        """An hour-offset rendering of the same instant must not close the window early."""
        now = EXPECTED.astimezone(timezone(timedelta(hours=1))) - timedelta(minutes=30)
        assert not window_elapsed(EXPECTED, now)

    def test_naive_values_rejected(self):
        with pytest.raises(InvalidTimestampFormat):
            window_elapsed(EXPECTED, datetime(2025, 6, 21, 15, 0))


def test_format_instant_uses_z_suffix():
    assert format_instant(EXPECTED) == "2025-06-21T14:21:44.615000Z"

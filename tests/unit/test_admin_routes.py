"""Unit tests for the admin HTTP surface."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from settlement.errors import PersistenceReadFailure
from settlement.main import app

from factories import auction_record, bid_record, seed


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _seed(client, auction, bids=None):
    client.portal.call(seed, client.app.state.storage, auction, bids)


def _seed_stuck_auction(client, auction_id=58):
    _seed(
        client,
        auction_record(auction_id, reserve_price="100.00"),
        [bid_record(1, auction_id, 7, 12000, "2025-06-21 13:00:00+00")],
    )


class TestMetaEndpoints:
    def test_ping(self, client):
        response = client.get("/ping")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_root(self, client):
        body = client.get("/").json()
        assert body["service"] == "auction-settlement"
        assert body["storage_backend"] == "in_memory"

    def test_health(self, client):
        body = client.get("/admin/health").json()
        assert body["status"] == "healthy"
        assert body["storage_backend"] == "in_memory"

    def test_config(self, client):
        body = client.get("/admin/config").json()
        assert body["sweep"]["candidate_statuses"] == ["active", "reserve_not_met", "expired_no_bids"]
        assert body["sweep"]["listing_status"] == "pending"
        assert body["currency"] == "RM"


class TestStats:
    def test_counts_auctions_awaiting_settlement(self, client):
        _seed_stuck_auction(client)
        _seed(client, auction_record(59, status="completed"))
        _seed(client, auction_record(60, ends_at="yesterday-ish"))
        _seed(client, auction_record(62, status="reserve_not_met", reserve_price="100.00"))

        body = client.get("/admin/stats").json()

        assert body["total_auctions"] == 4
        assert body["by_status"] == {"active": 2, "completed": 1, "reserve_not_met": 1}
        assert body["active_past_end"] == 1
        assert body["candidates_past_end"] == 2
        assert body["unreadable_end_times"] == 1

    def test_store_unavailable(self, client):
        client.app.state.storage.list_auctions = AsyncMock(side_effect=PersistenceReadFailure("down"))
        assert client.get("/admin/stats").status_code == 503


class TestDiagnosis:
    def test_diagnosis(self, client):
        _seed_stuck_auction(client)

        response = client.get("/admin/auctions/58/diagnosis")

        assert response.status_code == 200
        body = response.json()
        assert body["decision"]["status"] == "pending"
        assert body["would_correct"] is True

    def test_unknown_auction(self, client):
        assert client.get("/admin/auctions/404/diagnosis").status_code == 404

    def test_unreadable_record(self, client):
        _seed(client, auction_record(61, ends_at="not a time"))

        response = client.get("/admin/auctions/61/diagnosis")

        assert response.status_code == 422
        assert "not a time" in response.json()["detail"]


class TestReconcile:
    def test_sweep_corrects_auctions(self, client):
        _seed_stuck_auction(client)

        response = client.post("/admin/reconcile")

        assert response.status_code == 200
        body = response.json()
        assert body["summary"] == {
            "inspected": 1,
            "corrected": 1,
            "would_correct": 0,
            "unchanged": 0,
            "errored": 0,
            "listings_repaired": 0,
        }
        assert body["dry_run"] is False
        stored = client.portal.call(client.app.state.storage.get_auction, 58)
        assert stored["status"] == "pending"

    def test_dry_run_with_filter(self, client):
        _seed_stuck_auction(client, 58)
        _seed_stuck_auction(client, 59)

        response = client.post("/admin/reconcile", json={"dry_run": True, "auction_ids": [59]})

        body = response.json()
        assert [entry["auction_id"] for entry in body["entries"]] == [59]
        assert body["entries"][0]["action"] == "would_correct"
        stored = client.portal.call(client.app.state.storage.get_auction, 59)
        assert stored["status"] == "active"

    @pytest.mark.parametrize(
        "payload",
        [{"dry_run": "yes"}, {"auction_ids": "58"}, {"auction_ids": [58, 58]}, {"force": True}],
    )
    def test_invalid_request(self, client, payload):
        assert client.post("/admin/reconcile", json=payload).status_code == 422

    def test_store_unavailable(self, client):
        client.app.state.storage.list_auctions = AsyncMock(side_effect=PersistenceReadFailure("down"))
        assert client.post("/admin/reconcile", json={}).status_code == 503

"""Unit tests for the operator command line."""

from __future__ import annotations

import asyncio
import json

import pytest
from click.testing import CliRunner

from settlement import cli as cli_module
from settlement.cli import cli
from settlement.storage.in_memory import InMemoryStorage

from factories import auction_record, bid_record, seed


@pytest.fixture
def seeded_store(monkeypatch):
    store = InMemoryStorage()
    asyncio.run(
        seed(
            store,
            auction_record(58, reserve_price="100.00"),
            [bid_record(1, 58, 7, 12000, "2025-06-21 13:00:00+00")],
        )
    )
    monkeypatch.setattr(cli_module, "build_storage", lambda config: store)
    return store


@pytest.fixture
def runner():
    return CliRunner()


class TestDiagnoseCommand:
    def test_prints_diagnosis(self, runner, seeded_store):
        result = runner.invoke(cli, ["diagnose", "58"])

        assert result.exit_code == 0, result.output
        body = json.loads(result.output)
        assert body["auction_id"] == 58
        assert body["decision"]["status"] == "pending"

    def test_unknown_auction(self, runner, seeded_store):
        result = runner.invoke(cli, ["diagnose", "404"])

        assert result.exit_code == 1
        assert "auction 404 not found" in result.output


class TestReconcileCommand:
    def test_dry_run_leaves_store_untouched(self, runner, seeded_store):
        result = runner.invoke(cli, ["reconcile", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "inspected=1 corrected=0 would_correct=1 unchanged=0 errored=0" in result.output
        assert '"would_correct"' in result.output
        assert asyncio.run(seeded_store.get_auction(58))["status"] == "active"

    def test_corrects_and_reports(self, runner, seeded_store):
        result = runner.invoke(cli, ["reconcile", "--auction-id", "58", "--concurrency", "2"])

        assert result.exit_code == 0, result.output
        assert "inspected=1 corrected=1 would_correct=0 unchanged=0 errored=0" in result.output
        assert asyncio.run(seeded_store.get_auction(58))["status"] == "pending"
        assert asyncio.run(seeded_store.get_listing_status(158)) == "pending"

    def test_rejects_zero_concurrency(self, runner, seeded_store):
        result = runner.invoke(cli, ["reconcile", "--concurrency", "0"])
        assert result.exit_code == 2

    def test_uses_config_file(self, runner, seeded_store, tmp_path):
        config = tmp_path / "server.yaml"
        config.write_text(
            "storage:\n  backend: in_memory\n"
            "sweep:\n  concurrency: 1\n  candidate_statuses: [reserve_not_met]\n"
        )

        result = runner.invoke(cli, ["--config", str(config), "reconcile"])

        assert result.exit_code == 0, result.output
        assert "inspected=0" in result.output

"""Reconciliation sweep correcting auctions whose stored status drifted."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable

from ..auction.fsm import RECONCILABLE_STATUSES, AuctionStatus
from ..auction.models import auction_from_record, bid_from_record
from ..config import ServerConfig
from ..errors import (
    CascadeWriteFailure,
    PersistenceError,
    PersistenceReadFailure,
    SettlementError,
)
from ..storage import AuctionStore
from ..timing import utc_now, window_elapsed
from ..validation.validator import SchemaRegistry
from .assessment import assess
from .report import (
    CONFLICT,
    CORRECTED,
    ERRORED,
    LISTING_REPAIRED,
    WOULD_CORRECT,
    SweepEntry,
    SweepReport,
)

logger = logging.getLogger(__name__)

_SKIPPED = object()


class ReconciliationSweep:
    def __init__(
        self,
        store: AuctionStore,
        registry: SchemaRegistry,
        *,
        candidate_statuses: Iterable[AuctionStatus] = RECONCILABLE_STATUSES,
        concurrency: int = 1,
        listing_status: str = AuctionStatus.PENDING.value,
        repair_listings: bool = True,
        open_listing_statuses: Iterable[str] = ("active", "featured"),
        currency: str = "RM",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._store = store
        self._registry = registry
        self._statuses = tuple(candidate_statuses)
        self._concurrency = concurrency
        self._listing_status = listing_status
        self._repair_listings = repair_listings
        self._open_listing_statuses = frozenset(open_listing_statuses)
        self._currency = currency
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        config: ServerConfig,
        store: AuctionStore,
        registry: SchemaRegistry,
        *,
        concurrency: int | None = None,
    ) -> "ReconciliationSweep":
        return cls(
            store,
            registry,
            candidate_statuses=config.sweep.candidate_statuses,
            concurrency=concurrency or config.sweep.concurrency,
            listing_status=config.sweep.listing_status,
            repair_listings=config.sweep.repair_listings,
            open_listing_statuses=config.sweep.open_listing_statuses,
            currency=config.currency,
        )

    async def run(
        self,
        *,
        cancel_event: asyncio.Event | None = None,
        auction_ids: Iterable[Any] | None = None,
        dry_run: bool = False,
    ) -> SweepReport:
        """Recompute every candidate auction and correct the ones that drifted.

        Raises PersistenceReadFailure if the candidates cannot be listed; in
        that case nothing has been written. Per-auction failures are recorded
        on the report and never stop the sweep.

        A second phase moves the listing of every ``pending`` auction whose
        listing is still open to ``listing_status``, which repairs cascades
        that failed on an earlier run.
        """
        now = self._clock()
        report = SweepReport(started_at=now, dry_run=dry_run)
        wanted = None
        if auction_ids is not None:
            wanted = {str(auction_id) for auction_id in auction_ids}
        records = self._narrow(
            await self._store.list_auctions([status.value for status in self._statuses]), wanted
        )
        logger.info(
            "reconciliation sweep over %d candidate auction(s) dry_run=%s", len(records), dry_run
        )

        semaphore = asyncio.Semaphore(self._concurrency)
        report.entries = await self._each(
            records,
            semaphore,
            cancel_event,
            report,
            lambda record: self._process(record, now, dry_run),
        )
        if self._repair_listings:
            await self._repair_phase(report, semaphore, cancel_event, wanted)

        report.finished_at = self._clock()
        counts = report.counts()
        logger.info(
            "reconciliation sweep finished inspected=%d corrected=%d would_correct=%d "
            "unchanged=%d errored=%d listings_repaired=%d cancelled=%s",
            counts["inspected"],
            counts["corrected"],
            counts["would_correct"],
            counts["unchanged"],
            counts["errored"],
            counts["listings_repaired"],
            report.cancelled,
        )
        return report

    @staticmethod
    def _narrow(records: list[dict[str, Any]], wanted: set[str] | None) -> list[dict[str, Any]]:
        if wanted is None:
            return records
        return [record for record in records if str(record.get("id")) in wanted]

    async def _each(
        self,
        records: list[dict[str, Any]],
        semaphore: asyncio.Semaphore,
        cancel_event: asyncio.Event | None,
        report: SweepReport,
        handler: Callable[[dict[str, Any]], Awaitable[SweepEntry | None]],
    ) -> list[SweepEntry]:
        async def _guarded(record: dict[str, Any]):
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    return _SKIPPED
                try:
                    return await handler(record)
                except Exception as exc:
                    entry = SweepEntry(record.get("id"), record.get("status"))
                    return self._errored(entry, exc, unexpected=True)

        results = await asyncio.gather(*(_guarded(record) for record in records))
        if any(result is _SKIPPED for result in results):
            report.cancelled = True
        return [result for result in results if isinstance(result, SweepEntry)]

    async def _process(
        self, record: dict[str, Any], now: datetime, dry_run: bool
    ) -> SweepEntry | None:
        entry = SweepEntry(auction_id=record.get("id"), previous_status=record.get("status"))
        try:
            auction = auction_from_record(record, self._registry)
            if not window_elapsed(auction.ends_at, now):
                return None
            bids = [
                bid_from_record(bid, self._registry)
                for bid in await self._store.list_bids(auction.id)
            ]
            assessment = assess(
                auction, bids, now, currency=self._currency, candidate_statuses=self._statuses
            )
        except (SettlementError, KeyError) as exc:
            return self._errored(entry, exc)

        decision = assessment.decision
        entry.recomputed_status = decision.status.value
        entry.reason = decision.reason
        correction = assessment.correction
        if correction is None:
            return entry
        entry.changes = correction.changes
        if dry_run:
            entry.action = WOULD_CORRECT
            return entry

        try:
            applied = await self._store.apply_correction(correction)
        except (PersistenceError, KeyError) as exc:
            return self._errored(entry, exc)
        if not applied:
            entry.action = CONFLICT
            logger.warning(
                "auction %s changed status since it was read; correction skipped", auction.id
            )
            return entry

        entry.action = CORRECTED
        logger.info(
            "auction %s corrected %s -> %s (%s)",
            auction.id,
            auction.status.value,
            decision.status.value,
            decision.reason,
        )
        if correction.status is AuctionStatus.PENDING and auction.status is not AuctionStatus.PENDING:
            await self._cascade(entry, auction.product_id)
        return entry

    async def _cascade(self, entry: SweepEntry, product_id: Any) -> None:
        try:
            await self._store.update_listing_status(product_id, self._listing_status)
        except (PersistenceError, KeyError) as exc:
            failure = CascadeWriteFailure(product_id, exc)
            entry.warnings.append(str(failure))
            logger.warning("auction %s: %s", entry.auction_id, failure)

    async def _repair_phase(
        self,
        report: SweepReport,
        semaphore: asyncio.Semaphore,
        cancel_event: asyncio.Event | None,
        wanted: set[str] | None,
    ) -> None:
        try:
            records = await self._store.list_auctions([AuctionStatus.PENDING.value])
        except PersistenceReadFailure as exc:
            report.warnings.append(f"listing repair skipped: {exc}")
            logger.error("listing repair skipped, pending auctions could not be listed: %s", exc)
            return
        report.repairs = await self._each(
            self._narrow(records, wanted),
            semaphore,
            cancel_event,
            report,
            lambda record: self._repair_listing(record, report.dry_run),
        )

    async def _repair_listing(self, record: dict[str, Any], dry_run: bool) -> SweepEntry | None:
        product_id = record.get("product_id")
        if product_id is None:
            return None
        entry = SweepEntry(
            auction_id=record.get("id"),
            previous_status=record.get("status"),
            recomputed_status=record.get("status"),
        )
        try:
            current = await self._store.get_listing_status(product_id)
        except (PersistenceError, KeyError) as exc:
            return self._errored(entry, exc)
        if current not in self._open_listing_statuses:
            return None
        entry.reason = f"listing {product_id} is still {current} while the auction is settled"
        entry.changes = {"listing_status": [current, self._listing_status]}
        if dry_run:
            entry.action = WOULD_CORRECT
            return entry
        try:
            await self._store.update_listing_status(product_id, self._listing_status)
        except (PersistenceError, KeyError) as exc:
            return self._errored(entry, exc)
        entry.action = LISTING_REPAIRED
        logger.info(
            "listing %s of auction %s repaired %s -> %s",
            product_id,
            entry.auction_id,
            current,
            self._listing_status,
        )
        return entry

    def _errored(
        self, entry: SweepEntry, exc: BaseException, *, unexpected: bool = False
    ) -> SweepEntry:
        entry.action = ERRORED
        entry.error = f"{type(exc).__name__}: {exc}"
        logger.error(
            "auction %s could not be reconciled: %s", entry.auction_id, exc, exc_info=unexpected
        )
        return entry

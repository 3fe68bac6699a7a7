"""In-memory storage backend for auctions, bids and listings."""

from __future__ import annotations

import asyncio
from copy import deepcopy
from typing import Any, Iterable

from ..auction.models import AuctionCorrection, same_id


class InMemoryStorage:
    def __init__(self) -> None:
        self._auctions: dict[str, dict[str, Any]] = {}
        # Bids are kept in arrival order, which is placement order.
        self._bids: dict[str, list[dict[str, Any]]] = {}
        self._listings: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def create_auction(self, record: dict[str, Any]) -> dict[str, Any]:
        async with self._lock:
            self._auctions[str(record["id"])] = deepcopy(record)
            return deepcopy(record)

    async def create_bid(self, record: dict[str, Any]) -> dict[str, Any]:
        async with self._lock:
            self._bids.setdefault(str(record["auction_id"]), []).append(deepcopy(record))
            return deepcopy(record)

    async def create_listing(self, record: dict[str, Any]) -> dict[str, Any]:
        async with self._lock:
            self._listings[str(record["id"])] = deepcopy(record)
            return deepcopy(record)

    async def list_auctions(self, statuses: Iterable[str] | None = None) -> list[dict[str, Any]]:
        wanted = {str(status) for status in statuses} if statuses is not None else None
        async with self._lock:
            return [
                deepcopy(record)
                for record in self._auctions.values()
                if wanted is None or record.get("status") in wanted
            ]

    async def get_auction(self, auction_id: Any) -> dict[str, Any]:
        async with self._lock:
            try:
                return deepcopy(self._auctions[str(auction_id)])
            except KeyError as exc:
                raise KeyError(f"auction {auction_id} not found") from exc

    async def list_bids(self, auction_id: Any) -> list[dict[str, Any]]:
        async with self._lock:
            return [deepcopy(bid) for bid in self._bids.get(str(auction_id), [])]

    async def get_listing_status(self, product_id: Any) -> str:
        async with self._lock:
            try:
                return self._listings[str(product_id)]["status"]
            except KeyError as exc:
                raise KeyError(f"listing {product_id} not found") from exc

    async def apply_correction(self, correction: AuctionCorrection) -> bool:
        async with self._lock:
            record = self._auctions.get(str(correction.auction_id))
            if record is None:
                raise KeyError(f"auction {correction.auction_id} not found")
            if record.get("status") != correction.expected_status.value:
                return False
            record.update(correction.auction_updates())
            if correction.winning_bid_id is not None:
                for bid in self._bids.get(str(correction.auction_id), []):
                    bid["is_winning"] = same_id(bid.get("id"), correction.winning_bid_id)
            return True

    async def update_listing_status(self, product_id: Any, status: str) -> None:
        async with self._lock:
            if str(product_id) not in self._listings:
                raise KeyError(f"listing {product_id} not found")
            self._listings[str(product_id)]["status"] = status

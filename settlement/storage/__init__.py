"""Storage backend factory."""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from ..auction.models import AuctionCorrection
from ..config import ServerConfig
from .firestore import FirestoreStorage
from .in_memory import InMemoryStorage
from .postgres import PostgresStorage
from .redis import RedisStorage


class AuctionStore(Protocol):
    async def list_auctions(self, statuses: Iterable[str] | None = None) -> list[dict]: ...

    async def get_auction(self, auction_id: Any) -> dict: ...

    async def list_bids(self, auction_id: Any) -> list[dict]:
        """Bids for one auction, ordered by placement time."""
        ...

    async def apply_correction(self, correction: AuctionCorrection) -> bool:
        """Atomically apply a correction.

        Returns False without writing anything if the stored status no longer
        equals ``correction.expected_status``.
        """
        ...

    async def get_listing_status(self, product_id: Any) -> str:
        """Status of the listing behind an auction; KeyError if there is none."""
        ...

    async def update_listing_status(self, product_id: Any, status: str) -> None: ...


def build_storage(config: ServerConfig) -> AuctionStore:
    backend = config.storage.backend
    options = dict(config.storage.options)
    if backend == "in_memory":
        return InMemoryStorage()
    if backend == "redis":
        return RedisStorage(**options)
    if backend == "postgres":
        return PostgresStorage(**options)
    if backend == "firestore":
        return FirestoreStorage(**options)
    raise ValueError(f"unknown storage backend {backend}")

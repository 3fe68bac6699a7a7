"""Postgres storage backend leveraging asyncpg.

The ``auctions``, ``bids`` and ``products`` tables are owned by the listing
application; this backend only reads them and applies guarded corrections.
Money and timestamp columns are selected as text so every record reaches the
settlement code in the same shape regardless of driver codecs.
"""

from __future__ import annotations

from typing import Any, Iterable

import asyncpg

from ..auction.models import AuctionCorrection
from ..errors import PersistenceReadFailure, PersistenceWriteFailure

_AUCTION_COLUMNS = """
    id,
    product_id,
    status,
    ends_at::text AS ends_at,
    reserve_price::text AS reserve_price,
    current_bid::text AS current_bid,
    current_bidder_id,
    updated_at::text AS updated_at
"""

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class PostgresStorage:
    def __init__(self, *, dsn: str | None = None, **connect_kwargs: Any) -> None:
        if not dsn and not connect_kwargs:
            raise ValueError("postgres connection details missing")
        self._dsn = dsn
        self._connect_kwargs = connect_kwargs
        self._pool: asyncpg.Pool | None = None

    async def _ensure_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(dsn=self._dsn, **self._connect_kwargs)
        return self._pool

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def list_auctions(self, statuses: Iterable[str] | None = None) -> list[dict[str, Any]]:
        query = f"SELECT {_AUCTION_COLUMNS} FROM auctions"
        args: list[Any] = []
        if statuses is not None:
            query += " WHERE status = ANY($1::text[])"
            args.append([str(status) for status in statuses])
        query += " ORDER BY id"
        try:
            pool = await self._ensure_pool()
            async with pool.acquire() as conn:
                rows = await conn.fetch(query, *args)
        except _DRIVER_ERRORS as exc:
            raise PersistenceReadFailure(f"listing auctions failed: {exc}") from exc
        return [dict(row) for row in rows]

    async def get_auction(self, auction_id: Any) -> dict[str, Any]:
        try:
            pool = await self._ensure_pool()
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {_AUCTION_COLUMNS} FROM auctions WHERE id = $1",
                    auction_id,
                )
        except _DRIVER_ERRORS as exc:
            raise PersistenceReadFailure(f"reading auction {auction_id} failed: {exc}") from exc
        if not row:
            raise KeyError(auction_id)
        return dict(row)

    async def list_bids(self, auction_id: Any) -> list[dict[str, Any]]:
        try:
            pool = await self._ensure_pool()
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT id, auction_id, bidder_id, amount::text AS amount,
                           placed_at::text AS placed_at, is_winning
                    FROM bids WHERE auction_id = $1
                    ORDER BY placed_at, id
                    """,
                    auction_id,
                )
        except _DRIVER_ERRORS as exc:
            raise PersistenceReadFailure(f"reading bids for {auction_id} failed: {exc}") from exc
        return [dict(row) for row in rows]

    async def apply_correction(self, correction: AuctionCorrection) -> bool:
        current_bid = correction.current_bid.to_decimal() if correction.current_bid else None
        try:
            pool = await self._ensure_pool()
            async with pool.acquire() as conn:
                async with conn.transaction():
                    result = await conn.execute(
                        """
                        UPDATE auctions
                        SET status = $2, current_bid = $3, current_bidder_id = $4,
                            updated_at = $5
                        WHERE id = $1 AND status = $6
                        """,
                        correction.auction_id,
                        correction.status.value,
                        current_bid,
                        correction.current_bidder_id,
                        correction.updated_at,
                        correction.expected_status.value,
                    )
                    if result != "UPDATE 1":
                        return False
                    if correction.winning_bid_id is not None:
                        await conn.execute(
                            "UPDATE bids SET is_winning = (id = $2) WHERE auction_id = $1",
                            correction.auction_id,
                            correction.winning_bid_id,
                        )
        except _DRIVER_ERRORS as exc:
            raise PersistenceWriteFailure(
                f"correcting auction {correction.auction_id} failed: {exc}"
            ) from exc
        return True

    async def get_listing_status(self, product_id: Any) -> str:
        try:
            pool = await self._ensure_pool()
            async with pool.acquire() as conn:
                status = await conn.fetchval(
                    "SELECT status FROM products WHERE id = $1", product_id
                )
        except _DRIVER_ERRORS as exc:
            raise PersistenceReadFailure(f"reading listing {product_id} failed: {exc}") from exc
        if status is None:
            raise KeyError(product_id)
        return status

    async def update_listing_status(self, product_id: Any, status: str) -> None:
        try:
            pool = await self._ensure_pool()
            async with pool.acquire() as conn:
                result = await conn.execute(
                    "UPDATE products SET status = $2, updated_at = NOW() WHERE id = $1",
                    product_id,
                    status,
                )
        except _DRIVER_ERRORS as exc:
            raise PersistenceWriteFailure(f"updating listing {product_id} failed: {exc}") from exc
        if result == "UPDATE 0":
            raise KeyError(product_id)

"""Redis storage backend using redis-py asyncio client.

Layout under ``prefix``: ``auction:<id>`` holds the auction document,
``bids:<auction_id>`` the JSON list of bids in placement order and
``listing:<product_id>`` the listing document.
"""

from __future__ import annotations

from typing import Any, Iterable

import orjson
from redis import asyncio as aioredis
from redis.exceptions import RedisError, WatchError

from ..auction.models import AuctionCorrection, same_id
from ..errors import PersistenceReadFailure, PersistenceWriteFailure


class RedisStorage:
    def __init__(self, *, url: str, prefix: str = "settlement") -> None:
        if not url:
            raise ValueError("redis url missing")
        self._redis = aioredis.from_url(url)
        self._prefix = prefix.rstrip(":")

    async def close(self) -> None:
        await self._redis.aclose()

    def _auction_key(self, auction_id: Any) -> str:
        return f"{self._prefix}:auction:{auction_id}"

    def _bids_key(self, auction_id: Any) -> str:
        return f"{self._prefix}:bids:{auction_id}"

    def _listing_key(self, product_id: Any) -> str:
        return f"{self._prefix}:listing:{product_id}"

    async def list_auctions(self, statuses: Iterable[str] | None = None) -> list[dict[str, Any]]:
        wanted = {str(status) for status in statuses} if statuses is not None else None
        pattern = self._auction_key("*")
        keys: list[bytes] = []
        cursor = 0
        try:
            while True:
                cursor, batch = await self._redis.scan(cursor=cursor, match=pattern, count=100)
                keys.extend(batch)
                if cursor == 0:
                    break
            values = await self._redis.mget(keys) if keys else []
        except RedisError as exc:
            raise PersistenceReadFailure(f"listing auctions failed: {exc}") from exc
        records = [orjson.loads(value) for value in values if value]
        return [
            record for record in records if wanted is None or record.get("status") in wanted
        ]

    async def get_auction(self, auction_id: Any) -> dict[str, Any]:
        try:
            raw = await self._redis.get(self._auction_key(auction_id))
        except RedisError as exc:
            raise PersistenceReadFailure(f"reading auction {auction_id} failed: {exc}") from exc
        if raw is None:
            raise KeyError(auction_id)
        return orjson.loads(raw)

    async def list_bids(self, auction_id: Any) -> list[dict[str, Any]]:
        try:
            raw = await self._redis.get(self._bids_key(auction_id))
        except RedisError as exc:
            raise PersistenceReadFailure(f"reading bids for {auction_id} failed: {exc}") from exc
        return orjson.loads(raw) if raw else []

    async def apply_correction(self, correction: AuctionCorrection) -> bool:
        auction_key = self._auction_key(correction.auction_id)
        bids_key = self._bids_key(correction.auction_id)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                await pipe.watch(auction_key, bids_key)
                raw = await pipe.get(auction_key)
                if raw is None:
                    raise KeyError(correction.auction_id)
                record = orjson.loads(raw)
                if record.get("status") != correction.expected_status.value:
                    await pipe.unwatch()
                    return False
                record.update(correction.auction_updates())
                raw_bids = await pipe.get(bids_key)
                pipe.multi()
                pipe.set(auction_key, orjson.dumps(record))
                if correction.winning_bid_id is not None and raw_bids:
                    bids = orjson.loads(raw_bids)
                    for bid in bids:
                        bid["is_winning"] = same_id(bid.get("id"), correction.winning_bid_id)
                    pipe.set(bids_key, orjson.dumps(bids))
                await pipe.execute()
        except WatchError:
            return False
        except RedisError as exc:
            raise PersistenceWriteFailure(
                f"correcting auction {correction.auction_id} failed: {exc}"
            ) from exc
        return True

    async def get_listing_status(self, product_id: Any) -> str:
        try:
            raw = await self._redis.get(self._listing_key(product_id))
        except RedisError as exc:
            raise PersistenceReadFailure(f"reading listing {product_id} failed: {exc}") from exc
        if raw is None:
            raise KeyError(product_id)
        return orjson.loads(raw).get("status")

    async def update_listing_status(self, product_id: Any, status: str) -> None:
        key = self._listing_key(product_id)
        try:
            raw = await self._redis.get(key)
            if raw is None:
                raise KeyError(product_id)
            listing = orjson.loads(raw)
            listing["status"] = status
            await self._redis.set(key, orjson.dumps(listing))
        except RedisError as exc:
            raise PersistenceWriteFailure(f"updating listing {product_id} failed: {exc}") from exc

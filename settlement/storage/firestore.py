"""Firestore storage backend leveraging google-cloud-firestore."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterable

from google.api_core.exceptions import GoogleAPIError
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter
from google.oauth2 import service_account

from ..auction.models import AuctionCorrection, same_id
from ..errors import PersistenceReadFailure, PersistenceWriteFailure


class FirestoreStorage:
    def __init__(
        self,
        *,
        project_id: str,
        auctions_collection: str = "auctions",
        bids_collection: str = "bids",
        listings_collection: str = "products",
        credentials_path: str | None = None,
    ) -> None:
        if not project_id:
            raise ValueError("project_id required for firestore backend")
        client_kwargs: dict[str, Any] = {"project": project_id}
        if credentials_path:
            client_kwargs["credentials"] = service_account.Credentials.from_service_account_file(
                credentials_path
            )
        self._client = firestore.Client(**client_kwargs)
        self._auctions_name = auctions_collection
        self._bids_name = bids_collection
        self._listings_name = listings_collection

    def _auction_ref(self, auction_id: Any):
        return self._client.collection(self._auctions_name).document(str(auction_id))

    def _bids_query(self, auction_id: Any):
        return (
            self._client.collection(self._bids_name)
            .where(filter=FieldFilter("auction_id", "==", auction_id))
            .order_by("placed_at")
        )

    async def _run(self, func: Callable, *args, **kwargs):
        return await asyncio.to_thread(func, *args, **kwargs)

    async def list_auctions(self, statuses: Iterable[str] | None = None) -> list[dict[str, Any]]:
        query = self._client.collection(self._auctions_name)
        if statuses is not None:
            query = query.where(filter=FieldFilter("status", "in", [str(s) for s in statuses]))
        try:
            docs = await self._run(lambda: list(query.stream()))
        except GoogleAPIError as exc:
            raise PersistenceReadFailure(f"listing auctions failed: {exc}") from exc
        return [doc.to_dict() for doc in docs]

    async def get_auction(self, auction_id: Any) -> dict[str, Any]:
        try:
            doc = await self._run(self._auction_ref(auction_id).get)
        except GoogleAPIError as exc:
            raise PersistenceReadFailure(f"reading auction {auction_id} failed: {exc}") from exc
        if not doc.exists:
            raise KeyError(auction_id)
        return doc.to_dict()

    async def list_bids(self, auction_id: Any) -> list[dict[str, Any]]:
        query = self._bids_query(auction_id)
        try:
            docs = await self._run(lambda: list(query.stream()))
        except GoogleAPIError as exc:
            raise PersistenceReadFailure(f"reading bids for {auction_id} failed: {exc}") from exc
        return [doc.to_dict() for doc in docs]

    async def apply_correction(self, correction: AuctionCorrection) -> bool:
        auction_ref = self._auction_ref(correction.auction_id)
        bids_query = self._bids_query(correction.auction_id)

        @firestore.transactional
        def _apply(transaction) -> bool:
            snapshot = auction_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise KeyError(correction.auction_id)
            if snapshot.get("status") != correction.expected_status.value:
                return False
            bid_snapshots = []
            if correction.winning_bid_id is not None:
                bid_snapshots = list(bids_query.stream(transaction=transaction))
            transaction.update(auction_ref, correction.auction_updates())
            for bid in bid_snapshots:
                transaction.update(
                    bid.reference,
                    {"is_winning": same_id(bid.get("id"), correction.winning_bid_id)},
                )
            return True

        try:
            return await self._run(_apply, self._client.transaction())
        except GoogleAPIError as exc:
            raise PersistenceWriteFailure(
                f"correcting auction {correction.auction_id} failed: {exc}"
            ) from exc

    def _listing_ref(self, product_id: Any):
        return self._client.collection(self._listings_name).document(str(product_id))

    async def get_listing_status(self, product_id: Any) -> str:
        try:
            doc = await self._run(self._listing_ref(product_id).get)
        except GoogleAPIError as exc:
            raise PersistenceReadFailure(f"reading listing {product_id} failed: {exc}") from exc
        if not doc.exists:
            raise KeyError(product_id)
        return doc.get("status")

    async def update_listing_status(self, product_id: Any, status: str) -> None:
        ref = self._listing_ref(product_id)
        try:
            doc = await self._run(ref.get)
            if not doc.exists:
                raise KeyError(product_id)
            await self._run(ref.update, {"status": status})
        except GoogleAPIError as exc:
            raise PersistenceWriteFailure(f"updating listing {product_id} failed: {exc}") from exc

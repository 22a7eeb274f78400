"""In-memory listing and favorites stores.

Persistence is owned by an external backend; these stand in for it so the
service runs end to end and tests have a deterministic collaborator.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from uuid import uuid4

from core.exceptions import ListingNotFoundError
from schemas.listings import FavoriteResult, ListingSubmission, SavedListing


logger = logging.getLogger(__name__)


class InMemoryListingStore:
    def __init__(self) -> None:
        self._listings: dict[str, SavedListing] = {}
        self._images: dict[str, list[str]] = {}
        self._lock = asyncio.Lock()

    async def add_listing(self, submission: ListingSubmission) -> SavedListing:
        async with self._lock:
            listing = SavedListing(
                id=uuid4().hex,
                fields=submission.fields.to_record(),
                image_count=len(submission.images),
                created_at=datetime.now(UTC),
            )
            self._listings[listing.id] = listing
            self._images[listing.id] = list(submission.images)
        logger.info(
            "Stored listing %s with %d images", listing.id, listing.image_count
        )
        return listing

    def get(self, listing_id: str) -> SavedListing:
        try:
            return self._listings[listing_id]
        except KeyError:
            raise ListingNotFoundError(f"Listing {listing_id} not found") from None

    def __contains__(self, listing_id: object) -> bool:
        return listing_id in self._listings

    def __len__(self) -> int:
        return len(self._listings)


class InMemoryFavoriteStore:
    """Saved/unsaved flag per listing for the single session user."""

    def __init__(self, listings: InMemoryListingStore | None = None) -> None:
        self._listings = listings
        self._saved: set[str] = set()

    async def toggle(self, listing_id: str) -> FavoriteResult:
        if self._listings is not None and listing_id not in self._listings:
            raise ListingNotFoundError(f"Listing {listing_id} not found")
        if listing_id in self._saved:
            self._saved.discard(listing_id)
            return FavoriteResult(
                listing_id=listing_id, saved=False, message="Removed from favorites"
            )
        self._saved.add(listing_id)
        return FavoriteResult(
            listing_id=listing_id, saved=True, message="Added to favorites"
        )

    def is_saved(self, listing_id: str) -> bool:
        return listing_id in self._saved

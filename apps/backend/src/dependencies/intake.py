"""Request dependencies for draft sessions and their collaborators.

Sessions live in process memory keyed by id until they are submitted or
discarded. A favorite toggle is kept only while its request is in flight.
The extraction agent and the stores are process-wide singletons created on
first use so importing the app never requires model credentials.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from core.config import Settings, get_settings
from core.exceptions import DraftNotFoundError
from services.ai.agents import ExtractionAgentProtocol, VehicleAgentAdapter
from services.intake.session import ListingIntakeSession, ListingStoreProtocol
from services.listings.favorites import FavoriteStoreProtocol, FavoriteToggle
from services.listings.store import InMemoryFavoriteStore, InMemoryListingStore


logger = logging.getLogger(__name__)


class DraftSessionRegistry:
    """Open draft sessions plus one favorite toggle per listing."""

    def __init__(self) -> None:
        self._sessions: dict[str, ListingIntakeSession] = {}
        self._favorites: dict[str, FavoriteToggle] = {}

    def create(
        self,
        agent: ExtractionAgentProtocol,
        store: ListingStoreProtocol,
        settings: Settings,
    ) -> ListingIntakeSession:
        session = ListingIntakeSession(agent=agent, store=store, settings=settings)
        self._sessions[session.id] = session
        logger.info("Opened draft %s", session.id)
        return session

    def get(self, draft_id: str) -> ListingIntakeSession:
        try:
            return self._sessions[draft_id]
        except KeyError:
            raise DraftNotFoundError(f"Draft {draft_id} not found") from None

    def discard(self, draft_id: str) -> None:
        session = self.get(draft_id)
        session.reset()
        del self._sessions[draft_id]
        logger.info("Discarded draft %s", draft_id)

    def close(self, draft_id: str) -> None:
        """Forget a submitted draft without touching its state."""
        if self._sessions.pop(draft_id, None) is not None:
            logger.info("Closed draft %s", draft_id)

    def favorite(self, listing_id: str, store: FavoriteStoreProtocol) -> FavoriteToggle:
        toggle = self._favorites.get(listing_id)
        if toggle is None:
            toggle = FavoriteToggle(listing_id, store)
            self._favorites[listing_id] = toggle
        return toggle

    def release_favorite(self, listing_id: str) -> None:
        toggle = self._favorites.get(listing_id)
        if toggle is not None and not toggle.operation.is_loading:
            del self._favorites[listing_id]

    @property
    def pending_favorites(self) -> int:
        return len(self._favorites)

    def __len__(self) -> int:
        return len(self._sessions)


@lru_cache
def get_registry() -> DraftSessionRegistry:
    return DraftSessionRegistry()


@lru_cache
def get_extraction_agent() -> ExtractionAgentProtocol:
    return VehicleAgentAdapter()


@lru_cache
def get_listing_store() -> InMemoryListingStore:
    return InMemoryListingStore()


@lru_cache
def get_favorite_store() -> InMemoryFavoriteStore:
    return InMemoryFavoriteStore(get_listing_store())


def get_draft_session(
    draft_id: str,
    registry: Annotated[DraftSessionRegistry, Depends(get_registry)],
) -> ListingIntakeSession:
    return registry.get(draft_id)


Registry = Annotated[DraftSessionRegistry, Depends(get_registry)]
DraftSession = Annotated[ListingIntakeSession, Depends(get_draft_session)]
ExtractionAgent = Annotated[ExtractionAgentProtocol, Depends(get_extraction_agent)]
ListingStore = Annotated[ListingStoreProtocol, Depends(get_listing_store)]
FavoriteStore = Annotated[FavoriteStoreProtocol, Depends(get_favorite_store)]
AppSettings = Annotated[Settings, Depends(get_settings)]

"""Favorite toggle built on the shared `AsyncOperation` wrapper."""

from __future__ import annotations

import logging
from typing import Protocol

from schemas.listings import FavoriteResult
from services.intake.exceptions import FavoriteInFlightError
from services.intake.operation import AsyncOperation, OperationState, Success


logger = logging.getLogger(__name__)


class FavoriteStoreProtocol(Protocol):
    async def toggle(self, listing_id: str) -> FavoriteResult:
        ...


class FavoriteToggle:
    """Tracks the saved flag of one listing for the current user."""

    def __init__(
        self, listing_id: str, store: FavoriteStoreProtocol, saved: bool = False
    ) -> None:
        self.listing_id = listing_id
        self.saved = saved
        self.operation: AsyncOperation[str, FavoriteResult] = AsyncOperation(
            store.toggle, name="favorite toggle"
        )

    async def toggle(self) -> OperationState[FavoriteResult]:
        if self.operation.is_loading:
            raise FavoriteInFlightError()
        state = await self.operation.invoke(self.listing_id)
        if isinstance(state, Success) and state.value.saved != self.saved:
            self.saved = state.value.saved
            logger.info(
                "Listing %s favorite flag is now %s", self.listing_id, self.saved
            )
        return state

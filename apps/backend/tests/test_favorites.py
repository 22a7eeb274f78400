"""Tests for the favorite toggle."""

import asyncio

import pytest

from core.exceptions import ListingNotFoundError
from dependencies.intake import DraftSessionRegistry
from schemas.listings import FavoriteResult
from services.intake.exceptions import FavoriteInFlightError
from services.intake.operation import Failure, Success
from services.listings.favorites import FavoriteToggle
from services.listings.store import InMemoryFavoriteStore, InMemoryListingStore


class GatedFavoriteStore(InMemoryFavoriteStore):
    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()
        self.calls = 0

    async def toggle(self, listing_id: str) -> FavoriteResult:
        self.calls += 1
        await self.release.wait()
        return await super().toggle(listing_id)


@pytest.mark.asyncio
async def test_toggle_flips_saved_flag():
    toggle = FavoriteToggle("car-1", InMemoryFavoriteStore())

    state = await toggle.toggle()
    assert isinstance(state, Success)
    assert state.value.message == "Added to favorites"
    assert toggle.saved is True

    state = await toggle.toggle()
    assert state.value.message == "Removed from favorites"
    assert toggle.saved is False


@pytest.mark.asyncio
async def test_failure_keeps_previous_flag():
    toggle = FavoriteToggle(
        "missing", InMemoryFavoriteStore(listings=InMemoryListingStore()), saved=True
    )

    state = await toggle.toggle()

    assert isinstance(state, Failure)
    assert isinstance(state.error, ListingNotFoundError)
    assert toggle.saved is True


@pytest.mark.asyncio
async def test_second_toggle_while_loading_is_rejected():
    store = GatedFavoriteStore()
    toggle = FavoriteToggle("car-1", store)

    first = asyncio.create_task(toggle.toggle())
    while store.calls == 0:
        await asyncio.sleep(0)

    with pytest.raises(FavoriteInFlightError):
        await toggle.toggle()

    store.release.set()
    await first
    assert store.calls == 1
    assert toggle.saved is True


@pytest.mark.asyncio
async def test_registry_keeps_toggle_only_while_loading():
    registry = DraftSessionRegistry()
    store = GatedFavoriteStore()
    toggle = registry.favorite("car-1", store)

    first = asyncio.create_task(toggle.toggle())
    while store.calls == 0:
        await asyncio.sleep(0)

    registry.release_favorite("car-1")
    assert registry.favorite("car-1", store) is toggle
    with pytest.raises(FavoriteInFlightError):
        await registry.favorite("car-1", store).toggle()

    store.release.set()
    await first
    registry.release_favorite("car-1")

    assert registry.pending_favorites == 0
    assert registry.favorite("car-1", store) is not toggle

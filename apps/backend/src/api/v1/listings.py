from __future__ import annotations

from fastapi import APIRouter

from dependencies.intake import AppSettings, FavoriteStore, Registry
from schemas.api import ApiResponse
from schemas.intake import ListingOptions
from schemas.listings import (
    BODY_TYPES,
    FUEL_TYPES,
    MIN_MODEL_YEAR,
    TRANSMISSIONS,
    CarStatus,
    FavoriteResult,
    max_model_year,
)
from services.intake.operation import Failure


router = APIRouter(prefix="/listings", tags=["listings"])


@router.get("/options", response_model=ApiResponse[ListingOptions])
async def listing_options(settings: AppSettings) -> ApiResponse[ListingOptions]:
    """Choices and limits the listing form is rendered with."""
    return ApiResponse(
        success=True,
        data=ListingOptions(
            fuel_types=FUEL_TYPES,
            transmissions=TRANSMISSIONS,
            body_types=BODY_TYPES,
            statuses=[s.value for s in CarStatus],
            min_year=MIN_MODEL_YEAR,
            max_year=max_model_year(),
            description_min_length=settings.DESCRIPTION_MIN_LENGTH,
        ),
        message="Listing options",
    )


@router.post("/{listing_id}/favorite", response_model=ApiResponse[FavoriteResult])
async def toggle_favorite(
    listing_id: str, registry: Registry, store: FavoriteStore
) -> ApiResponse[FavoriteResult]:
    toggle = registry.favorite(listing_id, store)
    try:
        state = await toggle.toggle()
    finally:
        registry.release_favorite(listing_id)
    if isinstance(state, Failure):
        raise state.error
    return ApiResponse(success=True, data=state.value, message=state.value.message)

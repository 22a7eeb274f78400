from fastapi import APIRouter

from .health import router as health_router
from .intake import router as intake_router
from .listings import router as listings_router


api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(listings_router)
api_router.include_router(intake_router)

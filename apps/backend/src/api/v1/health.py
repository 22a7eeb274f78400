from fastapi import APIRouter

from dependencies.intake import AppSettings, Registry
from schemas.api import ApiResponse


router = APIRouter()


@router.get("/health", response_model=ApiResponse[dict[str, str]])
def health_check(settings: AppSettings, registry: Registry) -> ApiResponse[dict[str, str]]:
    """Health check endpoint for monitoring and load balancer health checks."""
    return ApiResponse(
        success=True,
        data={
            "status": "healthy",
            "message": f"{settings.APP_NAME} API is running",
            "open_drafts": str(len(registry)),
        },
        message="Health check successful",
    )

"""AI model factory for the multimodal extraction model.

Supports Gemini (default) and Azure OpenAI, selected by `LLM_PROVIDER`.

Usage:
    from services.ai.model_factory import get_multimodal_model

    model = get_multimodal_model()  # Returns pydantic-ai Model
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic_ai.models import Model
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIModel
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider

from core.config import get_settings


if TYPE_CHECKING:
    from httpx import AsyncClient

logger = logging.getLogger(__name__)


def _normalize_azure_endpoint(endpoint: str) -> str:
    """Strip trailing slashes; Azure treats `//openai/...` as a different path."""
    return endpoint.rstrip("/")


def _azure_configured() -> bool:
    settings = get_settings()
    if settings.LLM_PROVIDER != "azure_openai":
        return False
    if (
        not settings.AZURE_OPENAI_ENDPOINT
        or not settings.AZURE_OPENAI_API_KEY
        or not settings.AZURE_OPENAI_API_VERSION
    ):
        logger.warning(
            "LLM_PROVIDER=azure_openai but credentials missing, falling back to Gemini"
        )
        return False
    return True


def _create_azure_model(
    model_name: str,
    http_client: AsyncClient | None = None,
) -> Model:
    settings = get_settings()

    from openai import AsyncAzureOpenAI

    azure_client = AsyncAzureOpenAI(
        azure_endpoint=_normalize_azure_endpoint(settings.AZURE_OPENAI_ENDPOINT or ""),
        api_key=settings.AZURE_OPENAI_API_KEY,
        api_version=settings.AZURE_OPENAI_API_VERSION,
        http_client=http_client,
    )
    return OpenAIModel(model_name, provider=OpenAIProvider(openai_client=azure_client))


def _create_gemini_model(
    model_name: str,
    http_client: AsyncClient | None = None,
) -> Model:
    settings = get_settings()
    if not settings.GEMINI_API_KEY:
        logger.warning("Gemini API key not configured")
    provider = GoogleProvider(api_key=settings.GEMINI_API_KEY, http_client=http_client)
    return GoogleModel(model_name, provider=provider)


def get_multimodal_model(http_client: AsyncClient | None = None) -> Model:
    """Model used for image-to-listing extraction."""
    settings = get_settings()
    if _azure_configured():
        logger.info(f"Using Azure OpenAI multimodal model: {settings.MULTIMODAL_MODEL}")
        return _create_azure_model(settings.MULTIMODAL_MODEL, http_client)

    logger.info(f"Using Gemini multimodal model: {settings.MULTIMODAL_MODEL}")
    return _create_gemini_model(settings.MULTIMODAL_MODEL, http_client)

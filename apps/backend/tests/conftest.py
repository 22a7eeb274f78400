"""Shared test fixtures for pytest.

ENVIRONMENT is pinned to "test" before anything imports settings so no
`.env` file is read and the app starts without model credentials.
"""

import asyncio
import io
import os
from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from PIL import Image


os.environ["ENVIRONMENT"] = "test"

from core.config import Settings, get_settings
from dependencies.intake import (
    get_extraction_agent,
    get_favorite_store,
    get_listing_store,
    get_registry,
)
from main import app
from schemas.listings import ExtractionNotFound, ExtractionResult
from services.images.codec import ImageCodec
from services.intake.exceptions import DecodeError
from services.intake.models import UploadedImage


def create_test_image(
    width: int = 64, height: int = 48, format: str = "JPEG", color: str = "white"
) -> bytes:
    """Create a test image in memory."""
    img = Image.new("RGB", (width, height), color=color)
    output = io.BytesIO()
    img.save(output, format=format)
    return output.getvalue()


def make_upload(
    filename: str = "car.jpg",
    content_type: str = "image/jpeg",
    data: bytes | None = None,
    declared_size: int | None = None,
) -> UploadedImage:
    return UploadedImage(
        filename=filename,
        content_type=content_type,
        data=create_test_image() if data is None else data,
        declared_size=declared_size,
    )


def honda_city(**overrides) -> ExtractionResult:
    values = {
        "make": "Honda",
        "model": "City",
        "year": 2020,
        "color": "White",
        "body_type": "Sedan",
        "fuel_type": "Petrol",
        "transmission": "Automatic",
        "price": 950000,
        "mileage": 30000,
        "description": "Well maintained single owner sedan with full service history.",
        "confidence": 0.92,
    }
    values.update(overrides)
    return ExtractionResult(**values)


class FakeAgent:
    """Extraction collaborator returning a canned result and recording calls."""

    def __init__(
        self,
        result: ExtractionResult | ExtractionNotFound | None = None,
        error: Exception | None = None,
    ) -> None:
        self.result = result if result is not None else honda_city()
        self.error = error
        self.calls: list[tuple[bytes, str]] = []
        self.release: asyncio.Event | None = None

    async def run_image_extraction_agent(
        self, image_bytes: bytes, media_type: str = "image/jpeg"
    ) -> ExtractionResult | ExtractionNotFound:
        self.calls.append((image_bytes, media_type))
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.result


class GatedCodec(ImageCodec):
    """Codec whose encodes finish only when the test releases them.

    Each file gets its own gate keyed by filename; files whose name is in
    `failing` raise DecodeError once released.
    """

    def __init__(self, failing: set[str] | None = None) -> None:
        super().__init__()
        self.gates: dict[str, asyncio.Event] = {}
        self.started: dict[str, asyncio.Event] = {}
        self.failing = failing or set()

    def gate(self, filename: str) -> asyncio.Event:
        return self.gates.setdefault(filename, asyncio.Event())

    def has_started(self, filename: str) -> asyncio.Event:
        return self.started.setdefault(filename, asyncio.Event())

    async def encode(self, file: UploadedImage) -> str:
        self.has_started(file.filename).set()
        await self.gate(file.filename).wait()
        if file.filename in self.failing:
            raise DecodeError(f"{file.filename} is not a readable image")
        return f"data:image/jpeg;base64,{file.filename}"


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def fake_agent() -> FakeAgent:
    return FakeAgent()


@pytest.fixture
def client(fake_agent: FakeAgent) -> Generator[TestClient, None, None]:
    """Test client with a fake extraction agent and fresh in-memory state."""
    for dependency in (get_registry, get_listing_store, get_favorite_store):
        dependency.cache_clear()
    app.dependency_overrides[get_extraction_agent] = lambda: fake_agent
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.pop(get_extraction_agent, None)


@pytest_asyncio.fixture
async def async_client(fake_agent: FakeAgent) -> AsyncGenerator[AsyncClient, None]:
    for dependency in (get_registry, get_listing_store, get_favorite_store):
        dependency.cache_clear()
    app.dependency_overrides[get_extraction_agent] = lambda: fake_agent
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.pop(get_extraction_agent, None)

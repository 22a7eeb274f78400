"""AI agent for reading vehicle details from a single listing photo."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic_ai import Agent
from pydantic_ai.messages import BinaryContent

from schemas.listings import (
    BODY_TYPES,
    FUEL_TYPES,
    TRANSMISSIONS,
    ExtractionNotFound,
    ExtractionResult,
)


logger = logging.getLogger(__name__)


VEHICLE_EXTRACTION_PROMPT = f"""
You are an automotive expert helping a dealership list cars for sale.
Analyze the car in the provided photo and extract:
1. make (manufacturer)
2. model
3. year (approximate model year, integer)
4. color
5. body_type: one of {", ".join(BODY_TYPES)}
6. fuel_type: best guess, one of {", ".join(FUEL_TYPES)}
7. transmission: best guess, one of {", ".join(TRANSMISSIONS)}
8. price: estimated market price as a plain number, no currency symbols
9. mileage: estimated mileage as a plain integer
10. description: 2-3 sentences suitable for a listing

Return confidence (0.0-1.0) reflecting how sure you are of the make, model
and year. If the photo does not show a car you can identify, return the
not-found output with a short reason instead of guessing.
"""

IMAGE_USER_PROMPT = "Extract the vehicle details from this photo."


class ExtractionAgentProtocol(Protocol):
    """Extraction collaborator: one image in, structured attributes out."""

    async def run_image_extraction_agent(
        self, image_bytes: bytes, media_type: str = "image/jpeg"
    ) -> ExtractionResult | ExtractionNotFound:
        ...


def create_vehicle_agent(model: Any | None = None) -> Agent:
    """Create a pydantic-ai agent for vehicle extraction.

    Both the normal result and the explicit not-found model are registered
    as output types so the model can decline instead of inventing details.
    """
    if model is None:
        from services.ai.model_factory import get_multimodal_model

        model = get_multimodal_model()
    return Agent(
        model,
        system_prompt=VEHICLE_EXTRACTION_PROMPT,
        output_type=[ExtractionResult, ExtractionNotFound],
    )


class VehicleAgentAdapter:
    """Wraps a lazily created pydantic-ai agent behind the protocol."""

    def __init__(self, agent: Any | None = None) -> None:
        # Lazy init avoids requiring model credentials at import time.
        self._agent = agent

    async def run_image_extraction_agent(
        self, image_bytes: bytes, media_type: str = "image/jpeg"
    ) -> ExtractionResult | ExtractionNotFound:
        if self._agent is None:
            self._agent = create_vehicle_agent()
        messages: list[str | BinaryContent] = [
            IMAGE_USER_PROMPT,
            BinaryContent(data=image_bytes, media_type=media_type),
        ]
        result: Any = await self._agent.run(messages)
        # pydantic-ai returns object with .output or .data; normalize
        output = getattr(result, "output", None) or getattr(result, "data", None)
        logger.debug("Vehicle agent returned %s", type(output).__name__)
        return output

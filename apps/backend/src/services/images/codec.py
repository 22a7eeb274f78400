"""Asynchronous image codec: one file in, one transportable payload out."""

from __future__ import annotations

import asyncio
import base64
import io
import logging

from PIL import Image

from services.images.normalize import (
    FORMAT_MIME_TYPES,
    JPEG_QUALITY,
    MAX_IMAGE_DIMENSION,
    normalize_image,
    resolve_media_type,
)
from services.intake.exceptions import DecodeError
from services.intake.models import UploadedImage


logger = logging.getLogger(__name__)


def to_data_uri(data: bytes, media_type: str) -> str:
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{media_type};base64,{payload}"


def _verify_image(data: bytes) -> str:
    """Check that Pillow can identify the bytes and return the format name."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
            return (image.format or "").upper()
    except Exception as exc:
        raise DecodeError(f"File is not a readable image: {exc}") from exc


class ImageCodec:
    """Turns an uploaded file into a data URI without blocking the event loop.

    The codec never touches batches or drafts; callers decide what to do
    with the encoded payload.
    """

    def __init__(
        self,
        max_dimension: int = MAX_IMAGE_DIMENSION,
        jpeg_quality: int = JPEG_QUALITY,
    ) -> None:
        self.max_dimension = max_dimension
        self.jpeg_quality = jpeg_quality

    async def encode(self, file: UploadedImage) -> str:
        """Encode the original bytes of `file` as a data URI.

        The media type in the URI is the one Pillow detects in the bytes, not
        the one the client declared.

        Raises:
            DecodeError: if the bytes are not readable image data.
        """
        if not file.data:
            raise DecodeError(f"{file.filename or 'File'} is empty")
        image_format = await asyncio.to_thread(_verify_image, file.data)
        media_type = FORMAT_MIME_TYPES.get(image_format)
        if media_type is None:
            raise DecodeError(
                f"{file.filename} contains {image_format or 'unknown'} data; "
                "only JPG, PNG and WEBP images are allowed"
            )
        declared = resolve_media_type(file.content_type, file.filename)
        if declared != media_type:
            logger.debug(
                "%s declared as %s but contains %s", file.filename, declared, media_type
            )
        data_uri = to_data_uri(file.data, media_type)
        logger.debug(
            "Encoded %s: %d bytes -> %d chars", file.filename, file.size, len(data_uri)
        )
        return data_uri

    async def encode_for_model(self, file: UploadedImage) -> bytes:
        """Return the normalized JPEG payload sent to the extraction model."""
        if not file.data:
            raise DecodeError(f"{file.filename or 'File'} is empty")
        return await asyncio.to_thread(
            normalize_image, file.data, self.max_dimension, self.jpeg_quality
        )

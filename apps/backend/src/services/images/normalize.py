"""Image admission and normalization utilities for listing photo uploads.

Admission runs synchronously on the declared size and media type of each
file, before any decoding happens. Normalization prepares a single photo for
the multimodal extraction model: it handles EXIF orientation, color space
conversion, downscaling and JPEG re-encoding.
"""

import io
import logging
from pathlib import PurePath

from PIL import Image, ImageOps
from PIL.Image import Image as PILImage

from services.intake.exceptions import DecodeError, ImageFormatError, ImageSizeLimitError
from services.intake.models import UploadedImage


logger = logging.getLogger(__name__)

# Configuration constants
MAX_IMAGE_DIMENSION = 2048  # Maximum width or height in pixels
JPEG_QUALITY = 85  # JPEG re-encoding quality (0-100)
PER_FILE_SIZE_LIMIT = 5 * 1024 * 1024  # 5 MiB per file

# Allowed MIME types and the extensions a generic upload may fall back to
ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
GENERIC_MIME_TYPES = {"", "application/octet-stream"}

_EXTENSION_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}

# Pillow format names of the accepted image types
FORMAT_MIME_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}


def resolve_media_type(content_type: str | None, filename: str = "") -> str:
    """Return the effective media type of an upload.

    The declared media type wins. Browsers send an empty or generic type for
    some files, in which case the filename extension decides.
    """
    declared = (content_type or "").split(";")[0].strip().lower()
    if declared not in GENERIC_MIME_TYPES:
        return declared
    suffix = PurePath(filename).suffix.lower()
    return _EXTENSION_MIME_TYPES.get(suffix, declared)


def validate_content_type(content_type: str | None, filename: str = "") -> str:
    """Validate that the content type is an allowed image format.

    Args:
        content_type: The declared MIME type of the uploaded file
        filename: Original filename, used when the declared type is generic

    Returns:
        The effective media type

    Raises:
        ImageFormatError: If content type is not allowed
    """
    media_type = resolve_media_type(content_type, filename)
    if media_type not in ALLOWED_MIME_TYPES:
        raise ImageFormatError(
            f"Unsupported image type: {media_type or 'unknown'}. "
            "Only JPG, PNG and WEBP images are allowed."
        )
    return media_type


def validate_file_size(size: int, per_file_limit: int = PER_FILE_SIZE_LIMIT) -> None:
    """Validate that a file size is within the per-file limit.

    Raises:
        ImageSizeLimitError: If file size exceeds the limit
    """
    if size > per_file_limit:
        limit_mib = per_file_limit / (1024 * 1024)
        raise ImageSizeLimitError(
            f"File size {size} bytes exceeds the {limit_mib:g}MB limit"
        )


def admit(file: UploadedImage, per_file_limit: int = PER_FILE_SIZE_LIMIT) -> str:
    """Apply the admission rules to one file and return its media type."""
    validate_file_size(file.size, per_file_limit)
    return validate_content_type(file.content_type, file.filename)


def normalize_image(
    image_bytes: bytes,
    max_dimension: int = MAX_IMAGE_DIMENSION,
    jpeg_quality: int = JPEG_QUALITY,
) -> bytes:
    """Normalize an image for AI processing.

    Performs the following operations:
    1. Opens the image and applies EXIF orientation
    2. Converts to RGB color space
    3. Downscales to max dimension preserving aspect ratio
    4. Re-encodes to JPEG format

    Raises:
        DecodeError: If image cannot be processed
    """
    try:
        image: PILImage = Image.open(io.BytesIO(image_bytes))
        image = ImageOps.exif_transpose(image)

        if image.mode != "RGB":
            # Transparent areas become white
            if image.mode == "P":
                image = image.convert("RGBA")
            if image.mode in ("RGBA", "LA"):
                background = Image.new("RGB", image.size, (255, 255, 255))
                background.paste(image, mask=image.split()[-1])
                image = background
            else:
                image = image.convert("RGB")

        width, height = image.size
        if width > max_dimension or height > max_dimension:
            if width > height:
                new_width = max_dimension
                new_height = int(height * (max_dimension / width))
            else:
                new_height = max_dimension
                new_width = int(width * (max_dimension / height))

            image = image.resize((new_width, new_height), Image.Resampling.LANCZOS)
            logger.debug(
                "Downscaled image from %dx%d to %dx%d",
                width,
                height,
                new_width,
                new_height,
            )

        output = io.BytesIO()
        image.save(output, format="JPEG", quality=jpeg_quality, optimize=True)
        normalized_bytes = output.getvalue()

        logger.debug(
            "Normalized image: original=%d bytes, normalized=%d bytes",
            len(image_bytes),
            len(normalized_bytes),
        )
        return normalized_bytes

    except Exception as e:
        logger.warning("Failed to normalize image: %s", e)
        raise DecodeError(f"Failed to process image: {e}") from e

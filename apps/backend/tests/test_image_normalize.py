"""Tests for image admission and normalization utilities."""

import io

import pytest
from PIL import Image

from conftest import make_upload
from services.images.normalize import (
    admit,
    normalize_image,
    resolve_media_type,
    validate_content_type,
    validate_file_size,
)
from services.intake.exceptions import DecodeError, ImageFormatError, ImageSizeLimitError


def create_test_image(
    width: int = 800, height: int = 600, mode: str = "RGB", format: str = "JPEG"
) -> bytes:
    """Create a test image in memory."""
    img = Image.new(mode, (width, height), color="white")
    output = io.BytesIO()
    img.save(output, format=format)
    return output.getvalue()


@pytest.mark.parametrize(
    "content_type", ["image/jpeg", "image/jpg", "image/png", "image/webp"]
)
def test_validate_content_type_allowed(content_type):
    assert validate_content_type(content_type, "photo") == content_type


def test_validate_content_type_invalid():
    """Test rejection of invalid content types."""
    with pytest.raises(ImageFormatError, match="Unsupported image type"):
        validate_content_type("image/gif", "anim.gif")

    with pytest.raises(ImageFormatError, match="Unsupported image type"):
        validate_content_type("application/pdf", "brochure.pdf")


def test_generic_content_type_falls_back_to_extension():
    assert resolve_media_type("application/octet-stream", "IMG_001.JPG") == "image/jpeg"
    assert resolve_media_type("", "side.webp") == "image/webp"
    assert validate_content_type(None, "rear.png") == "image/png"


def test_generic_content_type_with_unknown_extension_rejected():
    with pytest.raises(ImageFormatError):
        validate_content_type("application/octet-stream", "notes.txt")


def test_declared_type_wins_over_extension():
    with pytest.raises(ImageFormatError):
        validate_content_type("image/gif", "looks-like.jpg")


def test_validate_file_size_ok():
    validate_file_size(1024 * 1024)


def test_validate_file_size_at_limit_ok():
    validate_file_size(5 * 1024 * 1024)


def test_validate_file_size_exceeds():
    with pytest.raises(ImageSizeLimitError, match="exceeds the 5MB limit"):
        validate_file_size(5 * 1024 * 1024 + 1)


def test_admit_checks_size_before_type():
    upload = make_upload(
        filename="huge.gif", content_type="image/gif", declared_size=6 * 1024 * 1024
    )
    with pytest.raises(ImageSizeLimitError) as exc_info:
        admit(upload)
    assert exc_info.value.error_code == "file_too_large"


def test_admit_returns_media_type():
    assert admit(make_upload(filename="front.jpeg", content_type="")) == "image/jpeg"


def test_normalize_image_jpeg():
    """Test normalization of a JPEG image."""
    original = create_test_image(800, 600, format="JPEG")
    normalized = normalize_image(original)

    img = Image.open(io.BytesIO(normalized))
    assert img.format == "JPEG"
    assert img.mode == "RGB"
    assert img.size == (800, 600)


def test_normalize_image_png_with_alpha():
    original = create_test_image(400, 300, mode="RGBA", format="PNG")
    normalized = normalize_image(original)

    img = Image.open(io.BytesIO(normalized))
    assert img.format == "JPEG"
    assert img.mode == "RGB"


def test_normalize_image_downscale_landscape():
    original = create_test_image(4000, 3000)
    normalized = normalize_image(original, max_dimension=2048)

    img = Image.open(io.BytesIO(normalized))
    assert img.size == (2048, 1536)


def test_normalize_image_downscale_portrait():
    original = create_test_image(3000, 4000)
    normalized = normalize_image(original, max_dimension=1000)

    img = Image.open(io.BytesIO(normalized))
    assert img.size == (750, 1000)


def test_normalize_image_invalid_data():
    with pytest.raises(DecodeError, match="Failed to process image"):
        normalize_image(b"not an image")

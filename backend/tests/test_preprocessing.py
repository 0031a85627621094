"""Tests for image validation and quality assessment."""

import pytest
from PIL import Image
import io

from listing_service.models.listing import ImageQuality
from listing_service.services.preprocessing import ImagePreprocessor, convert_to_jpeg
from listing_service.config import get_settings


@pytest.fixture
def preprocessor():
    """Create preprocessor instance."""
    return ImagePreprocessor()


def encode(img, fmt="PNG"):
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def sample_image_bytes():
    """Create a simple test image."""
    # Create a 200x100 white image with a black rectangle
    img = Image.new("RGB", (200, 100), color="white")
    pixels = img.load()
    for i in range(50, 150):
        for j in range(30, 70):
            pixels[i, j] = (0, 0, 0)
    return encode(img)


@pytest.fixture
def checkerboard_bytes():
    """Sharp, high-contrast pattern."""
    img = Image.new("RGB", (200, 200), color="white")
    pixels = img.load()
    for i in range(200):
        for j in range(200):
            if (i + j) % 2:
                pixels[i, j] = (0, 0, 0)
    return encode(img)


@pytest.fixture
def blank_image_bytes():
    return encode(Image.new("RGB", (200, 200), color=(128, 128, 128)))


class TestImageValidation:
    """Test upload validation."""

    def test_validate_valid_image(self, preprocessor, sample_image_bytes):
        """Test validation passes for valid image."""
        is_valid, error = preprocessor.validate_image(sample_image_bytes, "test.png")
        assert is_valid is True
        assert error == ""

    def test_validate_invalid_extension(self, preprocessor, sample_image_bytes):
        """Test validation fails for invalid extension."""
        is_valid, error = preprocessor.validate_image(sample_image_bytes, "test.gif")
        assert is_valid is False
        assert "Allowed formats" in error

    def test_validate_missing_extension(self, preprocessor, sample_image_bytes):
        is_valid, _ = preprocessor.validate_image(sample_image_bytes, "upload")
        assert is_valid is False

    def test_validate_image_too_small(self, preprocessor):
        """Test validation fails for too small image."""
        data = encode(Image.new("RGB", (50, 50), color="white"))

        is_valid, error = preprocessor.validate_image(data, "small.png")
        assert is_valid is False
        assert "too small" in error.lower()

    def test_invalid_image_data(self, preprocessor):
        """Test handling of invalid image data."""
        is_valid, error = preprocessor.validate_image(b"not an image", "test.png")
        assert is_valid is False
        assert "Unable to read" in error

    def test_empty_image_data(self, preprocessor):
        is_valid, _ = preprocessor.validate_image(b"", "test.png")
        assert is_valid is False

    def test_get_image_info(self, preprocessor, sample_image_bytes):
        """Test image info extraction."""
        info = preprocessor.get_image_info(sample_image_bytes)

        assert info["format"] == "PNG"
        assert info["width"] == 200
        assert info["height"] == 100
        assert info["size_bytes"] > 0


class TestQualityAssessment:
    """Test blur/contrast grading."""

    def test_sharp_image_is_high(self, preprocessor, checkerboard_bytes):
        result = preprocessor.assess_quality(checkerboard_bytes)

        assert result.image_quality == ImageQuality.HIGH
        assert not result.is_blurry
        assert not result.is_low_contrast
        assert result.recommendation is None

    def test_flat_image_is_low(self, preprocessor, blank_image_bytes):
        result = preprocessor.assess_quality(blank_image_bytes)

        assert result.image_quality == ImageQuality.LOW
        assert result.is_blurry
        assert result.is_low_contrast
        assert "blurry" in result.recommendation
        assert result.blur_score < get_settings().blur_threshold


class TestJpegConversion:
    """Test JPEG normalization for inline upload."""

    def test_png_converted(self, sample_image_bytes):
        data, meta = convert_to_jpeg(sample_image_bytes)

        assert data[:2] == b"\xff\xd8"
        assert meta["original_format"] == "PNG"
        assert meta["resized"] is False

    def test_large_image_resized(self):
        data, meta = convert_to_jpeg(encode(Image.new("RGBA", (3200, 1000), color=(255, 0, 0, 128))))

        assert meta["resized"] is True
        assert max(meta["converted_dimensions"]) == 1600
        assert Image.open(io.BytesIO(data)).mode == "RGB"

    def test_output_limit_enforced(self, checkerboard_bytes):
        with pytest.raises(ValueError, match="too large"):
            convert_to_jpeg(checkerboard_bytes, max_output_mb=0.0001)

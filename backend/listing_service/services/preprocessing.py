"""Image validation and quality assessment for uploaded listing photos.

- Upload validation (extension, size, readability, minimum dimensions)
- JPEG normalization so images can be sent inline as data URLs
- Blur / contrast assessment mapped to a coarse ImageQuality
"""

import cv2
import numpy as np
from PIL import Image
import io
from typing import Tuple, Optional
from dataclasses import dataclass
import logging

from ..config import get_settings
from ..models.listing import ImageQuality

logger = logging.getLogger(__name__)


def convert_to_jpeg(
    image_bytes: bytes,
    max_dim: int = 1600,
    jpeg_quality: int = 85,
    max_output_mb: float = 4.0
) -> Tuple[bytes, dict]:
    """
    Convert any readable image to a compact JPEG.

    Vision and model APIs take inline images as base64; large PNG/WEBP
    photos are resized and re-encoded first.

    Args:
        image_bytes: Raw uploaded image bytes (any supported format)
        max_dim: Maximum dimension (width or height)
        jpeg_quality: Starting JPEG quality
        max_output_mb: Maximum output size in MB

    Returns:
        Tuple of (converted_bytes, metadata_dict)

    Raises:
        ValueError: If the converted image still exceeds max_output_mb
    """
    img = Image.open(io.BytesIO(image_bytes))
    original_format = img.format or "UNKNOWN"
    original_size = len(image_bytes)

    # Convert to RGB (handles RGBA PNGs, palette images, etc.)
    if img.mode != "RGB":
        img = img.convert("RGB")

    w, h = img.size
    scale = min(1.0, max_dim / max(w, h))
    resized = False
    if scale < 1.0:
        new_w, new_h = int(w * scale), int(h * scale)
        img = img.resize((new_w, new_h), Image.LANCZOS)
        resized = True
        logger.debug(f"Resized image from {w}x{h} to {new_w}x{new_h}")

    converted_bytes = b""
    for q in (jpeg_quality, 75, 65, 55):
        out = io.BytesIO()
        img.save(out, format="JPEG", quality=q, optimize=True)
        converted_bytes = out.getvalue()
        jpeg_quality = q
        if len(converted_bytes) / (1024 * 1024) <= max_output_mb:
            break
    else:
        raise ValueError(
            f"Image too large after conversion: {len(converted_bytes) / (1024 * 1024):.1f}MB "
            f"(max {max_output_mb}MB)."
        )

    metadata = {
        "original_format": original_format,
        "original_size_bytes": original_size,
        "converted_size_bytes": len(converted_bytes),
        "converted_dimensions": img.size,
        "resized": resized,
        "jpeg_quality": jpeg_quality,
    }
    logger.info(
        f"Image converted: {original_format} ({original_size/1024:.0f}KB) → "
        f"JPEG ({len(converted_bytes)/1024:.0f}KB)"
    )
    return converted_bytes, metadata


@dataclass
class QualityAssessment:
    """Image quality assessment results."""
    blur_score: float  # Laplacian variance - higher = sharper
    contrast_score: float  # Std deviation - higher = more contrast
    is_blurry: bool
    is_low_contrast: bool
    image_quality: ImageQuality
    recommendation: Optional[str] = None


class ImagePreprocessor:
    """Validates uploads and grades photo quality."""

    def __init__(self):
        self.settings = get_settings()

    def assess_quality(self, image_bytes: bytes) -> QualityAssessment:
        """Assess blur and contrast of an encoded image."""
        return self._assess_quality(self._load_image(image_bytes))

    def _assess_quality(self, image: np.ndarray) -> QualityAssessment:
        if len(image.shape) == 3:
            gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        else:
            gray = image

        # Blur detection using Laplacian variance
        blur_score = float(cv2.Laplacian(gray, cv2.CV_64F).var())

        # Contrast detection using standard deviation
        contrast_score = float(gray.std())

        is_blurry = blur_score < self.settings.blur_threshold
        is_low_contrast = contrast_score < self.settings.contrast_threshold

        if is_blurry or is_low_contrast:
            quality = ImageQuality.LOW
        elif (
            blur_score >= self.settings.sharp_threshold
            and contrast_score >= self.settings.high_contrast_threshold
        ):
            quality = ImageQuality.HIGH
        else:
            quality = ImageQuality.MEDIUM

        recommendation = None
        if is_blurry and is_low_contrast:
            recommendation = "Photo is blurry and has low contrast. Retake with better focus and lighting."
        elif is_blurry:
            recommendation = "Photo appears blurry. Hold the camera steady and focus on the tag."
        elif is_low_contrast:
            recommendation = "Photo has low contrast. Use brighter, even lighting on the label."

        logger.debug(f"Quality: blur={blur_score:.1f}, contrast={contrast_score:.1f} -> {quality.value}")
        return QualityAssessment(
            blur_score=blur_score,
            contrast_score=contrast_score,
            is_blurry=is_blurry,
            is_low_contrast=is_low_contrast,
            image_quality=quality,
            recommendation=recommendation,
        )

    def _load_image(self, image_bytes: bytes) -> np.ndarray:
        """Load image from bytes."""
        # Use PIL to handle various formats, then convert to OpenCV
        pil_image = Image.open(io.BytesIO(image_bytes))

        if pil_image.mode != "RGB":
            pil_image = pil_image.convert("RGB")

        # Convert to numpy array (BGR for OpenCV)
        image = np.array(pil_image)
        image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)

        return image

    def get_image_info(self, image_bytes: bytes) -> dict:
        """Get basic image information."""
        pil_image = Image.open(io.BytesIO(image_bytes))
        return {
            "format": pil_image.format,
            "mode": pil_image.mode,
            "width": pil_image.width,
            "height": pil_image.height,
            "size_bytes": len(image_bytes),
            "size_mb": len(image_bytes) / (1024 * 1024)
        }

    def validate_image(self, image_bytes: bytes, filename: str) -> Tuple[bool, str]:
        """
        Validate an uploaded image.

        Returns:
            Tuple of (is_valid, error_message)
        """
        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if ext not in self.settings.allowed_extensions:
            allowed = ", ".join(sorted(self.settings.allowed_extensions)).upper()
            return False, f"Invalid file type. Allowed formats: {allowed}"

        size_mb = len(image_bytes) / (1024 * 1024)
        if size_mb > self.settings.max_upload_size_mb:
            return False, f"Image exceeds {self.settings.max_upload_size_mb}MB upload limit. Please resize or compress."

        min_dim = self.settings.min_image_dimension
        try:
            info = self.get_image_info(image_bytes)
        except Exception as e:
            return False, f"Unable to read image: {str(e)}"
        if info["width"] < min_dim or info["height"] < min_dim:
            return False, f"Image too small. Minimum dimensions: {min_dim}x{min_dim} pixels."

        return True, ""

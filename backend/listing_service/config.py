"""Application configuration."""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

from .models.listing import TITLE_MAX_LENGTH


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Listing Extraction API"
    debug: bool = False

    # CORS - Allow all origins for prototype (restrict in production)
    cors_origins: list[str] = ["*"]

    # Upload limits
    max_upload_size_mb: int = 15
    min_image_dimension: int = 100
    allowed_extensions: set = {"png", "jpg", "jpeg", "webp"}

    # Image quality thresholds (Laplacian variance / grayscale std)
    blur_threshold: float = 50.0  # Below this = blurry
    contrast_threshold: float = 20.0  # Below this = low contrast
    sharp_threshold: float = 300.0  # At or above this = sharp enough for fine print
    high_contrast_threshold: float = 45.0

    # Generative model (OpenAI chat completions)
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 60.0
    openai_max_retries: int = 3  # Retries on 429/503
    openai_max_backoff_seconds: float = 60.0
    max_prompt_images: int = 3  # More images risk a function timeout
    max_output_tokens: int = 2500

    # Vision / OCR (Google Vision REST)
    google_vision_api_key: str | None = None
    vision_base_url: str = "https://vision.googleapis.com/v1"
    vision_timeout_seconds: float = 30.0
    vision_max_images: int = 3

    # Scoring
    brand_min_score: float = 2.0  # Accumulated weighted score needed to accept a brand
    fallback_confidence: float = 0.3
    title_max_length: int = 80

    # Batch processing
    max_batch_size: int = 25

    @field_validator("title_max_length")
    @classmethod
    def _clamp_title_length(cls, value: int) -> int:
        # Titles longer than the record allows would fail validation
        return max(3, min(value, TITLE_MAX_LENGTH))

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

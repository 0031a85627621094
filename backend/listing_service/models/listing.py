"""Canonical listing record produced by the extraction pipeline."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


TITLE_MAX_LENGTH = 80


class Condition(str, Enum):
    """Item condition (closed set)."""
    NEW = "new"
    LIKE_NEW = "like_new"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ImageQuality(str, Enum):
    """Coarse image quality used to tune the prompt."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Category(str, Enum):
    """Marketplace category (closed set)."""
    CLOTHING = "clothing"
    SHOES = "shoes"
    ACCESSORIES = "accessories"
    ELECTRONICS = "electronics"
    HOME_GARDEN = "home_garden"
    TOYS_GAMES = "toys_games"
    SPORTS_OUTDOORS = "sports_outdoors"
    BOOKS_MEDIA = "books_media"
    JEWELRY = "jewelry"
    COLLECTIBLES = "collectibles"
    OTHER = "other"


class ListingRecord(BaseModel):
    """A complete, well-formed listing."""
    title: str = Field(..., min_length=3, max_length=TITLE_MAX_LENGTH)
    item_type: str = Field(..., min_length=2)
    condition: Condition
    category: Category

    brand: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    pattern: Optional[str] = None
    gender: Optional[str] = None
    fit: Optional[str] = None
    closure: Optional[str] = None

    # Top garments only
    sleeve_length: Optional[str] = None
    neckline: Optional[str] = None

    # Bottom garments only
    waist: Optional[str] = None
    inseam: Optional[str] = None
    rise: Optional[str] = None

    occasion: Optional[str] = None
    season: Optional[str] = None
    model_number: Optional[str] = None
    description: str = ""

    style_keywords: List[str] = Field(default_factory=list)
    key_features: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)

    item_specifics: Dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("item_specifics", "ebay_item_specifics"),
    )
    suggested_price: Optional[float] = Field(None, gt=0)
    confidence: float = Field(0.5, ge=0.0, le=1.0)
    evidence: Dict[str, str] = Field(default_factory=dict)

    class Config:
        extra = "ignore"
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "title": "Levi's 501 Jeans Men's 32x34 Blue Denim",
                "item_type": "501 Jeans",
                "condition": "good",
                "category": "clothing",
                "brand": "Levi's",
                "size": "32x34",
                "color": "Blue",
                "material": "Denim",
                "item_specifics": {"Brand": "Levi's", "Department": "Men", "Inseam": "34"},
                "confidence": 0.82,
            }
        }

    @field_validator("style_keywords", "key_features", "keywords", mode="before")
    @classmethod
    def _coerce_string_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("item_specifics", mode="before")
    @classmethod
    def _flatten_specifics(cls, value):
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        flat = {}
        for key, item in value.items():
            if item is None:
                continue
            if isinstance(item, (list, tuple)):
                item = ", ".join(str(v) for v in item if v is not None)
            elif not isinstance(item, str):
                item = str(item)
            if item.strip():
                flat[str(key)] = item.strip()
        return flat

    @field_validator("evidence", mode="before")
    @classmethod
    def _stringify_evidence(cls, value):
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items() if v is not None}
        return value


class AccuracyMetrics(BaseModel):
    """Per-field confidence for one enhanced listing."""
    brand_confidence: float = Field(0.0, ge=0.0, le=1.0)
    size_confidence: float = Field(0.0, ge=0.0, le=1.0)
    title_quality: float = Field(0.0, ge=0.0, le=1.0)
    ocr_confidence: float = Field(0.0, ge=0.0, le=1.0)
    overall: float = Field(0.0, ge=0.0, le=1.0)
    specifics_completeness: float = Field(0.0, ge=0.0, le=1.0)
    size_marketplace_compliant: bool = False
    processing_time_ms: int = 0

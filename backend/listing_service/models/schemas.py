"""Pydantic schemas for API requests and responses."""

from pydantic import AliasChoices, BaseModel, Field
from typing import Any, Dict, List, Optional

from .listing import AccuracyMetrics, Category, ImageQuality, ListingRecord


class LabelIn(BaseModel):
    """A vision label annotation."""
    description: str
    score: float = 0.0


class WebEntityIn(BaseModel):
    """A web-detection entity."""
    description: str
    score: float = 0.0


class ObjectIn(BaseModel):
    """A localized object annotation."""
    name: str
    score: float = 0.0


class VisionEvidenceIn(BaseModel):
    """OCR text plus vision annotations, camelCase or snake_case."""
    ocr_text: str = Field("", validation_alias=AliasChoices("ocr_text", "ocrText"))
    labels: List[LabelIn] = Field(default_factory=list)
    web_entities: List[WebEntityIn] = Field(
        default_factory=list, validation_alias=AliasChoices("web_entities", "webEntities")
    )
    objects: List[ObjectIn] = Field(
        default_factory=list, validation_alias=AliasChoices("objects", "localizedObjects")
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "ocrText": "LEVI'S\n501\nW32 L34\n100% COTTON",
                "labels": [{"description": "Jeans", "score": 0.97}, {"description": "Denim", "score": 0.93}],
                "webEntities": [{"description": "Levi Strauss & Co.", "score": 0.8}],
                "objects": [{"name": "Pants", "score": 0.88}],
            }
        }


class AnalyzeRequest(BaseModel):
    """Request for a full listing analysis."""
    image_urls: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("image_urls", "imageUrls")
    )
    evidence: Optional[VisionEvidenceIn] = None
    known_fields: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("known_fields", "knownFields")
    )
    image_quality: Optional[ImageQuality] = Field(
        None, validation_alias=AliasChoices("image_quality", "imageQuality")
    )
    ocr_confidence: Optional[float] = Field(
        None, ge=0.0, le=1.0, validation_alias=AliasChoices("ocr_confidence", "ocrConfidence")
    )

    class Config:
        populate_by_name = True


class CandidateOut(BaseModel):
    """One scored candidate."""
    attribute: str
    value: str
    score: float
    source: str
    matched: str = ""


class FusedAttributeOut(BaseModel):
    """The winning value for one attribute."""
    value: Optional[str] = None
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    evidence: Optional[str] = None
    score: float = 0.0


class CandidatesResponse(BaseModel):
    """Evidence scoring result, without a model call."""
    category: Category
    fused: Dict[str, FusedAttributeOut]
    candidates: List[CandidateOut]


class AnalyzeResponse(BaseModel):
    """Response for a listing analysis."""
    success: bool
    record: Optional[ListingRecord] = None
    accuracy_metrics: Optional[AccuracyMetrics] = Field(
        None,
        validation_alias=AliasChoices("accuracy_metrics", "accuracyMetrics"),
        serialization_alias="accuracyMetrics",
    )
    fused: Dict[str, FusedAttributeOut] = Field(default_factory=dict)
    stages: List[str] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)
    image_quality: Optional[ImageQuality] = None
    quality_recommendation: Optional[str] = None
    processing_time_ms: int = 0
    error: Optional[str] = None


class BatchRowResult(BaseModel):
    """Result for a single request in a batch."""
    index: int
    success: bool
    result: Optional[AnalyzeResponse] = None
    error: Optional[str] = None


class BatchAnalyzeResponse(BaseModel):
    """Response for batch analysis."""
    success: bool
    total: int
    processed: int
    repaired: int
    failed: int
    results: List[BatchRowResult]
    processing_time_ms: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "Invalid image format",
                "detail": "Allowed formats: JPEG, JPG, PNG, WEBP"
            }
        }


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    model_configured: bool
    vision_configured: bool

"""Pydantic models for listings and request/response schemas."""

from .listing import (
    AccuracyMetrics,
    Category,
    Condition,
    ImageQuality,
    ListingRecord,
    TITLE_MAX_LENGTH,
)
from .schemas import (
    LabelIn,
    WebEntityIn,
    ObjectIn,
    VisionEvidenceIn,
    AnalyzeRequest,
    CandidateOut,
    FusedAttributeOut,
    CandidatesResponse,
    AnalyzeResponse,
    BatchRowResult,
    BatchAnalyzeResponse,
    ErrorResponse,
    HealthResponse,
)

__all__ = [
    "AccuracyMetrics",
    "Category",
    "Condition",
    "ImageQuality",
    "ListingRecord",
    "TITLE_MAX_LENGTH",
    "LabelIn",
    "WebEntityIn",
    "ObjectIn",
    "VisionEvidenceIn",
    "AnalyzeRequest",
    "CandidateOut",
    "FusedAttributeOut",
    "CandidatesResponse",
    "AnalyzeResponse",
    "BatchRowResult",
    "BatchAnalyzeResponse",
    "ErrorResponse",
    "HealthResponse",
]

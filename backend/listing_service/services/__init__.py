"""Services for evidence scoring, prompting, validation, enhancement and transport."""

from .preprocessing import ImagePreprocessor, QualityAssessment, convert_to_jpeg
from .candidates import (
    AttributeName,
    Candidate,
    CandidateExtractor,
    EvidenceSource,
    LabelAnnotation,
    LocalizedObject,
    VisionEvidence,
    WebEntity,
)
from .fusion import EvidenceFusion, FusedAttribute
from .prompts import PromptPayload, PromptSynthesizer, quality_from_ocr_confidence
from .validation import ResponseValidator, ValidationOutcome
from .enhancement import ListingEnhancer, SizeMatch
from .llm import GenerativeModelClient, ModelRateLimitError, ModelServiceError
from .vision import ImageInput, VisionClient, VisionServiceError
from .pipeline import AnalysisRequest, BatchItem, ListingPipeline, PipelineResult, PipelineStage

__all__ = [
    "ImagePreprocessor",
    "QualityAssessment",
    "convert_to_jpeg",
    "AttributeName",
    "Candidate",
    "CandidateExtractor",
    "EvidenceSource",
    "LabelAnnotation",
    "LocalizedObject",
    "VisionEvidence",
    "WebEntity",
    "EvidenceFusion",
    "FusedAttribute",
    "PromptPayload",
    "PromptSynthesizer",
    "quality_from_ocr_confidence",
    "ResponseValidator",
    "ValidationOutcome",
    "ListingEnhancer",
    "SizeMatch",
    "GenerativeModelClient",
    "ModelRateLimitError",
    "ModelServiceError",
    "ImageInput",
    "VisionClient",
    "VisionServiceError",
    "AnalysisRequest",
    "BatchItem",
    "ListingPipeline",
    "PipelineResult",
    "PipelineStage",
]

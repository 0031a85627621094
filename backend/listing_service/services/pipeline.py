"""Request-scoped listing pipeline.

Received -> Parsing -> (Validated | Repaired) -> Enhanced -> Returned

Evidence is scored and fused, the model is prompted once, and its output is
validated (or repaired to a fallback) and enhanced. Only transport errors
from the vision or model clients escape.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models.listing import AccuracyMetrics, ImageQuality, ListingRecord
from .candidates import AttributeName, Candidate, CandidateExtractor, VisionEvidence
from .enhancement import ListingEnhancer
from .fusion import EvidenceFusion, FusedAttribute
from .llm import GenerativeModelClient, ModelServiceError
from .prompts import PromptSynthesizer, quality_from_ocr_confidence
from .validation import ResponseValidator
from .vision import ImageInput, VisionClient, VisionServiceError, DEFAULT_TEXT_CONFIDENCE

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    RECEIVED = "received"
    PARSING = "parsing"
    VALIDATED = "validated"
    REPAIRED = "repaired"
    ENHANCED = "enhanced"
    RETURNED = "returned"


@dataclass
class AnalysisRequest:
    """Inputs for one listing analysis."""
    images: List[ImageInput] = field(default_factory=list)
    evidence: Optional[VisionEvidence] = None
    known_fields: Dict[str, Any] = field(default_factory=dict)
    image_quality: Optional[ImageQuality] = None
    ocr_confidence: Optional[float] = None


@dataclass
class PipelineResult:
    """Final record plus everything that led to it."""
    record: ListingRecord
    metrics: AccuracyMetrics
    fused: Dict[AttributeName, FusedAttribute]
    candidates: List[Candidate]
    stages: List[PipelineStage]
    issues: List[str] = field(default_factory=list)
    raw_model_output: str = ""
    image_quality: ImageQuality = ImageQuality.MEDIUM
    ocr_confidence: float = 0.0

    @property
    def repaired(self) -> bool:
        return PipelineStage.REPAIRED in self.stages


@dataclass
class BatchItem:
    """Outcome of one request in a batch."""
    index: int
    result: Optional[PipelineResult] = None
    error: Optional[str] = None


class ListingPipeline:
    """Evidence scoring, prompting, validation and enhancement in one place."""

    def __init__(
        self,
        model_client: Optional[GenerativeModelClient] = None,
        vision_client: Optional[VisionClient] = None,
        extractor: Optional[CandidateExtractor] = None,
        fusion: Optional[EvidenceFusion] = None,
        synthesizer: Optional[PromptSynthesizer] = None,
        validator: Optional[ResponseValidator] = None,
        enhancer: Optional[ListingEnhancer] = None,
    ):
        self.model_client = model_client or GenerativeModelClient()
        self.vision_client = vision_client or VisionClient()
        self.extractor = extractor or CandidateExtractor()
        self.fusion = fusion or EvidenceFusion()
        self.synthesizer = synthesizer or PromptSynthesizer()
        self.validator = validator or ResponseValidator()
        self.enhancer = enhancer or ListingEnhancer(self.extractor)

    def score(self, evidence: VisionEvidence):
        """Extract and fuse candidates; no network calls."""
        candidates = self.extractor.extract(evidence)
        return candidates, self.fusion.fuse(candidates)

    async def analyze(self, request: AnalysisRequest) -> PipelineResult:
        """
        Run the full pipeline for one request.

        Raises:
            VisionServiceError: Every vision call failed and no evidence was supplied
            ModelServiceError: The model call failed
        """
        start = time.time()
        stages = [PipelineStage.RECEIVED]

        evidence = request.evidence or VisionEvidence()
        ocr_confidence = request.ocr_confidence
        if evidence.is_empty and request.images and self.vision_client.configured:
            evidence, vision_confidence = await self.vision_client.annotate(request.images)
            if ocr_confidence is None:
                ocr_confidence = vision_confidence
        if ocr_confidence is None:
            ocr_confidence = DEFAULT_TEXT_CONFIDENCE if evidence.ocr_text.strip() else 0.0

        image_quality = request.image_quality or quality_from_ocr_confidence(ocr_confidence)

        candidates, fused = self.score(evidence)
        present = {attr.value: fa.value for attr, fa in fused.items() if fa.is_present}
        logger.info(f"Fused attributes: {present or 'none above floor'}")

        payload = self.synthesizer.build(
            fused,
            known_fields=request.known_fields,
            image_quality=image_quality,
            ocr_confidence=ocr_confidence,
            ocr_text=evidence.ocr_text,
            images=[img.to_prompt_url() for img in request.images if img.url or img.content is not None],
        )
        raw = await self.model_client.complete(payload)

        result = self.process_model_output(
            raw,
            fused,
            candidates,
            ocr_text=evidence.ocr_text,
            ocr_confidence=ocr_confidence,
            stages=stages,
        )
        result.image_quality = image_quality
        result.metrics.processing_time_ms = int((time.time() - start) * 1000)
        logger.info(f"Pipeline finished in {result.metrics.processing_time_ms}ms: {[s.value for s in stages]}")
        return result

    def process_model_output(
        self,
        raw_text: str,
        fused: Dict[AttributeName, FusedAttribute],
        candidates: Optional[List[Candidate]] = None,
        ocr_text: str = "",
        ocr_confidence: float = 0.0,
        stages: Optional[List[PipelineStage]] = None,
    ) -> PipelineResult:
        """Validate (or repair) raw model text and enhance the record."""
        stages = stages if stages is not None else [PipelineStage.RECEIVED]
        stages.append(PipelineStage.PARSING)

        outcome = self.validator.validate(raw_text, fused)
        stages.append(PipelineStage.REPAIRED if outcome.repaired else PipelineStage.VALIDATED)

        cluster = fused.get(AttributeName.CATEGORY)
        record, metrics = self.enhancer.enhance(
            outcome.record,
            ocr_text=ocr_text,
            ocr_confidence=ocr_confidence,
            repaired=outcome.repaired,
            category_cluster=cluster.value if cluster else None,
        )
        stages.append(PipelineStage.ENHANCED)
        stages.append(PipelineStage.RETURNED)

        return PipelineResult(
            record=record,
            metrics=metrics,
            fused=fused,
            candidates=list(candidates or []),
            stages=stages,
            issues=outcome.issues,
            raw_model_output=raw_text or "",
            ocr_confidence=ocr_confidence,
        )

    async def analyze_batch(self, requests: List[AnalysisRequest]) -> List[BatchItem]:
        """
        Analyze requests one after another.

        A transport failure marks that item failed; the batch continues.
        """
        items = []
        for i, request in enumerate(requests):
            try:
                items.append(BatchItem(index=i, result=await self.analyze(request)))
            except (ModelServiceError, VisionServiceError) as e:
                logger.error(f"Batch item {i} failed: {e}")
                items.append(BatchItem(index=i, error=str(e)))
        failed = sum(1 for item in items if item.error)
        logger.info(f"Batch complete: {len(items) - failed} succeeded, {failed} failed")
        return items

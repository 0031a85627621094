"""API route definitions."""

import time
from fastapi import APIRouter, UploadFile, File, Form, HTTPException
from fastapi.responses import JSONResponse
from typing import Dict, List, Optional
import logging

from ..models import (
    AnalyzeRequest,
    AnalyzeResponse,
    BatchAnalyzeResponse,
    BatchRowResult,
    CandidateOut,
    CandidatesResponse,
    ErrorResponse,
    FusedAttributeOut,
    HealthResponse,
    ImageQuality,
    VisionEvidenceIn,
)
from ..services import (
    AnalysisRequest,
    AttributeName,
    FusedAttribute,
    ImageInput,
    ImagePreprocessor,
    LabelAnnotation,
    ListingPipeline,
    LocalizedObject,
    ModelRateLimitError,
    ModelServiceError,
    PipelineResult,
    VisionEvidence,
    VisionServiceError,
    WebEntity,
    convert_to_jpeg,
)
from ..config import get_settings
from .. import __version__

logger = logging.getLogger(__name__)
router = APIRouter()

# Initialize services
preprocessor = ImagePreprocessor()
pipeline = ListingPipeline()

_QUALITY_RANK = {ImageQuality.LOW: 0, ImageQuality.MEDIUM: 1, ImageQuality.HIGH: 2}


def to_vision_evidence(evidence: Optional[VisionEvidenceIn]) -> Optional[VisionEvidence]:
    """Convert the API evidence shape into the pipeline's."""
    if evidence is None:
        return None
    return VisionEvidence(
        ocr_text=evidence.ocr_text,
        labels=[LabelAnnotation(l.description, l.score) for l in evidence.labels],
        web_entities=[WebEntity(w.description, w.score) for w in evidence.web_entities],
        objects=[LocalizedObject(o.name, o.score) for o in evidence.objects],
    )


def to_analysis_request(request: AnalyzeRequest) -> AnalysisRequest:
    return AnalysisRequest(
        images=[ImageInput(url=url) for url in request.image_urls if url],
        evidence=to_vision_evidence(request.evidence),
        known_fields=dict(request.known_fields),
        image_quality=request.image_quality,
        ocr_confidence=request.ocr_confidence,
    )


def fused_out(fused: Dict[AttributeName, FusedAttribute]) -> Dict[str, FusedAttributeOut]:
    return {
        attr.value: FusedAttributeOut(
            value=fa.value,
            confidence=fa.confidence,
            evidence=fa.evidence.value if fa.evidence else None,
            score=fa.score,
        )
        for attr, fa in fused.items()
    }


def to_response(result: PipelineResult) -> AnalyzeResponse:
    return AnalyzeResponse(
        success=True,
        record=result.record,
        accuracy_metrics=result.metrics,
        fused=fused_out(result.fused),
        stages=[s.value for s in result.stages],
        issues=result.issues,
        image_quality=result.image_quality,
        processing_time_ms=result.metrics.processing_time_ms,
    )


def transport_error_response(e: Exception) -> JSONResponse:
    """Map a vision/model transport failure onto an HTTP error."""
    if isinstance(e, ModelRateLimitError):
        headers = {}
        if e.retry_after_seconds is not None:
            headers["Retry-After"] = str(int(round(e.retry_after_seconds)))
        return JSONResponse(
            status_code=429,
            content=ErrorResponse(error="Model rate limit exceeded. Please retry later.").model_dump(),
            headers=headers,
        )
    if isinstance(e, ModelServiceError) and e.status_code == 503:
        return JSONResponse(
            status_code=503,
            content=ErrorResponse(error="Model service unavailable", detail=str(e)).model_dump(),
        )
    source = "Vision" if isinstance(e, VisionServiceError) else "Model"
    return JSONResponse(
        status_code=502,
        content=ErrorResponse(error=f"{source} service request failed", detail=str(e)).model_dump(),
    )


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Check API health and upstream configuration."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        model_configured=pipeline.model_client.configured,
        vision_configured=pipeline.vision_client.configured,
    )


@router.post("/candidates", response_model=CandidatesResponse, tags=["Extraction"])
async def score_candidates(evidence: VisionEvidenceIn):
    """
    Score OCR/vision evidence without calling the model.

    Returns every candidate plus the fused winner per attribute.
    """
    candidates, fused = pipeline.score(to_vision_evidence(evidence))
    return CandidatesResponse(
        category=fused[AttributeName.CATEGORY].category,
        fused=fused_out(fused),
        candidates=[
            CandidateOut(
                attribute=c.attribute.value,
                value=c.value,
                score=c.score,
                source=c.source.value,
                matched=c.matched,
            )
            for c in candidates
        ],
    )


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    responses={
        429: {"model": ErrorResponse, "description": "Model rate limited"},
        502: {"model": ErrorResponse, "description": "Upstream failure"},
        503: {"model": ErrorResponse, "description": "Model not configured"},
    },
    tags=["Analysis"]
)
async def analyze(request: AnalyzeRequest):
    """
    Build a listing from image URLs and/or OCR/vision evidence.

    The response always carries a valid record; malformed model output is
    repaired and reported in `issues`.
    """
    try:
        result = await pipeline.analyze(to_analysis_request(request))
    except (ModelServiceError, VisionServiceError) as e:
        logger.error(f"Analysis failed upstream: {e}")
        return transport_error_response(e)
    except Exception as e:
        logger.exception(f"Error analyzing listing: {e}")
        raise HTTPException(status_code=500, detail=f"Error analyzing listing: {str(e)}")
    return to_response(result)


@router.post(
    "/analyze/upload",
    response_model=AnalyzeResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
        429: {"model": ErrorResponse, "description": "Model rate limited"},
        502: {"model": ErrorResponse, "description": "Upstream failure"},
        503: {"model": ErrorResponse, "description": "Model not configured"},
    },
    tags=["Analysis"]
)
async def analyze_upload(
    images: List[UploadFile] = File(..., description="Listing photos"),
    ocr_text: Optional[str] = Form(None, description="OCR text already extracted from the photos"),
):
    """
    Build a listing from uploaded photos.

    Photos are validated and quality-graded, then sent inline to the
    vision service and the model.
    """
    settings = get_settings()
    if len(images) > settings.max_prompt_images:
        raise HTTPException(
            status_code=400,
            detail=f"Too many images. Maximum is {settings.max_prompt_images}."
        )

    inputs = []
    qualities = []
    recommendation = None
    for upload in images:
        try:
            image_bytes = await upload.read()
        except Exception as e:
            logger.error(f"Failed to read uploaded image: {e}")
            raise HTTPException(status_code=400, detail="Failed to read uploaded image")

        is_valid, error_msg = preprocessor.validate_image(image_bytes, upload.filename or "unknown")
        if not is_valid:
            return AnalyzeResponse(success=False, error=f"{upload.filename}: {error_msg}")

        quality = preprocessor.assess_quality(image_bytes)
        qualities.append(quality.image_quality)
        recommendation = recommendation or quality.recommendation
        if quality.recommendation:
            logger.warning(f"{upload.filename}: {quality.recommendation}")

        try:
            jpeg_bytes, _ = convert_to_jpeg(image_bytes)
        except ValueError as e:
            return AnalyzeResponse(success=False, error=f"{upload.filename}: {str(e)}")
        inputs.append(ImageInput(content=jpeg_bytes, mime_type="image/jpeg"))

    # The best photo decides how much fine print the model is asked to read
    image_quality = max(qualities, key=_QUALITY_RANK.get) if qualities else None
    evidence = VisionEvidence(ocr_text=ocr_text) if ocr_text and ocr_text.strip() else None

    try:
        result = await pipeline.analyze(AnalysisRequest(
            images=inputs,
            evidence=evidence,
            image_quality=image_quality,
        ))
    except (ModelServiceError, VisionServiceError) as e:
        logger.error(f"Upload analysis failed upstream: {e}")
        return transport_error_response(e)
    except Exception as e:
        logger.exception(f"Error analyzing upload: {e}")
        raise HTTPException(status_code=500, detail=f"Error analyzing listing: {str(e)}")

    response = to_response(result)
    response.quality_recommendation = recommendation
    return response


@router.post(
    "/analyze/batch",
    response_model=BatchAnalyzeResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
    },
    tags=["Analysis"]
)
async def analyze_batch(requests: List[AnalyzeRequest]):
    """
    Analyze several listings sequentially.

    An upstream failure in one item is reported on that row; the rest of
    the batch still runs.
    """
    start_time = time.time()
    settings = get_settings()

    if not requests:
        raise HTTPException(status_code=400, detail="Batch is empty")
    if len(requests) > settings.max_batch_size:
        raise HTTPException(
            status_code=400,
            detail=f"Too many items. Maximum batch size is {settings.max_batch_size}."
        )

    items = await pipeline.analyze_batch([to_analysis_request(r) for r in requests])

    rows = [
        BatchRowResult(
            index=item.index,
            success=item.result is not None,
            result=to_response(item.result) if item.result else None,
            error=item.error,
        )
        for item in items
    ]
    failed = sum(1 for row in rows if not row.success)
    repaired = sum(1 for item in items if item.result and item.result.repaired)
    total_time = int((time.time() - start_time) * 1000)
    logger.info(f"Batch of {len(rows)}: {failed} failed, {repaired} repaired ({total_time}ms)")

    return BatchAnalyzeResponse(
        success=failed < len(rows),
        total=len(rows),
        processed=len(rows) - failed,
        repaired=repaired,
        failed=failed,
        results=rows,
        processing_time_ms=total_time,
    )

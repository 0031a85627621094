"""Google Vision client: OCR text plus labels, web entities and objects."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..config import Settings, get_settings
from .candidates import LabelAnnotation, LocalizedObject, VisionEvidence, WebEntity
from .transport import b64, post_with_retry, redact_key

logger = logging.getLogger(__name__)


FEATURES = (
    {"type": "TEXT_DETECTION", "maxResults": 50},
    {"type": "DOCUMENT_TEXT_DETECTION", "maxResults": 50},
    {"type": "LABEL_DETECTION", "maxResults": 20},
    {"type": "WEB_DETECTION", "maxResults": 15},
    {"type": "OBJECT_LOCALIZATION", "maxResults": 10},
)

# OCR confidence when text exists but no page confidences were reported
DEFAULT_TEXT_CONFIDENCE = 0.7


class VisionServiceError(Exception):
    """The vision service failed for every image in a request."""


@dataclass
class ImageInput:
    """One image, either by URL or by raw bytes."""
    url: Optional[str] = None
    content: Optional[bytes] = None
    mime_type: str = "image/jpeg"

    def to_vision_image(self) -> Dict[str, Any]:
        if self.content is not None:
            return {"content": b64(self.content)}
        return {"source": {"imageUri": self.url}}

    def to_prompt_url(self) -> str:
        """URL usable as a chat-completions image part."""
        if self.content is not None:
            return f"data:{self.mime_type};base64,{b64(self.content)}"
        return self.url or ""


@dataclass
class _ImageAnnotation:
    evidence: VisionEvidence
    page_confidences: List[float]


def parse_annotation(response: Dict[str, Any]) -> _ImageAnnotation:
    """Convert one ``images:annotate`` response entry into evidence."""
    full_text = response.get("fullTextAnnotation") or {}
    ocr_text = full_text.get("text") or ""
    if not ocr_text:
        texts = response.get("textAnnotations") or []
        ocr_text = texts[0].get("description", "") if texts else ""

    page_confidences = [
        float(p["confidence"]) for p in full_text.get("pages") or [] if p.get("confidence") is not None
    ]

    web = response.get("webDetection") or {}
    evidence = VisionEvidence(
        ocr_text=ocr_text.strip(),
        labels=[
            LabelAnnotation(l.get("description", ""), float(l.get("score", 0.0)))
            for l in response.get("labelAnnotations") or [] if l.get("description")
        ],
        web_entities=[
            WebEntity(w.get("description", ""), float(w.get("score", 0.0)))
            for w in web.get("webEntities") or [] if w.get("description")
        ],
        objects=[
            LocalizedObject(o.get("name", ""), float(o.get("score", 0.0)))
            for o in response.get("localizedObjectAnnotations") or [] if o.get("name")
        ],
    )
    return _ImageAnnotation(evidence, page_confidences)


class VisionClient:
    """Annotates listing photos through the Vision REST API."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.settings.google_vision_api_key)

    async def annotate(self, images: List[ImageInput]) -> Tuple[VisionEvidence, float]:
        """
        Annotate images concurrently and merge the results.

        Individual image failures are logged and dropped.

        Returns:
            Tuple of (merged evidence, OCR confidence 0-1)

        Raises:
            VisionServiceError: Missing key, or every image failed
        """
        if not self.configured:
            raise VisionServiceError("GOOGLE_VISION_API_KEY is not configured")
        images = [img for img in images if img.url or img.content is not None]
        images = images[: self.settings.vision_max_images]
        if not images:
            return VisionEvidence(), 0.0

        start = time.time()
        async with httpx.AsyncClient(
            timeout=self.settings.vision_timeout_seconds, transport=self.transport
        ) as client:
            results = await asyncio.gather(
                *(self._annotate_one(client, img) for img in images),
                return_exceptions=True,
            )

        annotations = []
        errors = []
        for i, result in enumerate(results):
            if isinstance(result, BaseException):
                message = redact_key(str(result))
                logger.error(f"Vision annotation failed for image {i}: {message}")
                errors.append(message)
            else:
                annotations.append(result)

        if not annotations:
            raise VisionServiceError(f"Vision annotation failed for all {len(images)} image(s): {errors[0]}")

        merged = VisionEvidence()
        confidences: List[float] = []
        for annotation in annotations:
            merged = merged.merge(annotation.evidence)
            confidences.extend(annotation.page_confidences)

        if confidences:
            ocr_confidence = sum(confidences) / len(confidences)
        elif merged.ocr_text:
            ocr_confidence = DEFAULT_TEXT_CONFIDENCE
        else:
            ocr_confidence = 0.0

        logger.info(
            f"Vision annotated {len(annotations)}/{len(images)} image(s) in "
            f"{(time.time() - start) * 1000:.0f}ms: {len(merged.ocr_text)} chars, "
            f"{len(merged.labels)} labels, ocr_confidence={ocr_confidence:.2f}"
        )
        return merged, ocr_confidence

    async def _annotate_one(self, client: httpx.AsyncClient, image: ImageInput) -> _ImageAnnotation:
        url = f"{self.settings.vision_base_url.rstrip('/')}/images:annotate"
        payload = {"requests": [{"image": image.to_vision_image(), "features": list(FEATURES)}]}
        try:
            resp = await post_with_retry(
                client,
                url,
                params={"key": self.settings.google_vision_api_key},
                json_payload=payload,
                max_retries=self.settings.openai_max_retries,
                max_backoff=self.settings.openai_max_backoff_seconds,
            )
        except httpx.HTTPError as e:
            raise VisionServiceError(redact_key(f"{type(e).__name__}: {e}")) from e

        if resp.status_code >= 400:
            raise VisionServiceError(
                f"Vision request failed: {resp.status_code} {redact_key(resp.text)[:500]}"
            )

        responses = resp.json().get("responses") or [{}]
        first = responses[0]
        if first.get("error"):
            raise VisionServiceError(f"Vision error: {first['error'].get('message', 'unknown')}")
        return parse_annotation(first)

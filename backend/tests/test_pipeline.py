"""Tests for the listing pipeline."""

import asyncio
import json

import pytest

from listing_service.models.listing import Category, ImageQuality
from listing_service.services.candidates import AttributeName, VisionEvidence
from listing_service.services.llm import ModelServiceError
from listing_service.services.pipeline import AnalysisRequest, ListingPipeline, PipelineStage
from listing_service.services.vision import ImageInput


class FakeModelClient:
    """Returns canned responses in order."""

    configured = True

    def __init__(self, *responses):
        self.responses = list(responses)
        self.payloads = []

    async def complete(self, payload):
        self.payloads.append(payload)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeVisionClient:
    configured = True

    def __init__(self, evidence, confidence=0.9):
        self.evidence = evidence
        self.confidence = confidence
        self.calls = 0

    async def annotate(self, images):
        self.calls += 1
        return self.evidence, self.confidence


def make_pipeline(model, vision=None):
    return ListingPipeline(model_client=model, vision_client=vision or FakeVisionClient(VisionEvidence()))


MODEL_JSON = json.dumps({
    "title": "Jeans",
    "item_type": "Jeans",
    "condition": "good",
    "category": "clothing",
    "brand": "Unknown",
    "size": None,
    "color": "Blue",
    "gender": "Men",
    "confidence": 0.8,
})


class TestLevisScenario:
    """OCR text LEVI'S 501 W32 L34."""

    @pytest.fixture
    def request_(self):
        return AnalysisRequest(evidence=VisionEvidence(ocr_text="LEVI'S 501 W32 L34"))

    def test_fused_evidence(self, request_):
        pipeline = make_pipeline(FakeModelClient(MODEL_JSON))
        result = asyncio.run(pipeline.analyze(request_))

        assert result.fused[AttributeName.BRAND].value == "Levi's"
        assert result.fused[AttributeName.SIZE].value == "32x34"
        assert result.fused[AttributeName.CATEGORY].category == Category.CLOTHING

    def test_record_filled_from_ocr(self, request_):
        pipeline = make_pipeline(FakeModelClient(MODEL_JSON))
        result = asyncio.run(pipeline.analyze(request_))
        record = result.record

        assert record.brand == "Levi's"
        assert record.size == "32x34"
        assert record.title.startswith("Levi's Jeans Men's 32x34 Blue")
        assert record.item_specifics["Waist Size"] == "32"
        assert result.stages == [
            PipelineStage.RECEIVED,
            PipelineStage.PARSING,
            PipelineStage.VALIDATED,
            PipelineStage.ENHANCED,
            PipelineStage.RETURNED,
        ]
        assert not result.repaired

    def test_prompt_carries_evidence(self, request_):
        model = FakeModelClient(MODEL_JSON)
        asyncio.run(make_pipeline(model).analyze(request_))

        payload = model.payloads[0]
        assert "Levi's" in payload.text
        assert "32x34" in payload.text
        assert payload.item_family == "pants"

    def test_malformed_output_repaired(self, request_):
        pipeline = make_pipeline(FakeModelClient("I'm sorry, I can't help with that."))
        result = asyncio.run(pipeline.analyze(request_))

        assert result.repaired
        assert PipelineStage.REPAIRED in result.stages
        assert result.record.brand == "Levi's"
        assert result.record.category == Category.CLOTHING
        assert result.metrics.overall <= 0.3
        assert result.issues


class TestEmptyEvidence:
    """No images, no evidence."""

    def test_fallback_category_other(self):
        pipeline = make_pipeline(FakeModelClient("not json"))
        result = asyncio.run(pipeline.analyze(AnalysisRequest()))

        assert all(not fa.is_present for fa in result.fused.values())
        assert result.record.category == Category.OTHER
        assert result.record.title == "Item - Review Required"
        assert result.record.brand is None
        assert result.ocr_confidence == 0.0
        assert result.image_quality == ImageQuality.LOW


class TestVisionCall:
    """Test when the vision service is consulted."""

    def test_called_for_images_without_evidence(self):
        vision = FakeVisionClient(VisionEvidence(ocr_text="NIKE\nXL"), confidence=0.92)
        pipeline = make_pipeline(FakeModelClient(MODEL_JSON), vision)
        result = asyncio.run(pipeline.analyze(AnalysisRequest(images=[ImageInput(url="https://example.com/a.jpg")])))

        assert vision.calls == 1
        assert result.fused[AttributeName.BRAND].value == "Nike"
        assert result.ocr_confidence == 0.92
        assert result.image_quality == ImageQuality.HIGH

    def test_skipped_when_evidence_supplied(self):
        vision = FakeVisionClient(VisionEvidence(ocr_text="NIKE"))
        pipeline = make_pipeline(FakeModelClient(MODEL_JSON), vision)
        asyncio.run(pipeline.analyze(AnalysisRequest(
            images=[ImageInput(url="https://example.com/a.jpg")],
            evidence=VisionEvidence(ocr_text="GAP"),
        )))
        assert vision.calls == 0

    def test_images_forwarded_to_model(self):
        model = FakeModelClient(MODEL_JSON)
        pipeline = make_pipeline(model)
        asyncio.run(pipeline.analyze(AnalysisRequest(
            images=[ImageInput(content=b"\xff\xd8", mime_type="image/jpeg")],
            evidence=VisionEvidence(ocr_text="GAP"),
        )))
        assert model.payloads[0].images[0].startswith("data:image/jpeg;base64,")

    def test_supplied_quality_wins(self):
        pipeline = make_pipeline(FakeModelClient(MODEL_JSON))
        result = asyncio.run(pipeline.analyze(AnalysisRequest(
            evidence=VisionEvidence(ocr_text="GAP"),
            image_quality=ImageQuality.HIGH,
        )))
        assert result.image_quality == ImageQuality.HIGH


class TestBatch:
    """Test sequential batch analysis."""

    def test_failure_isolated(self):
        model = FakeModelClient(MODEL_JSON, ModelServiceError("upstream down", status_code=500), "not json")
        pipeline = make_pipeline(model)
        requests = [AnalysisRequest(evidence=VisionEvidence(ocr_text=t)) for t in ("GAP", "NIKE", "LEVI'S")]

        items = asyncio.run(pipeline.analyze_batch(requests))

        assert [item.index for item in items] == [0, 1, 2]
        assert items[0].result is not None and not items[0].result.repaired
        assert items[1].result is None and "upstream down" in items[1].error
        assert items[2].result.repaired


class TestProcessModelOutput:
    """Test validation and enhancement without a model call."""

    def test_fenced_output(self):
        pipeline = make_pipeline(FakeModelClient())
        _, fused = pipeline.score(VisionEvidence(ocr_text="GAP"))
        result = pipeline.process_model_output("```json\n" + MODEL_JSON + "\n```", fused)

        assert not result.repaired
        assert result.record.item_type == "Jeans"
        assert result.raw_model_output.startswith("```json")

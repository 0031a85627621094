"""Tests for prompt synthesis."""

import json

import pytest

from listing_service.models.listing import ImageQuality
from listing_service.services.candidates import AttributeName, EvidenceSource
from listing_service.services.fusion import FusedAttribute
from listing_service.services.prompts import (
    LOW_QUALITY_TEMPERATURE,
    DEFAULT_TEMPERATURE,
    PromptSynthesizer,
    ocr_weighting_block,
    quality_from_ocr_confidence,
)


@pytest.fixture
def synthesizer():
    """Create synthesizer instance."""
    return PromptSynthesizer()


def fused_with(**values):
    fused = {a: FusedAttribute.absent(a) for a in AttributeName}
    for name, value in values.items():
        attr = AttributeName(name)
        fused[attr] = FusedAttribute(attr, value, 0.667, EvidenceSource.OCR_TEXT, 6.0)
    return fused


class TestQualityMapping:
    """Test OCR confidence to quality mapping."""

    @pytest.mark.parametrize("confidence,expected", [
        (0.95, ImageQuality.HIGH),
        (0.8, ImageQuality.MEDIUM),
        (0.6, ImageQuality.MEDIUM),
        (0.5, ImageQuality.LOW),
        (0.0, ImageQuality.LOW),
    ])
    def test_thresholds(self, confidence, expected):
        assert quality_from_ocr_confidence(confidence) == expected


class TestOcrWeighting:
    """Test OCR weighting block selection."""

    def test_high_needs_long_text(self):
        assert "HIGH (90%)" in ocr_weighting_block(0.9, 120)
        assert "MODERATE" in ocr_weighting_block(0.9, 10)

    def test_moderate(self):
        assert "MODERATE (60%)" in ocr_weighting_block(0.6, 200)

    def test_low(self):
        assert "LOW (30%)" in ocr_weighting_block(0.3, 200)


class TestBlockOrder:
    """Test prompt structure."""

    def test_blocks_in_order(self, synthesizer):
        payload = synthesizer.build(
            fused_with(category="bottoms", brand="Levi's"),
            image_quality=ImageQuality.HIGH,
            ocr_confidence=0.9,
            ocr_text="LEVI'S 501 W32 L34",
        )
        text = payload.text
        markers = [
            "You are an expert in",
            "IMAGE QUALITY: EXCELLENT",
            "OCR CONFIDENCE:",
            "EXTRACTION CHECKLIST:",
            "CONTEXT (verify against the images):",
            "ITEM SPECIFICS (pants):",
            "OUTPUT FORMAT",
        ]
        positions = [text.index(m) for m in markers]
        assert positions == sorted(positions)

    def test_clothing_uses_default_expertise(self, synthesizer):
        payload = synthesizer.build(fused_with(category="bottoms"))
        assert "clothing and fashion items" in payload.text

    def test_known_category_overrides_fused(self, synthesizer):
        payload = synthesizer.build(fused_with(category="bottoms"), known_fields={"category": "electronics"})
        assert "consumer electronics" in payload.text

    def test_context_is_deterministic(self, synthesizer):
        fused = fused_with(brand="Levi's", size="32x34")
        first = synthesizer.build(fused, known_fields={"color": "Blue", "brand": "Levi's"})
        second = synthesizer.build(fused, known_fields={"brand": "Levi's", "color": "Blue"})
        assert first.text == second.text

    def test_context_contains_fused_values(self, synthesizer):
        payload = synthesizer.build(fused_with(brand="Levi's"), ocr_text="LEVI'S")
        line = payload.text.split("CONTEXT (verify against the images):\n", 1)[1].split("\n\n", 1)[0]
        context = json.loads(line)
        assert context["detected_candidates"]["brand"]["value"] == "Levi's"
        assert context["detected_candidates"]["brand"]["source"] == "ocr_text"
        assert "size" not in context["detected_candidates"]
        assert context["ocr_text"] == "LEVI'S"


class TestTemperatureAndImages:
    """Test payload parameters."""

    def test_low_quality_lowers_temperature(self, synthesizer):
        payload = synthesizer.build(fused_with(), image_quality=ImageQuality.LOW)
        assert payload.temperature == LOW_QUALITY_TEMPERATURE
        assert "IMAGE QUALITY: LIMITED" in payload.text

    def test_default_temperature(self, synthesizer):
        assert synthesizer.build(fused_with()).temperature == DEFAULT_TEMPERATURE

    def test_images_capped(self, synthesizer):
        urls = [f"https://example.com/{i}.jpg" for i in range(10)]
        payload = synthesizer.build(fused_with(), images=urls)
        assert payload.images == urls[: synthesizer.settings.max_prompt_images]

    def test_messages_shape(self, synthesizer):
        payload = synthesizer.build(fused_with(), images=["https://example.com/a.jpg"])
        messages = payload.to_messages()
        assert messages[0]["role"] == "system"
        content = messages[1]["content"]
        assert content[0]["type"] == "text"
        assert content[1]["image_url"] == {"url": "https://example.com/a.jpg", "detail": "high"}


class TestItemFamilies:
    """Test item-type family selection and schema fields."""

    def test_item_type_selects_family(self, synthesizer):
        payload = synthesizer.build(fused_with(), known_fields={"item_type": "Graphic Tee"})
        assert payload.item_family == "tshirts"
        assert '"sleeve_length"' in payload.text
        assert '"inseam"' not in payload.text

    def test_bottoms_cluster_selects_pants(self, synthesizer):
        payload = synthesizer.build(fused_with(category="bottoms"))
        assert payload.item_family == "pants"
        assert '"waist"' in payload.text
        assert '"neckline"' not in payload.text

    def test_default_family_has_no_garment_fields(self, synthesizer):
        payload = synthesizer.build(fused_with())
        assert payload.item_family == "default"
        assert '"waist"' not in payload.text
        assert '"sleeve_length"' not in payload.text

    def test_denim_jacket_gets_top_fields(self, synthesizer):
        payload = synthesizer.build(fused_with(), known_fields={"item_type": "Denim Jacket"})
        assert payload.item_family == "outerwear"
        assert '"sleeve_length"' in payload.text
        assert '"inseam"' not in payload.text
        assert '"waist"' not in payload.text

    def test_aspects_listed(self, synthesizer):
        payload = synthesizer.build(fused_with(), known_fields={"item_type": "Jeans"})
        names = [a["name"] for a in payload.aspects]
        assert "Wash" in names
        assert "- Brand (REQUIRED)" in payload.text

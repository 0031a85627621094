"""Prompt synthesis for the generative listing pass.

The user prompt is built from independent blocks, in order:

1. category expertise
2. image quality guidance
3. OCR weighting
4. extraction checklist
5. context (fused evidence, known fields, OCR text)
6. item specifics for the item-type family
7. output schema
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..config import get_settings
from ..models.listing import Category, Condition, ImageQuality
from .candidates import AttributeName
from .dictionaries import (
    CATEGORY_EXPERTISE,
    DEFAULT_EXPERTISE,
    GARMENT_BOTTOM,
    GARMENT_TOP,
    ItemFamily,
    resolve_item_family,
)
from .fusion import FusedAttribute

logger = logging.getLogger(__name__)


SYSTEM_MESSAGE = (
    "You are an expert product lister for secondhand marketplaces. "
    "Return only valid JSON. Do not use code fences."
)

DEFAULT_TEMPERATURE = 0.1
LOW_QUALITY_TEMPERATURE = 0.05


def quality_from_ocr_confidence(confidence: float) -> ImageQuality:
    """Stand-in quality when no image is available to assess."""
    if confidence > 0.8:
        return ImageQuality.HIGH
    if confidence > 0.5:
        return ImageQuality.MEDIUM
    return ImageQuality.LOW


@dataclass
class PromptPayload:
    """Everything needed for one generative-model call."""
    system: str
    text: str
    images: List[str] = field(default_factory=list)
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = 2500
    item_family: str = "default"
    aspects: List[Dict[str, Any]] = field(default_factory=list)

    def to_messages(self) -> List[Dict[str, Any]]:
        """Render as chat-completions messages."""
        content: List[Dict[str, Any]] = [{"type": "text", "text": self.text}]
        for url in self.images:
            content.append({"type": "image_url", "image_url": {"url": url, "detail": "high"}})
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": content},
        ]


_QUALITY_BLOCKS = {
    ImageQuality.HIGH: """IMAGE QUALITY: EXCELLENT
- Read fine print on tags and labels exactly as printed
- Pick up subtle brand marks (buttons, rivets, zipper pulls)
- Use the sharpest areas to verify every extracted value""",
    ImageQuality.MEDIUM: """IMAGE QUALITY: MODERATE
- Work from the clearest areas first
- Use context for partially visible text
- Cross-reference the images against each other""",
    ImageQuality.LOW: """IMAGE QUALITY: LIMITED
- Favour high-contrast text areas
- Use garment construction and style as hints
- Mark any uncertain extraction as LOW confidence or null""",
}


CHECKLIST_BLOCK = """EXTRACTION CHECKLIST:
BRAND (search in this order):
  1. Primary: neck label, waistband label, main brand tag
  2. Secondary: care label, size tag, hang tags
  3. External: logos, embroidery, hardware engravings, buttons
SIZE (search in this order):
  1. Size tag, neck label, waistband label
  2. Care label
  Formats: XS-XXXL, numeric (0-24), waist x length (32x34, W32 L34),
  plus (1X-4X, 16W-28W), youth (8A, 4T), shoe (US 9, 9.5 D), bra (34B), One Size
CONFIDENCE:
  HIGH = clearly printed and readable; MEDIUM = partially visible;
  LOW = inferred from style; otherwise use null
RULES:
  - Report null for anything you cannot see. Never write "Unknown" or "Unbranded".
  - Prefer text printed on the item over visual impressions."""


def ocr_weighting_block(confidence: float, text_length: int) -> str:
    pct = f"{confidence * 100:.0f}%"
    if confidence > 0.8 and text_length > 50:
        return f"""OCR CONFIDENCE: HIGH ({pct})
- Treat the OCR text as the primary source of truth
- Use the images to confirm it"""
    if confidence > 0.5:
        return f"""OCR CONFIDENCE: MODERATE ({pct})
- Weigh OCR text and visual evidence equally
- Resolve disagreements from the images"""
    return f"""OCR CONFIDENCE: LOW ({pct})
- Rely on visual analysis
- Use OCR text as hints only"""


class PromptSynthesizer:
    """Builds the generative-model payload from fused evidence."""

    def __init__(self):
        self.settings = get_settings()

    def build(
        self,
        fused: Dict[AttributeName, FusedAttribute],
        known_fields: Optional[Dict[str, Any]] = None,
        image_quality: ImageQuality = ImageQuality.MEDIUM,
        ocr_confidence: float = 0.0,
        ocr_text: str = "",
        images: Optional[List[str]] = None,
    ) -> PromptPayload:
        """
        Compose the prompt payload.

        Args:
            fused: Fused attributes from the evidence scorer
            known_fields: Fields already known from a prior pass
            image_quality: Coarse image quality
            ocr_confidence: OCR confidence (0-1)
            ocr_text: Raw OCR text
            images: Image URLs (http or data URLs)

        Returns:
            PromptPayload ready for the model client
        """
        known = {k: v for k, v in (known_fields or {}).items() if v not in (None, "", [], {})}
        category = self._resolve_category(fused, known)
        cluster = fused.get(AttributeName.CATEGORY)
        family = resolve_item_family(known.get("item_type"), cluster.value if cluster else None)

        blocks = [
            self.expertise_block(category),
            _QUALITY_BLOCKS[image_quality],
            ocr_weighting_block(ocr_confidence, len(ocr_text or "")),
            CHECKLIST_BLOCK,
            self.context_block(fused, known, ocr_text),
            self.specifics_block(family),
            self.schema_block(family),
        ]

        temperature = LOW_QUALITY_TEMPERATURE if image_quality == ImageQuality.LOW else DEFAULT_TEMPERATURE
        payload = PromptPayload(
            system=SYSTEM_MESSAGE,
            text="\n\n".join(blocks),
            images=list(images or [])[: self.settings.max_prompt_images],
            temperature=temperature,
            max_tokens=self.settings.max_output_tokens,
            item_family=family.name,
            aspects=[a.to_dict() for a in family.aspects],
        )
        logger.debug(
            f"Prompt built: category={category.value}, family={family.name}, "
            f"quality={image_quality.value}, images={len(payload.images)}"
        )
        return payload

    def _resolve_category(self, fused: Dict[AttributeName, FusedAttribute], known: Dict[str, Any]) -> Category:
        raw = known.get("category")
        if raw:
            try:
                return Category(str(raw).strip().lower())
            except ValueError:
                pass
        cluster = fused.get(AttributeName.CATEGORY)
        return cluster.category if cluster else Category.OTHER

    def expertise_block(self, category: Category) -> str:
        domain, checklist = CATEGORY_EXPERTISE.get(category, DEFAULT_EXPERTISE)
        return (
            f"You are an expert in {domain}. Analyze the images and produce a complete, "
            f"accurate marketplace listing.\n\n{checklist}"
        )

    def context_block(
        self,
        fused: Dict[AttributeName, FusedAttribute],
        known: Dict[str, Any],
        ocr_text: str,
    ) -> str:
        candidates = {
            attr.value: {
                "value": fa.value,
                "confidence": round(fa.confidence, 2),
                "source": fa.evidence.value if fa.evidence else None,
            }
            for attr, fa in fused.items() if fa.is_present
        }
        context = {
            "detected_candidates": candidates,
            "known_fields": known,
            "ocr_text": ocr_text or "",
        }
        return "CONTEXT (verify against the images):\n" + json.dumps(context, sort_keys=True, default=str)

    def specifics_block(self, family: ItemFamily) -> str:
        lines = [f"ITEM SPECIFICS ({family.name}):"]
        for aspect in family.aspects:
            marker = "REQUIRED" if aspect.required else "recommended"
            line = f"- {aspect.name} ({marker})"
            if aspect.allowed_values:
                line += ": " + " | ".join(aspect.allowed_values)
            lines.append(line)
        lines.append('Return these in "item_specifics" as a flat map of aspect name to string.')
        return "\n".join(lines)

    def schema_block(self, family: ItemFamily) -> str:
        conditions = " | ".join(c.value for c in Condition)
        categories = " | ".join(c.value for c in Category)
        fields: List[Tuple[str, str]] = [
            ("title", "string, max 80 characters: brand, item type, gender, size, color, material"),
            ("item_type", "string, specific garment or product type"),
            ("brand", "string or null"),
            ("size", "string or null, exactly as printed"),
            ("color", "string or null"),
            ("material", "string or null"),
            ("pattern", "string or null"),
            ("gender", "Men | Women | Unisex | Boys | Girls | null"),
            ("fit", "string or null"),
            ("closure", "string or null"),
        ]
        if family.garment_part == GARMENT_TOP:
            fields += [
                ("sleeve_length", "string or null"),
                ("neckline", "string or null"),
            ]
        elif family.garment_part == GARMENT_BOTTOM:
            fields += [
                ("waist", "string or null"),
                ("inseam", "string or null"),
                ("rise", "string or null"),
            ]
        fields += [
            ("occasion", "string or null"),
            ("season", "string or null"),
            ("model_number", "string or null"),
            ("condition", conditions),
            ("category", categories),
            ("description", "string, 2-4 sentences"),
            ("style_keywords", "array of strings"),
            ("key_features", "array of strings"),
            ("keywords", "array of search keywords"),
            ("item_specifics", "object of aspect name to string"),
            ("suggested_price", "number or null"),
            ("confidence", "number between 0 and 1"),
            ("evidence", "object mapping field name to where it was read (tag, label, visual)"),
        ]
        body = "\n".join(f'  "{name}": {desc}' for name, desc in fields)
        return "OUTPUT FORMAT (a single JSON object):\n{\n" + body + "\n}"

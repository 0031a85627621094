"""Validation and repair of raw generative-model output.

Parsing is layered: fence stripping, strict JSON, then the longest balanced
``{...}`` substring that parses to an object. Whatever parses is normalized
and validated against ``ListingRecord``. Anything that still fails is
replaced by a deterministic fallback record built from the fused evidence,
so the caller always gets a well-formed listing.
"""

import re
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..config import get_settings
from ..models.listing import Category, Condition, ListingRecord
from .candidates import AttributeName, EvidenceSource, match_keyword
from .dictionaries import CATEGORY_CLUSTERS, CONDITION_KEYWORDS, PLACEHOLDER_VALUES
from .fusion import FusedAttribute

logger = logging.getLogger(__name__)


FENCE_PATTERN = re.compile(r"```[ \t]*(?:json|JSON)?[ \t]*\r?\n?(.*?)\r?\n?[ \t]*```", re.DOTALL)

OPTIONAL_STRING_FIELDS = (
    "brand", "size", "color", "material", "pattern", "gender", "fit", "closure",
    "sleeve_length", "neckline", "waist", "inseam", "rise",
    "occasion", "season", "model_number",
)
LIST_FIELDS = ("style_keywords", "key_features", "keywords")

CONFIDENCE_WORDS = {"high": 0.9, "medium": 0.6, "low": 0.3}

FALLBACK_TITLE = "Item - Review Required"
FALLBACK_ITEM_TYPE = "Item"
FALLBACK_FEATURE = "requires manual review"

# Longest balanced spans tried before giving up
MAX_OBJECT_ATTEMPTS = 16


@dataclass
class ValidationOutcome:
    """Result of validating one model response."""
    record: ListingRecord
    repaired: bool
    issues: List[str] = field(default_factory=list)


def _is_placeholder(value: Any) -> bool:
    return isinstance(value, str) and value.strip().casefold() in PLACEHOLDER_VALUES


class ResponseValidator:
    """Turns raw model text into a valid ``ListingRecord``."""

    def __init__(self):
        self.settings = get_settings()

    # -------------------------------------------------------------------------
    # Parsing
    # -------------------------------------------------------------------------

    def strip_fences(self, text: str) -> str:
        """Remove ``` / ```json fences around (or inside) the response."""
        if not text:
            return ""
        match = FENCE_PATTERN.search(text)
        if match:
            return match.group(1).strip()
        return text.strip()

    def parse(self, text: str) -> Optional[Dict[str, Any]]:
        """
        Parse the first usable JSON object out of model text.

        Returns:
            The parsed object, or None when nothing parses to a dict
        """
        cleaned = self.strip_fences(text)
        if not cleaned:
            return None
        try:
            parsed = json.loads(cleaned)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        spans = sorted(_balanced_spans(cleaned), key=lambda s: s[1] - s[0], reverse=True)
        for start, end in spans[:MAX_OBJECT_ATTEMPTS]:
            try:
                parsed = json.loads(cleaned[start:end])
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed
        return None

    # -------------------------------------------------------------------------
    # Normalization
    # -------------------------------------------------------------------------

    def normalize(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        """Coerce common model deviations before schema validation."""
        data = dict(obj)
        if "item_specifics" not in data and "ebay_item_specifics" in data:
            data["item_specifics"] = data.pop("ebay_item_specifics")

        for name in OPTIONAL_STRING_FIELDS:
            value = data.get(name)
            if value is None:
                continue
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                value = str(value)
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value if v is not None)
            data[name] = None if _is_placeholder(value) else (value.strip() if isinstance(value, str) else value)

        title = data.get("title")
        if isinstance(title, str):
            data["title"] = title.strip()[: self.settings.title_max_length].rstrip()

        if "condition" in data:
            data["condition"] = _normalize_condition(data["condition"])
        if "category" in data:
            data["category"] = _normalize_category(data["category"])

        for name in LIST_FIELDS:
            value = data.get(name)
            if isinstance(value, str):
                data[name] = [v.strip() for v in value.split(",") if v.strip()]
            elif isinstance(value, list):
                data[name] = [str(v).strip() for v in value if v is not None and not _is_placeholder(v)]

        specifics = data.get("item_specifics")
        if isinstance(specifics, dict):
            flat = {}
            for key, value in specifics.items():
                if isinstance(value, (list, tuple)):
                    value = ", ".join(str(v) for v in value if v is not None and not _is_placeholder(v))
                if value is None or _is_placeholder(value):
                    continue
                flat[str(key)] = value
            data["item_specifics"] = flat

        data["suggested_price"] = _normalize_price(data.get("suggested_price"))
        if "confidence" in data:
            data["confidence"] = _normalize_confidence(data["confidence"])
        if "evidence" in data and not isinstance(data["evidence"], dict):
            data["evidence"] = {}
        if data.get("description") is None:
            data.pop("description", None)
        return data

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self, raw_text: str, fused: Dict[AttributeName, FusedAttribute]) -> ValidationOutcome:
        """
        Validate raw model text, repairing to a fallback record on failure.

        Never raises for malformed content.
        """
        parsed = self.parse(raw_text or "")
        if parsed is None:
            issue = "model output did not contain a JSON object"
            logger.warning(f"Repairing listing: {issue}")
            return ValidationOutcome(self.build_fallback(fused), True, [issue])

        try:
            record = ListingRecord.model_validate(self.normalize(parsed))
        except ValidationError as e:
            issues = [
                f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}"
                for err in e.errors()
            ]
            logger.warning(f"Repairing listing: {len(issues)} schema issue(s): {issues}")
            return ValidationOutcome(self.build_fallback(fused), True, issues)

        return ValidationOutcome(record, False, [])

    def build_fallback(
        self,
        fused: Dict[AttributeName, FusedAttribute],
        issues: Optional[List[str]] = None,
    ) -> ListingRecord:
        """Deterministic, always-valid record from fused evidence."""
        def value(attr: AttributeName) -> Optional[str]:
            fa = fused.get(attr)
            return fa.value if fa else None

        brand = value(AttributeName.BRAND)
        cluster = fused.get(AttributeName.CATEGORY)
        category = cluster.category if cluster else Category.OTHER

        condition = Condition.GOOD
        raw_condition = value(AttributeName.CONDITION)
        if raw_condition in {c.value for c in Condition}:
            condition = Condition(raw_condition)

        evidence = {}
        for attr in (AttributeName.BRAND, AttributeName.SIZE, AttributeName.COLOR, AttributeName.CATEGORY):
            label = _evidence_label(fused.get(attr))
            if label:
                evidence[attr.value] = label

        record = ListingRecord(
            title=f"{brand} Item" if brand else FALLBACK_TITLE,
            item_type=FALLBACK_ITEM_TYPE,
            condition=condition,
            category=category,
            brand=brand,
            size=value(AttributeName.SIZE),
            color=value(AttributeName.COLOR),
            description="Listing built from detected evidence. Requires manual review.",
            key_features=[FALLBACK_FEATURE],
            keywords=[brand] if brand else ["item"],
            confidence=self.settings.fallback_confidence,
            evidence=evidence,
        )
        if issues:
            logger.debug(f"Fallback built for issues: {issues}")
        return record


def _evidence_label(fa: Optional[FusedAttribute]) -> Optional[str]:
    if fa is None or fa.evidence is None:
        return None
    return "ocr" if fa.evidence == EvidenceSource.OCR_TEXT else "vision"


def _balanced_spans(text: str) -> List[Tuple[int, int]]:
    """
    (start, end) of every balanced {...} substring, ignoring braces inside
    JSON strings.

    One left-to-right pass with a stack of open positions. Quotes only count
    inside an object, so stray quotes in surrounding prose are ignored.
    """
    found = []
    starts: List[int] = []
    in_string = False
    escaped = False
    for pos, c in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
            continue
        if c == '"' and starts:
            in_string = True
        elif c == "{":
            starts.append(pos)
        elif c == "}" and starts:
            found.append((starts.pop(), pos + 1))
    return found


def _normalize_condition(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    norm = re.sub(r"[\s\-]+", "_", value.strip().lower())
    if norm in {c.value for c in Condition}:
        return norm
    phrase = " ".join(value.casefold().replace("_", " ").replace("-", " ").split())
    for condition, keywords in CONDITION_KEYWORDS:
        if any(match_keyword(phrase, k) is not None for k in keywords):
            return condition.value
    if phrase.startswith("new"):
        return Condition.NEW.value
    return norm


def _normalize_category(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    norm = value.strip().lower()
    norm = re.sub(r"\s*(?:&|\band\b)\s*", "_", norm)
    norm = re.sub(r"[\s\-/]+", "_", norm).strip("_")
    if norm in {c.value for c in Category}:
        return norm
    # Garment words ("pants", "tops") map through the keyword clusters
    phrase = " ".join(value.casefold().split())
    for name, cluster in CATEGORY_CLUSTERS.items():
        if name == phrase or any(match_keyword(phrase, k) is not None for k in cluster.keywords):
            return cluster.category.value
    return norm


def _normalize_price(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        match = re.search(r"\d+(?:\.\d+)?", value.replace(",", ""))
        if not match:
            return None
        value = float(match.group(0))
    if isinstance(value, (int, float)) and value > 0:
        return float(value)
    return None


def _normalize_confidence(value: Any) -> Any:
    if isinstance(value, str):
        word = value.strip().lower()
        if word in CONFIDENCE_WORDS:
            return CONFIDENCE_WORDS[word]
        try:
            value = float(word.rstrip("%"))
        except ValueError:
            return 0.5
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if 1.0 < value <= 100.0:
            value = value / 100.0
        return max(0.0, min(1.0, float(value)))
    return 0.5

"""Deterministic post-processing of validated listings.

Steps run in a fixed order; each one is skipped when its input is missing:

1. OCR mining for brand / size / material the model left empty
2. Brand canonicalization (exact alias, then fuzzy alias match)
3. Size standardization to the marketplace vocabulary
4. Title assembly without overlapping terms
5. Marketplace item specifics for the item-type family
6. Price suggestion
7. Confidence aggregation
"""

import re
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from rapidfuzz import fuzz, process

from ..config import get_settings
from ..models.listing import AccuracyMetrics, ListingRecord
from .candidates import CandidateExtractor
from .dictionaries import (
    BASE_PRICES,
    BRAND_ALIAS_INDEX,
    CONDITION_PRICE_FACTORS,
    GARMENT_BOTTOM,
    GARMENT_TOP,
    PLUS_SIZE_PATTERN,
    PREMIUM_BRANDS,
    SIZE_VOCABULARY,
    WAIST_LENGTH_PATTERN,
    ItemFamily,
    resolve_item_family,
)

logger = logging.getLogger(__name__)


MINED_BRAND_CONFIDENCE = 0.85
MINED_SIZE_CONFIDENCE = 0.9
CANONICAL_BRAND_CONFIDENCE = 0.9
FUZZY_BRAND_CUTOFF = 88
UNMAPPED_SIZE_CONFIDENCE = 0.5

PREMIUM_BRAND_MULTIPLIER = 2.5
KNOWN_BRAND_MULTIPLIER = 1.3

GENDER_QUALIFIERS = {
    "men": "Men's", "mens": "Men's", "men's": "Men's", "male": "Men's",
    "women": "Women's", "womens": "Women's", "women's": "Women's", "female": "Women's",
    "boys": "Boys'", "boy": "Boys'", "boys'": "Boys'",
    "girls": "Girls'", "girl": "Girls'", "girls'": "Girls'",
    "kids": "Kids'", "kid": "Kids'",
}

DEPARTMENTS = {
    "Men's": "Men",
    "Women's": "Women",
    "Boys'": "Boys",
    "Girls'": "Girls",
}

SIZE_PREFIX = re.compile(r"^size\s*[:\-]?\s*", re.IGNORECASE)


@dataclass
class SizeMatch:
    """A size mapped onto the marketplace vocabulary."""
    standard_size: str
    confidence: float
    marketplace_compliant: bool


def gender_qualifier(gender: Optional[str]) -> Optional[str]:
    """Title qualifier for a gender signal; unisex yields nothing."""
    if not gender:
        return None
    key = gender.strip().casefold()
    if not key or key.startswith("unisex"):
        return None
    return GENDER_QUALIFIERS.get(key, gender.strip().title())


class ListingEnhancer:
    """Runs the deterministic enhancement steps over a validated record."""

    def __init__(self, extractor: Optional[CandidateExtractor] = None):
        self.settings = get_settings()
        self.extractor = extractor or CandidateExtractor()
        self._alias_choices = list(BRAND_ALIAS_INDEX.keys())

    def enhance(
        self,
        record: ListingRecord,
        ocr_text: str = "",
        ocr_confidence: float = 0.0,
        repaired: bool = False,
        category_cluster: Optional[str] = None,
    ) -> Tuple[ListingRecord, AccuracyMetrics]:
        """
        Enhance a copy of the record.

        Args:
            record: Validated or repaired listing
            ocr_text: Raw OCR text for mining
            ocr_confidence: OCR confidence (0-1)
            repaired: True when the record is a fallback
            category_cluster: Fused category cluster, used to pick the item family

        Returns:
            Tuple of (enhanced record, accuracy metrics)
        """
        rec = record.model_copy(deep=True)
        scores = {
            "brand": rec.confidence,
            "size": rec.confidence,
            "title": rec.confidence,
            "ocr": rec.confidence,
        }
        compliant = False

        # 1. OCR mining
        if ocr_text and ocr_text.strip():
            scores["ocr"] = ocr_confidence
            if not rec.brand:
                brand = self.extractor.best_brand(ocr_text)
                if brand:
                    rec.brand = brand
                    rec.evidence["brand"] = "ocr"
                    scores["brand"] = MINED_BRAND_CONFIDENCE
            if not rec.size:
                size = self.extractor.best_size(ocr_text)
                if size:
                    rec.size = size
                    rec.evidence["size"] = "ocr"
                    scores["size"] = MINED_SIZE_CONFIDENCE
            if not rec.material:
                materials = self.extractor.extract_materials(ocr_text)
                if materials:
                    rec.material = materials[0]

        # 2. Brand canonicalization
        if rec.brand:
            canonical = self.canonicalize_brand(rec.brand)
            if canonical:
                rec.brand, scores["brand"] = canonical

        # 3. Size standardization
        if rec.size:
            match = self.standardize_size(rec.size)
            rec.size = match.standard_size
            scores["size"] = match.confidence
            compliant = match.marketplace_compliant

        # 4. Title assembly
        title, n_components = self.assemble_title([
            rec.brand,
            rec.item_type,
            gender_qualifier(rec.gender),
            rec.size,
            rec.color,
            rec.material,
        ])
        if n_components >= 2:
            rec.title = title
            scores["title"] = min(1.0, 0.5 + 0.1 * n_components)
        else:
            rec.title = self.dedupe_title(rec.title)

        # 5. Marketplace item specifics
        family = resolve_item_family(rec.item_type, category_cluster)
        rec.item_specifics, completeness = self.populate_item_specifics(rec, family)

        # 6. Price suggestion
        if rec.suggested_price is None:
            rec.suggested_price = self.suggest_price(rec)

        # 7. Confidence aggregation
        metrics = self.aggregate(scores, repaired)
        metrics.specifics_completeness = completeness
        metrics.size_marketplace_compliant = compliant
        rec.confidence = metrics.overall

        logger.info(
            f"Enhanced listing: family={family.name}, overall={metrics.overall:.2f}, "
            f"completeness={completeness:.2f}, repaired={repaired}"
        )
        return rec, metrics

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def canonicalize_brand(self, brand: str) -> Optional[Tuple[str, float]]:
        """
        Map a brand onto its canonical display name.

        Returns:
            (canonical name, confidence), or None when no alias is close enough
        """
        key = " ".join(brand.casefold().split())
        if key in BRAND_ALIAS_INDEX:
            return BRAND_ALIAS_INDEX[key], CANONICAL_BRAND_CONFIDENCE

        match = process.extractOne(
            key, self._alias_choices, scorer=fuzz.ratio, score_cutoff=FUZZY_BRAND_CUTOFF
        )
        if match is None:
            return None
        alias, score, _ = match
        logger.debug(f"Fuzzy brand match: '{brand}' -> '{alias}' ({score:.0f})")
        return BRAND_ALIAS_INDEX[alias], CANONICAL_BRAND_CONFIDENCE * score / 100.0

    def standardize_size(self, size: str) -> SizeMatch:
        """Map a size string onto the marketplace size vocabulary."""
        raw = size.strip()
        token = SIZE_PREFIX.sub("", raw).strip()
        for mapping in SIZE_VOCABULARY:
            m = mapping.regex.match(token)
            if m:
                groups = [g.upper() if len(g) <= 3 else g.title() for g in m.groups()]
                return SizeMatch(mapping.output.format(*groups), mapping.confidence, mapping.compliant)
        return SizeMatch(raw, UNMAPPED_SIZE_CONFIDENCE, False)

    def assemble_title(self, components: List[Optional[str]]) -> Tuple[str, int]:
        """
        Join title components, dropping overlapping terms.

        A term is dropped when it equals, is contained in, or contains a term
        already in the title (case-insensitive).

        Returns:
            (title truncated to the max length, number of components kept)
        """
        kept: List[str] = []
        for term in components:
            if not term or not term.strip():
                continue
            term = " ".join(term.split())
            folded = term.casefold()
            if any(folded in prev.casefold() or prev.casefold() in folded for prev in kept):
                continue
            kept.append(term)
        title = " ".join(kept)[: self.settings.title_max_length].rstrip()
        return title, len(kept)

    def dedupe_title(self, title: str) -> str:
        """
        Drop repeated words from a title that is kept as written.

        Only whole words are compared (case-insensitive), so "Size S" keeps
        its "S".
        """
        seen = set()
        words = []
        for word in title.split():
            key = word.casefold()
            if key in seen:
                continue
            seen.add(key)
            words.append(word)
        deduped = " ".join(words)[: self.settings.title_max_length].rstrip()
        return deduped if len(deduped) >= 3 else title

    def populate_item_specifics(
        self,
        rec: ListingRecord,
        family: ItemFamily,
    ) -> Tuple[Dict[str, str], float]:
        """
        Build the marketplace item specifics for a record.

        Clears the record's garment-part fields that do not belong to the
        family. Returns the specifics and their completeness (0-1).
        """
        if family.garment_part == GARMENT_TOP:
            rec.waist = rec.inseam = rec.rise = None
        elif family.garment_part == GARMENT_BOTTOM:
            rec.sleeve_length = rec.neckline = None

        specifics = dict(rec.item_specifics)
        values = {
            "Brand": rec.brand,
            "Size": rec.size,
            "Color": rec.color,
            "Type": rec.item_type,
            "Material": rec.material,
            "Pattern": rec.pattern,
            "Fit": rec.fit,
            "Closure": rec.closure,
            "Occasion": rec.occasion,
            "Season": rec.season,
            "Style": rec.style_keywords[0] if rec.style_keywords else None,
        }

        if family.garment_part == GARMENT_BOTTOM:
            waist_length = WAIST_LENGTH_PATTERN.match(rec.size or "")
            values["Rise"] = rec.rise
            values["Inseam"] = rec.inseam or (waist_length.group(2) if waist_length else None)
            values["Waist Size"] = rec.waist or (waist_length.group(1) if waist_length else None)
        elif family.garment_part == GARMENT_TOP:
            values["Sleeve Length"] = rec.sleeve_length
            values["Neckline"] = rec.neckline

        for key, value in values.items():
            if value:
                specifics[key] = value

        qualifier = gender_qualifier(rec.gender)
        if qualifier in DEPARTMENTS:
            specifics["Department"] = DEPARTMENTS[qualifier]
        elif not specifics.get("Department"):
            specifics["Department"] = "Unisex Adult"

        size_type = self._size_type(rec)
        if size_type != "Regular" or not specifics.get("Size Type"):
            specifics["Size Type"] = size_type

        allowed = family.aspect_names
        specifics = {k: v for k, v in specifics.items() if k in allowed}

        required = [a.name for a in family.aspects if a.required]
        recommended = [a.name for a in family.aspects if not a.required]
        filled_required = sum(1 for name in required if specifics.get(name))
        filled_recommended = sum(1 for name in recommended if specifics.get(name))
        completeness = 0.0
        if required:
            completeness += 0.7 * filled_required / len(required)
        if recommended:
            completeness += 0.3 * filled_recommended / len(recommended)
        return specifics, round(completeness, 4)

    def _size_type(self, rec: ListingRecord) -> str:
        size = rec.size or ""
        if PLUS_SIZE_PATTERN.search(size):
            return "Plus"
        text = " ".join(filter(None, [size, rec.title, rec.item_type])).casefold()
        if "maternity" in text:
            return "Maternity"
        if "petite" in text:
            return "Petite"
        return "Regular"

    def suggest_price(self, rec: ListingRecord) -> float:
        """Deterministic price estimate from category, brand and condition."""
        price = BASE_PRICES[rec.category]
        if rec.brand:
            price *= PREMIUM_BRAND_MULTIPLIER if rec.brand in PREMIUM_BRANDS else KNOWN_BRAND_MULTIPLIER
        price *= CONDITION_PRICE_FACTORS[rec.condition]
        return float(max(1, round(price)))

    def aggregate(self, scores: Dict[str, float], repaired: bool = False) -> AccuracyMetrics:
        """Equal-weight average of the four sub-scores."""
        def clamp(value: float) -> float:
            value = max(0.0, min(1.0, value))
            if repaired:
                value = min(value, self.settings.fallback_confidence)
            return value

        brand = clamp(scores["brand"])
        size = clamp(scores["size"])
        title = clamp(scores["title"])
        ocr = clamp(scores["ocr"])
        overall = 0.25 * brand + 0.25 * size + 0.25 * title + 0.25 * ocr
        return AccuracyMetrics(
            brand_confidence=brand,
            size_confidence=size,
            title_quality=title,
            ocr_confidence=ocr,
            overall=max(0.0, min(1.0, overall)),
        )

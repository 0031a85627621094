"""Candidate extraction from OCR text and vision annotations.

Every piece of raw evidence is split into fragments (OCR lines, one fragment
per label / web entity / localized object) and scanned against the dictionary
tables. Each hit becomes a scored ``Candidate``; nothing is deduplicated here,
fusion decides.

Scoring:
- whole-fragment match: 3
- substring (word-bounded) match: 1
- bottom-garment keywords are boosted to 5 / 2
- structural size pairs (waist x length, bra, tag codes): 2
"""

import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Iterable, List, Optional, Tuple

from .dictionaries import (
    BOTTOM_KEYWORDS,
    BRAND_ALIASES,
    CATEGORY_CLUSTERS,
    COLOR_PALETTE,
    CONDITION_KEYWORDS,
    MATERIAL_KEYWORDS,
    SIZE_DOMAIN_CLUSTERS,
    SIZE_PATTERNS,
)

logger = logging.getLogger(__name__)


EXACT_MATCH_SCORE = 3.0
PARTIAL_MATCH_SCORE = 1.0
BOOSTED_EXACT_SCORE = 5.0
BOOSTED_PARTIAL_SCORE = 2.0
WAIST_LENGTH_CATEGORY_SCORE = 1.0


class EvidenceSource(str, Enum):
    """Origin of a piece of evidence."""
    OCR_TEXT = "ocr_text"
    WEB_ENTITY = "web_entity"
    VISION_LABEL = "vision_label"
    LOCALIZED_OBJECT = "localized_object"

    @property
    def weight(self) -> int:
        """Priority weight: printed text beats web matches beats labels."""
        return _SOURCE_WEIGHTS[self]


_SOURCE_WEIGHTS = {
    EvidenceSource.OCR_TEXT: 3,
    EvidenceSource.WEB_ENTITY: 2,
    EvidenceSource.VISION_LABEL: 1,
    EvidenceSource.LOCALIZED_OBJECT: 1,
}


class AttributeName(str, Enum):
    """Attributes scored from raw evidence."""
    CATEGORY = "category"
    BRAND = "brand"
    SIZE = "size"
    COLOR = "color"
    CONDITION = "condition"


@dataclass
class Candidate:
    """A possible value for one attribute, with where it came from."""
    attribute: AttributeName
    value: str
    score: float
    source: EvidenceSource
    matched: str = ""

    @property
    def weighted_score(self) -> float:
        return self.score * self.source.weight


@dataclass
class LabelAnnotation:
    description: str
    score: float = 0.0


@dataclass
class WebEntity:
    description: str
    score: float = 0.0


@dataclass
class LocalizedObject:
    name: str
    score: float = 0.0


@dataclass
class VisionEvidence:
    """Raw evidence returned by the vision/OCR service."""
    ocr_text: str = ""
    labels: List[LabelAnnotation] = field(default_factory=list)
    web_entities: List[WebEntity] = field(default_factory=list)
    objects: List[LocalizedObject] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.ocr_text.strip() or self.labels or self.web_entities or self.objects)

    def merge(self, other: "VisionEvidence") -> "VisionEvidence":
        """Combine two evidence sets (used when several images are annotated)."""
        texts = [t for t in (self.ocr_text, other.ocr_text) if t and t.strip()]
        return VisionEvidence(
            ocr_text="\n".join(texts),
            labels=self.labels + other.labels,
            web_entities=self.web_entities + other.web_entities,
            objects=self.objects + other.objects,
        )


@dataclass
class Fragment:
    """One unit of text scanned for matches."""
    text: str
    source: EvidenceSource

    @property
    def normalized(self) -> str:
        return _normalize(self.text)


def _normalize(text: str) -> str:
    return " ".join(text.casefold().split())


@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> "re.Pattern[str]":
    # Word-bounded; apostrophes count as word characters so "levi" misses "levi's"
    return re.compile(r"(?<![\w'’])" + re.escape(keyword) + r"(?![\w'’])")


def match_keyword(fragment: str, keyword: str) -> Optional[bool]:
    """
    Match a keyword against a normalized fragment.

    Returns:
        True for a whole-fragment match, False for a word-bounded substring
        match, None when the keyword does not occur.
    """
    if fragment == keyword:
        return True
    if _keyword_pattern(keyword).search(fragment):
        return False
    return None


class CandidateExtractor:
    """Scans evidence fragments against the dictionary tables."""

    def extract(self, evidence: VisionEvidence) -> List[Candidate]:
        """
        Extract every attribute candidate from one evidence set.

        Args:
            evidence: OCR text plus vision annotations

        Returns:
            Flat candidate list (may be empty)
        """
        fragments = self.fragments(evidence)
        if not fragments:
            return []

        candidates: List[Candidate] = []
        candidates.extend(self.extract_categories(fragments))
        candidates.extend(self.extract_brands(fragments))
        candidates.extend(self.extract_colors(fragments))
        candidates.extend(self.extract_conditions(fragments))
        for frag in fragments:
            candidates.extend(self.extract_sizes(frag.text, frag.source))

        logger.debug(f"Extracted {len(candidates)} candidates from {len(fragments)} fragments")
        return candidates

    def fragments(self, evidence: VisionEvidence) -> List[Fragment]:
        """Split evidence into scan units."""
        frags = [
            Fragment(line.strip(), EvidenceSource.OCR_TEXT)
            for line in (evidence.ocr_text or "").splitlines()
            if line.strip()
        ]
        frags.extend(
            Fragment(l.description, EvidenceSource.VISION_LABEL)
            for l in evidence.labels if l.description and l.description.strip()
        )
        frags.extend(
            Fragment(w.description, EvidenceSource.WEB_ENTITY)
            for w in evidence.web_entities if w.description and w.description.strip()
        )
        frags.extend(
            Fragment(o.name, EvidenceSource.LOCALIZED_OBJECT)
            for o in evidence.objects if o.name and o.name.strip()
        )
        return frags

    # -------------------------------------------------------------------------
    # Keyword families
    # -------------------------------------------------------------------------

    def _scan(
        self,
        fragments: Iterable[Fragment],
        attribute: AttributeName,
        entries: Iterable[Tuple[str, Tuple[str, ...]]],
        boosted: frozenset = frozenset(),
    ) -> List[Candidate]:
        """
        Scan fragments against (value, keywords) entries.

        Each entry fires at most once per fragment, at its best-scoring keyword.
        """
        entries = list(entries)
        found = []
        for frag in fragments:
            text = frag.normalized
            for value, keywords in entries:
                best: Optional[Tuple[float, str]] = None
                for keyword in keywords:
                    hit = match_keyword(text, keyword)
                    if hit is None:
                        continue
                    if keyword in boosted:
                        score = BOOSTED_EXACT_SCORE if hit else BOOSTED_PARTIAL_SCORE
                    else:
                        score = EXACT_MATCH_SCORE if hit else PARTIAL_MATCH_SCORE
                    if best is None or score > best[0]:
                        best = (score, keyword)
                if best:
                    found.append(Candidate(attribute, value, best[0], frag.source, best[1]))
        return found

    def extract_categories(self, fragments: Iterable[Fragment]) -> List[Candidate]:
        entries = ((name, c.keywords) for name, c in CATEGORY_CLUSTERS.items())
        return self._scan(fragments, AttributeName.CATEGORY, entries, boosted=BOTTOM_KEYWORDS)

    def extract_brands(
        self,
        fragments: Iterable[Fragment],
        source: Optional[EvidenceSource] = None,
    ) -> List[Candidate]:
        """Alias scan; the candidate value is always the canonical display name."""
        if source is not None:
            fragments = [Fragment(f.text, source) for f in fragments]
        entries = (
            (canonical, tuple(dict.fromkeys(aliases + (canonical.casefold(),))))
            for canonical, aliases in BRAND_ALIASES.items()
        )
        return self._scan(fragments, AttributeName.BRAND, entries)

    def extract_colors(self, fragments: Iterable[Fragment]) -> List[Candidate]:
        entries = ((color.title(), (color,)) for color in COLOR_PALETTE)
        return self._scan(fragments, AttributeName.COLOR, entries)

    def extract_conditions(self, fragments: Iterable[Fragment]) -> List[Candidate]:
        entries = ((cond.value, phrases) for cond, phrases in CONDITION_KEYWORDS)
        return self._scan(fragments, AttributeName.CONDITION, entries)

    # -------------------------------------------------------------------------
    # Sizes
    # -------------------------------------------------------------------------

    def extract_sizes(self, text: str, source: EvidenceSource = EvidenceSource.OCR_TEXT) -> List[Candidate]:
        """
        Run every size domain's patterns over one piece of text.

        Unambiguous waist x length hits in OCR text (W32 L34, 32W 34L) also
        emit a weak "bottoms" category candidate. Bare 24x36 pairs only yield
        a size.
        """
        found = []
        if not text:
            return found
        for domain, patterns in SIZE_PATTERNS.items():
            for pattern in patterns:
                for match in pattern.regex.finditer(text):
                    value = pattern.normalize(match)
                    if not value:
                        continue
                    found.append(Candidate(
                        AttributeName.SIZE, value, pattern.score, source, match.group(0),
                    ))
                    cluster = SIZE_DOMAIN_CLUSTERS.get(domain)
                    if cluster and pattern.implies_cluster and source == EvidenceSource.OCR_TEXT and pattern.score > 1:
                        found.append(Candidate(
                            AttributeName.CATEGORY, cluster, WAIST_LENGTH_CATEGORY_SCORE,
                            source, match.group(0),
                        ))
        return found

    # -------------------------------------------------------------------------
    # Helpers used by the enhancer's OCR mining step
    # -------------------------------------------------------------------------

    def best_brand(self, text: str) -> Optional[str]:
        """Highest-scoring brand found in free text."""
        frags = [Fragment(line, EvidenceSource.OCR_TEXT) for line in text.splitlines() if line.strip()]
        return _best_value(self.extract_brands(frags))

    def best_size(self, text: str) -> Optional[str]:
        """Highest-scoring size found in free text."""
        sizes = []
        for line in text.splitlines():
            sizes.extend(self.extract_sizes(line))
        return _best_value([c for c in sizes if c.attribute == AttributeName.SIZE])

    def extract_materials(self, text: str) -> List[str]:
        """Materials named in free text, title-cased, in first-seen order."""
        norm = _normalize(text or "")
        found = []
        for material in MATERIAL_KEYWORDS:
            if match_keyword(norm, material) is not None:
                found.append(material.title())
        return found


def _best_value(candidates: List[Candidate]) -> Optional[str]:
    if not candidates:
        return None
    totals = {}
    for cand in candidates:
        totals[cand.value] = totals.get(cand.value, 0.0) + cand.weighted_score
    return max(totals.items(), key=lambda kv: (kv[1], -list(totals).index(kv[0])))[0]

"""Evidence fusion: pick one value per attribute from scored candidates.

A candidate's weight is ``score * source.weight``. Candidates are grouped per
attribute by casefolded value and the group sums compete:

1. highest summed score wins
2. category ties prefer the more specific cluster (bottoms over clothing)
3. remaining ties go to the lexicographically smallest value

Groups below the attribute's floor produce no value.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .candidates import AttributeName, Candidate, EvidenceSource
from .dictionaries import CATEGORY_CLUSTERS, cluster_category
from ..config import get_settings
from ..models.listing import Category

logger = logging.getLogger(__name__)


DEFAULT_SATURATION = 9.0  # Three exact OCR matches
DEFAULT_FLOOR = 1.0


@dataclass(frozen=True)
class FusedAttribute:
    """The single best value chosen for one attribute."""
    attribute: AttributeName
    value: Optional[str]
    confidence: float
    evidence: Optional[EvidenceSource]
    score: float

    @classmethod
    def absent(cls, attribute: AttributeName) -> "FusedAttribute":
        return cls(attribute, None, 0.0, None, 0.0)

    @property
    def is_present(self) -> bool:
        return self.value is not None

    @property
    def category(self) -> Category:
        """Marketplace category (category attribute only)."""
        return cluster_category(self.value)


@dataclass
class _Group:
    key: str
    value: str
    total: float
    best_single: float
    evidence: EvidenceSource
    first_seen: int


class EvidenceFusion:
    """Combines candidates into one ``FusedAttribute`` per attribute."""

    def __init__(
        self,
        min_scores: Optional[Dict[AttributeName, float]] = None,
        saturation: float = DEFAULT_SATURATION,
    ):
        self.settings = get_settings()
        self.min_scores = {AttributeName.BRAND: self.settings.brand_min_score}
        if min_scores:
            self.min_scores.update(min_scores)
        self.saturation = saturation

    def fuse(self, candidates: Iterable[Candidate]) -> Dict[AttributeName, FusedAttribute]:
        """
        Fuse candidates.

        Every attribute is present in the result; missing evidence yields
        ``FusedAttribute.absent``.
        """
        by_attribute: Dict[AttributeName, List[Candidate]] = {a: [] for a in AttributeName}
        for cand in candidates:
            by_attribute[cand.attribute].append(cand)

        fused = {}
        for attribute, cands in by_attribute.items():
            fused[attribute] = self.fuse_attribute(attribute, cands)
        return fused

    def fuse_attribute(self, attribute: AttributeName, candidates: List[Candidate]) -> FusedAttribute:
        groups = self._group(candidates)
        if not groups:
            return FusedAttribute.absent(attribute)

        winner = min(groups, key=lambda g: self._rank(attribute, g))
        floor = self.min_scores.get(attribute, DEFAULT_FLOOR)
        if winner.total < floor:
            logger.debug(f"Fusion: {attribute.value} '{winner.value}' below floor ({winner.total} < {floor})")
            return FusedAttribute.absent(attribute)

        confidence = min(1.0, winner.total / self.saturation)
        logger.debug(f"Fusion: {attribute.value} = '{winner.value}' (score={winner.total}, conf={confidence:.2f})")
        return FusedAttribute(
            attribute=attribute,
            value=winner.value,
            confidence=confidence,
            evidence=winner.evidence,
            score=winner.total,
        )

    def _group(self, candidates: List[Candidate]) -> List[_Group]:
        groups: Dict[str, _Group] = {}
        for i, cand in enumerate(candidates):
            if not cand.value:
                continue
            key = cand.value.casefold()
            weight = cand.weighted_score
            group = groups.get(key)
            if group is None:
                groups[key] = _Group(key, cand.value, weight, weight, cand.source, i)
                continue
            group.total += weight
            # Heaviest single contributor names the group; first seen wins ties
            if weight > group.best_single:
                group.best_single = weight
                group.value = cand.value
                group.evidence = cand.source
        return list(groups.values())

    def _rank(self, attribute: AttributeName, group: _Group):
        specificity = 0
        if attribute == AttributeName.CATEGORY:
            cluster = CATEGORY_CLUSTERS.get(group.key)
            specificity = cluster.specificity if cluster else 0
        return (-group.total, -specificity, group.key)

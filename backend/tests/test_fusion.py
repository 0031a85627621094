"""Tests for evidence fusion."""

import pytest

from listing_service.models.listing import Category
from listing_service.services.candidates import (
    AttributeName,
    Candidate,
    CandidateExtractor,
    EvidenceSource,
    LabelAnnotation,
    VisionEvidence,
)
from listing_service.services.fusion import EvidenceFusion, FusedAttribute


@pytest.fixture
def fusion():
    """Create fusion instance."""
    return EvidenceFusion()


@pytest.fixture
def extractor():
    return CandidateExtractor()


def brand(value, score, source):
    return Candidate(AttributeName.BRAND, value, score, source, value.lower())


class TestGrouping:
    """Test grouping and display values."""

    def test_casing_variants_combine(self, fusion):
        """Gap (OCR, 4) and GAP (label, 1) fuse to Gap with 4*3 + 1*1."""
        fused = fusion.fuse([
            brand("Gap", 4, EvidenceSource.OCR_TEXT),
            brand("GAP", 1, EvidenceSource.VISION_LABEL),
        ])
        result = fused[AttributeName.BRAND]
        assert result.value == "Gap"
        assert result.score == 13.0
        assert result.evidence == EvidenceSource.OCR_TEXT
        assert result.confidence == 1.0

    def test_heaviest_contributor_names_group(self, fusion):
        fused = fusion.fuse([
            brand("NIKE", 1, EvidenceSource.VISION_LABEL),
            brand("Nike", 3, EvidenceSource.WEB_ENTITY),
        ])
        assert fused[AttributeName.BRAND].value == "Nike"
        assert fused[AttributeName.BRAND].evidence == EvidenceSource.WEB_ENTITY

    def test_first_seen_wins_equal_weight(self, fusion):
        fused = fusion.fuse([
            brand("GAP", 1, EvidenceSource.OCR_TEXT),
            brand("Gap", 1, EvidenceSource.OCR_TEXT),
        ])
        assert fused[AttributeName.BRAND].value == "GAP"


class TestWinnerSelection:
    """Test winner ranking and tie-breaks."""

    def test_highest_score_wins(self, fusion):
        fused = fusion.fuse([
            brand("Nike", 1, EvidenceSource.VISION_LABEL),
            brand("Adidas", 1, EvidenceSource.OCR_TEXT),
        ])
        assert fused[AttributeName.BRAND].value == "Adidas"

    def test_category_tie_prefers_specific_cluster(self, fusion):
        fused = fusion.fuse([
            Candidate(AttributeName.CATEGORY, "clothing", 3, EvidenceSource.VISION_LABEL),
            Candidate(AttributeName.CATEGORY, "bottoms", 3, EvidenceSource.VISION_LABEL),
        ])
        assert fused[AttributeName.CATEGORY].value == "bottoms"
        assert fused[AttributeName.CATEGORY].category == Category.CLOTHING

    def test_remaining_ties_lexicographic(self, fusion):
        fused = fusion.fuse([
            Candidate(AttributeName.COLOR, "Red", 1, EvidenceSource.VISION_LABEL),
            Candidate(AttributeName.COLOR, "Blue", 1, EvidenceSource.VISION_LABEL),
        ])
        assert fused[AttributeName.COLOR].value == "Blue"

    def test_idempotent(self, fusion, extractor):
        """Fusing the same candidates twice gives the same result."""
        evidence = VisionEvidence(
            ocr_text="LEVI'S\n501\nW32 L34\nMade in Mexico",
            labels=[LabelAnnotation("Jeans"), LabelAnnotation("Blue"), LabelAnnotation("Denim")],
        )
        candidates = extractor.extract(evidence)
        assert fusion.fuse(candidates) == fusion.fuse(list(candidates))


class TestFloors:
    """Test minimum-score floors."""

    def test_brand_below_floor_absent(self, fusion):
        fused = fusion.fuse([brand("Nike", 1, EvidenceSource.VISION_LABEL)])
        assert fused[AttributeName.BRAND] == FusedAttribute.absent(AttributeName.BRAND)

    def test_brand_at_floor_present(self, fusion):
        fused = fusion.fuse([brand("Nike", 2, EvidenceSource.VISION_LABEL)])
        assert fused[AttributeName.BRAND].value == "Nike"

    def test_custom_floor(self):
        fusion = EvidenceFusion(min_scores={AttributeName.COLOR: 5.0})
        fused = fusion.fuse([Candidate(AttributeName.COLOR, "Red", 3, EvidenceSource.VISION_LABEL)])
        assert fused[AttributeName.COLOR].value is None


class TestAbsence:
    """Test empty evidence."""

    def test_all_attributes_present_and_null(self, fusion):
        fused = fusion.fuse([])
        assert set(fused) == set(AttributeName)
        for attr, result in fused.items():
            assert result.value is None
            assert result.confidence == 0.0
            assert result.evidence is None
            assert result.score == 0.0
        assert fused[AttributeName.CATEGORY].category == Category.OTHER


class TestLevisScenario:
    """OCR text LEVI'S 501 W32 L34."""

    def test_fused_values(self, fusion, extractor):
        candidates = extractor.extract(VisionEvidence(ocr_text="LEVI'S 501 W32 L34"))
        fused = fusion.fuse(candidates)

        assert fused[AttributeName.BRAND].value == "Levi's"
        assert fused[AttributeName.SIZE].value == "32x34"
        assert fused[AttributeName.CATEGORY].value == "bottoms"
        assert fused[AttributeName.CATEGORY].category == Category.CLOTHING
        assert 0.0 < fused[AttributeName.BRAND].confidence <= 1.0


class TestPosterScenario:
    """OCR text with a print dimension and no garment words."""

    def test_dimension_does_not_pull_toward_clothing(self, fusion, extractor):
        candidates = extractor.extract(VisionEvidence(ocr_text="Vintage Movie Poster 24x36"))
        fused = fusion.fuse(candidates)

        assert fused[AttributeName.CATEGORY].value == "collectibles"
        assert fused[AttributeName.CATEGORY].category == Category.COLLECTIBLES
        assert fused[AttributeName.SIZE].value == "24x36"

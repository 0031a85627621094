"""Tests for candidate extraction."""

import pytest

from listing_service.services.candidates import (
    AttributeName,
    CandidateExtractor,
    EvidenceSource,
    Fragment,
    LabelAnnotation,
    LocalizedObject,
    VisionEvidence,
    WebEntity,
    match_keyword,
)


@pytest.fixture
def extractor():
    """Create extractor instance."""
    return CandidateExtractor()


def values(candidates, attribute):
    return [c.value for c in candidates if c.attribute == attribute]


class TestEvidenceSource:
    """Test source priority weights."""

    def test_weights(self):
        """OCR text outranks web entities, which outrank labels and objects."""
        assert EvidenceSource.OCR_TEXT.weight == 3
        assert EvidenceSource.WEB_ENTITY.weight == 2
        assert EvidenceSource.VISION_LABEL.weight == 1
        assert EvidenceSource.LOCALIZED_OBJECT.weight == 1


class TestMatchKeyword:
    """Test word-bounded keyword matching."""

    def test_whole_fragment(self):
        assert match_keyword("jeans", "jeans") is True

    def test_substring(self):
        assert match_keyword("blue jeans 501", "jeans") is False

    def test_word_boundary(self):
        """Keywords inside other words do not match."""
        assert match_keyword("earrings", "ring") is None
        assert match_keyword("gapped", "gap") is None

    def test_apostrophe_is_part_of_word(self):
        assert match_keyword("levi's", "levi") is None
        assert match_keyword("levi's", "levi's") is True


class TestFragments:
    """Test evidence splitting."""

    def test_ocr_lines_and_annotations(self, extractor):
        evidence = VisionEvidence(
            ocr_text="LEVI'S\n\n  501  \n",
            labels=[LabelAnnotation("Jeans", 0.9)],
            web_entities=[WebEntity("Denim", 0.5)],
            objects=[LocalizedObject("Pants", 0.8)],
        )
        frags = extractor.fragments(evidence)

        assert [f.text for f in frags] == ["LEVI'S", "501", "Jeans", "Denim", "Pants"]
        assert [f.source for f in frags] == [
            EvidenceSource.OCR_TEXT,
            EvidenceSource.OCR_TEXT,
            EvidenceSource.VISION_LABEL,
            EvidenceSource.WEB_ENTITY,
            EvidenceSource.LOCALIZED_OBJECT,
        ]

    def test_empty_evidence_yields_no_candidates(self, extractor):
        assert extractor.extract(VisionEvidence()) == []
        assert extractor.extract(VisionEvidence(ocr_text="   \n")) == []


class TestCategoryCandidates:
    """Test category cluster scoring."""

    def test_exact_bottom_keyword_boosted(self, extractor):
        cands = extractor.extract_categories([Fragment("Jeans", EvidenceSource.VISION_LABEL)])
        bottoms = [c for c in cands if c.value == "bottoms"]
        assert len(bottoms) == 1
        assert bottoms[0].score == 5.0

    def test_partial_bottom_keyword_boosted(self, extractor):
        cands = extractor.extract_categories([Fragment("Slim fit chinos", EvidenceSource.OCR_TEXT)])
        bottoms = [c for c in cands if c.value == "bottoms"]
        assert bottoms[0].score == 2.0

    def test_exact_and_partial_scores(self, extractor):
        exact = extractor.extract_categories([Fragment("Jacket", EvidenceSource.VISION_LABEL)])
        partial = extractor.extract_categories([Fragment("Wool jacket", EvidenceSource.VISION_LABEL)])
        assert [c.score for c in exact if c.value == "outerwear"] == [3.0]
        assert [c.score for c in partial if c.value == "outerwear"] == [1.0]

    def test_waist_length_implies_bottoms(self, extractor):
        cands = extractor.extract(VisionEvidence(ocr_text="W32 L34"))
        bottoms = [c for c in cands if c.attribute == AttributeName.CATEGORY and c.value == "bottoms"]
        assert len(bottoms) == 1
        assert bottoms[0].score == 1.0
        assert bottoms[0].source == EvidenceSource.OCR_TEXT


class TestBrandCandidates:
    """Test brand alias scanning."""

    def test_alias_emits_canonical_name(self, extractor):
        cands = extractor.extract(VisionEvidence(ocr_text="LEVI STRAUSS & CO"))
        assert values(cands, AttributeName.BRAND) == ["Levi's"]

    def test_one_candidate_per_brand_per_fragment(self, extractor):
        """Several aliases of one brand in a fragment still count once."""
        cands = extractor.extract(VisionEvidence(ocr_text="LEVI'S 501"))
        assert values(cands, AttributeName.BRAND) == ["Levi's"]

    def test_duplicates_across_fragments_kept(self, extractor):
        cands = extractor.extract(VisionEvidence(
            ocr_text="GAP",
            labels=[LabelAnnotation("Gap")],
        ))
        brands = [c for c in cands if c.attribute == AttributeName.BRAND]
        assert len(brands) == 2
        assert {c.source for c in brands} == {EvidenceSource.OCR_TEXT, EvidenceSource.VISION_LABEL}
        assert all(c.score == 3.0 for c in brands)

    def test_source_override(self, extractor):
        cands = extractor.extract_brands([Fragment("nike", EvidenceSource.OCR_TEXT)], EvidenceSource.WEB_ENTITY)
        assert cands[0].source == EvidenceSource.WEB_ENTITY


class TestSizeCandidates:
    """Test structural size patterns."""

    @pytest.mark.parametrize("text,expected", [
        ("W32 L34", "32x34"),
        ("32 x 34", "32x34"),
        ("32W 34L", "32x34"),
        ("32/32", "32x32"),
        ("XL", "XL"),
        ("Size: M", "M"),
        ("8A", "8A"),
        ("36DD", "36DD"),
        ("Ring Size 7", "Ring 7"),
        ("OSFA", "One Size"),
        ("medium", "Medium"),
    ])
    def test_patterns(self, extractor, text, expected):
        found = [c.value for c in extractor.extract_sizes(text) if c.attribute == AttributeName.SIZE]
        assert expected in found

    def test_pair_patterns_score_two(self, extractor):
        sizes = [c for c in extractor.extract_sizes("W32 L34") if c.attribute == AttributeName.SIZE]
        assert sizes[0].score == 2.0

    @pytest.mark.parametrize("text", ["Vintage Movie Poster 24x36", "Frame 16 x 20", "Print 30/32"])
    def test_bare_pairs_are_not_bottoms_evidence(self, extractor, text):
        """Dimension-like pairs still yield a size, but no category."""
        cands = extractor.extract_sizes(text)
        assert values(cands, AttributeName.SIZE)
        assert values(cands, AttributeName.CATEGORY) == []

    def test_letter_sizes_need_uppercase(self, extractor):
        """Lowercase single letters in prose are not sizes."""
        found = [c.value for c in extractor.extract_sizes("this is a small m") if c.value in ("S", "M")]
        assert found == []

    def test_possessive_s_is_not_a_size(self, extractor):
        found = [c.value for c in extractor.extract_sizes("LEVI'S") if c.attribute == AttributeName.SIZE]
        assert found == []


class TestColorAndCondition:
    """Test color palette and condition keyword scans."""

    def test_colors_title_cased(self, extractor):
        cands = extractor.extract(VisionEvidence(labels=[LabelAnnotation("navy")]))
        assert values(cands, AttributeName.COLOR) == ["Navy"]

    def test_condition_phrases(self, extractor):
        cands = extractor.extract(VisionEvidence(ocr_text="NWT\nnew with tags"))
        assert values(cands, AttributeName.CONDITION) == ["new", "new"]

    def test_like_new(self, extractor):
        cands = extractor.extract(VisionEvidence(ocr_text="like new"))
        assert values(cands, AttributeName.CONDITION) == ["like_new"]


class TestMiningHelpers:
    """Test helpers used for OCR mining."""

    def test_best_brand(self, extractor):
        assert extractor.best_brand("CARE LABEL\nThe North Face\nMADE IN VIETNAM") == "The North Face"

    def test_best_brand_none(self, extractor):
        assert extractor.best_brand("MADE IN CHINA") is None

    def test_best_size_prefers_structural(self, extractor):
        assert extractor.best_size("LEVI'S 501\nW32 L34") == "32x34"

    def test_materials(self, extractor):
        assert extractor.extract_materials("98% Cotton 2% Elastane") == ["Cotton", "Elastane"]

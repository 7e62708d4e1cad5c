"""Tests for structural cleanup and budgeted text reduction."""

import sys
from pathlib import Path

import pytest

# Add parent directory to path so we can import the modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from preprocessing import (
    CHARS_PER_TOKEN,
    normalize_structure,
    reduce_text,
    score_section,
    split_sections,
)

FILLER = "Lorem ipsum dolor amet consectetur adipiscing elit sed do eiusmod tempor number {n}."


def _long_document(filler_count: int = 400) -> str:
    lead = [f"Intro paragraph {n} for the Bayside residence." for n in range(1, 4)]
    filler = [FILLER.format(n=n) for n in range(filler_count)]
    payment = "Payment terms: progress claim due within 10 business days of the invoice date."
    return "\n\n".join(lead + filler[: filler_count // 2] + [payment] + filler[filler_count // 2:])


class TestNormalizeStructure:
    def test_repeated_header_kept_once(self):
        page = "ACME BUILDERS CONFIDENTIAL\nClause {n} applies."
        text = "\n".join(page.format(n=n) for n in range(5))
        result = normalize_structure(text)
        assert result.count("ACME BUILDERS CONFIDENTIAL") == 1
        assert "Clause 4 applies." in result

    def test_lines_repeated_twice_survive(self):
        text = "Retention 5%\nSomething else\nRetention 5%"
        assert normalize_structure(text).count("Retention 5%") == 2

    def test_page_markers_are_not_headers(self):
        text = "[Page 1]\nA\n\n[Page 1]\nB\n\n[Page 1]\nC"
        assert normalize_structure(text).count("[Page 1]") == 3

    def test_page_numbers_stripped(self):
        text = "Scope of works\nPage 3 of 10\nExcavation\n- 4 -\nFootings\n12\nSlab"
        result = normalize_structure(text)
        assert "Page 3 of 10" not in result
        assert "- 4 -" not in result
        assert "\n12\n" not in result
        assert "Excavation" in result
        assert "Slab" in result

    def test_ellipses_and_dashes_normalized(self):
        result = normalize_structure("Contents… Clause 1 .... 4\n2024—2025 – final")
        assert result == "Contents... Clause 1 ... 4\n2024-2025 - final"


class TestSplitSections:
    def test_paragraphs(self):
        assert split_sections("One\n\nTwo\n  \nThree") == ["One", "Two", "Three"]

    def test_oversized_block_is_split(self):
        sections = split_sections("word " * 2000)
        assert len(sections) > 1
        assert all(len(s) <= 2000 for s in sections)


class TestScoreSection:
    def test_counts_distinct_keywords(self):
        assert score_section("Payment of the contract sum; payment on completion") == 3

    def test_no_keywords(self):
        assert score_section(FILLER.format(n=1)) == 0

    def test_multi_word_keyword(self):
        assert score_section("See the site plan") == 1


class TestReduceText:
    def test_short_text_only_normalized(self):
        assert reduce_text("Tax invoice — INV-7", 1000) == "Tax invoice - INV-7"

    def test_zero_budget(self):
        assert reduce_text("anything", 0) == ""

    def test_empty(self):
        assert reduce_text("", 100) == ""

    @pytest.mark.parametrize("token_budget", [1, 10, 50, 100, 500, 2000])
    def test_never_exceeds_char_budget(self, token_budget: int):
        result = reduce_text(_long_document(), token_budget)
        assert len(result) <= token_budget * CHARS_PER_TOKEN

    def test_unbroken_text_is_bounded(self):
        result = reduce_text("word " * 50_000, 1000)
        assert 0 < len(result) <= 4000

    def test_keeps_lead_and_keyword_sections(self):
        result = reduce_text(_long_document(), 100)
        assert result.startswith("Intro paragraph 1")
        assert "Intro paragraph 3" in result
        assert "Payment terms: progress claim" in result
        assert "Lorem ipsum" not in result

    def test_sections_stay_in_document_order(self):
        text = "\n\n".join([
            "Cover page for Lot 12.",
            "Prepared by the owner.",
            "Issued for tender.",
            "Filler paragraph without relevant words.",
            "Invoice total and GST amount payable.",
            "Another filler paragraph.",
            "Contract termination requires 14 days notice.",
        ] + ["Filler paragraph number {n} with nothing else.".format(n=n) for n in range(50)])
        result = reduce_text(text, 60)
        assert result.index("Invoice total") < result.index("Contract termination")
        assert "Filler paragraph" not in result

    def test_duplicate_sections_kept_once(self):
        repeated = "Payment terms: 30 days from invoice date."
        text = "\n\n".join(
            ["Lead one.", "Lead two.", "Lead three."]
            + [repeated, FILLER.format(n=1)] * 40
        )
        result = reduce_text(text, 100)
        assert result.count(repeated) == 1

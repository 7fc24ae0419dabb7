"""
Tests for document structure analysis: headers, segmentation, classification,
entities and label metadata.
"""

from notes_parser.core import structure_analyzer
from notes_parser.core.structure_analyzer import (
    analyze,
    classify_section,
    determine_document_type,
    extract_entities,
    extract_metadata,
    is_header_line,
    segment,
)

NOTES = (
    "Acme Corp Client Notes\n"
    "Client: Acme Corp\n"
    "Industry: Software\n"
    "\n"
    "Competitors\n"
    "• IBM\n"
    "• AWS\n"
    "\n"
    "Tier 1: IGN, GameSpot\n"
    "Tier 2: PC Gamer"
)


class TestHeaders:
    def test_title_case_line_followed_by_content(self):
        assert is_header_line("Competitive Intelligence", "• IBM")

    def test_colon_terminated_line(self):
        assert is_header_line("Sources:", "IGN, GameSpot")

    def test_label_with_value_is_not_header(self):
        assert not is_header_line("Client: Acme Corp", "Industry: Software")

    def test_header_needs_following_content(self):
        assert not is_header_line("Competitors", "")
        assert not is_header_line("Competitors", None)

    def test_sentence_is_not_header(self):
        assert not is_header_line("The client is a leading publisher", "More text")


class TestClassification:
    def test_source_section(self):
        assert classify_section("Tier 1: IGN, GameSpot\nTier 2: PC Gamer") == "source"

    def test_exclude_section(self):
        assert classify_section("Avoid coverage of layoffs and lawsuits") == "exclude"

    def test_no_keywords_is_unknown(self):
        assert classify_section("Lorem ipsum dolor sit amet") == "unknown"

    def test_tie_goes_to_description(self, monkeypatch):
        monkeypatch.setattr(
            structure_analyzer,
            "score_section_types",
            lambda fragment: {"client": 20.0, "industry": 20.0, "source": 5.0},
        )
        assert classify_section("anything") == "description"

    def test_earlier_keywords_weigh_more(self):
        scores = structure_analyzer.score_section_types("client text text text text industry")
        assert scores["client"] > scores["industry"] > 0


class TestSegmentation:
    def test_short_fragments_are_dropped(self):
        assert segment("Too short") == []

    def test_families_may_overlap(self):
        text = "Competitors\n• IBM Corporation\n• Amazon Web Services"
        fragments = segment(text)
        assert [family for family, _, _ in fragments] == ["paragraph", "list"]
        assert fragments[0][1] == 0
        assert fragments[1][1] == len("Competitors\n")

    def test_table_blocks_are_detected(self):
        text = "| Client | Acme Corp |\n| Industry | Gaming |"
        families = [family for family, _, _ in segment(text)]
        assert "table" in families


def test_analyze_sections_and_headers():
    structure = analyze(NOTES)

    assert structure.headers == ["Acme Corp Client Notes", "Competitors"]
    assert structure.has_headers
    assert structure.has_bullets
    assert structure.document_type == "semi-structured"
    assert structure.line_count == 10

    assert len(structure.sections) == 3
    first, competitors, sources = structure.sections
    assert first.header == "Acme Corp Client Notes"
    assert first.classified_type == "client"
    assert first.extracted_metadata == {"client": "Acme Corp", "industry": "Software"}
    assert competitors.header == "Competitors"
    assert competitors.classified_type == "competitor"
    assert competitors.body == "• IBM\n• AWS"
    assert sources.header is None
    assert sources.classified_type == "source"


def test_section_offsets_point_into_text():
    structure = analyze(NOTES)
    for section in structure.sections:
        assert NOTES[section.start_offset:section.end_offset] == section.raw_text


def test_list_section_takes_header_from_line_above():
    text = "Competitors\n• IBM Corporation\n• Amazon Web Services"
    structure = analyze(text)
    assert [s.header for s in structure.sections] == ["Competitors", "Competitors"]


def test_analyze_empty_text():
    structure = analyze("")
    assert structure.sections == []
    assert structure.document_type == "brief"


def test_document_type_rules():
    assert determine_document_type(6, False, False, 10) == "structured"
    assert determine_document_type(2, True, False, 10) == "semi-structured"
    assert determine_document_type(0, False, True, 10) == "semi-structured"
    assert determine_document_type(0, False, False, 80) == "narrative"
    assert determine_document_type(0, False, False, 20) == "brief"


def test_entities_are_extracted_and_deduplicated():
    entities = extract_entities(
        "Email jane.doe@acme.com before 9:00 AM daily. See https://acme.com/news for more. IBM and IBM again."
    )
    assert entities.emails == ["jane.doe@acme.com"]
    assert entities.urls == ["https://acme.com/news"]
    assert "9:00 AM" in entities.times
    assert "daily" in entities.times
    assert entities.organizations == ["IBM"]


def test_metadata_first_label_wins():
    assert extract_metadata("Client: Acme\nClient: Other\nTier 1 - IGN") == {"client": "Acme", "tier 1": "IGN"}

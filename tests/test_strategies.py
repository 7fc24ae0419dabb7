"""
Tests for the individual extraction strategies and the field extractors they share.
"""

from notes_parser.core.field_extractors import (
    clean_client_name,
    compose_schedule,
    extract_briefing,
    extract_competitors,
    extract_contacts,
    extract_list_items,
    extract_sources,
    parse_person_line,
    split_list_value,
    tier_for_label,
)
from notes_parser.core.fuzzy import FieldVocabulary
from notes_parser.core.preprocessor import normalize
from notes_parser.core.schemas import ClientProfile
from notes_parser.core.strategies import (
    ContextualAnalysisStrategy,
    KeyValueStrategy,
    PatternMatchingStrategy,
    SectionDetectionStrategy,
    TemplateMatchingStrategy,
)
from notes_parser.core.structure_analyzer import analyze

MINIMAL_BRIEF = "Client: Acme Corp\nIndustry: Software\nCompetitors: Foo, Bar"


def run_strategy(strategy_cls, raw_text):
    text = normalize(raw_text)
    return strategy_cls(FieldVocabulary()).run(text, analyze(text))


# ============================================================================
# Field extractors
# ============================================================================

class TestFieldExtractors:
    def test_clean_client_name(self):
        assert clean_client_name("Acme Corp (ACME) Client Notes") == "Acme Corp"
        assert clean_client_name("Brief: Acme") == "Acme"

    def test_split_list_value(self):
        assert split_list_value("Foo, Bar") == ["Foo", "Bar"]
        assert split_list_value("IGN; GameSpot, and EA") == ["IGN", "GameSpot", "EA"]
        assert split_list_value("Foo, Bar and Baz") == ["Foo", "Bar", "Baz"]
        assert split_list_value("Johnson & Johnson") == ["Johnson & Johnson"]

    def test_list_items_skip_labels_unless_bullets(self):
        content = "• Call of Duty\nNote: internal\nWorld of Warcraft\n2. Diablo"
        assert extract_list_items(content) == ["Call of Duty", "World of Warcraft", "Diablo"]
        assert extract_list_items(content, bullets_only=True) == ["Call of Duty", "Diablo"]

    def test_list_items_are_deduplicated_case_sensitively(self):
        assert extract_list_items("• EA\n• EA\n• ea") == ["EA", "ea"]

    def test_tier_labels(self):
        assert tier_for_label("Tier 1") == "tier1"
        assert tier_for_label("Secondary Media") == "tier2"
        assert tier_for_label("Hand Search") == "hand_search"
        assert tier_for_label("Sources") is None

    def test_sources_split_by_tier_markers(self):
        sources = extract_sources("Tier 1: IGN, GameSpot\nTier 2: PC Gamer")
        assert sources.tier1 == ["IGN", "GameSpot"]
        assert sources.tier2 == ["PC Gamer"]
        assert sources.tier3 == []

    def test_untiered_sources_go_to_tier1(self):
        sources = extract_sources("• Wired\n• The Verge")
        assert sources.tier1 == ["Wired", "The Verge"]

    def test_competitors_include_known_companies_mentioned(self):
        competitors = extract_competitors("• Tierpoint\nAlso watch IBM closely.", bullets_only=True)
        assert [c.name for c in competitors] == ["Tierpoint", "IBM"]
        assert [c.priority for c in competitors] == [1, 2]

    def test_person_line_with_policy(self):
        executive = parse_person_line("Bobby Kotick - CEO (neutral coverage only)")
        assert executive.name == "Bobby Kotick"
        assert executive.role == "CEO"
        assert executive.sentiment_policy == "neutral coverage only"

    def test_person_line_requiring_role(self):
        assert parse_person_line("Jane Doe, VP Marketing", require_role=True).role == "VP Marketing"
        assert parse_person_line("Great Results - this quarter", require_role=True) is None

    def test_contacts_from_email_lines(self):
        contacts = extract_contacts("Jane Doe <jane.doe@acme.com> - Account Manager\nNo email here")
        assert len(contacts) == 1
        assert contacts[0].name == "Jane Doe"
        assert contacts[0].email == "jane.doe@acme.com"
        assert contacts[0].role == "Manager"

    def test_schedule_summary(self):
        assert compose_schedule("Deliver daily at 7:00 AM ET") == "Daily 7:00 AM ET"

    def test_briefing_labels_win(self):
        info = extract_briefing("Delivered weekly\nAudience: Exec team\nLength: 5 bullets")
        assert info.schedule == "Weekly"
        assert info.audience == "Exec team"
        assert info.length == "5 bullets"


# ============================================================================
# Strategies
# ============================================================================

class TestPatternMatching:
    def test_explicit_label_beats_title(self):
        profile = run_strategy(
            PatternMatchingStrategy,
            "Rackspace Client Notes\nClient: Rackspace Technology\nIndustry: Cloud",
        )
        assert profile.client_name == "Rackspace Technology"
        assert profile.industry == "Cloud"

    def test_notes_for_and_definition_sentence(self):
        profile = run_strategy(PatternMatchingStrategy, "Notes for Acme Corp\nAcme is a leading software company.")
        assert profile.client_name == "Acme Corp"
        assert profile.industry == "software"


class TestKeyValue:
    def test_minimal_brief(self):
        profile = run_strategy(KeyValueStrategy, MINIMAL_BRIEF)
        assert profile.client_name == "Acme Corp"
        assert profile.industry == "Software"
        assert profile.competitor_names() == ["Foo", "Bar"]

    def test_tier_labels(self):
        profile = run_strategy(KeyValueStrategy, "Tier 1: IGN, GameSpot\nTier 2: PC Gamer")
        assert profile.sources.tier1 == ["IGN", "GameSpot"]
        assert profile.sources.tier2 == ["PC Gamer"]

    def test_fuzzy_label(self):
        profile = run_strategy(KeyValueStrategy, "Compettitors: Foo, Bar")
        assert profile.competitor_names() == ["Foo", "Bar"]

    def test_unmatched_labels_are_ignored(self):
        assert run_strategy(KeyValueStrategy, "Favorite Color: Blue") == ClientProfile()


class TestSectionDetection:
    def test_header_sections(self):
        profile = run_strategy(
            SectionDetectionStrategy,
            "Competitors\n- Electronic Arts\n- Ubisoft\n\nExcluded Topics\n- Layoffs\n- Lawsuits",
        )
        assert profile.competitor_names() == ["Electronic Arts", "Ubisoft"]
        assert profile.excluded_topics == ["Layoffs", "Lawsuits"]

    def test_tiered_source_section(self):
        profile = run_strategy(SectionDetectionStrategy, "Sources\nTier 1: IGN, GameSpot\nTier 2: PC Gamer")
        assert profile.sources.tier1 == ["IGN", "GameSpot"]
        assert profile.sources.tier2 == ["PC Gamer"]

    def test_title_header_names_client(self):
        profile = run_strategy(SectionDetectionStrategy, "Acme Corp Client Notes\nSome general notes follow here.")
        assert profile.client_name == "Acme Corp"


class TestContextualAnalysis:
    def test_gaming_category(self):
        profile = run_strategy(
            ContextualAnalysisStrategy,
            "Our client publishes console and PC gaming titles, competing with Ubisoft and Nintendo.",
        )
        assert profile.industry == "Video Game Publishing"
        assert profile.competitor_names() == ["Ubisoft", "Nintendo"]

    def test_explicit_industry_is_not_overridden(self):
        profile = run_strategy(
            ContextualAnalysisStrategy,
            "Industry: Entertainment\nOur client publishes console and PC gaming titles.",
        )
        assert profile.industry == ""

    def test_no_category(self):
        assert run_strategy(ContextualAnalysisStrategy, "Acme makes widgets.") == ClientProfile()


class TestTemplateMatching:
    def test_brief_template(self):
        profile = run_strategy(TemplateMatchingStrategy, MINIMAL_BRIEF)
        assert profile.client_name == "Acme Corp"
        assert profile.industry == "Software"
        assert profile.competitor_names() == ["Foo", "Bar"]

    def test_standard_template(self):
        profile = run_strategy(
            TemplateMatchingStrategy,
            "Rackspace Client Notes\n\n"
            "Base Information\nClient: Rackspace Technology\nIndustry: Cloud Services\n\n"
            "Competitive Intelligence\n- IBM\n- Accenture\n\n"
            "Highlighted Sources\nTier 1: The Register, ZDNet",
        )
        assert profile.client_name == "Rackspace"
        assert profile.industry == "Cloud Services"
        assert profile.competitor_names() == ["IBM", "Accenture"]
        assert profile.sources.tier1 == ["The Register", "ZDNet"]

    def test_no_template(self):
        assert run_strategy(TemplateMatchingStrategy, "Just some words about nothing") == ClientProfile()

    def test_match_ratio(self):
        ratio = TemplateMatchingStrategy.match_ratio(MINIMAL_BRIEF, ["Client:", "Industry:", "Competitors:", "Sources:"])
        assert ratio == 0.75

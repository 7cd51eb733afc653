# ABOUTME: Tests for Docker MCP catalog output parsing and categorization
# ABOUTME: Both the legacy one-line layout and the indented layout are covered
from bwc.catalog import categorize, group_by_category, parse_catalog_output, strip_ansi
from bwc.models import CatalogEntry

NEW_LAYOUT = """\
MCP Server Directory
────────────────────
  github
    Access GitHub repositories, issues
    and pull requests
  postgres
    Read-only PostgreSQL access
────────────────────
2 servers available
"""

LEGACY_LAYOUT = """\
github: GitHub API integration
slack: Send messages to Slack channels
"""


class TestParseCatalogOutput:
    """Tests for parse_catalog_output function."""

    def test_new_layout(self):
        entries = parse_catalog_output(NEW_LAYOUT)

        assert [e.name for e in entries] == ["github", "postgres"]
        assert entries[0].description == "Access GitHub repositories, issues and pull requests"
        assert entries[1].description == "Read-only PostgreSQL access"

    def test_legacy_layout(self):
        entries = parse_catalog_output(LEGACY_LAYOUT)

        assert entries == [
            CatalogEntry("github", "GitHub API integration", "devops"),
            CatalogEntry("slack", "Send messages to Slack channels", "communication"),
        ]

    def test_single_legacy_line(self):
        entries = parse_catalog_output("brave-search: Brave search engine integration")
        assert [(e.name, e.description) for e in entries] == [
            ("brave-search", "Brave search engine integration"),
        ]

    def test_ansi_codes_stripped(self):
        output = "\x1b[1m  fetch\x1b[0m\n    \x1b[2mFetch web pages\x1b[0m\n"
        entries = parse_catalog_output(output)
        assert [(e.name, e.description) for e in entries] == [("fetch", "Fetch web pages")]

    def test_description_with_colon_not_taken_as_entry(self):
        """Test continuation lines stay descriptions even when they look like name: text."""
        output = "  time\n    Note: converts timezones\n"
        entries = parse_catalog_output(output)
        assert [(e.name, e.description) for e in entries] == [("time", "Note: converts timezones")]

    def test_last_entry_flushed_at_eof(self):
        entries = parse_catalog_output("  a\n    first\n  b")
        assert [(e.name, e.description) for e in entries] == [("a", "first"), ("b", "")]

    def test_malformed_lines_skipped(self):
        output = "garbage line without structure\n   three-space\n  real\n"
        assert [e.name for e in parse_catalog_output(output)] == ["real"]

    def test_empty_output(self):
        assert parse_catalog_output("") == []

    def test_docker_hub_url(self):
        entry = parse_catalog_output("  github\n")[0]
        assert entry.docker_hub_url == "https://hub.docker.com/r/mcp/github"


class TestCategorize:
    """Tests for categorize function."""

    def test_database(self):
        assert categorize("postgres", "PostgreSQL read-only access") == "data"

    def test_research_grouped_with_ai(self):
        assert categorize("arxiv", "Preprint papers") == "ai"

    def test_first_matching_rule_wins(self):
        """Test search keywords are checked before the research rule."""
        assert categorize("arxiv", "Search academic papers") == "search"

    def test_whole_word_match(self):
        """Test short keywords don't match inside longer words."""
        assert categorize("maintainer", "") == "other"

    def test_unknown(self):
        assert categorize("mystery", "") == "other"


def test_group_by_category():
    entries = [
        CatalogEntry("a", "", "data"),
        CatalogEntry("b", "", "ai"),
        CatalogEntry("c", "", "data"),
    ]
    grouped = group_by_category(entries)
    assert [e.name for e in grouped["data"]] == ["a", "c"]
    assert [e.name for e in grouped["ai"]] == ["b"]


def test_strip_ansi():
    assert strip_ansi("\x1b[31mred\x1b[0m") == "red"

# ABOUTME: Tests for KEY=value parsing and ${KEY:-value} templating
import pytest

from bwc.errors import ParseError
from bwc.utils.env import (
    parse_env_assignments,
    parse_header_assignments,
    template_env_assignments,
    template_env_value,
)


class TestParseEnvAssignments:
    """Tests for parse_env_assignments function."""

    def test_simple_pairs(self):
        assert parse_env_assignments(["A=1", "B=two"]) == {"A": "1", "B": "two"}

    def test_value_keeps_equals(self):
        """Test that only the first '=' separates key from value."""
        assert parse_env_assignments(["DSN=host=db;user=x"]) == {"DSN": "host=db;user=x"}

    def test_empty_value_allowed(self):
        assert parse_env_assignments(["EMPTY="]) == {"EMPTY": ""}

    def test_missing_separator_rejected(self):
        with pytest.raises(ParseError, match="KEY=value"):
            parse_env_assignments(["NOVALUE"])

    def test_empty_key_rejected(self):
        with pytest.raises(ParseError):
            parse_env_assignments(["=value"])


class TestTemplateEnv:
    """Tests for .mcp.json env templating."""

    def test_literal_value_templated(self):
        assert template_env_value("DB_HOST", "localhost") == "${DB_HOST:-localhost}"

    def test_shell_reference_passes_through(self):
        assert template_env_value("API_KEY", "$SECRET_KEY") == "$SECRET_KEY"

    def test_braced_reference_passes_through(self):
        assert template_env_value("TOKEN", "${GITHUB_TOKEN}") == "${GITHUB_TOKEN}"

    def test_assignments(self):
        """Test the mixed case from the command line."""
        result = template_env_assignments(["DB_HOST=localhost", "API_KEY=$SECRET_KEY"])
        assert result == {
            "DB_HOST": "${DB_HOST:-localhost}",
            "API_KEY": "$SECRET_KEY",
        }


class TestParseHeaders:
    """Tests for parse_header_assignments function."""

    def test_header_split_on_first_colon(self):
        result = parse_header_assignments(["Authorization: Bearer a:b"])
        assert result == {"Authorization": "Bearer a:b"}

    def test_invalid_header(self):
        with pytest.raises(ParseError):
            parse_header_assignments(["no-colon-here"])

# ABOUTME: Tests for the registry client with a mocked urllib opener
import json
from unittest.mock import MagicMock
from urllib.error import HTTPError, URLError

import pytest

from bwc.errors import NotFoundRemotelyError, RegistryFetchError
from bwc.registry import RegistryClient, USER_AGENT, dict_to_registry_server, preferred_source

REGISTRY = {
    "subagents": [{"name": "code-reviewer"}],
    "commands": [{"name": "deploy"}],
    "mcpServers": [
        {
            "name": "linear",
            "display_name": "Linear",
            "description": "Issue tracking",
            "category": "productivity",
            "server_type": "sse",
            "sources": {"official": "https://linear.app", "marketplace": {"id": 1}},
            "verification": {"status": "verified"},
            "tags": ["issues"],
            "installation_methods": [
                {"type": "claude-cli", "command": "claude mcp add --transport sse linear https://mcp.linear.app/sse"},
                {"type": "manual", "recommended": True, "steps": ["Sign in"]},
            ],
        },
        {
            "name": "postgres",
            "description": "PostgreSQL access",
            "category": "databases",
            "sources": {"docker": "mcp/postgres", "npm": "@modelcontextprotocol/server-postgres"},
        },
        {"description": "entry without a name"},
    ],
}


def make_opener(payload: bytes | None = None, error: Exception | None = None) -> MagicMock:
    opener = MagicMock()
    if error is not None:
        opener.open.side_effect = error
    else:
        opener.open.return_value.__enter__.return_value.read.return_value = payload
    return opener


@pytest.fixture
def opener() -> MagicMock:
    return make_opener(json.dumps(REGISTRY).encode("utf-8"))


@pytest.fixture
def client(opener) -> RegistryClient:
    return RegistryClient("https://registry.example.com/registry.json", opener_factory=lambda url: opener)


class TestFetchRegistry:
    """Tests for fetching the registry document."""

    def test_fetched_once(self, client, opener):
        client.get_mcp_servers()
        client.get_subagents()
        assert opener.open.call_count == 1

    def test_user_agent(self, client, opener):
        client.fetch_registry()
        request = opener.open.call_args[0][0]
        assert request.get_header("User-agent") == USER_AGENT
        assert request.full_url == "https://registry.example.com/registry.json"

    def test_http_error(self):
        error = HTTPError("https://r", 503, "Service Unavailable", hdrs=None, fp=None)
        client = RegistryClient(opener_factory=lambda url: make_opener(error=error))
        with pytest.raises(RegistryFetchError, match="HTTP 503"):
            client.fetch_registry()

    def test_network_error(self):
        client = RegistryClient(opener_factory=lambda url: make_opener(error=URLError("no route to host")))
        with pytest.raises(RegistryFetchError, match="no route to host"):
            client.fetch_registry()

    def test_invalid_json(self):
        client = RegistryClient(opener_factory=lambda url: make_opener(b"<html>"))
        with pytest.raises(RegistryFetchError, match="invalid JSON"):
            client.fetch_registry()


class TestQueries:
    """Tests for registry queries."""

    def test_malformed_entries_skipped(self, client):
        assert [s.name for s in client.get_mcp_servers()] == ["linear", "postgres"]

    def test_subagents_and_commands(self, client):
        assert client.get_subagents() == [{"name": "code-reviewer"}]
        assert client.get_commands() == [{"name": "deploy"}]

    def test_get_mcp_server(self, client):
        server = client.get_mcp_server("linear")
        assert server.display_name == "Linear"
        assert server.verification_status == "verified"
        assert server.method("manual").recommended

    def test_unknown_server(self, client):
        with pytest.raises(NotFoundRemotelyError) as exc_info:
            client.get_mcp_server("nope")
        assert exc_info.value.remediation == "bwc list --mcps"

    @pytest.mark.parametrize("query,expected", [
        ("LINEAR", ["linear"]),
        ("databases", ["postgres"]),
        ("issues", ["linear"]),
        ("zzz", []),
    ])
    def test_search(self, client, query, expected):
        assert [s.name for s in client.search_mcp_servers(query)] == expected


class TestConversion:
    """Tests for registry entry conversion."""

    def test_non_string_sources_dropped(self):
        server = dict_to_registry_server(REGISTRY["mcpServers"][0])
        assert server.sources == {"official": "https://linear.app"}

    def test_defaults(self):
        server = dict_to_registry_server({"name": "bare"})
        assert server.display_name == "bare"
        assert server.server_type == "stdio"
        assert server.installation_methods == []

    def test_preferred_source(self):
        server = dict_to_registry_server(REGISTRY["mcpServers"][1])
        assert preferred_source(server) == ("docker", "mcp/postgres")
        assert preferred_source(dict_to_registry_server({"name": "bare"})) is None

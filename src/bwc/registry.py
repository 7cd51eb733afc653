# ABOUTME: Client for the bwc registry document (subagents, commands, MCP servers)
# ABOUTME: Fetched once per client over urllib, routed through the environment's proxy
import json
import logging
from collections.abc import Callable
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import OpenerDirector, Request

from bwc import __version__
from bwc.config import DEFAULT_REGISTRY_URL
from bwc.errors import NotFoundRemotelyError, RegistryFetchError
from bwc.models import InstallationMethod, RegistryServer
from bwc.utils.proxy import build_opener

logger = logging.getLogger(__name__)

USER_AGENT = f"bwc-cli/{__version__}"

# ABOUTME: Order in which server sources are preferred when several exist
SOURCE_PREFERENCE = ("docker", "npm", "official")


def dict_to_installation_method(data: dict[str, Any]) -> InstallationMethod:
    return InstallationMethod(
        type=data.get("type", "manual"),
        recommended=bool(data.get("recommended", False)),
        command=data.get("command"),
        config_example=data.get("config_example"),
        steps=list(data.get("steps") or []),
        requirements=list(data.get("requirements") or []),
    )


def dict_to_registry_server(data: dict[str, Any]) -> RegistryServer:
    """Convert a registry mcpServers item to RegistryServer.

    ABOUTME: Only string-valued sources are kept (marketplace links are dropped)

    Raises:
        KeyError: If the item has no name
    """
    sources = {
        key: value for key, value in (data.get("sources") or {}).items()
        if isinstance(value, str)
    }
    verification = data.get("verification") or {}
    return RegistryServer(
        name=data["name"],
        display_name=data.get("display_name") or data["name"],
        description=data.get("description", ""),
        category=data.get("category", "other"),
        server_type=data.get("server_type", "stdio"),
        sources=sources,
        verification_status=verification.get("status"),
        installation_methods=[
            dict_to_installation_method(method)
            for method in data.get("installation_methods") or []
        ],
        tags=list(data.get("tags") or []),
    )


def preferred_source(server: RegistryServer) -> tuple[str, str] | None:
    """Return (kind, location) for the most preferred source the server has."""
    for kind in SOURCE_PREFERENCE:
        if server.sources.get(kind):
            return kind, server.sources[kind]
    return None


class RegistryClient:
    """Fetch and query the bwc registry.

    ABOUTME: The registry document is downloaded once per client instance
    ABOUTME: Network and decode failures surface as RegistryFetchError
    """

    def __init__(
        self,
        registry_url: str = DEFAULT_REGISTRY_URL,
        opener_factory: Callable[[str], OpenerDirector] = build_opener,
    ) -> None:
        self._registry_url = registry_url
        self._opener_factory = opener_factory
        self._registry: dict[str, Any] | None = None

    @property
    def registry_url(self) -> str:
        return self._registry_url

    def fetch_registry(self) -> dict[str, Any]:
        """Download and decode the registry document.

        Raises:
            RegistryFetchError: On HTTP, network or JSON errors
        """
        if self._registry is not None:
            return self._registry

        request = Request(self._registry_url, headers={"User-Agent": USER_AGENT})
        opener = self._opener_factory(self._registry_url)
        logger.debug(f"Fetching registry from {self._registry_url}")
        try:
            with opener.open(request) as response:
                raw = response.read()
            payload = json.loads(raw.decode("utf-8"))
        except HTTPError as e:
            raise RegistryFetchError(f"Failed to fetch registry: HTTP {e.code} {e.reason}") from e
        except URLError as e:
            raise RegistryFetchError(f"Failed to fetch registry: {e.reason}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RegistryFetchError(f"Failed to fetch registry: invalid JSON ({e})") from e

        if not isinstance(payload, dict):
            raise RegistryFetchError("Failed to fetch registry: expected a JSON object")

        self._registry = payload
        return payload

    def get_subagents(self) -> list[dict[str, Any]]:
        return list(self.fetch_registry().get("subagents") or [])

    def get_commands(self) -> list[dict[str, Any]]:
        return list(self.fetch_registry().get("commands") or [])

    def get_mcp_servers(self) -> list[RegistryServer]:
        servers = []
        for item in self.fetch_registry().get("mcpServers") or []:
            try:
                servers.append(dict_to_registry_server(item))
            except (KeyError, TypeError, AttributeError) as e:
                logger.debug(f"Skipping malformed registry entry: {e}")
        return servers

    def find_mcp_server(self, name: str) -> RegistryServer | None:
        for server in self.get_mcp_servers():
            if server.name == name:
                return server
        return None

    def get_mcp_server(self, name: str) -> RegistryServer:
        """Like find_mcp_server but raises when the name is unknown.

        Raises:
            NotFoundRemotelyError: If the registry has no such server
        """
        server = self.find_mcp_server(name)
        if server is None:
            raise NotFoundRemotelyError(
                f'MCP server "{name}" not found in registry',
                remediation="bwc list --mcps",
            )
        return server

    def search_mcp_servers(self, query: str) -> list[RegistryServer]:
        term = query.lower()
        return [
            server for server in self.get_mcp_servers()
            if term in server.name.lower()
            or term in server.display_name.lower()
            or term in server.description.lower()
            or term in server.category.lower()
            or any(term in tag.lower() for tag in server.tags)
        ]

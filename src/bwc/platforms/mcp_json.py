# Project-level .mcp.json store shared with the team through version control
import copy
import json
import logging
from pathlib import Path
from typing import Any

from bwc.errors import ParseError
from bwc.models import MCPServerConfig
from bwc.platforms.base import from_mcp_json_entry, read_json_file, to_mcp_json_entry, write_json_file
from bwc.utils.backup import create_backup
from bwc.utils.env import template_env_assignments

logger = logging.getLogger(__name__)

MCP_JSON_FILENAME = ".mcp.json"


def should_add_to_mcp_json(config: MCPServerConfig) -> bool:
    """Only project-scoped, non-Docker servers belong in .mcp.json.

    ABOUTME: Docker servers are reached through the gateway, never listed directly
    """
    return config.scope == "project" and config.provider != "docker"


def extract_server_entry(name: str, config_example: str | dict[str, Any] | None) -> dict[str, Any]:
    """Pull mcpServers[name] out of a registry config example.

    ABOUTME: Accepts a JSON string or an already-decoded dict
    ABOUTME: A 'transport' key on remote entries is renamed to 'type'

    Raises:
        ParseError: If the example is not JSON or has no entry for name
    """
    try:
        parsed = json.loads(config_example) if isinstance(config_example, str) else config_example
    except json.JSONDecodeError as e:
        raise ParseError("Failed to parse server configuration") from e

    if not isinstance(parsed, dict):
        raise ParseError("Failed to parse server configuration")

    servers = parsed.get("mcpServers")
    entry = servers.get(name) if isinstance(servers, dict) else None
    if not isinstance(entry, dict):
        raise ParseError(
            f"Failed to parse server configuration: no mcpServers entry for '{name}'"
        )

    entry = copy.deepcopy(entry)
    transport = entry.pop("transport", None)
    if transport in ("sse", "http") and "type" not in entry:
        entry["type"] = transport
    return entry


class MCPJsonStore:
    """Read-modify-write access to a project's .mcp.json.

    ABOUTME: Writes replace the whole file, there is no partial merge on disk
    ABOUTME: With backup_dir set, the previous file is copied aside before each write
    """

    def __init__(self, project_dir: Path | None = None, backup_dir: Path | None = None) -> None:
        self._project_dir = project_dir
        self._backup_dir = backup_dir

    @property
    def path(self) -> Path:
        project_dir = self._project_dir if self._project_dir else Path.cwd()
        return project_dir / MCP_JSON_FILENAME

    def read(self) -> dict[str, Any] | None:
        """Return the decoded file, or None if it doesn't exist.

        Raises:
            ParseError: If the file is not valid JSON
        """
        if not self.path.exists():
            return None
        data = read_json_file(self.path)
        servers = data.setdefault("mcpServers", {})
        if not isinstance(servers, dict):
            raise ParseError(f"'mcpServers' in {self.path} must be an object")
        return data

    def write(self, data: dict[str, Any]) -> None:
        if self._backup_dir and self.path.exists():
            create_backup(self.path, self._backup_dir)
        write_json_file(self.path, data)
        logger.debug(f"Updated {self.path}")

    def servers(self) -> dict[str, MCPServerConfig]:
        """Entries in the file converted to claude/project records."""
        data = self.read()
        if data is None:
            return {}
        return {
            name: from_mcp_json_entry(name, entry)
            for name, entry in data["mcpServers"].items()
        }

    def has_server(self, name: str) -> bool:
        data = self.read()
        return data is not None and name in data["mcpServers"]

    def add_server(
        self,
        name: str,
        config_example: str | dict[str, Any] | None,
        env_vars: list[str] | None = None,
        verification_status: str | None = None,
    ) -> dict[str, Any]:
        """Add or replace a server entry taken from a registry config example.

        ABOUTME: KEY=value env vars are written as ${KEY:-value}, $refs pass through
        ABOUTME: Experimental servers get a security warning

        Args:
            name: Server name, also the key looked up in the example
            config_example: Registry example holding mcpServers[name]
            env_vars: KEY=value strings from the command line
            verification_status: Registry verification label

        Returns:
            The entry that was written

        Raises:
            ParseError: If the example or the existing file can't be parsed
        """
        entry = extract_server_entry(name, config_example)
        if env_vars:
            env = dict(entry.get("env") or {})
            env.update(template_env_assignments(env_vars))
            entry["env"] = env

        self._put(name, entry)

        if verification_status == "experimental":
            logger.warning(
                f"{name} is an experimental server. Review its code and security "
                "implications before committing .mcp.json to version control."
            )
        return entry

    def add_config(self, name: str, config: MCPServerConfig) -> dict[str, Any]:
        """Add or replace an entry built from an installed server record."""
        entry = to_mcp_json_entry(config)
        self._put(name, entry)
        return entry

    def _put(self, name: str, entry: dict[str, Any]) -> None:
        data = self.read() or {"mcpServers": {}}
        data["mcpServers"][name] = entry
        self.write(data)
        logger.info(f"Added {name} to {MCP_JSON_FILENAME}")

    def remove_server(self, name: str) -> bool:
        """Remove a server entry.

        Returns:
            True if removed, False if the file or the entry was absent
        """
        data = self.read()
        if data is None or name not in data["mcpServers"]:
            return False

        del data["mcpServers"][name]
        self.write(data)
        logger.info(f"Removed {name} from {MCP_JSON_FILENAME}")
        return True

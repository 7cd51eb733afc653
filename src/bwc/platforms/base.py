# Platform base utilities: JSON file IO and .mcp.json entry conversion
import json
from pathlib import Path
from typing import Any, cast

from bwc.errors import ParseError
from bwc.models import MCPServerConfig


def read_json_file(path: Path) -> dict[str, Any]:
    """Read JSON file with error handling.

    ABOUTME: Returns empty dict if file doesn't exist
    ABOUTME: Raises ParseError for invalid JSON or a non-object document
    """
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            result = json.load(f)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(result, dict):
        raise ParseError(f"Expected a JSON object in {path}")
    return cast(dict[str, Any], result)


def write_json_file(path: Path, data: dict[str, Any]) -> None:
    """Write JSON file with error handling.

    ABOUTME: Creates parent directories if needed
    ABOUTME: Uses 2-space indentation and keeps key order
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")  # Add trailing newline


def to_mcp_json_entry(config: MCPServerConfig) -> dict[str, Any]:
    """Convert MCPServerConfig to a .mcp.json server entry.

    ABOUTME: stdio entries carry command/args/env
    ABOUTME: sse/http entries carry type/url/headers, transport becomes 'type'
    ABOUTME: Omits empty env and headers for cleaner output
    """
    if config.is_remote:
        result: dict[str, Any] = {"type": config.transport}
        if config.url:
            result["url"] = config.url
        if config.headers:
            result["headers"] = dict(config.headers)
        if config.env:
            result["env"] = dict(config.env)
        return result

    result = {
        "command": config.command or "",
        "args": list(config.args),
    }
    if config.env:
        result["env"] = dict(config.env)
    return result


def from_mcp_json_entry(name: str, data: dict[str, Any]) -> MCPServerConfig:
    """Convert a .mcp.json server entry to MCPServerConfig.

    ABOUTME: Anything found in .mcp.json is a claude-provider, project-scoped server
    ABOUTME: An entry with a url and no type is treated as sse

    Raises:
        ParseError: If the entry has neither a command nor a url
    """
    entry_type = data.get("type")
    if data.get("url") and entry_type in (None, "sse", "http"):
        return MCPServerConfig(
            provider="claude",
            transport=entry_type or "sse",
            scope="project",
            url=data["url"],
            headers=dict(data.get("headers", {})),
            env=dict(data.get("env", {})),
        )

    if "command" not in data:
        raise ParseError(f"Server '{name}' in .mcp.json has neither 'command' nor 'url'")

    return MCPServerConfig(
        provider="claude",
        transport="stdio",
        scope="project",
        command=data["command"],
        args=list(data.get("args", [])),
        env=dict(data.get("env", {})),
    )

# ABOUTME: Adapters for the stores bwc reconciles: Claude CLI, Docker MCP Toolkit, .mcp.json
from bwc.platforms.claude import ClaudeCLI, find_claude_cli, reset_claude_path_cache
from bwc.platforms.docker import DockerMCP
from bwc.platforms.mcp_json import MCPJsonStore, should_add_to_mcp_json

__all__ = [
    "ClaudeCLI",
    "DockerMCP",
    "MCPJsonStore",
    "find_claude_cli",
    "reset_claude_path_cache",
    "should_add_to_mcp_json",
]

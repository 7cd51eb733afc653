# Read-only drift detection between bwc config and live provider state
import logging
from collections.abc import Iterable

from bwc.config import ConfigStore
from bwc.errors import ClaudeCLINotFoundError
from bwc.models import MCPServerConfig, VerificationResult
from bwc.platforms.claude import GATEWAY_NAME, ClaudeCLI, ClaudeListEntry, is_gateway_listed
from bwc.platforms.docker import DockerMCP

logger = logging.getLogger(__name__)


def claude_fix_commands(name: str, config: MCPServerConfig) -> list[str]:
    """Re-add command for a claude-provider server Claude Code doesn't know.

    Examples:
        >>> cfg = MCPServerConfig(provider="claude", transport="sse", url="https://x/sse")
        >>> claude_fix_commands("server-y", cfg)
        ['claude mcp add server-y --transport sse --url https://x/sse']
    """
    if config.is_remote and config.url:
        return [f"claude mcp add {name} --transport {config.transport} --url {config.url}"]
    return [f"claude mcp add {name}"]


def gateway_fix_commands(name: str, config: MCPServerConfig) -> list[str]:
    return [
        "1. Setup Docker MCP gateway: bwc add --setup",
        "2. Restart Claude Code to activate gateway",
        f"3. Install server: docker mcp server enable {config.registry_name or name}",
    ]


class VerificationEngine:
    """Compare configured servers against Claude Code and Docker MCP Toolkit.

    ABOUTME: `claude mcp list` runs once per verify() call, docker only when needed
    ABOUTME: Never writes to any store, fix commands are suggestions
    """

    def __init__(
        self,
        store: ConfigStore,
        claude: ClaudeCLI | None = None,
        docker: DockerMCP | None = None,
    ) -> None:
        self._store = store
        self._claude = claude or ClaudeCLI()
        self._docker = docker or DockerMCP(self._claude.runner, self._claude)

    def _claude_snapshot(self) -> tuple[dict[str, ClaudeListEntry], bool]:
        try:
            output = self._claude.list_output(refresh=True)
        except ClaudeCLINotFoundError:
            logger.warning("Claude CLI not found, treating every claude server as missing")
            return {}, False

        entries = {
            entry.name: entry
            for entry in self._claude.list_servers()
            if entry.name != GATEWAY_NAME
        }
        return entries, is_gateway_listed(output)

    def verify(self, names: Iterable[str] | None = None) -> list[VerificationResult]:
        """Verify every configured server, or just the given names.

        Returns:
            One result per configured server, in config order
        """
        configs = self._store.get_all_mcp_server_configs()
        if names is not None:
            wanted = set(names)
            configs = {name: cfg for name, cfg in configs.items() if name in wanted}
        if not configs:
            return []

        claude_servers, gateway_configured = self._claude_snapshot()
        docker_installed: list[str] | None = None

        results = []
        for name, config in configs.items():
            result = VerificationResult(
                name=name,
                provider=config.provider,
                transport=config.transport,
                scope=config.scope,
            )

            if config.provider == "claude":
                entry = claude_servers.get(name)
                if entry:
                    result.actually_installed = True
                    result.connection_status = entry.connection_status
                else:
                    result.verification_error = "Not found in Claude CLI configuration"
                    result.fix_commands = claude_fix_commands(name, config)

            elif config.provider == "docker":
                result.gateway_configured = gateway_configured
                if not gateway_configured:
                    result.verification_error = "Docker MCP gateway not configured in Claude CLI"
                    result.fix_commands = gateway_fix_commands(name, config)
                else:
                    if docker_installed is None:
                        docker_installed = self._docker.list_installed_servers(refresh=True)
                    alias = config.registry_name
                    if name in docker_installed or (alias and alias in docker_installed):
                        result.actually_installed = True
                        result.connection_status = "connected"
                    else:
                        result.verification_error = "Server not installed in Docker MCP"
                        result.fix_commands = [
                            f"docker mcp server enable {alias or name}"
                        ]

            else:
                result.verification_error = f"Unknown provider: {config.provider}"
                result.fix_commands = [f"bwc remove --mcp {name}", f"bwc add --mcp {name}"]

            results.append(result)

        return results


def format_verification_issues(results: list[VerificationResult]) -> list[str]:
    """Render problems as Issue/Fix lines, empty when everything is installed."""
    lines: list[str] = []
    for result in results:
        if result.actually_installed or not result.verification_error:
            continue
        lines.append(f"  {result.name}:")
        lines.append(f"    Issue: {result.verification_error}")
        if result.fix_commands:
            lines.append(f"    Fix:   {result.fix_commands[0]}")
            lines.extend(f"           {command}" for command in result.fix_commands[1:])
    return lines


def summarize(results: list[VerificationResult]) -> tuple[int, int]:
    """Return (installed, total) counts."""
    installed = sum(1 for result in results if result.actually_installed)
    return installed, len(results)

# Claude Code CLI discovery and `claude mcp` subcommands
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from bwc.errors import (
    ClaudeCLINotFoundError,
    CommandFailedError,
    CommandNotFoundError,
    IntegrationCommandFailedError,
)
from bwc.utils.process import ProcessResult, ProcessRunner

logger = logging.getLogger(__name__)

# ABOUTME: Name the Docker MCP gateway is registered under in Claude Code
GATEWAY_NAME = "docker-toolkit"

# ABOUTME: Parses `claude mcp list` lines: "name: endpoint (TRANSPORT) - STATUS"
LIST_LINE_PATTERN = re.compile(r"^([^:\r\n]+):\s+(.*)\s+-\s+(.*)$")

_cached_claude_path: str | None = None


def claude_cli_candidates(home: Path | None = None) -> list[Path]:
    """Well-known install locations, checked in order."""
    home = home or Path.home()
    return [
        home / ".claude" / "local" / "claude",
        Path("/usr/local/bin/claude"),
        Path("/opt/homebrew/bin/claude"),
        home / ".local" / "bin" / "claude",
    ]


def _lookup_on_path(runner: ProcessRunner, argv: list[str]) -> str | None:
    try:
        result = runner.run(argv)
    except CommandNotFoundError:
        return None
    found = result.stdout.strip()
    if result.ok and found and Path(found).exists():
        return found
    return None


def find_claude_cli(runner: ProcessRunner | None = None, home: Path | None = None) -> str:
    """Locate the Claude Code CLI executable.

    ABOUTME: Checks well-known paths, then `which claude`, then `command -v claude`
    ABOUTME: The first hit is cached for the rest of the process

    Returns:
        Absolute path to the claude binary

    Raises:
        ClaudeCLINotFoundError: If no candidate resolves
    """
    global _cached_claude_path
    if _cached_claude_path:
        return _cached_claude_path

    for candidate in claude_cli_candidates(home):
        if candidate.exists():
            _cached_claude_path = str(candidate)
            return _cached_claude_path

    runner = runner or ProcessRunner()
    for argv in (["which", "claude"], ["sh", "-c", "command -v claude"]):
        found = _lookup_on_path(runner, argv)
        if found:
            _cached_claude_path = found
            return found

    raise ClaudeCLINotFoundError()


def reset_claude_path_cache() -> None:
    """Forget the discovered claude path. For tests."""
    global _cached_claude_path
    _cached_claude_path = None


@dataclass(frozen=True)
class ClaudeListEntry:
    """One server line from `claude mcp list`."""
    name: str
    endpoint: str
    status: str

    @property
    def connected(self) -> bool:
        return "Connected" in self.status

    @property
    def connection_status(self) -> str:
        if self.connected:
            return "connected"
        lowered = self.status.lower()
        if "timeout" in lowered or "timed out" in lowered:
            return "timeout"
        return "error"


def parse_mcp_list_output(output: str) -> list[ClaudeListEntry]:
    """Parse `claude mcp list` output into entries.

    ABOUTME: Header and health-check progress lines don't match and are skipped

    Examples:
        >>> parse_mcp_list_output("github: npx -y gh (stdio) - ✓ Connected")[0].name
        'github'
    """
    entries: list[ClaudeListEntry] = []
    for line in output.splitlines():
        match = LIST_LINE_PATTERN.match(line.strip())
        if not match:
            continue
        entries.append(ClaudeListEntry(
            name=match.group(1).strip(),
            endpoint=match.group(2).strip(),
            status=match.group(3).strip(),
        ))
    return entries


def is_gateway_listed(output: str) -> bool:
    """True if the Docker MCP gateway appears in `claude mcp list` output."""
    return GATEWAY_NAME in output or "docker mcp gateway" in output


def build_add_args(
    name: str,
    scope: str,
    transport: str | None = None,
    url: str | None = None,
    headers: dict[str, str] | None = None,
    env: dict[str, str] | None = None,
    command: list[str] | None = None,
) -> list[str]:
    """Build `claude mcp add` arguments.

    ABOUTME: Flags come before the name, stdio commands follow a `--` separator

    Examples:
        >>> build_add_args("server-y", "project", transport="sse", url="https://x/sse")
        ['mcp', 'add', '--scope', 'project', '--transport', 'sse', 'server-y', 'https://x/sse']
    """
    args = ["mcp", "add", "--scope", scope]
    if transport:
        args.extend(["--transport", transport])
    for key, value in (headers or {}).items():
        args.extend(["--header", f"{key}: {value}"])
    for key, value in (env or {}).items():
        args.extend(["--env", f"{key}={value}"])
    args.append(name)
    if url:
        args.append(url)
    if command:
        args.append("--")
        args.extend(command)
    return args


def format_remove_command(name: str, scope: str | None = None) -> str:
    scope_part = f"--scope {scope} " if scope else ""
    return f"claude mcp remove {scope_part}{name}"


class ClaudeCLI:
    """Thin wrapper over the `claude mcp` subcommands.

    ABOUTME: Every call resolves the binary through find_claude_cli()
    ABOUTME: `claude mcp list` output is cached per instance until invalidated
    """

    def __init__(self, runner: ProcessRunner | None = None) -> None:
        self._runner = runner or ProcessRunner()
        self._list_output: str | None = None

    @property
    def runner(self) -> ProcessRunner:
        return self._runner

    def is_available(self) -> bool:
        try:
            find_claude_cli(self._runner)
        except ClaudeCLINotFoundError:
            return False
        return True

    def exec(self, args: list[str], check: bool = True) -> ProcessResult:
        """Run `claude <args>`.

        Raises:
            ClaudeCLINotFoundError: If the binary can't be found or launched
            CommandFailedError: If check is True and the command fails
        """
        path = find_claude_cli(self._runner)
        try:
            return self._runner.run([path, *args], check=check)
        except CommandNotFoundError as e:
            reset_claude_path_cache()
            raise ClaudeCLINotFoundError() from e

    def add_server(self, args: list[str]) -> ProcessResult:
        """Run a prepared `mcp add` argument list.

        Raises:
            IntegrationCommandFailedError: If claude rejects the command
        """
        try:
            result = self.exec(args)
        except CommandFailedError as e:
            raise IntegrationCommandFailedError(
                f"claude {' '.join(args)} failed: {(e.result.stderr or e.result.stdout).strip()}",
                remediation=f"claude {' '.join(args)}",
            ) from e
        self._list_output = None
        return result

    def remove_server(self, name: str, scope: str | None = None) -> bool:
        """Deregister a server from Claude Code.

        ABOUTME: A "not found" reply means the server is already absent

        Returns:
            True if claude removed it, False if it was not registered

        Raises:
            IntegrationCommandFailedError: On any other failure
        """
        args = ["mcp", "remove"]
        if scope:
            args.extend(["--scope", scope])
        args.append(name)

        result = self.exec(args, check=False)
        self._list_output = None
        if result.ok:
            return True

        detail = f"{result.stderr}\n{result.stdout}"
        if "not found" in detail.lower():
            logger.debug(f"Server {name} was not registered in Claude Code")
            return False

        raise IntegrationCommandFailedError(
            f"Failed to remove {name} from Claude Code: {result.stderr.strip()}",
            remediation=format_remove_command(name, scope),
        )

    def list_output(self, refresh: bool = False) -> str:
        """Return raw `claude mcp list` output, cached after the first call."""
        if self._list_output is None or refresh:
            self._list_output = self.exec(["mcp", "list"], check=False).stdout
        return self._list_output

    def list_servers(self) -> list[ClaudeListEntry]:
        return parse_mcp_list_output(self.list_output())

    def get_server(self, name: str) -> ProcessResult:
        return self.exec(["mcp", "get", name], check=False)

# Per-method installation procedures and Claude Code integration
import json
import logging
import shlex
from dataclasses import dataclass, field
from typing import Any

from bwc.errors import (
    ClaudeCLINotFoundError,
    CommandNotFoundError,
    IntegrationCommandFailedError,
    NoInstallMethodAvailableError,
    PrerequisiteMissingError,
)
from bwc.models import InstallationMethod, RegistryServer
from bwc.platforms.claude import ClaudeCLI
from bwc.utils.platform import get_docker_command
from bwc.utils.process import ProcessRunner

logger = logging.getLogger(__name__)

# ABOUTME: Method types that install something, as opposed to bwc (meta) and claude-cli (config only)
CONCRETE_METHODS = ("docker", "npm", "manual", "binary")

MANUAL_CONFIG_STEPS = (
    "1. Open Claude Desktop settings",
    "2. Navigate to Developer > MCP Servers",
    "3. Add the above configuration to your MCP settings",
)


@dataclass
class InstallReport:
    """Result of running one installation procedure.

    ABOUTME: method is the concrete method that ran, never 'bwc'
    ABOUTME: lines are user-facing instructions for the CLI to print
    """
    name: str
    method: str
    deferred: bool = False
    configured_in_claude: bool = False
    lines: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ClaudeAddTemplate:
    """Pieces of a registry `claude mcp add ...` command worth keeping."""
    name: str
    transport: str | None = None
    trailing: list[str] = field(default_factory=list)
    headers: list[str] = field(default_factory=list)


def _skip_flags(tokens: list[str], index: int) -> int:
    """Advance past `--flag value` / `-f value` pairs starting at index."""
    while index < len(tokens) and tokens[index].startswith("-") and tokens[index] != "--":
        index += 2
    return index


def _header_values(tokens: list[str]) -> list[str]:
    """Values of every --header/-H flag ahead of the `--` command separator."""
    end = tokens.index("--") if "--" in tokens else len(tokens)
    return [
        tokens[i + 1]
        for i in range(end - 1)
        if tokens[i] in ("--header", "-H")
    ]


def parse_claude_add_template(command: str, default_name: str) -> ClaudeAddTemplate | None:
    """Parse a registry `claude mcp add` command template.

    ABOUTME: Remote form: claude mcp add --transport sse <name> <url>
    ABOUTME: stdio form: claude mcp add <name> -- <command> <args...>
    ABOUTME: Returns None when the text is not a `claude mcp add` command

    Examples:
        >>> t = parse_claude_add_template("claude mcp add --transport sse linear https://mcp.linear.app/sse", "linear")
        >>> (t.name, t.transport, t.trailing)
        ('linear', 'sse', ['https://mcp.linear.app/sse'])
    """
    try:
        tokens = shlex.split(command)
    except ValueError:
        tokens = command.split()

    if "claude" not in tokens or "mcp" not in tokens or "add" not in tokens:
        return None

    add_index = tokens.index("add")
    transport = None
    if "--transport" in tokens:
        position = tokens.index("--transport")
        if position + 1 < len(tokens):
            transport = tokens[position + 1]

    name_index = _skip_flags(tokens, add_index + 1)
    if name_index >= len(tokens) or tokens[name_index] == "--":
        name = default_name
        rest_start = name_index
    else:
        name = tokens[name_index]
        rest_start = name_index + 1

    if transport:
        trailing = [t for t in tokens[_skip_flags(tokens, rest_start):] if t != "--"]
        return ClaudeAddTemplate(
            name=name,
            transport=transport,
            trailing=trailing[:1],
            headers=_header_values(tokens),
        )

    if "--" in tokens:
        separator = tokens.index("--")
        return ClaudeAddTemplate(name=name, trailing=["--", *tokens[separator + 1:]])

    trailing = tokens[rest_start:]
    return ClaudeAddTemplate(name=name, trailing=["--", *trailing] if trailing else [])


def build_args_from_template(
    template: ClaudeAddTemplate,
    name: str,
    scope: str,
    env_vars: list[str] | None = None,
) -> list[str]:
    """Re-emit a template with the caller's scope and env vars.

    ABOUTME: The config key is used as the server name so verification can find it
    """
    args = ["mcp", "add", "--scope", scope]
    if template.transport:
        args.extend(["--transport", template.transport])
    for env_var in env_vars or []:
        args.extend(["--env", env_var])
    for header in template.headers:
        args.extend(["--header", header])
    args.append(name)
    args.extend(template.trailing)
    return args


def resolve_bwc_method(server: RegistryServer) -> InstallationMethod:
    """Pick the concrete method a 'bwc' method stands for.

    ABOUTME: Order: recommended, docker (with docker source), npm (with npm source), manual
    ABOUTME: Never returns a bwc method, so resolution cannot recurse

    Raises:
        NoInstallMethodAvailableError: If nothing suitable exists
    """
    candidates = [m for m in server.installation_methods if m.type not in ("bwc", "claude-cli")]

    for method in candidates:
        if method.recommended:
            return method
    for method in candidates:
        if method.type == "docker" and server.sources.get("docker"):
            return method
    for method in candidates:
        if method.type == "npm" and server.sources.get("npm"):
            return method
    for method in candidates:
        if method.type == "manual":
            return method

    raise NoInstallMethodAvailableError(
        f'No suitable installation method found for "{server.name}"'
    )


def select_method(server: RegistryServer, requested: str | None = None) -> InstallationMethod:
    """Choose the installation method for a server.

    ABOUTME: An explicit request must exist on the server, 'bwc' is resolved further
    ABOUTME: Without a request: recommended, then docker, then npm, then anything concrete

    Raises:
        NoInstallMethodAvailableError: If the requested or any method is missing
    """
    if requested:
        method = server.method(requested)
        if method is None:
            available = ", ".join(m.type for m in server.installation_methods) or "none"
            raise NoInstallMethodAvailableError(
                f'"{server.name}" has no {requested} installation method (available: {available})'
            )
        return resolve_bwc_method(server) if method.type == "bwc" else method

    concrete = [m for m in server.installation_methods if m.type in CONCRETE_METHODS]
    for method in concrete:
        if method.recommended:
            return method
    for preferred in ("docker", "npm"):
        method = server.method(preferred)
        if method is not None:
            return method
    if concrete:
        return concrete[0]
    if server.method("bwc") is not None:
        return resolve_bwc_method(server)

    raise NoInstallMethodAvailableError(
        f'No suitable installation method found for "{server.name}"'
    )


def format_manual_configuration(config_example: str | dict[str, Any] | None) -> list[str]:
    """Lines telling the user how to add the server by hand.

    ABOUTME: JSON examples are pretty-printed, anything else is shown verbatim
    """
    if not config_example:
        return []

    if isinstance(config_example, str):
        try:
            body = json.dumps(json.loads(config_example), indent=2)
        except json.JSONDecodeError:
            body = config_example
    else:
        body = json.dumps(config_example, indent=2)

    return [
        "",
        "Configuration for Claude Desktop:",
        body,
        "",
        "To use this MCP server:",
        *MANUAL_CONFIG_STEPS,
    ]


class Installer:
    """Runs installation procedures against the local toolchain.

    ABOUTME: Nothing is pulled or started, servers launch when Claude Code needs them
    ABOUTME: Only an explicit global npm install changes the machine
    """

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        claude: ClaudeCLI | None = None,
        docker_command: str | None = None,
    ) -> None:
        self._runner = runner or ProcessRunner()
        self._claude = claude or ClaudeCLI(self._runner)
        self._docker = docker_command or get_docker_command()

    def _tool_works(self, argv: list[str]) -> bool:
        try:
            return self._runner.run(argv).ok
        except CommandNotFoundError:
            return False

    def install(self, server: RegistryServer, method: InstallationMethod) -> InstallReport:
        """Run the procedure for method, resolving 'bwc' first.

        Raises:
            PrerequisiteMissingError: If docker or npm is missing
            NoInstallMethodAvailableError: If the method can't be carried out
        """
        if method.type == "bwc":
            method = resolve_bwc_method(server)

        if method.type == "docker":
            return self.install_docker(server)
        if method.type == "npm":
            return self.install_npm(server, method)
        if method.type in ("manual", "binary"):
            return self.manual_instructions(server, method)

        raise NoInstallMethodAvailableError(
            f"Unsupported installation method: {method.type}"
        )

    def install_docker(self, server: RegistryServer) -> InstallReport:
        if not self._tool_works([self._docker, "--version"]):
            raise PrerequisiteMissingError(
                "Docker is not installed or not running. "
                "Please install Docker Desktop and ensure it is running."
            )

        report = InstallReport(name=server.name, method="docker", deferred=True)
        image = server.sources.get("docker")
        if image:
            logger.info(f"Docker image to be used: {image}")
            report.lines.append(
                f"Docker image {image} will be pulled when Claude Code starts the server"
            )
        return report

    def install_npm(self, server: RegistryServer, method: InstallationMethod) -> InstallReport:
        if not self._tool_works(["npm", "--version"]):
            raise PrerequisiteMissingError(
                "npm is not installed. Please install Node.js and npm first."
            )

        package = server.sources.get("npm")
        if not package:
            raise NoInstallMethodAvailableError(
                f'No npm package specified for "{server.name}"'
            )

        report = InstallReport(name=server.name, method="npm")
        example = method.config_example
        example_text = example if isinstance(example, str) else json.dumps(example or {})
        command = method.command or ""
        global_install = "-g" in command.split() or "--global" in command.split()

        if "npx" in example_text or not global_install:
            report.deferred = True
            report.lines.append(f"{package} will be run using npx when Claude Code starts")
            return report

        logger.info(f"Installing {package} globally...")
        result = self._runner.run(["npm", "install", "-g", package])
        if not result.ok:
            raise PrerequisiteMissingError(
                f"NPM setup failed: {result.stderr.strip()}",
                remediation=f"npm install -g {package}",
            )
        report.lines.append(f"Installed {package} globally")
        return report

    def manual_instructions(self, server: RegistryServer, method: InstallationMethod) -> InstallReport:
        report = InstallReport(name=server.name, method=method.type)
        report.lines.append(f"Manual installation required for {server.name}")
        if method.requirements:
            report.lines.append("Requirements:")
            report.lines.extend(f"  - {req}" for req in method.requirements)
        if method.steps:
            report.lines.append("Installation steps:")
            report.lines.extend(f"{i}. {step}" for i, step in enumerate(method.steps, start=1))
        report.lines.append(
            "After completing these steps, configure Claude Code with the provided configuration."
        )
        return report

    def configure_in_claude_code(
        self,
        server: RegistryServer,
        method: InstallationMethod,
        scope: str,
        env_vars: list[str] | None = None,
        report: InstallReport | None = None,
    ) -> InstallReport:
        """Register the server with Claude Code from its claude-cli template.

        ABOUTME: Missing template, missing CLI or a failing command all fall back to
        ABOUTME: printing the manual configuration block instead of raising
        """
        report = report or InstallReport(name=server.name, method=method.type)
        cli_method = server.method("claude-cli")
        template = None
        if cli_method and cli_method.command:
            template = parse_claude_add_template(cli_method.command, server.name)

        if template is None:
            report.lines.append("No Claude CLI command available for this server.")
            report.lines.extend(format_manual_configuration(method.config_example))
            return report

        args = build_args_from_template(template, server.name, scope, env_vars)
        try:
            self._claude.add_server(args)
        except ClaudeCLINotFoundError as e:
            logger.warning(str(e))
            report.lines.append(str(e).splitlines()[0])
            report.lines.extend(format_manual_configuration(method.config_example))
            return report
        except IntegrationCommandFailedError as e:
            logger.warning(f"Failed to configure with Claude CLI: {e}")
            report.lines.append("Falling back to manual configuration...")
            report.lines.extend(format_manual_configuration(method.config_example))
            return report

        report.configured_in_claude = True
        report.lines.append(f'MCP server "{server.name}" configured successfully ({scope} scope)')
        return report

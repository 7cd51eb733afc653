# Install and removal orchestration across bwc config, .mcp.json, Claude Code and Docker
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from bwc.config import ConfigStore, get_home
from bwc.errors import (
    BwcError,
    ClaudeCLINotFoundError,
    IntegrationCommandFailedError,
    ParseError,
    UnknownProviderError,
)
from bwc.installer import InstallReport, Installer, select_method
from bwc.models import VALID_PROVIDERS, MCPServerConfig, RegistryServer, RemovalOutcome
from bwc.platforms.claude import ClaudeCLI, build_add_args, format_remove_command
from bwc.platforms.docker import DockerMCP
from bwc.platforms.mcp_json import MCPJsonStore, extract_server_entry, should_add_to_mcp_json
from bwc.utils.backup import get_backup_dir
from bwc.utils.env import parse_env_assignments, parse_header_assignments, template_env_assignments
from bwc.utils.process import ProcessRunner
from bwc.utils.validation import validate_scope, validate_transport, validate_url

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def docker_alias(server: RegistryServer) -> str | None:
    """Catalog name Docker knows the server by, when it differs from ours.

    Examples:
        >>> docker_alias(RegistryServer(name="gh", sources={"docker": "mcp/github:latest"}))
        'github'
    """
    image = server.sources.get("docker")
    if not image:
        return None
    alias = image.rsplit("/", 1)[-1].split(":", 1)[0]
    return alias if alias and alias != server.name else None


def with_templated_env(config: MCPServerConfig, env_vars: list[str]) -> MCPServerConfig:
    """Copy of config whose user-supplied env values use ${KEY:-value} form."""
    if not env_vars:
        return config
    env = dict(config.env)
    env.update(template_env_assignments(env_vars))
    return replace(config, env=env)


def record_for_install(
    server: RegistryServer,
    method_type: str,
    scope: str,
    env: dict[str, str],
) -> MCPServerConfig:
    """Build the config record for a registry install.

    ABOUTME: Docker installs are tracked by name and alias only
    ABOUTME: Other installs copy command/args or url from the method's config example
    """
    if method_type == "docker":
        return MCPServerConfig(
            provider="docker",
            transport="stdio",
            scope=scope,
            env=env,
            registry_name=docker_alias(server),
            installed_at=_now(),
            verification_status=server.verification_status,
        )

    method = server.method(method_type)
    entry: dict = {}
    if method and method.config_example:
        try:
            entry = extract_server_entry(server.name, method.config_example)
        except ParseError:
            logger.debug(f"Config example for {server.name} is not parseable, recording bare entry")

    transport = entry.get("type")
    if transport not in ("sse", "http"):
        if entry.get("url"):
            transport = server.server_type if server.server_type in ("sse", "http") else "sse"
        else:
            transport = "stdio"
    merged_env = dict(entry.get("env") or {})
    merged_env.update(env)
    return MCPServerConfig(
        provider="claude",
        transport=transport,
        scope=scope,
        command=entry.get("command"),
        args=list(entry.get("args") or []),
        env=merged_env,
        url=entry.get("url"),
        headers=dict(entry.get("headers") or {}),
        installed_at=_now(),
        verification_status=server.verification_status,
    )


@dataclass
class InstallOutcome:
    """What an install did in each store."""
    name: str
    provider: str
    config: MCPServerConfig
    config_recorded: bool = False
    mcp_json_written: bool = False
    live_registered: bool = False
    lines: list[str] = field(default_factory=list)


@dataclass
class BatchReport:
    """Per-item results of a batch install or removal.

    ABOUTME: Failures are recorded and the batch keeps going, nothing is rolled back
    """
    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.failed) and bool(self.succeeded)


class ProviderReconciler:
    """Drive installs and removals so every store agrees.

    ABOUTME: Scope is validated before any side effect
    ABOUTME: Removal is best-effort per store and reports what each store did
    """

    def __init__(
        self,
        store: ConfigStore,
        runner: ProcessRunner | None = None,
        claude: ClaudeCLI | None = None,
        docker: DockerMCP | None = None,
        mcp_json: MCPJsonStore | None = None,
    ) -> None:
        self._store = store
        self._runner = runner or ProcessRunner()
        self._claude = claude or ClaudeCLI(self._runner)
        self._docker = docker or DockerMCP(self._runner, self._claude)
        self._mcp_json = mcp_json or MCPJsonStore(store.cwd, get_backup_dir(get_home()))
        self._installer = Installer(self._runner, self._claude, self._docker.docker_command)

    @property
    def store(self) -> ConfigStore:
        return self._store

    @property
    def claude(self) -> ClaudeCLI:
        return self._claude

    @property
    def docker(self) -> DockerMCP:
        return self._docker

    @property
    def mcp_json(self) -> MCPJsonStore:
        return self._mcp_json

    def install(
        self,
        server: RegistryServer,
        method_type: str | None = None,
        scope: str = "local",
        env_vars: list[str] | None = None,
    ) -> InstallOutcome:
        """Install a registry server with the chosen or best method.

        ABOUTME: docker method -> docker provider, every other method -> claude provider
        ABOUTME: Claude CLI registration failures degrade to manual instructions

        Raises:
            InvalidScopeError: Before anything else if scope is invalid
            PrerequisiteMissingError: If the method's toolchain is missing
            NoInstallMethodAvailableError: If no method applies
        """
        validate_scope(scope)
        env_vars = env_vars or []
        env = parse_env_assignments(env_vars)

        method = select_method(server, method_type)
        report = self._installer.install(server, method)
        provider = "docker" if report.method == "docker" else "claude"

        if provider == "claude":
            report = self._installer.configure_in_claude_code(
                server, method, scope, env_vars, report=report
            )

        config = record_for_install(server, report.method, scope, env)
        outcome = self._record(server.name, config, report)

        if should_add_to_mcp_json(config):
            self._write_mcp_json(server, method.config_example, config, env_vars)
            outcome.mcp_json_written = True
            outcome.lines.append(f"Added {server.name} to .mcp.json")
        return outcome

    def _write_mcp_json(
        self,
        server: RegistryServer,
        example: str | dict | None,
        config: MCPServerConfig,
        env_vars: list[str],
    ) -> None:
        if example:
            try:
                self._mcp_json.add_server(
                    server.name, example, env_vars, server.verification_status
                )
                return
            except ParseError:
                logger.debug(f"Config example for {server.name} unusable, writing recorded entry")
        self._mcp_json.add_config(server.name, with_templated_env(config, env_vars))

    def _record(self, name: str, config: MCPServerConfig, report: InstallReport) -> InstallOutcome:
        self._store.add_installed_mcp_server(name, config)
        return InstallOutcome(
            name=name,
            provider=config.provider,
            config=config,
            config_recorded=True,
            live_registered=report.configured_in_claude,
            lines=list(report.lines),
        )

    def add_remote(
        self,
        name: str,
        transport: str,
        url: str | None = None,
        headers: list[str] | None = None,
        env_vars: list[str] | None = None,
        scope: str = "local",
        command: list[str] | None = None,
    ) -> InstallOutcome:
        """Register a server directly with Claude Code, without the registry.

        ABOUTME: sse/http need a url, stdio needs a command
        ABOUTME: Unlike registry installs, a failing claude command is an error here

        Raises:
            InvalidScopeError: If scope is invalid
            BwcError: If transport, url or command are invalid
            ClaudeCLINotFoundError: If claude is not installed
            IntegrationCommandFailedError: If claude rejects the server
        """
        validate_scope(scope)
        transport_error = validate_transport(transport)
        if transport_error:
            raise BwcError(transport_error.message)

        parsed_headers = parse_header_assignments(headers or [])
        env = parse_env_assignments(env_vars or [])

        if transport in ("sse", "http"):
            if not url:
                raise BwcError(
                    f"URL is required for {transport} transport",
                    remediation=f"bwc add --mcp {name} --transport {transport} --url <url>",
                )
            url_error = validate_url(url)
            if url_error:
                raise BwcError(url_error.message)
            command = None
        elif not command:
            raise BwcError(f"A command is required for stdio server {name}")

        config = MCPServerConfig(
            provider="claude",
            transport=transport,
            scope=scope,
            command=command[0] if command else None,
            args=list(command[1:]) if command else [],
            env=env,
            url=url if transport != "stdio" else None,
            headers=parsed_headers,
            installed_at=_now(),
        )

        args = build_add_args(
            name,
            scope,
            transport=transport if transport != "stdio" else None,
            url=config.url,
            headers=parsed_headers,
            env=env,
            command=command if transport == "stdio" else None,
        )
        self._claude.add_server(args)
        logger.info(f"Registered {name} with Claude Code ({scope} scope)")

        self._store.add_installed_mcp_server(name, config)
        outcome = InstallOutcome(
            name=name,
            provider="claude",
            config=config,
            config_recorded=True,
            live_registered=True,
            lines=[f'Added {transport} MCP server "{name}" ({scope} scope)'],
        )

        if should_add_to_mcp_json(config):
            self._mcp_json.add_config(name, with_templated_env(config, env_vars or []))
            outcome.mcp_json_written = True
            outcome.lines.append(f"Added {name} to .mcp.json")
        return outcome

    def add_docker(self, name: str, scope: str = "local") -> InstallOutcome:
        """Enable a Docker MCP catalog server and track it.

        ABOUTME: Already-enabled servers are only recorded, docker is not touched again
        ABOUTME: Never writes .mcp.json, the gateway exposes Docker servers

        Raises:
            InvalidScopeError: If scope is invalid
            NotFoundRemotelyError: If the catalog has no such server
            IntegrationCommandFailedError: If docker fails to enable it
        """
        validate_scope(scope)
        entry = self._docker.server_info(name)
        lines = [f"{entry.name}: {entry.description}"] if entry.description else []

        if self._docker.is_installed(name):
            lines.append(f'Docker MCP server "{name}" is already enabled')
        else:
            self._docker.enable_server(name)
            lines.append(f'Server "{name}" enabled in Docker MCP Toolkit')

        config = MCPServerConfig(
            provider="docker",
            transport="stdio",
            scope=scope,
            registry_name=name,
            installed_at=_now(),
        )
        self._store.add_installed_mcp_server(name, config)
        return InstallOutcome(
            name=name,
            provider="docker",
            config=config,
            config_recorded=True,
            live_registered=True,
            lines=lines,
        )

    def setup_docker_gateway(self, scope: str = "project") -> None:
        """Register the Docker MCP gateway in Claude Code.

        Raises:
            InvalidScopeError: If scope is invalid
            ClaudeCLINotFoundError: If claude is not installed
            IntegrationCommandFailedError: If registration fails
        """
        validate_scope(scope)
        self._docker.setup_gateway(scope)

    def remove(self, name: str, scope: str | None = None) -> RemovalOutcome:
        """Remove a server from every store that knows it.

        ABOUTME: Servers enabled in Docker are disabled there and dropped from config
        ABOUTME: Otherwise: config, then .mcp.json, then `claude mcp remove`, each best-effort
        ABOUTME: Removing an unknown name succeeds with every flag False

        Raises:
            InvalidScopeError: If scope is given and invalid, before any side effect
        """
        if scope is not None:
            validate_scope(scope)

        outcome = RemovalOutcome(name=name)
        config = self._store.get_mcp_server_config(name)
        registry_name = config.registry_name if config else None

        if self._docker.is_installed(name, registry_name):
            docker_name = name if name in self._docker.list_installed_servers() else registry_name
            try:
                self._docker.disable_server(docker_name or name)
                outcome.docker_disabled = True
            except IntegrationCommandFailedError as e:
                outcome.errors.append(str(e))
            outcome.config_removed = self._store.remove_installed_mcp_server(name)
            return outcome

        outcome.config_removed = self._store.remove_installed_mcp_server(name)

        try:
            outcome.mcp_json_removed = self._mcp_json.remove_server(name)
        except (ParseError, OSError) as e:
            logger.warning(f"Could not update .mcp.json: {e}")
            outcome.errors.append(f"Could not update .mcp.json: {e}")

        removal_scope = scope or (config.scope if config else None)
        try:
            outcome.live_deregistered = self._claude.remove_server(name, removal_scope)
        except ClaudeCLINotFoundError:
            outcome.errors.append(
                f"Claude CLI not found. To remove manually run: "
                f"{format_remove_command(name, removal_scope)}"
            )
        except IntegrationCommandFailedError as e:
            outcome.errors.append(f"{e}. To remove manually run: {e.remediation}")

        return outcome

    def install_many(
        self,
        servers: list[RegistryServer],
        method_type: str | None = None,
        scope: str = "local",
        env_vars: list[str] | None = None,
    ) -> BatchReport:
        """Install servers one after another, recording each result."""
        validate_scope(scope)
        report = BatchReport()
        for server in servers:
            try:
                self.install(server, method_type, scope, env_vars)
            except BwcError as e:
                logger.warning(f"Failed to install {server.name}: {e}")
                report.failed[server.name] = str(e)
            else:
                report.succeeded.append(server.name)
        return report

    def remove_many(self, names: list[str], scope: str | None = None) -> BatchReport:
        """Remove servers one after another, recording each result."""
        if scope is not None:
            validate_scope(scope)
        report = BatchReport()
        for name in names:
            outcome = self.remove(name, scope)
            if outcome.errors and not outcome.removed_anywhere:
                report.failed[name] = "; ".join(outcome.errors)
            else:
                report.succeeded.append(name)
        return report

    def restore(self) -> BatchReport:
        """Re-register every configured server with its provider.

        ABOUTME: Docker servers are re-enabled, Claude servers re-added from their record
        ABOUTME: .mcp.json is rewritten for project-scoped Claude servers
        """
        report = BatchReport()
        for name, config in self._store.get_all_mcp_server_configs().items():
            try:
                self._restore_one(name, config)
            except BwcError as e:
                logger.warning(f"Failed to restore {name}: {e}")
                report.failed[name] = str(e)
            else:
                report.succeeded.append(name)
        return report

    def _restore_one(self, name: str, config: MCPServerConfig) -> None:
        if config.provider not in VALID_PROVIDERS:
            raise UnknownProviderError(
                f"{name} has unknown provider '{config.provider}'",
                remediation=f"bwc remove --mcp {name} && bwc add --mcp {name}",
            )
        if config.provider == "docker":
            docker_name = config.registry_name or name
            if not self._docker.is_installed(name, config.registry_name):
                self._docker.enable_server(docker_name)
            return

        if config.is_remote:
            args = build_add_args(
                name, config.scope,
                transport=config.transport, url=config.url,
                headers=config.headers, env=config.env,
            )
        elif config.command:
            args = build_add_args(
                name, config.scope, env=config.env,
                command=[config.command, *config.args],
            )
        else:
            raise BwcError(
                f"{name} has no command or url recorded",
                remediation=f"bwc add --mcp {name}",
            )

        self._claude.add_server(args)
        if should_add_to_mcp_json(config):
            self._mcp_json.add_config(name, config)

# Core data models for bwc
from dataclasses import dataclass, field
from typing import Any, Literal

# ABOUTME: Closed vocabularies shared across config, reconciliation and verification
Provider = Literal["docker", "claude"]
Transport = Literal["stdio", "sse", "http"]
Scope = Literal["local", "user", "project"]
ConnectionStatus = Literal["connected", "error", "timeout", "unknown"]

VALID_SCOPES: tuple[str, ...] = ("local", "user", "project")
VALID_TRANSPORTS: tuple[str, ...] = ("stdio", "sse", "http")
VALID_PROVIDERS: tuple[str, ...] = ("docker", "claude")


@dataclass(frozen=True)
class MCPServerConfig:
    """Immutable record of one installed MCP server.

    ABOUTME: stdio servers use command/args/env, sse/http servers use url/headers
    ABOUTME: registry_name is the provider's catalog alias when it differs from the key
    ABOUTME: Entries migrated from the legacy name list carry neither command nor url
    """
    provider: str
    transport: str = "stdio"
    scope: str = "local"
    command: str | None = None
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    url: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    registry_name: str | None = None
    installed_at: str | None = None
    verification_status: str | None = None

    @property
    def is_remote(self) -> bool:
        """True for sse/http transports."""
        return self.transport in ("sse", "http")


@dataclass
class BwcConfig:
    """bwc configuration loaded from a global or project config file.

    ABOUTME: mcp_servers is always a name -> MCPServerConfig mapping in memory
    ABOUTME: legacy_mcp_format records that the file stored a plain list of names
    ABOUTME: extras keeps unknown top-level keys so a save never drops them
    """
    version: str
    registry: str
    subagents_path: str
    commands_path: str
    installed_subagents: list[str] = field(default_factory=list)
    installed_commands: list[str] = field(default_factory=list)
    mcp_servers: dict[str, MCPServerConfig] = field(default_factory=dict)
    legacy_mcp_format: bool = False
    extras: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CatalogEntry:
    """One server parsed from `docker mcp catalog show` output."""
    name: str
    description: str = ""
    category: str = "other"

    @property
    def docker_hub_url(self) -> str:
        return f"https://hub.docker.com/r/mcp/{self.name}"


@dataclass
class VerificationResult:
    """Outcome of checking one configured server against live provider state.

    ABOUTME: verification_error is set iff actually_installed is False
    ABOUTME: fix_commands are suggestions only, never executed
    """
    name: str
    provider: str
    transport: str
    scope: str
    configured_in_bwc: bool = True
    actually_installed: bool = False
    gateway_configured: bool | None = None
    connection_status: str = "unknown"
    verification_error: str | None = None
    fix_commands: list[str] = field(default_factory=list)


@dataclass
class RemovalOutcome:
    """Per-target result of removing one server.

    ABOUTME: Each flag records whether that store actually held and dropped the server
    ABOUTME: errors collects best-effort failures that did not stop the removal
    """
    name: str
    config_removed: bool = False
    mcp_json_removed: bool = False
    live_deregistered: bool = False
    docker_disabled: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def removed_anywhere(self) -> bool:
        return (
            self.config_removed
            or self.mcp_json_removed
            or self.live_deregistered
            or self.docker_disabled
        )


@dataclass(frozen=True)
class DockerMCPStatus:
    """Snapshot of Docker MCP Toolkit availability and gateway registration."""
    docker_available: bool
    mcp_toolkit_available: bool
    gateway_configured: bool
    installed_servers: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class InstallationMethod:
    """One way of installing a registry server.

    ABOUTME: type is one of docker, npm, manual, binary, bwc, claude-cli
    ABOUTME: config_example may be a JSON string or an already-decoded dict
    """
    type: str
    recommended: bool = False
    command: str | None = None
    config_example: str | dict[str, Any] | None = None
    steps: list[str] = field(default_factory=list)
    requirements: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RegistryServer:
    """An MCP server as described by the bwc registry."""
    name: str
    display_name: str = ""
    description: str = ""
    category: str = "other"
    server_type: str = "stdio"
    sources: dict[str, str] = field(default_factory=dict)
    verification_status: str | None = None
    installation_methods: list[InstallationMethod] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    def method(self, method_type: str) -> InstallationMethod | None:
        """Return the first installation method of the given type, if any."""
        for method in self.installation_methods:
            if method.type == method_type:
                return method
        return None

# Configuration loading, migration and persistence for bwc
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from bwc.errors import ConfigAlreadyExistsError, ConfigNotFoundError, ParseError
from bwc.models import BwcConfig, MCPServerConfig
from bwc.platforms.base import read_json_file, write_json_file

logger = logging.getLogger(__name__)

# ABOUTME: Default registry document listing subagents, commands and MCP servers
DEFAULT_REGISTRY_URL = "https://buildwithclaude.com/registry.json"

# ABOUTME: Project config file names, checked in order in each directory walking up
PROJECT_CONFIG_NAMES = ("bwc.config.json", os.path.join(".bwc", "config.json"))

CONFIG_VERSION = "1.0"

# ABOUTME: Keys bwc understands at the top level, everything else is carried through
KNOWN_KEYS = ("version", "registry", "paths", "installed")


def get_home() -> Path:
    """Return the home directory, honoring BWC_TEST_HOME."""
    test_home = os.environ.get("BWC_TEST_HOME")
    return Path(test_home) if test_home else Path.home()


def get_config_path() -> Path:
    """Return the path to the global bwc config file.

    ABOUTME: Returns ~/.bwc/config.json unless BWC_CONFIG_PATH overrides it
    ABOUTME: File may not exist yet - use ensure_config_dir() first

    Returns:
        Path to config file
    """
    override = os.environ.get("BWC_CONFIG_PATH")
    if override:
        return Path(override).expanduser()
    return get_home() / ".bwc" / "config.json"


def ensure_config_dir() -> Path:
    """Create the global config directory if it doesn't exist."""
    config_dir = get_config_path().parent
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def find_project_config(start: Path, exclude: Path | None = None) -> Path | None:
    """Search start and its parents for a project config file.

    ABOUTME: bwc.config.json wins over .bwc/config.json in the same directory
    ABOUTME: Stops at the filesystem root

    Args:
        start: Directory to begin the search in
        exclude: File never treated as a project config (the global ~/.bwc/config.json)

    Returns:
        Path to the nearest project config, or None
    """
    skip = exclude.resolve() if exclude else None
    current = start.resolve()
    while True:
        for name in PROJECT_CONFIG_NAMES:
            candidate = current / name
            if candidate.is_file() and candidate.resolve() != skip:
                return candidate
        if current.parent == current:
            return None
        current = current.parent


def default_config_data(project: bool = False, home: Path | None = None) -> dict[str, Any]:
    """Return the on-disk form of a fresh config."""
    if project:
        paths = {"subagents": ".claude/agents/", "commands": ".claude/commands/"}
    else:
        claude_dir = (home or get_home()) / ".claude"
        paths = {
            "subagents": str(claude_dir / "agents"),
            "commands": str(claude_dir / "commands"),
        }
    return {
        "version": CONFIG_VERSION,
        "registry": DEFAULT_REGISTRY_URL,
        "paths": paths,
        "installed": {"subagents": [], "commands": []},
    }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def server_config_to_dict(config: MCPServerConfig) -> dict[str, Any]:
    """Convert MCPServerConfig to its config.json form.

    ABOUTME: Uses camelCase keys (registryName, installedAt) on disk
    ABOUTME: Omits empty and unset fields for cleaner output
    """
    result: dict[str, Any] = {
        "provider": config.provider,
        "transport": config.transport,
        "scope": config.scope,
    }
    if config.command:
        result["command"] = config.command
    if config.args:
        result["args"] = list(config.args)
    if config.env:
        result["env"] = dict(config.env)
    if config.url:
        result["url"] = config.url
    if config.headers:
        result["headers"] = dict(config.headers)
    if config.registry_name:
        result["registryName"] = config.registry_name
    if config.installed_at:
        result["installedAt"] = config.installed_at
    if config.verification_status:
        result["verificationStatus"] = config.verification_status
    return result


def dict_to_server_config(name: str, data: dict[str, Any]) -> MCPServerConfig:
    """Convert a config.json server entry to MCPServerConfig.

    Raises:
        ParseError: If the entry is not a JSON object or lacks a provider
    """
    if not isinstance(data, dict):
        raise ParseError(f"MCP server '{name}' must be an object, got {type(data).__name__}")
    if "provider" not in data:
        raise ParseError(f"MCP server '{name}' missing required 'provider' field")

    return MCPServerConfig(
        provider=data["provider"],
        transport=data.get("transport", "stdio"),
        scope=data.get("scope", "local"),
        command=data.get("command"),
        args=list(data.get("args", [])),
        env=dict(data.get("env", {})),
        url=data.get("url"),
        headers=dict(data.get("headers", {})),
        registry_name=data.get("registryName"),
        installed_at=data.get("installedAt"),
        verification_status=data.get("verificationStatus"),
    )


def migrate_config(raw: dict[str, Any]) -> dict[str, Any]:
    """Upgrade a legacy name-list mcpServers field to the mapping form.

    ABOUTME: Read-time only, returns a new dict and never touches the file
    ABOUTME: Legacy entries become docker/stdio/local records stamped with the current time

    Examples:
        >>> migrated = migrate_config({"installed": {"mcpServers": ["s1"]}})
        >>> migrated["installed"]["mcpServers"]["s1"]["provider"]
        'docker'
    """
    installed = raw.get("installed") or {}
    servers = installed.get("mcpServers")
    if not isinstance(servers, list):
        return raw

    installed_at = _now()
    migrated = dict(raw)
    migrated["installed"] = dict(installed)
    migrated["installed"]["mcpServers"] = {
        name: {
            "provider": "docker",
            "transport": "stdio",
            "scope": "local",
            "installedAt": installed_at,
        }
        for name in servers
    }
    return migrated


def parse_config(raw: dict[str, Any]) -> BwcConfig:
    """Build a BwcConfig from decoded config.json data.

    Raises:
        ParseError: If required sections are malformed
    """
    installed = raw.get("installed") or {}
    legacy = isinstance(installed.get("mcpServers"), list)
    data = migrate_config(raw)
    servers_data = (data.get("installed") or {}).get("mcpServers") or {}
    if not isinstance(servers_data, dict):
        raise ParseError("'installed.mcpServers' must be a list or an object")

    paths = raw.get("paths") or {}
    defaults = default_config_data()["paths"]

    return BwcConfig(
        version=str(raw.get("version", CONFIG_VERSION)),
        registry=raw.get("registry", DEFAULT_REGISTRY_URL),
        subagents_path=paths.get("subagents", defaults["subagents"]),
        commands_path=paths.get("commands", defaults["commands"]),
        installed_subagents=list(installed.get("subagents", [])),
        installed_commands=list(installed.get("commands", [])),
        mcp_servers={
            name: dict_to_server_config(name, entry)
            for name, entry in servers_data.items()
        },
        legacy_mcp_format=legacy,
        extras={key: value for key, value in raw.items() if key not in KNOWN_KEYS},
    )


def config_to_dict(config: BwcConfig) -> dict[str, Any]:
    """Convert BwcConfig to its on-disk form.

    ABOUTME: A config still in legacy shape is written back as a name list
    ABOUTME: mcpServers is omitted entirely when nothing was ever installed
    """
    data: dict[str, Any] = dict(config.extras)
    data["version"] = config.version
    data["registry"] = config.registry
    data["paths"] = {
        "subagents": config.subagents_path,
        "commands": config.commands_path,
    }
    installed: dict[str, Any] = {
        "subagents": list(config.installed_subagents),
        "commands": list(config.installed_commands),
    }
    if config.legacy_mcp_format:
        installed["mcpServers"] = list(config.mcp_servers)
    elif config.mcp_servers:
        installed["mcpServers"] = {
            name: server_config_to_dict(server)
            for name, server in config.mcp_servers.items()
        }
    data["installed"] = installed
    return data


class ConfigStore:
    """Load, mutate and persist the effective bwc configuration.

    ABOUTME: Project config found by walking up from cwd wins over the global one
    ABOUTME: save() writes back to whichever file load() read, never switching tiers
    ABOUTME: Not safe for concurrent writers - last save wins
    """

    def __init__(
        self,
        cwd: Path | None = None,
        global_config_path: Path | None = None,
    ) -> None:
        """Initialize store.

        ABOUTME: Defaults to the process cwd and get_config_path()

        Args:
            cwd: Directory the project config search starts from
            global_config_path: Override for the global config file
        """
        self._cwd = cwd
        self._global_config_path = global_config_path
        self._config: BwcConfig | None = None
        self._config_path: Path | None = None
        self._is_project = False
        self._force_user = False

    @property
    def cwd(self) -> Path:
        return self._cwd if self._cwd else Path.cwd()

    @property
    def global_config_path(self) -> Path:
        return self._global_config_path if self._global_config_path else get_config_path()

    def init(self, project: bool = False, force: bool = False) -> Path:
        """Write a default config file.

        Args:
            project: Write bwc.config.json in cwd instead of the global config
            force: Overwrite an existing file

        Returns:
            Path of the written config

        Raises:
            ConfigAlreadyExistsError: If the file exists and force is False
        """
        if project:
            path = self.cwd / PROJECT_CONFIG_NAMES[0]
            if path.exists() and not force:
                raise ConfigAlreadyExistsError(
                    "Project configuration already exists. Use --force to overwrite.",
                    remediation="bwc init --project --force",
                )
        else:
            path = self.global_config_path
            if path.exists() and not force:
                raise ConfigAlreadyExistsError(
                    "Configuration already exists. Use --force to overwrite.",
                    remediation="bwc init --force",
                )

        data = default_config_data(project=project)
        write_json_file(path, data)
        logger.debug(f"Wrote default config to {path}")

        self._config = parse_config(data)
        self._config_path = path
        self._is_project = project
        return path

    def load(self) -> BwcConfig:
        """Return the effective config, loading it on first use.

        Raises:
            ConfigNotFoundError: If neither a project nor a global config exists
            ParseError: If the config file is not valid JSON
        """
        if self._config is not None:
            return self._config

        if not self._force_user:
            project_path = find_project_config(self.cwd, exclude=self.global_config_path)
            if project_path:
                self._config = parse_config(read_json_file(project_path))
                self._config_path = project_path
                self._is_project = True
                logger.debug(f"Loaded project config from {project_path}")
                return self._config

        path = self.global_config_path
        if not path.exists():
            raise ConfigNotFoundError()

        self._config = parse_config(read_json_file(path))
        self._config_path = path
        self._is_project = False
        logger.debug(f"Loaded global config from {path}")
        return self._config

    def load_user_config(self) -> BwcConfig:
        """Load the global config even when a project config is present."""
        self._force_user = True
        self._config = None
        self._config_path = None
        return self.load()

    def reset(self) -> None:
        """Drop cached state so the next load() searches again."""
        self._config = None
        self._config_path = None
        self._is_project = False
        self._force_user = False

    def save(self) -> None:
        """Persist the loaded config to the file it came from."""
        if self._config is None or self._config_path is None:
            raise ConfigNotFoundError("No configuration loaded")
        write_json_file(self._config_path, config_to_dict(self._config))

    def is_using_project_config(self) -> bool:
        self.load()
        return self._is_project

    def config_location(self) -> Path:
        self.load()
        assert self._config_path is not None
        return self._config_path

    def get_registry_url(self) -> str:
        return self.load().registry

    def _resolve_path(self, raw_path: str) -> Path:
        path = Path(raw_path)
        if self._is_project and not path.is_absolute() and not raw_path.startswith("~"):
            assert self._config_path is not None
            path = self._config_path.parent / path
        else:
            path = path.expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_subagents_path(self) -> Path:
        """Directory subagent files install into (created if missing).

        ABOUTME: Relative paths in a project config resolve against the config's directory
        """
        return self._resolve_path(self.load().subagents_path)

    def get_commands_path(self) -> Path:
        """Directory command files install into (created if missing)."""
        return self._resolve_path(self.load().commands_path)

    def add_installed_subagent(self, name: str) -> None:
        config = self.load()
        if name not in config.installed_subagents:
            config.installed_subagents.append(name)
            self.save()

    def remove_installed_subagent(self, name: str) -> None:
        config = self.load()
        if name in config.installed_subagents:
            config.installed_subagents = [s for s in config.installed_subagents if s != name]
            self.save()

    def get_installed_subagents(self) -> list[str]:
        return list(self.load().installed_subagents)

    def add_installed_command(self, name: str) -> None:
        config = self.load()
        if name not in config.installed_commands:
            config.installed_commands.append(name)
            self.save()

    def remove_installed_command(self, name: str) -> None:
        config = self.load()
        if name in config.installed_commands:
            config.installed_commands = [c for c in config.installed_commands if c != name]
            self.save()

    def get_installed_commands(self) -> list[str]:
        return list(self.load().installed_commands)

    def add_installed_mcp_server(self, name: str, server: MCPServerConfig | None = None) -> None:
        """Record an installed MCP server and save.

        ABOUTME: Always leaves mcpServers in mapping form, converting a legacy list
        ABOUTME: Re-adding an existing name replaces its record
        ABOUTME: A missing record defaults to a docker/stdio/local entry

        Args:
            name: Server name
            server: Full record to store
        """
        config = self.load()
        if server is None:
            server = MCPServerConfig(provider="docker", installed_at=_now())
        config.mcp_servers[name] = server
        config.legacy_mcp_format = False
        self.save()

    def remove_installed_mcp_server(self, name: str) -> bool:
        """Forget an installed MCP server.

        ABOUTME: Legacy lists keep their list shape, mappings drop the key
        ABOUTME: Removing an absent name is a no-op and does not write the file

        Returns:
            True if the server was present and removed
        """
        config = self.load()
        if name not in config.mcp_servers:
            return False
        del config.mcp_servers[name]
        self.save()
        return True

    def get_installed_mcp_servers(self) -> list[str]:
        return list(self.load().mcp_servers)

    def get_mcp_server_config(self, name: str) -> MCPServerConfig | None:
        return self.load().mcp_servers.get(name)

    def get_all_mcp_server_configs(self) -> dict[str, MCPServerConfig]:
        return dict(self.load().mcp_servers)


_default_store: ConfigStore | None = None


def get_config_store() -> ConfigStore:
    """Return the process-wide default ConfigStore."""
    global _default_store
    if _default_store is None:
        _default_store = ConfigStore()
    return _default_store


def reset_config_store() -> None:
    """Discard the process-wide ConfigStore. For tests."""
    global _default_store
    _default_store = None

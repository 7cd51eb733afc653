# Docker MCP Toolkit platform wrapper
import logging

from bwc.catalog import parse_catalog_output
from bwc.errors import (
    ClaudeCLINotFoundError,
    CommandFailedError,
    CommandNotFoundError,
    IntegrationCommandFailedError,
    NotFoundRemotelyError,
)
from bwc.models import CatalogEntry, DockerMCPStatus
from bwc.platforms.claude import GATEWAY_NAME, ClaudeCLI
from bwc.utils.platform import get_docker_command
from bwc.utils.process import ProcessResult, ProcessRunner

logger = logging.getLogger(__name__)


def parse_installed_list(output: str) -> list[str]:
    """Parse `docker mcp server list` output (comma separated names)."""
    return [name.strip() for name in output.split(",") if name.strip()]


class DockerMCP:
    """Adapter for Docker MCP Toolkit (`docker mcp ...`).

    ABOUTME: Resolves docker vs docker.exe once per instance
    ABOUTME: Read operations degrade to empty results, writes raise
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
        self._installed: list[str] | None = None

    @property
    def docker_command(self) -> str:
        return self._docker

    def _run(self, args: list[str], check: bool = False) -> ProcessResult:
        return self._runner.run([self._docker, *args], check=check)

    def _responds(self, args: list[str]) -> bool:
        try:
            return self._run(args).ok
        except CommandNotFoundError:
            return False

    def is_docker_available(self) -> bool:
        return self._responds(["--version"])

    def is_mcp_toolkit_available(self) -> bool:
        return self._responds(["mcp", "--version"])

    def list_installed_servers(self, refresh: bool = False) -> list[str]:
        """Names enabled in the toolkit, queried once per instance.

        ABOUTME: Returns an empty list when docker is missing or the command fails
        """
        if self._installed is not None and not refresh:
            return list(self._installed)

        try:
            result = self._run(["mcp", "server", "list"])
        except CommandNotFoundError:
            logger.warning("Docker is not installed, cannot list Docker MCP servers")
            self._installed = []
            return []

        if not result.ok:
            logger.warning("Failed to list installed Docker MCP servers")
            logger.debug(result.stderr.strip())
            self._installed = []
            return []

        self._installed = parse_installed_list(result.stdout)
        return list(self._installed)

    def is_installed(self, name: str, registry_name: str | None = None) -> bool:
        installed = self.list_installed_servers()
        return name in installed or bool(registry_name and registry_name in installed)

    def enable_server(self, name: str) -> None:
        """Enable a catalog server in the toolkit.

        Raises:
            IntegrationCommandFailedError: If docker rejects the request
        """
        logger.info(f"Enabling Docker MCP server: {name}")
        try:
            self._run(["mcp", "server", "enable", name], check=True)
        except (CommandFailedError, CommandNotFoundError) as e:
            raise IntegrationCommandFailedError(
                f'Failed to enable server "{name}": {e}',
                remediation=f"{self._docker} mcp server enable {name}",
            ) from e
        self._installed = None

    def disable_server(self, name: str) -> None:
        """Disable a server in the toolkit.

        Raises:
            IntegrationCommandFailedError: If docker rejects the request
        """
        logger.info(f"Disabling Docker MCP server: {name}")
        try:
            self._run(["mcp", "server", "disable", name], check=True)
        except (CommandFailedError, CommandNotFoundError) as e:
            raise IntegrationCommandFailedError(
                f'Failed to disable server "{name}": {e}',
                remediation=f"{self._docker} mcp server disable {name}",
            ) from e
        self._installed = None

    def catalog(self) -> list[CatalogEntry]:
        """All servers in the Docker MCP catalog, empty if unavailable."""
        try:
            result = self._run(["mcp", "catalog", "show"])
        except CommandNotFoundError:
            logger.warning("Docker is not installed, cannot read the Docker MCP catalog")
            return []
        if not result.ok:
            logger.warning("Failed to fetch Docker MCP catalog")
            logger.debug(result.stderr.strip())
            return []
        return parse_catalog_output(result.stdout)

    def server_info(self, name: str) -> CatalogEntry:
        """Look a server up in the catalog.

        Raises:
            NotFoundRemotelyError: If the catalog has no such server
        """
        for entry in self.catalog():
            if entry.name == name:
                return entry
        raise NotFoundRemotelyError(
            f'Server "{name}" not found in Docker MCP catalog',
            remediation=f"{self._docker} mcp catalog show",
        )

    def search(self, query: str) -> list[CatalogEntry]:
        term = query.lower()
        return [
            entry for entry in self.catalog()
            if term in entry.name.lower() or term in entry.description.lower()
        ]

    def setup_gateway(self, scope: str = "project") -> None:
        """Register the Docker MCP gateway as a stdio server in Claude Code.

        Raises:
            ClaudeCLINotFoundError: If claude is not installed
            IntegrationCommandFailedError: If registration fails
        """
        logger.info("Setting up Docker MCP Toolkit gateway...")
        args = [
            "mcp", "add", GATEWAY_NAME, "--scope", scope,
            "--", self._docker, "mcp", "gateway", "run",
        ]
        self._claude.add_server(args)

    def is_gateway_configured(self) -> bool:
        """True if `claude mcp get docker-toolkit` reports a connection."""
        try:
            result = self._claude.get_server(GATEWAY_NAME)
        except ClaudeCLINotFoundError:
            return False
        return result.ok and "Connected" in result.stdout

    def status(self) -> DockerMCPStatus:
        docker_available = self.is_docker_available()
        toolkit_available = docker_available and self.is_mcp_toolkit_available()
        return DockerMCPStatus(
            docker_available=docker_available,
            mcp_toolkit_available=toolkit_available,
            gateway_configured=self.is_gateway_configured(),
            installed_servers=self.list_installed_servers() if toolkit_available else [],
        )

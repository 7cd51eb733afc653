# ABOUTME: Tests for ProviderReconciler install, removal and restore across all stores
# ABOUTME: Includes the docker-gated and remote-server end-to-end flows
import json
from pathlib import Path

import pytest

from bwc.config import ConfigStore
from bwc.errors import BwcError, InvalidScopeError, NotFoundRemotelyError
from bwc.models import InstallationMethod, MCPServerConfig, RegistryServer
from bwc.platforms import claude as claude_module
from bwc.platforms.claude import ClaudeCLI
from bwc.platforms.docker import DockerMCP
from bwc.reconcile import ProviderReconciler, docker_alias, record_for_install
from bwc.verify import VerificationEngine

LINEAR_CLI = "claude mcp add --transport sse linear https://mcp.linear.app/sse"
LINEAR_EXAMPLE = json.dumps({"mcpServers": {"linear": {"transport": "sse", "url": "https://mcp.linear.app/sse"}}})


def linear_server() -> RegistryServer:
    return RegistryServer(
        name="linear",
        server_type="sse",
        verification_status="verified",
        installation_methods=[
            InstallationMethod("manual", recommended=True, config_example=LINEAR_EXAMPLE),
            InstallationMethod("claude-cli", command=LINEAR_CLI),
        ],
    )


def docker_server(name: str, image: str | None = None) -> RegistryServer:
    return RegistryServer(
        name=name,
        sources={"docker": image or f"mcp/{name}"},
        installation_methods=[InstallationMethod("docker")],
    )


def mcp_json(project_dir: Path) -> dict:
    return json.loads((project_dir / ".mcp.json").read_text())


@pytest.fixture
def claude(runner, claude_path) -> ClaudeCLI:
    return ClaudeCLI(runner)


@pytest.fixture
def reconciler(project_store: ConfigStore, runner, claude) -> ProviderReconciler:
    docker = DockerMCP(runner, claude, docker_command="docker")
    return ProviderReconciler(project_store, runner, claude, docker)


class TestEndToEnd:
    """Full install, verify and remove flows."""

    def test_docker_server_is_gated_and_needs_gateway(self, reconciler, project_store, project_dir, runner):
        outcome = reconciler.install(docker_server("server-x"), "docker", "project")

        config = project_store.get_mcp_server_config("server-x")
        assert config is not None
        assert config.provider == "docker"
        assert config.scope == "project"
        assert outcome.mcp_json_written is False
        assert not (project_dir / ".mcp.json").exists()

        results = VerificationEngine(project_store, reconciler.claude, reconciler.docker).verify()

        assert len(results) == 1
        result = results[0]
        assert result.actually_installed is False
        assert result.gateway_configured is False
        assert len(result.fix_commands) == 3
        assert any("bwc add --setup" in command for command in result.fix_commands)

    def test_remote_server_add_then_remove(self, reconciler, project_store, project_dir, runner):
        reconciler.add_remote("server-y", "sse", url="https://api.example.com/sse", scope="project")

        assert project_store.get_installed_mcp_servers() == ["server-y"]
        assert mcp_json(project_dir)["mcpServers"]["server-y"] == {
            "type": "sse",
            "url": "https://api.example.com/sse",
        }

        outcome = reconciler.remove("server-y", scope="project")

        assert project_store.get_installed_mcp_servers() == []
        assert outcome.config_removed
        assert outcome.mcp_json_removed
        assert outcome.live_deregistered
        assert ["mcp", "remove", "--scope", "project", "server-y"] in runner.claude_calls()


class TestInstall:
    """Tests for registry installs."""

    def test_claude_project_install(self, reconciler, project_store, project_dir, runner):
        outcome = reconciler.install(linear_server(), None, "project", ["TEAM=eng"])

        assert outcome.provider == "claude"
        assert outcome.live_registered
        assert runner.claude_calls() == [[
            "mcp", "add", "--scope", "project", "--transport", "sse",
            "--env", "TEAM=eng", "linear", "https://mcp.linear.app/sse",
        ]]

        config = project_store.get_mcp_server_config("linear")
        assert config.transport == "sse"
        assert config.url == "https://mcp.linear.app/sse"
        assert config.env == {"TEAM": "eng"}
        assert config.verification_status == "verified"

        assert mcp_json(project_dir)["mcpServers"]["linear"] == {
            "type": "sse",
            "url": "https://mcp.linear.app/sse",
            "env": {"TEAM": "${TEAM:-eng}"},
        }

    def test_local_scope_skips_mcp_json(self, reconciler, project_dir):
        outcome = reconciler.install(linear_server(), None, "local")
        assert outcome.mcp_json_written is False
        assert not (project_dir / ".mcp.json").exists()

    def test_invalid_scope_before_side_effects(self, reconciler, project_store, runner):
        with pytest.raises(InvalidScopeError):
            reconciler.install(linear_server(), None, "team")
        assert runner.calls == []
        assert project_store.get_installed_mcp_servers() == []

    def test_missing_claude_still_records(self, project_store, runner, monkeypatch):
        monkeypatch.setattr(claude_module, "claude_cli_candidates", lambda home=None: [])
        runner.on("which", exit_code=1).on("sh", exit_code=1)
        reconciler = ProviderReconciler(
            project_store, runner, docker=DockerMCP(runner, docker_command="docker")
        )

        outcome = reconciler.install(linear_server(), None, "local")

        assert outcome.live_registered is False
        assert "Configuration for Claude Desktop:" in outcome.lines
        assert project_store.get_mcp_server_config("linear").provider == "claude"

    def test_docker_alias_recorded(self, reconciler, project_store):
        reconciler.install(docker_server("gh", "mcp/github:latest"), "docker", "local")
        assert project_store.get_mcp_server_config("gh").registry_name == "github"

    def test_install_many_partial(self, reconciler):
        broken = RegistryServer(name="broken", installation_methods=[InstallationMethod("claude-cli")])

        report = reconciler.install_many([linear_server(), broken], scope="local")

        assert report.succeeded == ["linear"]
        assert "broken" in report.failed
        assert report.partial


class TestAddDirect:
    """Tests for add_remote and add_docker."""

    def test_stdio_command(self, reconciler, project_store, runner):
        reconciler.add_remote(
            "fs", "stdio", command=["npx", "-y", "server-fs"], env_vars=["ROOT=/tmp"], scope="user",
        )

        assert runner.claude_calls() == [[
            "mcp", "add", "--scope", "user", "--env", "ROOT=/tmp", "fs", "--", "npx", "-y", "server-fs",
        ]]
        config = project_store.get_mcp_server_config("fs")
        assert (config.command, config.args) == ("npx", ["-y", "server-fs"])

    def test_remote_requires_url(self, reconciler, runner):
        with pytest.raises(BwcError, match="URL is required"):
            reconciler.add_remote("s", "http", scope="local")
        assert runner.calls == []

    def test_headers_passed(self, reconciler, runner):
        reconciler.add_remote(
            "s", "http", url="https://api.example.com/mcp", headers=["Authorization: Bearer t"],
        )
        assert "Authorization: Bearer t" in runner.claude_calls()[0]

    def test_add_docker(self, reconciler, project_store, runner):
        runner.on("docker", "mcp", "catalog", "show", stdout="  github\n    GitHub API integration\n")

        outcome = reconciler.add_docker("github")

        assert ["docker", "mcp", "server", "enable", "github"] in runner.calls
        assert outcome.lines[0] == "github: GitHub API integration"
        assert project_store.get_mcp_server_config("github").registry_name == "github"

    def test_add_docker_already_enabled(self, reconciler, runner):
        runner.on("docker", "mcp", "catalog", "show", stdout="github: GitHub API integration")
        runner.on("docker", "mcp", "server", "list", stdout="github")

        outcome = reconciler.add_docker("github")

        assert not runner.called("docker", "mcp", "server", "enable")
        assert 'Docker MCP server "github" is already enabled' in outcome.lines

    def test_add_docker_unknown(self, reconciler):
        with pytest.raises(NotFoundRemotelyError):
            reconciler.add_docker("nope")

    def test_setup_gateway_scope(self, reconciler, runner):
        reconciler.setup_docker_gateway("user")
        assert runner.claude_calls()[0][:5] == ["mcp", "add", "docker-toolkit", "--scope", "user"]


class TestRemove:
    """Tests for best-effort removal."""

    def test_invalid_scope_before_side_effects(self, reconciler, project_store, runner):
        project_store.add_installed_mcp_server("x")

        with pytest.raises(InvalidScopeError):
            reconciler.remove("x", scope="everywhere")

        assert runner.calls == []
        assert project_store.get_installed_mcp_servers() == ["x"]

    def test_unknown_name(self, reconciler, runner):
        runner.on("claude", "mcp", "remove", exit_code=1, stderr='No MCP server named "ghost" not found')

        outcome = reconciler.remove("ghost")

        assert not outcome.removed_anywhere
        assert outcome.errors == []

    def test_scope_defaults_to_recorded_scope(self, reconciler, project_store, runner):
        project_store.add_installed_mcp_server("s", MCPServerConfig(
            provider="claude", transport="http", scope="user", url="https://api.example.com/mcp",
        ))

        reconciler.remove("s")

        assert runner.claude_calls() == [["mcp", "remove", "--scope", "user", "s"]]

    def test_claude_missing_is_reported(self, project_store, runner, monkeypatch):
        monkeypatch.setattr(claude_module, "claude_cli_candidates", lambda home=None: [])
        runner.on("which", exit_code=1).on("sh", exit_code=1)
        reconciler = ProviderReconciler(
            project_store, runner, docker=DockerMCP(runner, docker_command="docker")
        )
        project_store.add_installed_mcp_server("s", MCPServerConfig(
            provider="claude", scope="project", command="npx",
        ))

        outcome = reconciler.remove("s")

        assert outcome.config_removed
        assert not outcome.live_deregistered
        assert "claude mcp remove --scope project s" in outcome.errors[0]

    def test_claude_failure_keeps_other_removals(self, reconciler, project_store, runner):
        project_store.add_installed_mcp_server("s", MCPServerConfig(provider="claude", command="npx"))
        runner.on("claude", "mcp", "remove", exit_code=1, stderr="config locked")

        outcome = reconciler.remove("s")

        assert outcome.config_removed
        assert len(outcome.errors) == 1
        assert "claude mcp remove --scope local s" in outcome.errors[0]

    def test_docker_server_disabled(self, reconciler, project_store, runner):
        project_store.add_installed_mcp_server("gh", MCPServerConfig(provider="docker", registry_name="github"))
        runner.on("docker", "mcp", "server", "list", stdout="github")

        outcome = reconciler.remove("gh")

        assert outcome.docker_disabled
        assert outcome.config_removed
        assert ["docker", "mcp", "server", "disable", "github"] in runner.calls
        assert runner.claude_calls() == []

    def test_remove_many(self, reconciler, project_store):
        project_store.add_installed_mcp_server("a", MCPServerConfig(provider="claude", command="x"))

        report = reconciler.remove_many(["a", "b"])

        assert report.succeeded == ["a", "b"]
        assert report.failed == {}


class TestRestore:
    """Tests for re-registering configured servers."""

    def test_restore(self, reconciler, project_store, project_dir, runner):
        project_store.add_installed_mcp_server("gh", MCPServerConfig(provider="docker", registry_name="github"))
        project_store.add_installed_mcp_server("fs", MCPServerConfig(
            provider="claude", scope="project", command="npx", args=["-y", "server-fs"],
        ))

        report = reconciler.restore()

        assert report.succeeded == ["gh", "fs"]
        assert ["docker", "mcp", "server", "enable", "github"] in runner.calls
        assert runner.claude_calls() == [["mcp", "add", "--scope", "project", "fs", "--", "npx", "-y", "server-fs"]]
        assert mcp_json(project_dir)["mcpServers"]["fs"] == {"command": "npx", "args": ["-y", "server-fs"]}

    def test_restore_without_command(self, reconciler, project_store):
        project_store.add_installed_mcp_server("bare", MCPServerConfig(provider="claude"))

        report = reconciler.restore()

        assert report.succeeded == []
        assert "no command or url" in report.failed["bare"]

    def test_restore_unknown_provider(self, reconciler, project_store, runner):
        project_store.add_installed_mcp_server("odd", MCPServerConfig(provider="podman", command="x"))
        project_store.add_installed_mcp_server("gh", MCPServerConfig(provider="docker", registry_name="github"))

        report = reconciler.restore()

        assert report.succeeded == ["gh"]
        assert report.partial
        assert "unknown provider 'podman'" in report.failed["odd"]
        assert runner.claude_calls() == []


class TestRecordForInstall:
    """Tests for building config records from registry servers."""

    def test_docker_alias(self):
        assert docker_alias(docker_server("github")) is None
        assert docker_alias(docker_server("gh", "mcp/github:1.2")) == "github"

    def test_stdio_record(self):
        server = RegistryServer(
            name="pg",
            installation_methods=[InstallationMethod("npm", config_example={
                "mcpServers": {"pg": {"command": "npx", "args": ["-y", "pg-mcp"], "env": {"A": "1"}}},
            })],
        )
        record = record_for_install(server, "npm", "local", {"B": "2"})

        assert record.provider == "claude"
        assert record.transport == "stdio"
        assert record.command == "npx"
        assert record.env == {"A": "1", "B": "2"}

    def test_unparseable_example(self):
        server = RegistryServer(
            name="x", installation_methods=[InstallationMethod("manual", config_example="see README")],
        )
        record = record_for_install(server, "manual", "local", {})
        assert (record.transport, record.command, record.url) == ("stdio", None, None)

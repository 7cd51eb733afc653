# ABOUTME: Shared fixtures: isolated home/config, fake process runner, cached claude path
# ABOUTME: No test ever launches docker, npm or claude
from pathlib import Path

import pytest

from bwc.config import ConfigStore, reset_config_store
from bwc.errors import CommandFailedError, CommandNotFoundError
from bwc.platforms import claude as claude_module
from bwc.utils import platform as platform_module
from bwc.utils.process import ProcessResult, ProcessRunner

FAKE_CLAUDE = "/usr/local/bin/claude"


class FakeRunner(ProcessRunner):
    """ProcessRunner that answers from canned responses and records every call.

    ABOUTME: Responses are keyed by program name plus leading arguments
    ABOUTME: Unmatched commands succeed with empty output
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self._responses: list[tuple[tuple[str, ...], dict]] = []

    def on(
        self,
        *command: str,
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
        missing: bool = False,
    ) -> "FakeRunner":
        self._responses.append((command, {
            "stdout": stdout,
            "stderr": stderr,
            "exit_code": exit_code,
            "missing": missing,
        }))
        return self

    @staticmethod
    def _program(argv: list[str]) -> str:
        name = Path(argv[0]).name
        return name[:-4] if name.endswith(".exe") else name

    def _lookup(self, argv: list[str]) -> dict | None:
        key = [self._program(argv), *argv[1:]]
        best = None
        for command, response in self._responses:
            if key[:len(command)] == list(command):
                if best is None or len(command) >= len(best[0]):
                    best = (command, response)
        return best[1] if best else None

    def run(self, argv, env=None, check=False):  # type: ignore[no-untyped-def]
        self.calls.append(list(argv))
        response = self._lookup(list(argv)) or {"stdout": "", "stderr": "", "exit_code": 0, "missing": False}
        if response["missing"]:
            raise CommandNotFoundError(argv[0])
        result = ProcessResult(
            argv=list(argv),
            stdout=response["stdout"],
            stderr=response["stderr"],
            exit_code=response["exit_code"],
        )
        if check and not result.ok:
            raise CommandFailedError(result)
        return result

    def called(self, *command: str) -> bool:
        return any(
            [self._program(argv), *argv[1:]][:len(command)] == list(command)
            for argv in self.calls
        )

    def claude_calls(self) -> list[list[str]]:
        return [argv[1:] for argv in self.calls if self._program(argv) == "claude"]


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point bwc at a temporary home and clear proxy/WSL variables."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("BWC_TEST_HOME", str(home))
    for name in (
        "BWC_CONFIG_PATH", "WSL_DISTRO_NAME",
        "HTTP_PROXY", "http_proxy", "HTTPS_PROXY", "https_proxy", "NO_PROXY", "no_proxy",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(platform_module, "PROC_VERSION", tmp_path / "no-proc-version")

    reset_config_store()
    claude_module.reset_claude_path_cache()
    yield home
    reset_config_store()
    claude_module.reset_claude_path_cache()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def claude_path(monkeypatch: pytest.MonkeyPatch) -> str:
    """Pretend claude was already discovered."""
    monkeypatch.setattr(claude_module, "_cached_claude_path", FAKE_CLAUDE)
    return FAKE_CLAUDE


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture
def global_store(isolated_environment: Path, project_dir: Path) -> ConfigStore:
    """Store with a fresh global config, searched from a project without bwc.config.json."""
    store = ConfigStore(cwd=project_dir)
    store.init()
    return store


@pytest.fixture
def project_store(project_dir: Path) -> ConfigStore:
    """Store backed by bwc.config.json in project_dir."""
    store = ConfigStore(cwd=project_dir)
    store.init(project=True)
    return store

# ABOUTME: Narrow process boundary used for every docker, npm and claude invocation
# ABOUTME: Tests replace ProcessRunner with a fake instead of patching subprocess
import logging
import os
import subprocess
from dataclasses import dataclass

from bwc.errors import CommandFailedError, CommandNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Captured output of a finished external command."""
    argv: list[str]
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ProcessRunner:
    """Run external commands synchronously and capture their output.

    ABOUTME: Blocks until the child exits, no timeout and no retry
    ABOUTME: env entries are merged over the current process environment
    """

    def run(
        self,
        argv: list[str],
        env: dict[str, str] | None = None,
        check: bool = False,
    ) -> ProcessResult:
        """Run argv and return its result.

        Args:
            argv: Command and arguments, argv[0] is the binary
            env: Extra environment variables for the child
            check: Raise CommandFailedError on non-zero exit

        Returns:
            ProcessResult with decoded stdout/stderr

        Raises:
            CommandNotFoundError: If argv[0] cannot be launched
            CommandFailedError: If check is True and the command fails
        """
        child_env = None
        if env:
            child_env = dict(os.environ)
            child_env.update(env)

        logger.debug(f"Running: {' '.join(argv)}")
        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                env=child_env,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise CommandNotFoundError(argv[0]) from e

        result = ProcessResult(
            argv=list(argv),
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            exit_code=completed.returncode,
        )
        if not result.ok:
            logger.debug(f"Exit {result.exit_code}: {result.stderr.strip()}")
            if check:
                raise CommandFailedError(result)
        return result

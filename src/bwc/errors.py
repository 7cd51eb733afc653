# ABOUTME: Exception hierarchy for bwc
# ABOUTME: Every error can carry a copy-pasteable remediation command for the CLI to print


class BwcError(Exception):
    """Base class for all bwc errors.

    ABOUTME: remediation holds a literal command the user can run to fix the problem
    """

    def __init__(self, message: str, remediation: str | None = None) -> None:
        super().__init__(message)
        self.remediation = remediation


class ConfigNotFoundError(BwcError, FileNotFoundError):
    """No project or global bwc config could be located."""

    def __init__(self, message: str = 'Configuration not found. Run "bwc init" first.') -> None:
        super().__init__(message, remediation="bwc init")


class ConfigAlreadyExistsError(BwcError):
    """init was asked to write over an existing config without force."""


class PrerequisiteMissingError(BwcError):
    """A required external tool (docker, npm, claude) is not available."""


class ClaudeCLINotFoundError(PrerequisiteMissingError):
    """The Claude Code CLI binary could not be discovered."""

    def __init__(self) -> None:
        super().__init__(
            "Claude Code CLI not found. Please ensure Claude Code is installed.\n"
            "Installation guide: https://docs.anthropic.com/en/docs/claude-code/quickstart"
        )


class InvalidScopeError(BwcError, ValueError):
    """Scope is not one of local, user, project."""

    def __init__(self, scope: str) -> None:
        super().__init__(f"Invalid scope: {scope}. Must be one of: local, user, project")
        self.scope = scope


class NoInstallMethodAvailableError(BwcError):
    """No usable installation method exists for a registry server."""


class IntegrationCommandFailedError(BwcError):
    """A Claude CLI integration command exited non-zero.

    ABOUTME: Recoverable - callers fall back to manual configuration instructions
    """


class UnknownProviderError(BwcError):
    """A config entry names a provider bwc does not understand."""


class NotFoundRemotelyError(BwcError):
    """A server is unknown to the provider it was looked up in."""


class ParseError(BwcError, ValueError):
    """A JSON file or embedded config example could not be parsed."""


class CommandNotFoundError(BwcError):
    """An external binary could not be launched."""

    def __init__(self, command: str) -> None:
        super().__init__(f"Command not found: {command}")
        self.command = command


class CommandFailedError(BwcError):
    """An external command exited with a non-zero status.

    ABOUTME: Carries the full ProcessResult for callers that inspect stderr
    """

    def __init__(self, result) -> None:  # type: ignore[no-untyped-def]
        detail = (result.stderr or result.stdout or "").strip()
        message = f"Command failed ({result.exit_code}): {' '.join(result.argv)}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.result = result


class RegistryFetchError(BwcError):
    """The remote registry could not be fetched or decoded."""

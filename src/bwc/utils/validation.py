# ABOUTME: Validation utilities for bwc MCP server configurations
# ABOUTME: Scope/transport guards run before any side effect of add or remove
from dataclasses import dataclass
from urllib.parse import urlparse

from bwc.errors import InvalidScopeError
from bwc.models import VALID_PROVIDERS, VALID_SCOPES, VALID_TRANSPORTS, MCPServerConfig


@dataclass(frozen=True)
class ValidationError:
    """Represents a validation error or warning.

    ABOUTME: Uses frozen dataclass for immutability
    ABOUTME: Severity level distinguishes between blocking errors and warnings
    """
    server_name: str
    message: str
    severity: str  # 'error' or 'warning'


def validate_scope(scope: str) -> str:
    """Return scope unchanged if valid.

    Raises:
        InvalidScopeError: If scope is not local, user or project
    """
    if scope not in VALID_SCOPES:
        raise InvalidScopeError(scope)
    return scope


def validate_transport(transport: str) -> ValidationError | None:
    if transport not in VALID_TRANSPORTS:
        return ValidationError(
            server_name="",
            message=f"Invalid transport: {transport}. Must be one of: {', '.join(VALID_TRANSPORTS)}",
            severity="error"
        )
    return None


def validate_url(url: str) -> ValidationError | None:
    """Validate that a URL is properly formatted.

    ABOUTME: Requires HTTP or HTTPS scheme and a host

    Args:
        url: URL string to validate

    Returns:
        ValidationError if URL invalid, None otherwise
    """
    try:
        parsed = urlparse(url)
    except ValueError as e:
        return ValidationError(
            server_name="",
            message=f"Invalid URL format '{url}': {e}",
            severity="error"
        )

    if parsed.scheme not in ("http", "https"):
        return ValidationError(
            server_name="",
            message=f"URL must use HTTP or HTTPS scheme: {url}",
            severity="error"
        )
    if not parsed.netloc:
        return ValidationError(
            server_name="",
            message=f"URL missing host/domain: {url}",
            severity="error"
        )
    return None


def validate_server_config(name: str, config: MCPServerConfig) -> list[ValidationError]:
    """Validate an installed MCP server record.

    ABOUTME: stdio entries must not carry a url, sse/http entries need a valid url
    ABOUTME: Claude stdio entries without a command only produce a warning, Docker ones none
    ABOUTME: Never checks that the command exists, that is the verifier's job

    Args:
        name: Server name used as the config key
        config: Record to validate

    Returns:
        List of ValidationError instances (empty if valid)

    Examples:
        >>> cfg = MCPServerConfig(provider="claude", transport="sse", scope="project",
        ...                       url="https://mcp.example.com/sse")
        >>> validate_server_config("server-y", cfg)
        []
    """
    errors: list[ValidationError] = []

    if config.provider not in VALID_PROVIDERS:
        errors.append(ValidationError(name, f"Unknown provider: {config.provider}", "error"))
    if config.scope not in VALID_SCOPES:
        errors.append(ValidationError(name, f"Invalid scope: {config.scope}", "error"))

    transport_error = validate_transport(config.transport)
    if transport_error:
        errors.append(ValidationError(name, transport_error.message, "error"))
        return errors

    if config.is_remote:
        if not config.url:
            errors.append(ValidationError(
                name, f"{config.transport} server requires a url", "error"
            ))
        else:
            url_error = validate_url(config.url)
            if url_error:
                errors.append(ValidationError(name, url_error.message, "error"))
        if config.command:
            errors.append(ValidationError(
                name, f"{config.transport} server should not define a command", "error"
            ))
    else:
        if config.url:
            errors.append(ValidationError(
                name, "stdio server should not define a url", "error"
            ))
        if not config.command and config.provider != "docker":
            errors.append(ValidationError(
                name, "stdio server has no command recorded", "warning"
            ))

    return errors

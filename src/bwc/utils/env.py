# Environment variable and header assignment utilities
from bwc.errors import ParseError


def parse_env_assignments(assignments: list[str]) -> dict[str, str]:
    """Parse KEY=value strings into a dict.

    ABOUTME: Splits on the first '=' so values may contain '='
    ABOUTME: Entries without '=' are rejected rather than silently dropped

    Args:
        assignments: Strings like ["API_KEY=abc", "DB_HOST=localhost"]

    Returns:
        Ordered mapping of variable name to value

    Raises:
        ParseError: If an entry has no '=' or an empty key
    """
    env: dict[str, str] = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ParseError(f"Invalid environment variable '{assignment}'. Expected KEY=value")
        env[key] = value
    return env


def parse_header_assignments(headers: list[str]) -> dict[str, str]:
    """Parse "Name: value" header strings into a dict.

    Raises:
        ParseError: If an entry has no ':' separator
    """
    parsed: dict[str, str] = {}
    for header in headers:
        name, sep, value = header.partition(":")
        if not sep or not name.strip():
            raise ParseError(f"Invalid header '{header}'. Expected 'Name: value'")
        parsed[name.strip()] = value.strip()
    return parsed


def template_env_value(key: str, value: str) -> str:
    """Turn a literal value into a shell default reference.

    ABOUTME: Values already referencing a shell variable pass through verbatim
    ABOUTME: Literal values become ${KEY:-value} so the user's environment wins

    Examples:
        >>> template_env_value("DB_HOST", "localhost")
        '${DB_HOST:-localhost}'
        >>> template_env_value("API_KEY", "$SECRET_KEY")
        '$SECRET_KEY'
    """
    if "$" in value:
        return value
    return f"${{{key}:-{value}}}"


def template_env_assignments(assignments: list[str]) -> dict[str, str]:
    """Parse KEY=value strings and template each value for .mcp.json."""
    return {
        key: template_env_value(key, value)
        for key, value in parse_env_assignments(assignments).items()
    }


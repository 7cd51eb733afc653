# ABOUTME: HTTP(S) proxy resolution from the environment for registry requests
# ABOUTME: Honors HTTP_PROXY, HTTPS_PROXY and NO_PROXY in either case
import os
import urllib.request
from urllib.parse import urlparse

# ABOUTME: Hostnames that a bare "localhost" entry in NO_PROXY also covers
LOCALHOST_ALIASES = ("localhost", "127.0.0.1", "::1")


def _env(*names: str) -> str | None:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


def get_no_proxy() -> str | None:
    return _env("NO_PROXY", "no_proxy")


def get_proxy_url(protocol: str = "https") -> str | None:
    """Return the proxy URL configured for a protocol.

    ABOUTME: https falls back to HTTP_PROXY when HTTPS_PROXY is unset

    Args:
        protocol: "http" or "https"

    Returns:
        Proxy URL or None when no proxy applies
    """
    if protocol == "https":
        proxy = _env("HTTPS_PROXY", "https_proxy")
        if proxy:
            return proxy
    return _env("HTTP_PROXY", "http_proxy")


def should_bypass_proxy(url: str, no_proxy: str | None = None) -> bool:
    """Decide whether a URL is excluded from proxying by NO_PROXY.

    ABOUTME: Entries are comma separated, trimmed and compared case-insensitively
    ABOUTME: Supports exact hosts, parent domains, *.domain wildcards and localhost

    Args:
        url: Target URL
        no_proxy: NO_PROXY value, read from the environment when None

    Returns:
        True if the request should go direct

    Examples:
        >>> should_bypass_proxy("https://api.internal.com/x", "internal.com")
        True
        >>> should_bypass_proxy("http://127.0.0.1:8080", "localhost")
        True
    """
    if no_proxy is None:
        no_proxy = get_no_proxy()
    if not no_proxy:
        return False

    hostname = (urlparse(url).hostname or "").lower()
    if not hostname:
        return False

    for raw in no_proxy.split(","):
        pattern = raw.strip().lower()
        if not pattern:
            continue
        if pattern == "*":
            return True

        if pattern.startswith("*."):
            if hostname.endswith(pattern[1:]):
                return True
            continue

        pattern = pattern.lstrip(".")
        if hostname == pattern or hostname.endswith("." + pattern):
            return True

        if pattern == "localhost" and hostname in LOCALHOST_ALIASES:
            return True

    return False


def is_proxy_configured() -> bool:
    return bool(get_proxy_url("http") or get_proxy_url("https"))


def get_proxy_description() -> str:
    """Human-readable summary of the proxy environment."""
    http_proxy = _env("HTTP_PROXY", "http_proxy")
    https_proxy = _env("HTTPS_PROXY", "https_proxy")
    no_proxy = get_no_proxy()

    if not http_proxy and not https_proxy:
        return "No proxy configured"

    parts = []
    if http_proxy:
        parts.append(f"HTTP: {http_proxy}")
    if https_proxy and https_proxy != http_proxy:
        parts.append(f"HTTPS: {https_proxy}")
    if no_proxy:
        parts.append(f"NO_PROXY: {no_proxy}")
    return ", ".join(parts)


def build_opener(url: str) -> urllib.request.OpenerDirector:
    """Build a urllib opener that routes url through the configured proxy.

    ABOUTME: Returns a direct opener when NO_PROXY matches or no proxy is set
    """
    if should_bypass_proxy(url):
        return urllib.request.build_opener(urllib.request.ProxyHandler({}))

    protocol = urlparse(url).scheme or "https"
    proxy = get_proxy_url(protocol)
    if not proxy:
        return urllib.request.build_opener(urllib.request.ProxyHandler({}))

    return urllib.request.build_opener(urllib.request.ProxyHandler({protocol: proxy}))


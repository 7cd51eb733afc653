# ABOUTME: Parser for `docker mcp catalog show` output, old and new layouts
# ABOUTME: Keyword categorizer mapping catalog entries to Docker Hub style categories
import re

from bwc.models import CatalogEntry

ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

# ABOUTME: Old layout, one entry per line: "server-name: description"
LEGACY_LINE_PATTERN = re.compile(r"^([a-zA-Z0-9_-]+):\s*(.+)$")

SEPARATOR_PATTERN = re.compile(r"^[─━\-=]+$")

# ABOUTME: Decoration lines the catalog prints around the entries
SKIP_MARKERS = ("MCP Server Directory", "servers available")

# ABOUTME: Ordered keyword rules, the first category whose keywords match wins
CATEGORY_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("ai", (
        "ai", "llm", "gpt", "claude", "model", "machine learning", "ml", "neural",
        "nlp", "embedding", "embeddings", "vector", "semantic", "huggingface",
        "openai", "anthropic", "assistant",
    )),
    ("data", (
        "database", "db", "sql", "sqlite", "mysql", "postgres", "postgresql",
        "mongo", "mongodb", "redis", "elasticsearch", "clickhouse", "cassandra",
        "supabase", "analytics", "etl", "bigquery", "snowflake", "databricks",
    )),
    ("cloud", (
        "aws", "azure", "gcp", "google cloud", "cloud", "terraform", "kubernetes",
        "k8s", "docker", "container", "serverless", "lambda", "s3", "infrastructure",
    )),
    ("devops", (
        "github", "gitlab", "git", "ci", "cd", "jenkins", "circleci", "pipeline",
        "build", "deploy", "devops", "monitoring", "observability", "grafana",
        "prometheus", "datadog", "sentry",
    )),
    ("security", (
        "security", "auth", "oauth", "jwt", "vulnerability", "scan", "audit",
        "compliance", "cve", "threat", "malware", "password", "secret", "vault",
    )),
    ("api", (
        "api", "rest", "graphql", "openapi", "swagger", "webhook", "http",
        "grpc", "websocket", "integration", "connector",
    )),
    ("search", (
        "search", "index", "indexing", "algolia", "solr", "retrieval", "rag",
        "discover", "duckduckgo", "bing",
    )),
    ("communication", (
        "slack", "discord", "teams", "telegram", "whatsapp", "sms", "email", "mail",
        "smtp", "twilio", "chat", "messaging", "notification",
    )),
    ("productivity", (
        "notion", "todo", "task", "jira", "confluence", "asana", "trello", "linear",
        "airtable", "spreadsheet", "sheets", "wiki", "note", "notes", "obsidian",
        "markdown", "workflow", "zapier", "n8n", "calendar",
    )),
    ("browser", (
        "browser", "chrome", "firefox", "scrape", "scraping", "crawl", "crawler",
        "puppeteer", "playwright", "selenium", "headless", "web", "website",
    )),
    ("finance", (
        "finance", "financial", "trading", "stock", "forex", "crypto", "bitcoin",
        "ethereum", "blockchain", "payment", "payments", "stripe", "paypal", "banking",
    )),
    ("media", (
        "video", "audio", "image", "media", "youtube", "spotify", "podcast",
        "music", "photo", "ffmpeg", "pdf",
    )),
    # Research tools are grouped with AI
    ("ai", (
        "arxiv", "research", "paper", "academic", "scholar", "pubmed", "citation",
    )),
    ("productivity", (
        "documentation", "docs", "manual", "guide", "tutorial", "reference",
        "knowledge base", "readme",
    )),
]

_COMPILED_RULES = [
    (category, re.compile(r"\b(" + "|".join(re.escape(k) for k in keywords) + r")\b"))
    for category, keywords in CATEGORY_RULES
]


def strip_ansi(text: str) -> str:
    return ANSI_PATTERN.sub("", text)


def categorize(name: str, description: str = "") -> str:
    """Pick a category from a server's name and description.

    Examples:
        >>> categorize("postgres", "PostgreSQL read-only access")
        'data'
        >>> categorize("mystery", "")
        'other'
    """
    text = f"{name} {description}".lower()
    for category, pattern in _COMPILED_RULES:
        if pattern.search(text):
            return category
    return "other"


def _leading_spaces(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def parse_catalog_output(output: str) -> list[CatalogEntry]:
    """Parse `docker mcp catalog show` output.

    ABOUTME: Old layout "name: description" lines are tried first on every non-continuation line
    ABOUTME: New layout: 2-space indent starts an entry, 4+ spaces continue its description
    ABOUTME: Lines matching neither layout are skipped, never raised on

    Args:
        output: Raw stdout, possibly with ANSI color codes

    Returns:
        Entries in catalog order

    Examples:
        >>> [e.name for e in parse_catalog_output("a: first\\nb: second")]
        ['a', 'b']
    """
    entries: list[CatalogEntry] = []
    current_name: str | None = None
    current_description: list[str] = []

    def flush() -> None:
        if current_name:
            description = " ".join(current_description)
            entries.append(CatalogEntry(
                name=current_name,
                description=description,
                category=categorize(current_name, description),
            ))

    for raw_line in output.splitlines():
        line = strip_ansi(raw_line).rstrip()
        stripped = line.strip()

        if not stripped:
            continue
        if any(marker in stripped for marker in SKIP_MARKERS):
            continue
        if SEPARATOR_PATTERN.match(stripped):
            continue

        indent = _leading_spaces(line)
        legacy = LEGACY_LINE_PATTERN.match(stripped) if indent < 4 else None
        if legacy:
            flush()
            current_name = None
            name, description = legacy.group(1), legacy.group(2).strip()
            entries.append(CatalogEntry(
                name=name,
                description=description,
                category=categorize(name, description),
            ))
            continue

        if indent == 2:
            flush()
            current_name = stripped
            current_description = []
        elif indent >= 4 and current_name:
            current_description.append(stripped)

    flush()
    return entries


def group_by_category(entries: list[CatalogEntry]) -> dict[str, list[CatalogEntry]]:
    grouped: dict[str, list[CatalogEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry.category, []).append(entry)
    return grouped

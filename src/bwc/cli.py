# CLI interface for bwc MCP server management
import argparse
import logging
import os
import shlex
import sys

from bwc import __version__
from bwc.catalog import group_by_category
from bwc.config import ConfigStore, get_config_store
from bwc.errors import (
    BwcError,
    ConfigAlreadyExistsError,
    ConfigNotFoundError,
    InvalidScopeError,
    ParseError,
)
from bwc.models import VALID_SCOPES, VALID_TRANSPORTS
from bwc.reconcile import ProviderReconciler
from bwc.registry import RegistryClient, preferred_source
from bwc.utils.proxy import get_proxy_description
from bwc.utils.validation import validate_scope, validate_server_config
from bwc.verify import VerificationEngine, format_verification_issues, summarize

# ABOUTME: Exit codes
# 0 = success, 1 = partial success, 2 = config error, 3 = fatal
EXIT_SUCCESS = 0
EXIT_PARTIAL = 1
EXIT_CONFIG_ERROR = 2
EXIT_FATAL = 3

# ABOUTME: Errors caused by the user's config or arguments rather than the environment
CONFIG_ERRORS = (ConfigNotFoundError, ConfigAlreadyExistsError, InvalidScopeError, ParseError)

INSTALL_SOURCES = ("docker", "npm", "manual", "bwc")


def exit_code_for(error: BwcError) -> int:
    """Map a bwc error to a process exit code."""
    if isinstance(error, CONFIG_ERRORS):
        return EXIT_CONFIG_ERROR
    return EXIT_FATAL


def report_error(error: BwcError) -> int:
    """Print an error and its remediation, return the matching exit code."""
    print(f"Error: {error}")
    if error.remediation:
        print()
        print(f"  Run: {error.remediation}")
    return exit_code_for(error)


def _store(args: argparse.Namespace) -> ConfigStore:
    store = get_config_store()
    if getattr(args, "user", False):
        store.load_user_config()
    return store


def _confirm(prompt: str) -> bool:
    if not sys.stdin.isatty():
        return True
    answer = input(f"{prompt} [y/N] ").strip().lower()
    return answer in ("y", "yes")


def cmd_init(args: argparse.Namespace) -> int:
    """Execute init command.

    ABOUTME: Writes a default global config, or bwc.config.json with --project
    """
    try:
        path = get_config_store().init(project=args.project, force=args.force)
    except BwcError as e:
        return report_error(e)

    level = "project" if args.project else "global"
    print(f"Created {level} configuration at {path}")
    return EXIT_SUCCESS


def cmd_add(args: argparse.Namespace) -> int:
    """Execute add command.

    ABOUTME: --setup registers the Docker MCP gateway
    ABOUTME: --docker-mcp enables a Docker catalog server
    ABOUTME: --transport/--url/--command add a server directly to Claude Code
    ABOUTME: Otherwise the server is looked up in the registry and installed
    """
    try:
        scope = validate_scope(args.scope or "local")
        store = _store(args)
        reconciler = ProviderReconciler(store)

        if args.setup:
            reconciler.setup_docker_gateway(args.scope or "project")
            print("Docker MCP gateway configured in Claude Code")
            print("Restart Claude Code to activate the Docker MCP gateway")
            if not args.mcp:
                return EXIT_SUCCESS

        if not args.mcp:
            print("Error: specify a server with --mcp <name> or use --setup")
            return EXIT_CONFIG_ERROR

        if not args.yes and not _confirm(f"Add MCP server '{args.mcp}' ({scope} scope)?"):
            print("Cancelled")
            return EXIT_SUCCESS

        if args.docker_mcp:
            outcome = reconciler.add_docker(args.mcp, scope)
        elif args.transport or args.url or args.stdio_command:
            transport = args.transport or ("sse" if args.url else "stdio")
            command = shlex.split(args.stdio_command) if args.stdio_command else None
            outcome = reconciler.add_remote(
                args.mcp,
                transport,
                url=args.url,
                headers=args.header,
                env_vars=args.env,
                scope=scope,
                command=command,
            )
        else:
            server = RegistryClient(store.get_registry_url()).get_mcp_server(args.mcp)
            outcome = reconciler.install(server, args.source, scope, args.env)

    except BwcError as e:
        return report_error(e)

    for line in outcome.lines:
        print(line)
    print()
    print(f"Installed MCP server: {outcome.name} ({outcome.provider}, {outcome.config.scope} scope)")
    return EXIT_SUCCESS


def cmd_remove(args: argparse.Namespace) -> int:
    """Execute remove command.

    ABOUTME: Removes from every store that knows the server, best-effort per store
    ABOUTME: Exit code is partial when some store could not be updated
    """
    try:
        if args.scope:
            validate_scope(args.scope)
        store = _store(args)
        if not args.yes and not _confirm(f"Remove MCP server '{args.mcp}'?"):
            print("Cancelled")
            return EXIT_SUCCESS
        outcome = ProviderReconciler(store).remove(args.mcp, args.scope)
    except BwcError as e:
        return report_error(e)

    if outcome.docker_disabled:
        print(f"  Disabled {args.mcp} in Docker MCP Toolkit")
    if outcome.config_removed:
        print(f"  Removed from {store.config_location()}")
    if outcome.mcp_json_removed:
        print("  Removed from .mcp.json")
    if outcome.live_deregistered:
        print("  Removed from Claude Code")
    for error in outcome.errors:
        print(f"  Warning: {error}")

    print()
    if not outcome.removed_anywhere:
        print(f"MCP server '{args.mcp}' was not installed")
        return EXIT_PARTIAL if outcome.errors else EXIT_SUCCESS
    if outcome.errors:
        print(f"MCP server '{args.mcp}' removed with warnings")
        return EXIT_PARTIAL
    print(f"MCP server '{args.mcp}' removed")
    return EXIT_SUCCESS


def cmd_list(args: argparse.Namespace) -> int:
    """Execute list command.

    ABOUTME: --installed shows servers in bwc config with validation warnings
    ABOUTME: --docker shows the Docker MCP catalog grouped by category
    ABOUTME: Default shows MCP servers from the registry
    """
    try:
        store = _store(args)

        if args.installed:
            configs = store.get_all_mcp_server_configs()
            print(f"MCP Servers in {store.config_location()}:")
            print()
            for name, config in configs.items():
                print(f"  {name}")
                print(f"    provider: {config.provider}  transport: {config.transport}  scope: {config.scope}")
                if config.url:
                    print(f"    url: {config.url}")
                if config.command:
                    print(f"    command: {' '.join([config.command, *config.args])}")
                for problem in validate_server_config(name, config):
                    print(f"    {problem.severity}: {problem.message}")
            print()
            print(f"Total: {len(configs)} server(s)")
            return EXIT_SUCCESS

        if args.docker:
            reconciler = ProviderReconciler(store)
            entries = reconciler.docker.search(args.search) if args.search else reconciler.docker.catalog()
            for category, grouped in sorted(group_by_category(entries).items()):
                print(f"{category}:")
                for entry in grouped:
                    print(f"  {entry.name} - {entry.description}")
                    print(f"    {entry.docker_hub_url}")
            print()
            print(f"Total: {len(entries)} server(s)")
            return EXIT_SUCCESS

        client = RegistryClient(store.get_registry_url())
        servers = client.search_mcp_servers(args.search) if args.search else client.get_mcp_servers()
        installed = set(store.get_installed_mcp_servers())
        for server in servers:
            marker = "*" if server.name in installed else " "
            status = f" [{server.verification_status}]" if server.verification_status else ""
            source = preferred_source(server)
            via = f" ({source[0]})" if source else ""
            print(f" {marker} {server.name}{status}{via} - {server.description}")
        print()
        print(f"Total: {len(servers)} server(s), * = installed")
        return EXIT_SUCCESS

    except BwcError as e:
        return report_error(e)


def cmd_verify(args: argparse.Namespace) -> int:
    """Execute verify command.

    ABOUTME: Read-only, prints Issue/Fix lines for servers that drifted
    """
    try:
        store = _store(args)
        reconciler = ProviderReconciler(store)
        results = VerificationEngine(store, reconciler.claude, reconciler.docker).verify()
    except BwcError as e:
        return report_error(e)

    if not results:
        print("No MCP servers configured")
        return EXIT_SUCCESS

    installed, total = summarize(results)
    for result in results:
        mark = "ok" if result.actually_installed else "missing"
        print(f"  {result.name} ({result.provider}, {result.scope}) - {mark}, {result.connection_status}")

    issues = format_verification_issues(results)
    if issues:
        print()
        print("Issues found:")
        for line in issues:
            print(line)

    print()
    print(f"Verified: {installed}/{total} server(s) installed")
    return EXIT_SUCCESS if installed == total else EXIT_PARTIAL


def cmd_status(args: argparse.Namespace) -> int:
    """Execute status command.

    ABOUTME: Config location, proxy, Docker MCP Toolkit status, then verification
    """
    try:
        store = _store(args)
        level = "project" if store.is_using_project_config() else "global"
        print(f"Configuration: {store.config_location()} ({level})")
        print(f"Registry: {store.get_registry_url()}")
        print(f"Proxy: {get_proxy_description()}")
        print(f"Subagents installed: {len(store.get_installed_subagents())}")
        print(f"Commands installed: {len(store.get_installed_commands())}")

        reconciler = ProviderReconciler(store)
        print(f"Claude CLI: {'available' if reconciler.claude.is_available() else 'not found'}")
        docker_status = reconciler.docker.status()
        print(f"Docker: {'available' if docker_status.docker_available else 'not available'}")
        print(f"Docker MCP Toolkit: {'available' if docker_status.mcp_toolkit_available else 'not available'}")
        print(f"Docker MCP gateway: {'configured' if docker_status.gateway_configured else 'not configured'}")
        print()
    except BwcError as e:
        return report_error(e)

    return cmd_verify(args)


def cmd_install(args: argparse.Namespace) -> int:
    """Execute install command.

    ABOUTME: Re-registers every configured MCP server with its provider
    """
    try:
        store = _store(args)
        report = ProviderReconciler(store).restore()
    except BwcError as e:
        return report_error(e)

    for name in report.succeeded:
        print(f"  {name} - restored")
    for name, error in report.failed.items():
        print(f"  {name} - failed: {error}")

    print()
    print(f"Restored {len(report.succeeded)}/{len(report.succeeded) + len(report.failed)} MCP server(s)")
    if report.partial:
        return EXIT_PARTIAL
    return EXIT_FATAL if report.failed else EXIT_SUCCESS


def configure_logging(verbose: bool) -> None:
    """Configure root logging from --verbose or BWC_LOG_LEVEL."""
    level_name = "DEBUG" if verbose else os.environ.get("BWC_LOG_LEVEL", "WARNING")
    level = getattr(logging, level_name.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bwc",
        description="Build With Claude - manage MCP servers across bwc, Claude Code and Docker"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"bwc {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help="Create a bwc configuration"
    )
    init_parser.add_argument("--project", action="store_true", help="Create bwc.config.json in this directory")
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing configuration")

    # add command
    add_parser = subparsers.add_parser(
        "add",
        help="Add an MCP server"
    )
    add_parser.add_argument("--mcp", help="Name of the MCP server to add")
    add_parser.add_argument("--source", choices=INSTALL_SOURCES, help="Installation method to use")
    add_parser.add_argument("--scope", help=f"Scope ({', '.join(VALID_SCOPES)}), default local, project for --setup")
    add_parser.add_argument("--env", action="append", default=[], help="KEY=value environment variable (repeatable)")
    add_parser.add_argument("--docker-mcp", action="store_true", help="Enable a server from the Docker MCP catalog")
    add_parser.add_argument("--transport", choices=VALID_TRANSPORTS, help="Transport for a server added directly")
    add_parser.add_argument("--url", help="URL for sse/http servers")
    add_parser.add_argument("--header", action="append", default=[], help="'Name: value' header (repeatable)")
    add_parser.add_argument("--command", dest="stdio_command", help="Command line for a stdio server added directly")
    add_parser.add_argument("--setup", action="store_true", help="Register the Docker MCP gateway in Claude Code")
    add_parser.add_argument("--user", action="store_true", help="Use the global config even inside a project")
    add_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompts")

    # remove command
    remove_parser = subparsers.add_parser(
        "remove",
        help="Remove an MCP server"
    )
    remove_parser.add_argument("--mcp", required=True, help="Name of the MCP server to remove")
    remove_parser.add_argument("--scope", help=f"Scope ({', '.join(VALID_SCOPES)})")
    remove_parser.add_argument("--user", action="store_true", help="Use the global config even inside a project")
    remove_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List MCP servers"
    )
    list_parser.add_argument("--mcps", action="store_true", help="List MCP servers (default)")
    list_parser.add_argument("--installed", action="store_true", help="Only servers recorded in bwc config")
    list_parser.add_argument("--docker", action="store_true", help="List the Docker MCP catalog")
    list_parser.add_argument("--search", help="Filter by name, description, category or tag")
    list_parser.add_argument("--user", action="store_true", help="Use the global config even inside a project")

    # verify / status / install commands
    for name, help_text in (
        ("verify", "Check configured MCP servers against Claude Code and Docker"),
        ("status", "Show configuration, Docker MCP Toolkit and verification status"),
        ("install", "Re-register every configured MCP server"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--user", action="store_true", help="Use the global config even inside a project")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    ABOUTME: Parses args and dispatches to appropriate command
    ABOUTME: Returns exit code for sys.exit()
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    commands = {
        "init": cmd_init,
        "add": cmd_add,
        "remove": cmd_remove,
        "list": cmd_list,
        "verify": cmd_verify,
        "status": cmd_status,
        "install": cmd_install,
    }
    handler = commands.get(args.command)
    if handler is None:
        # No command specified, show help
        parser.print_help()
        return EXIT_SUCCESS

    try:
        return handler(args)
    except KeyboardInterrupt:
        print()
        print("Interrupted")
        return EXIT_FATAL
    except Exception as e:
        print(f"Fatal error: {e}")
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())

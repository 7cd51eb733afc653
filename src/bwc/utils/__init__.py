# ABOUTME: Utility modules for bwc
# ABOUTME: Exports process, env templating, proxy, backup, and validation helpers

from bwc.utils.backup import create_backup, get_backup_dir
from bwc.utils.env import (
    parse_env_assignments,
    parse_header_assignments,
    template_env_assignments,
    template_env_value,
)
from bwc.utils.platform import get_docker_command, is_wsl
from bwc.utils.process import ProcessResult, ProcessRunner
from bwc.utils.proxy import get_proxy_url, should_bypass_proxy
from bwc.utils.validation import (
    ValidationError,
    validate_scope,
    validate_server_config,
    validate_transport,
    validate_url,
)

__all__ = [
    "ProcessResult",
    "ProcessRunner",
    "get_docker_command",
    "is_wsl",
    "parse_env_assignments",
    "parse_header_assignments",
    "template_env_assignments",
    "template_env_value",
    "get_proxy_url",
    "should_bypass_proxy",
    "ValidationError",
    "validate_scope",
    "validate_server_config",
    "validate_transport",
    "validate_url",
    "create_backup",
    "get_backup_dir",
]

# bwc - Build With Claude MCP server configuration manager
# ABOUTME: Version information
__version__ = "0.1.0"

# ABOUTME: Export core data models and errors
# ABOUTME: Export config store and the reconciliation/verification entry points
from bwc.config import ConfigStore, get_config_path, get_config_store, reset_config_store
from bwc.errors import BwcError
from bwc.models import BwcConfig, MCPServerConfig, RemovalOutcome, VerificationResult
from bwc.reconcile import ProviderReconciler
from bwc.verify import VerificationEngine, format_verification_issues

__all__ = [
    "__version__",
    "BwcConfig",
    "BwcError",
    "ConfigStore",
    "MCPServerConfig",
    "ProviderReconciler",
    "RemovalOutcome",
    "VerificationEngine",
    "VerificationResult",
    "format_verification_issues",
    "get_config_path",
    "get_config_store",
    "reset_config_store",
]

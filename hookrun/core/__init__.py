"""
Core modules: script discovery, supervised execution and configuration.
"""

from .errors import (
    HookRunError, DiscoveryError, DiscoveryErrorKind, ScriptRunError, ConfigurationError,
    EXEC_FAILED_EXIT, STATUS_UNDETERMINED,
)
from .models import ScriptRequest, ExecutionResult, BatchOutcome
from .discovery import ScriptDiscoverer, discover
from .runner import ScriptRunner, run_script
from .configuration import HookConfig, HookConfiguration, ConfigurationLoader, RunnerSettings

__all__ = [
    "HookRunError",
    "DiscoveryError",
    "DiscoveryErrorKind",
    "ScriptRunError",
    "ConfigurationError",
    "EXEC_FAILED_EXIT",
    "STATUS_UNDETERMINED",
    "ScriptRequest",
    "ExecutionResult",
    "BatchOutcome",
    "ScriptDiscoverer",
    "discover",
    "ScriptRunner",
    "run_script",
    "HookConfig",
    "HookConfiguration",
    "ConfigurationLoader",
    "RunnerSettings",
]

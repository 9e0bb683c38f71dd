"""
Error types for hook discovery, execution and configuration.

Per-script problems (permission, spawn, exec, wait) are not raised; they are
reported as ExecutionResult values plus a log line. Only failures that stop
a whole invocation are exceptions.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

# Exit status a child uses when it could not replace its image.
EXEC_FAILED_EXIT = 127
# Status returned when no wait status could be obtained.
STATUS_UNDETERMINED = -1


class HookRunError(Exception):
    """Base class for hookrun errors."""


class DiscoveryErrorKind(Enum):
    """Reasons a glob expansion can fail."""
    OUT_OF_MEMORY = "out_of_memory"
    UNREADABLE = "unreadable"
    UNKNOWN = "unknown"


class DiscoveryError(HookRunError):
    def __init__(self, kind: DiscoveryErrorKind, pattern: str, path: Optional[str] = None, code: Optional[int] = None):
        self.kind = kind
        self.pattern = pattern
        self.path = path
        self.code = code
        if kind is DiscoveryErrorKind.OUT_OF_MEMORY:
            msg = f"glob({pattern}): out of memory"
        elif kind is DiscoveryErrorKind.UNREADABLE:
            msg = f"glob({pattern}): cannot read dir {path}"
        else:
            msg = f"glob({pattern}): unknown error code = {code}"
        super().__init__(msg)


class ScriptRunError(HookRunError):
    """A batch could not be started (discovery failed)."""

    def __init__(self, name: str, pattern: str, message: Optional[str] = None):
        self.name = name
        self.pattern = pattern
        super().__init__(message or f"Unable to run {name} [{pattern}]")


class ConfigurationError(HookRunError):
    pass

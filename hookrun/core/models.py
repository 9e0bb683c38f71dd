"""
Pydantic models for hook requests and per-script results.
"""

from __future__ import annotations

import os
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import STATUS_UNDETERMINED


class ScriptRequest(BaseModel):
    """One invocation: a hook category, what to run, and how."""

    model_config = ConfigDict(frozen=True)

    name: str
    pattern: Optional[str] = None
    job_id: int = 0
    max_wait: int = -1
    env: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def name_nonempty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("name must be non-empty")
        return v

    @field_validator("job_id")
    @classmethod
    def job_id_unsigned(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"job_id must be >= 0: {v}")
        return v

    @field_validator("env")
    @classmethod
    def env_entries(cls, v: List[str]) -> List[str]:
        for entry in v:
            key, sep, _ = entry.partition("=")
            if not sep or not key:
                raise ValueError(f"environment entry must be KEY=VALUE: {entry!r}")
        return v

    def env_mapping(self) -> Dict[str, str]:
        return env_to_mapping(self.env)


def env_to_mapping(env: List[str]) -> Dict[str, str]:
    """Turn KEY=VALUE entries into a mapping; later duplicates win."""
    out: Dict[str, str] = {}
    for entry in env:
        key, _, value = entry.partition("=")
        out[key] = value
    return out


class ExecutionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    # Raw wait status (exit code in bits 8-15, signal in bits 0-6), or -1.
    status: int
    indeterminate: bool = False
    timed_out: bool = False

    @classmethod
    def from_returncode(cls, path: str, returncode: int, *, timed_out: bool = False) -> "ExecutionResult":
        """Encode a subprocess return code back into a raw wait status."""
        if returncode < 0:
            status = (-returncode) & 0x7F
        else:
            status = (returncode & 0xFF) << 8
        return cls(path=path, status=status, timed_out=timed_out)

    @property
    def ok(self) -> bool:
        return self.status == 0

    @property
    def exit_code(self) -> Optional[int]:
        if self.status == STATUS_UNDETERMINED:
            return None
        if os.WIFEXITED(self.status):
            return os.WEXITSTATUS(self.status)
        return None

    @property
    def term_signal(self) -> Optional[int]:
        if self.status == STATUS_UNDETERMINED:
            return None
        if os.WIFSIGNALED(self.status):
            return os.WTERMSIG(self.status)
        return None


class BatchOutcome(BaseModel):
    name: str
    pattern: Optional[str] = None
    results: List[ExecutionResult] = Field(default_factory=list)
    status: int = 0

    @property
    def failed(self) -> Optional[ExecutionResult]:
        for r in self.results:
            if not r.ok:
                return r
        return None

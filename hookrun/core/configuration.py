"""
Configuration management for hookrun.

Loads the YAML file that maps hook categories (prolog, epilog, ...) to glob
patterns, timeouts and the environment handed to every hook.
"""

import yaml
import logging
import os
from pathlib import Path
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("/etc/hookrun/hooks.yaml")
DEFAULT_PATH_ENV = "/usr/bin:/bin:/usr/sbin:/sbin"


def default_config_path() -> Path:
    env = os.environ.get("HOOKRUN_CONFIG")
    return Path(env) if env else DEFAULT_CONFIG_PATH


def minimal_environment() -> List[str]:
    """Environment used when neither the config nor the caller provide one."""
    return [f"PATH={DEFAULT_PATH_ENV}"]


def _check_env_mapping(data: Any, where: str) -> Dict[str, str]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{where}: environment must be a mapping")
    out: Dict[str, str] = {}
    for k, v in data.items():
        key = str(k)
        if not key or "=" in key:
            raise ConfigurationError(f"{where}: invalid environment key {key!r}")
        out[key] = "" if v is None else str(v)
    return out


@dataclass
class HookConfig:
    """Configuration for one hook category."""
    name: str
    pattern: str
    timeout: int = -1
    environment: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> 'HookConfig':
        if not isinstance(data, dict):
            raise ConfigurationError(f"hook '{name}' must be a mapping")
        pattern = data.get('pattern') or data.get('path')
        if not pattern or not isinstance(pattern, str):
            raise ConfigurationError(f"hook '{name}' needs a non-empty 'pattern'")
        timeout = data.get('timeout', -1)
        if isinstance(timeout, bool) or not isinstance(timeout, int):
            raise ConfigurationError(f"hook '{name}': timeout must be an integer, got {timeout!r}")
        return cls(
            name=name,
            pattern=pattern,
            timeout=timeout,
            environment=_check_env_mapping(data.get('environment'), f"hook '{name}'"),
        )


@dataclass
class RunnerSettings:
    poll_interval: float = 1.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'RunnerSettings':
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigurationError("'runner' must be a mapping")
        try:
            poll = float(data.get('poll_interval', 1.0))
        except (TypeError, ValueError):
            raise ConfigurationError(f"runner.poll_interval must be a number: {data.get('poll_interval')!r}")
        if poll <= 0:
            raise ConfigurationError("runner.poll_interval must be > 0")
        return cls(poll_interval=poll)


@dataclass
class HookConfiguration:
    """Complete hook configuration."""
    hooks: Dict[str, HookConfig] = field(default_factory=dict)
    environment: Dict[str, str] = field(default_factory=dict)
    runner: RunnerSettings = field(default_factory=RunnerSettings)

    def get_hook(self, name: str) -> HookConfig:
        try:
            return self.hooks[name]
        except KeyError:
            known = ", ".join(sorted(self.hooks)) or "none"
            raise ConfigurationError(f"unknown hook '{name}' (configured: {known})") from None

    def build_environment(
        self,
        hook: Optional[HookConfig] = None,
        extra: Optional[Dict[str, str]] = None,
        job_id: int = 0,
    ) -> List[str]:
        """Return KEY=VALUE entries: global, then per-hook, then extra."""
        merged: Dict[str, str] = {}
        if self.environment:
            merged.update(self.environment)
        else:
            merged["PATH"] = DEFAULT_PATH_ENV
        if hook is not None:
            merged.update(hook.environment)
        if job_id:
            merged["HOOKRUN_JOB_ID"] = str(job_id)
            merged["SLURM_JOB_ID"] = str(job_id)
        if extra:
            merged.update(extra)
        return [f"{k}={v}" for k, v in merged.items()]


class ConfigurationLoader:
    """Loads and validates hookrun YAML configuration."""

    def load(self, path: Path) -> HookConfiguration:
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"configuration file not found: {path}")
        try:
            raw = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ConfigurationError(f"invalid YAML in {path}: {e}") from e
        cfg = self.from_dict(raw or {})
        logger.debug("Loaded %d hook(s) from %s", len(cfg.hooks), path)
        return cfg

    @staticmethod
    def from_dict(raw: Any) -> HookConfiguration:
        if not isinstance(raw, dict):
            raise ConfigurationError("configuration must be a mapping at top level")
        hooks_raw = raw.get('hooks') or {}
        if not isinstance(hooks_raw, dict):
            raise ConfigurationError("'hooks' must be a mapping of name -> hook")
        hooks = {str(name): HookConfig.from_dict(str(name), data) for name, data in hooks_raw.items()}
        return HookConfiguration(
            hooks=hooks,
            environment=_check_env_mapping(raw.get('environment'), "environment"),
            runner=RunnerSettings.from_dict(raw.get('runner')),
        )

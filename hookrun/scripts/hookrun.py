#!/usr/bin/env python3
"""
hookrun: run prolog/epilog hook scripts under supervision

Commands:
  hookrun run NAME    # run every script configured for hook NAME, in order
  hookrun list NAME   # show the scripts that would run, without running them
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

from hookrun.core.configuration import (
    ConfigurationLoader,
    HookConfig,
    HookConfiguration,
    default_config_path,
)
from hookrun.core.discovery import ScriptDiscoverer
from hookrun.core.errors import ConfigurationError, HookRunError, STATUS_UNDETERMINED
from hookrun.core.models import ExecutionResult, ScriptRequest
from hookrun.core.runner import ScriptRunner
from hookrun.utils.logging_config import setup_logging

EXIT_USAGE = 2

log = logging.getLogger("hookrun")


def _parse_env_overrides(items: Optional[List[str]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ConfigurationError(f"--env expects KEY=VALUE, got {item!r}")
        out[key] = value
    return out


def _resolve_hook(args: argparse.Namespace) -> tuple[HookConfiguration, HookConfig]:
    """Load the configuration (optional when --pattern is given) and pick the hook."""
    cfg_path = Path(args.config) if args.config else default_config_path()
    if args.config or not args.pattern or cfg_path.exists():
        cfg = ConfigurationLoader().load(cfg_path)
    else:
        cfg = HookConfiguration()
    if args.pattern:
        base = cfg.hooks.get(args.name)
        hook = HookConfig(
            name=args.name,
            pattern=args.pattern,
            timeout=base.timeout if base else -1,
            environment=dict(base.environment) if base else {},
        )
    else:
        hook = cfg.get_hook(args.name)
    if getattr(args, "timeout", None) is not None:
        hook.timeout = int(args.timeout)
    return cfg, hook


def exit_code_for(result: Optional[ExecutionResult]) -> int:
    """Map a failing result onto a shell exit code."""
    if result is None or result.ok:
        return 0
    if result.status == STATUS_UNDETERMINED:
        return 1
    if result.exit_code is not None:
        return result.exit_code or 1
    if result.term_signal is not None:
        return 128 + result.term_signal
    return 1


def cmd_run(args: argparse.Namespace) -> int:
    setup_logging(level=args.log_level, log_file=args.log_file, console_level=args.console_level)
    try:
        cfg, hook = _resolve_hook(args)
        env = cfg.build_environment(hook, extra=_parse_env_overrides(args.env), job_id=args.job_id)
        request = ScriptRequest(
            name=hook.name,
            pattern=hook.pattern,
            job_id=args.job_id,
            max_wait=hook.timeout,
            env=env,
        )
        runner = ScriptRunner(poll_interval=cfg.runner.poll_interval)
        outcome = runner.run_batch(request)
    except HookRunError as e:
        log.error("%s failed: %s", args.name, e)
        return EXIT_USAGE
    except ValueError as e:
        # pydantic validation of the request
        log.error("%s: invalid request: %s", args.name, e)
        return EXIT_USAGE
    log.info("%s: ran %d script(s), status=%d", hook.name, len(outcome.results), outcome.status)
    return exit_code_for(outcome.failed)


def _build_list_table(hook: HookConfig, paths: List[str]) -> Any:
    from rich.table import Table
    from rich.text import Text

    # plain Text everywhere: hook names and paths may contain "[...]"
    table = Table(title=Text(hook.name), expand=False)
    table.add_column("#", justify="right")
    table.add_column("script", style="bold", no_wrap=True)
    table.add_column("runnable")
    table.add_column("directory", overflow="fold")
    for i, p in enumerate(paths, 1):
        ok = os.access(p, os.R_OK | os.X_OK)
        runnable = Text("yes", style="green") if ok else Text("no", style="bold red")
        table.add_row(str(i), Text(os.path.basename(p)), runnable, Text(os.path.dirname(p)))
    return table


def cmd_list(args: argparse.Namespace) -> int:
    setup_logging(level=args.log_level, log_file=args.log_file, console_level=args.console_level)
    from rich.console import Console
    from rich.text import Text

    console = Console()
    try:
        _, hook = _resolve_hook(args)
        paths = ScriptDiscoverer().discover(hook.pattern)
    except HookRunError as e:
        log.error("%s failed: %s", args.name, e)
        return EXIT_USAGE
    if not paths:
        console.print(Text(f"No scripts match {hook.pattern}"), soft_wrap=True)
        return 0
    console.print(Text(f"pattern: {hook.pattern}"), soft_wrap=True)
    console.print(_build_list_table(hook, paths))
    timeout = "unbounded" if hook.timeout < 0 else f"{hook.timeout}s"
    console.print(f"timeout: {timeout}")
    return 0


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("name", help="Hook category (e.g. prolog, epilog)")
    p.add_argument("--config", default=None, help="Hook configuration YAML (default: $HOOKRUN_CONFIG or /etc/hookrun/hooks.yaml)")
    p.add_argument("--pattern", default=None, help="Glob pattern or path; overrides the configured one")
    p.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="INFO")
    p.add_argument("--console-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="WARNING")
    p.add_argument("--log-file", default=None, help="Also log to this file (default: $HOOKRUN_LOG_FILE)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hookrun", description="Run hook scripts under process-group supervision")
    sub = parser.add_subparsers(dest="cmd")

    p_run = sub.add_parser("run", help="Run all scripts of a hook, stopping at the first failure")
    _add_common(p_run)
    p_run.add_argument("--job-id", type=int, default=0, help="Job id for log context (0 = none)")
    p_run.add_argument("--timeout", type=int, default=None, help="Per-script limit in seconds; -1 waits forever")
    p_run.add_argument("--env", action="append", metavar="KEY=VALUE", help="Extra environment entry; can repeat")
    p_run.set_defaults(func=cmd_run)

    p_list = sub.add_parser("list", help="List the scripts a hook would run")
    _add_common(p_list)
    p_list.set_defaults(func=cmd_list)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())

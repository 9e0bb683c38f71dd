"""
ScriptRunner: run discovered hook scripts one at a time under supervision.

Behavior:
- Each script is started with argv == [path] under the caller's environment,
  as leader of its own process group (pgid == pid)
- max_wait < 0 blocks until exit; otherwise poll about once per second and
  SIGKILL the whole group when the budget runs out, then block until reaped
- After every observed exit the group is SIGKILLed again so that leftover
  descendants do not outlive the script
- The batch stops at the first script with a non-zero raw wait status
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import time
from typing import List, Optional

from .discovery import ScriptDiscoverer
from .errors import EXEC_FAILED_EXIT, STATUS_UNDETERMINED, DiscoveryError, ScriptRunError
from .models import BatchOutcome, ExecutionResult, ScriptRequest, env_to_mapping


class ScriptRunner:
    """Sequential hook runner.

    Public API:
      - ScriptRunner(logger=None, poll_interval=1.0, discoverer=None)
      - run_one(name, path, job_id, max_wait, env) -> ExecutionResult
      - run_batch(request) -> BatchOutcome
      - run(request) -> int
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        poll_interval: float = 1.0,
        discoverer: Optional[ScriptDiscoverer] = None,
    ):
        self.log = logger or logging.getLogger(__name__)
        self.poll_interval = float(poll_interval)
        self.discoverer = discoverer or ScriptDiscoverer()

    def run_one(self, name: str, path: Optional[str], job_id: int, max_wait: int, env: List[str]) -> ExecutionResult:
        """Run a single script and return its raw wait status.

        Returns status -1 when the script could not be started, and status 0
        with indeterminate=True when the wait itself failed.
        """
        assert env is not None, "env must be supplied by the caller"
        if not path:
            return ExecutionResult(path="", status=0)

        if job_id:
            self.log.debug("[job %d] attempting to run %s [%s]", job_id, name, path)
        else:
            self.log.debug("attempting to run %s [%s]", name, path)

        if not os.access(path, os.R_OK | os.X_OK):
            reason = "Permission denied" if os.path.exists(path) else "No such file or directory"
            self.log.error("Can not run %s [%s]: %s", name, path, reason)
            return ExecutionResult(path=path, status=STATUS_UNDETERMINED)

        try:
            proc = subprocess.Popen(
                [path],
                env=env_to_mapping(env),
                stdin=subprocess.DEVNULL,
                close_fds=True,
                # new session => new process group whose id is the child's pid
                start_new_session=True,
            )
        except OSError as ex:
            if ex.filename is not None:
                # The child forked but could not exec the image.
                self.log.error("execve(): %s: %s", path, ex.strerror or ex)
                return ExecutionResult.from_returncode(path, EXEC_FAILED_EXIT)
            self.log.error("executing %s: fork: %s", name, ex.strerror or ex)
            return ExecutionResult(path=path, status=STATUS_UNDETERMINED)

        return self._supervise(proc, name, path, max_wait)

    def _supervise(self, proc: subprocess.Popen, name: str, path: str, max_wait: int) -> ExecutionResult:
        blocking = max_wait < 0
        remaining = float(max_wait)
        timed_out = False
        while True:
            try:
                status = self._wait(proc, blocking)
            except InterruptedError:
                continue
            except OSError as ex:
                # Cannot tell how the script ended; assume success and move on.
                self.log.error("waitpid: %s", ex.strerror or ex)
                proc.returncode = 0
                return ExecutionResult(path=path, status=0, indeterminate=True)
            if status is None:
                time.sleep(self.poll_interval)
                remaining -= self.poll_interval
                if remaining <= 0:
                    self.log.warning("%s [%s] exceeded %ds, killing process group %d", name, path, max_wait, proc.pid)
                    self._kill_group(proc.pid)
                    timed_out = True
                    blocking = True
                continue
            # kill children too
            self._kill_group(proc.pid)
            return ExecutionResult(path=path, status=status, timed_out=timed_out)

    @staticmethod
    def _wait(proc: subprocess.Popen, blocking: bool) -> Optional[int]:
        """waitpid() the child; raw status, or None while it still runs.

        Popen.wait()/poll() would hide ECHILD as returncode 0, so the pid is
        reaped here and the Popen object is told the result afterwards.
        """
        pid, status = os.waitpid(proc.pid, 0 if blocking else os.WNOHANG)
        if pid == 0:
            return None
        proc.returncode = os.waitstatus_to_exitcode(status)
        return status

    def _kill_group(self, pgid: int) -> None:
        try:
            os.killpg(pgid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        except OSError as ex:
            self.log.debug("killpg(%d): %s", pgid, ex)

    def run_batch(self, request: ScriptRequest) -> BatchOutcome:
        """Discover and run every script for request, stopping at the first failure."""
        outcome = BatchOutcome(name=request.name, pattern=request.pattern)
        if not request.pattern:
            return outcome
        try:
            paths = self.discoverer.discover(request.pattern)
        except DiscoveryError as ex:
            self.log.error("Unable to run %s [%s]", request.name, request.pattern)
            raise ScriptRunError(request.name, request.pattern) from ex

        for p in paths:
            res = self.run_one(request.name, p, request.job_id, request.max_wait, request.env)
            outcome.results.append(res)
            if res.status:
                self.log.error("%s: exited with status 0x%04x", p, res.status & 0xFFFFFFFF)
                outcome.status = res.status
                break
        return outcome

    def run(self, request: ScriptRequest) -> int:
        return self.run_batch(request).status


def run_script(
    name: str,
    pattern: Optional[str],
    job_id: int = 0,
    max_wait: int = -1,
    env: Optional[List[str]] = None,
    *,
    runner: Optional[ScriptRunner] = None,
) -> int:
    """Compatibility wrapper: build a request and run it through a ScriptRunner."""
    assert env is not None, "env must be supplied by the caller"
    request = ScriptRequest(name=name, pattern=pattern, job_id=job_id, max_wait=max_wait, env=env)
    return (runner or ScriptRunner()).run(request)

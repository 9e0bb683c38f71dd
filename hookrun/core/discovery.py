"""
Script discovery: expand a glob pattern into the ordered list of hook paths.

Expansion follows glob(3) called with GLOB_ERR:
- '*', '?' and '[...]' are matched per path component
- a backslash makes the next character literal
- wildcards never match a leading '.' unless the component pattern starts with '.'
- a directory that cannot be listed, including one that does not exist,
  aborts the whole expansion
- no match at all is an empty list, not an error
"""

from __future__ import annotations

import errno
import fnmatch
import logging
import os
import re
from typing import Callable, List, Optional

from .errors import DiscoveryError, DiscoveryErrorKind

logger = logging.getLogger(__name__)

_ESCAPED = re.compile(r"\\(.)", re.DOTALL)

# A path component that is a regular file: nothing to list below it.
_NOT_A_DIR_ERRNOS = (errno.ENOTDIR,)

ErrorCallback = Callable[[str, OSError], object]


def _has_magic(s: str) -> bool:
    escaped = False
    for ch in s:
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch in "*?[":
            return True
    return False


def _unescape(s: str) -> str:
    return _ESCAPED.sub(r"\1", s)


def _to_fnmatch(pat: str) -> str:
    """Rewrite backslash escapes as one-character classes for fnmatch."""
    out: List[str] = []
    i, n = 0, len(pat)
    while i < n:
        ch = pat[i]
        if ch == "\\" and i + 1 < n:
            nxt = pat[i + 1]
            out.append(f"[{nxt}]" if nxt in "*?[\\" else nxt)
            i += 2
        elif ch == "[":
            # copy a bracket expression untouched; escapes inside it are literal
            j = i + 1
            if j < n and pat[j] == "!":
                j += 1
            if j < n and pat[j] == "]":
                j += 1
            j = pat.find("]", j)
            if j < 0:
                out.append("[[]")
                i += 1
            else:
                out.append(pat[i:j + 1])
                i = j + 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _log_glob_error(path: str, exc: OSError) -> None:
    logger.error("run_script: glob: %s: %s", path, exc.strerror or exc)


class _Aborted(Exception):
    def __init__(self, path: str):
        self.path = path


class ScriptDiscoverer:
    """Expand hook patterns; `on_error(path, exc)` is told about unreadable dirs."""

    def __init__(self, on_error: Optional[ErrorCallback] = None):
        self.on_error = on_error or _log_glob_error

    def discover(self, pattern: Optional[str]) -> List[str]:
        if not pattern:
            return []
        try:
            matches = self._expand(pattern)
        except _Aborted as ab:
            logger.error("run_script: cannot read dir %s", ab.path)
            raise DiscoveryError(DiscoveryErrorKind.UNREADABLE, pattern, path=ab.path) from None
        except MemoryError:
            logger.error("run_script: glob: out of memory")
            raise DiscoveryError(DiscoveryErrorKind.OUT_OF_MEMORY, pattern) from None
        except ValueError as ex:
            # e.g. embedded NUL byte; the engine cannot evaluate the pattern
            logger.error("Unknown glob return code = %d (%s)", errno.EINVAL, ex)
            raise DiscoveryError(DiscoveryErrorKind.UNKNOWN, pattern, code=errno.EINVAL) from ex
        matches.sort()
        logger.debug("glob %s: %d match(es)", pattern, len(matches))
        return matches

    def _expand(self, pattern: str) -> List[str]:
        if not _has_magic(pattern):
            literal = _unescape(pattern)
            return [literal] if os.path.lexists(literal) else []
        dirname, basename = os.path.split(pattern)
        if not dirname:
            dirs = [""]
        elif dirname != pattern and _has_magic(dirname):
            dirs = self._expand(dirname)
        else:
            dirs = [_unescape(dirname)]
        out: List[str] = []
        for d in dirs:
            if _has_magic(basename):
                for name in self._list_matching(d, basename):
                    out.append(os.path.join(d, name) if d else name)
            elif basename:
                candidate = os.path.join(d, _unescape(basename))
                if os.path.lexists(candidate):
                    out.append(candidate)
            elif os.path.isdir(d):
                # pattern ended with a separator: directories only
                out.append(os.path.join(d, ""))
        return out

    def _list_matching(self, directory: str, pat: str) -> List[str]:
        explicit_dot = pat.startswith(".") or pat.startswith("\\.")
        pat = _to_fnmatch(pat)
        names: List[str] = []
        try:
            with os.scandir(directory or os.curdir) as it:
                for entry in it:
                    if entry.name.startswith(".") and not explicit_dot:
                        continue
                    if fnmatch.fnmatchcase(entry.name, pat):
                        names.append(entry.name)
        except OSError as ex:
            if ex.errno in _NOT_A_DIR_ERRNOS:
                return []
            path = directory or os.curdir
            self.on_error(path, ex)
            raise _Aborted(path) from ex
        return names


def discover(pattern: Optional[str], on_error: Optional[ErrorCallback] = None) -> List[str]:
    """Return hook paths matching pattern, in glob order."""
    return ScriptDiscoverer(on_error=on_error).discover(pattern)

import os
from pathlib import Path

import pytest

ENV = ["PATH=/usr/bin:/bin"]


@pytest.fixture
def make_script(tmp_path):
    """Write an executable /bin/sh script and return its path."""

    def _make(name, body, mode=0o755, directory=None, shebang=True):
        d = Path(directory) if directory else tmp_path
        d.mkdir(parents=True, exist_ok=True)
        p = d / name
        p.write_text(("#!/bin/sh\n" if shebang else "") + body + "\n")
        p.chmod(mode)
        return p

    return _make


def proc_gone(pid: int) -> bool:
    """True when pid no longer runs (absent or zombie)."""
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except (FileNotFoundError, ProcessLookupError):
        return True
    # state is the first field after the parenthesised command name
    return stat.rsplit(")", 1)[1].split()[0] in ("Z", "X")


needs_proc = pytest.mark.skipif(not os.path.isdir("/proc/self"), reason="requires /proc")

from __future__ import annotations
import logging
import os
import signal
import subprocess
import time
from typing import Optional, Sequence

from ..cancellation import CancelToken
from ..errors import AgentTimeoutError, GitCommandError

"""
Runs git as an argument vector. Nothing is ever interpolated into a shell
command line, so commit messages and file names reach git unchanged.
"""

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


def run_git(repo: str, args: Sequence[str], timeout: float = 120,
            cancel: Optional[CancelToken] = None) -> str:
    """Run ``git <args>`` in ``repo`` and return stdout.

    Raises GitCommandError on a non-zero exit, AgentTimeoutError when the
    command outlives ``timeout``, and RunCancelled/AgentTimeoutError when the
    cancel token fires while it runs. The process is killed in both cases.
    """
    if cancel is not None:
        cancel.check()
    argv = ["git", *args]
    logger.debug("git: %s (cwd=%s)", " ".join(argv[1:]), repo)
    try:
        proc = subprocess.Popen(
            argv,
            cwd=repo,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
            start_new_session=True,
        )
    except OSError as e:
        raise GitCommandError(argv, 127, stderr=str(e))
    deadline = time.monotonic() + timeout
    while True:
        try:
            out, err = proc.communicate(timeout=POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            if cancel is not None and (cancel.cancelled or cancel.expired):
                _kill(proc)
                cancel.check()
            if time.monotonic() >= deadline:
                _kill(proc)
                raise AgentTimeoutError(f"{' '.join(argv)} timed out after {timeout:g}s", seconds=timeout)
    if proc.returncode != 0:
        raise GitCommandError(argv, proc.returncode, stderr=err, stdout=out)
    return out


def _kill(proc: subprocess.Popen) -> None:
    # hooks and aliases run as children of git; take the whole group down
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        proc.kill()
    proc.communicate()

from __future__ import annotations
import logging
import os
from typing import Optional

from ..cancellation import CancelToken
from ..errors import AgentTimeoutError, GitCommandError
from .shell import run_git

"""
Tool: git_commit
Description: Stage all changes (git add .) and commit them with a message.
Args: {"message": "string"}

Tool: git_push
Description: Push the current branch to its configured remote.
Args: {}

collect_diff is not a tool on its own; generate_commit_message feeds it to the model.
"""

logger = logging.getLogger(__name__)

NO_CHANGES = "No changes detected."
NEW_FILE_BLOCK = "\n\n--- New file: {path} ---\n{content}\n"


def _git_or_empty(repo: str, args: list[str], timeout: float, cancel: Optional[CancelToken]) -> str:
    try:
        return run_git(repo, args, timeout=timeout, cancel=cancel)
    except (GitCommandError, AgentTimeoutError) as e:
        if cancel is not None:
            cancel.check()
        logger.debug("ignoring failed git %s: %s", args[0], e)
        return ""


def _read_untracked(repo: str, path: str) -> Optional[str]:
    try:
        with open(os.path.join(repo, path), "r", encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        logger.debug("could not read untracked file %s: %s", path, e)
        return None


def collect_diff(repo: str = ".", timeout: float = 120, cancel: Optional[CancelToken] = None) -> str:
    """Staged diff + unstaged diff + the full text of every untracked file.

    Individual failures contribute nothing. Returns NO_CHANGES when the
    result is blank.
    """
    diff = _git_or_empty(repo, ["diff", "--cached"], timeout, cancel)
    diff += _git_or_empty(repo, ["diff"], timeout, cancel)

    listing = _git_or_empty(repo, ["ls-files", "--others", "--exclude-standard", "-z"], timeout, cancel)
    for path in filter(None, listing.split("\0")):
        content = _read_untracked(repo, path)
        if content is not None:
            diff += NEW_FILE_BLOCK.format(path=path, content=content)

    if not diff.strip():
        return NO_CHANGES
    return diff


def current_branch(repo: str = ".", timeout: float = 120, cancel: Optional[CancelToken] = None) -> str:
    return _git_or_empty(repo, ["branch", "--show-current"], timeout, cancel).strip()


def git_commit(repo: str, message: str, timeout: float = 120, cancel: Optional[CancelToken] = None) -> str:
    if not message or not message.strip():
        return "Commit failed: commit message is empty"
    try:
        run_git(repo, ["add", "."], timeout=timeout, cancel=cancel)
        run_git(repo, ["commit", "-m", message], timeout=timeout, cancel=cancel)
    except (GitCommandError, AgentTimeoutError) as e:
        if cancel is not None:
            cancel.check()
        logger.warning("commit failed: %s", e)
        return f"Commit failed: {_detail(e)}"
    return f'Commit successful with message: "{message}"'


def git_push(repo: str, timeout: float = 120, cancel: Optional[CancelToken] = None) -> str:
    branch = current_branch(repo, timeout=timeout, cancel=cancel)
    logger.debug("pushing branch %r", branch)
    try:
        run_git(repo, ["push"], timeout=timeout, cancel=cancel)
    except (GitCommandError, AgentTimeoutError) as e:
        if cancel is not None:
            cancel.check()
        logger.warning("push failed: %s", e)
        return f"Push failed: {_detail(e)}"
    return f"Push successful ({branch})" if branch else "Push successful"


def _detail(e: Exception) -> str:
    if isinstance(e, GitCommandError):
        return (e.stderr or e.stdout).strip() or f"git exited with status {e.returncode}"
    return str(e)

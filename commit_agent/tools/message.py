from __future__ import annotations
import logging
from typing import Optional

from ..cancellation import CancelToken
from ..errors import AgentTimeoutError
from .git_tools import NO_CHANGES, collect_diff

"""
Tool: generate_commit_message
Description: Generate a concise, meaningful commit message from the git diff and untracked files.
Args: {}
Returns: a one-line message, "No changes detected.", or a string starting with "ERROR: ".
"""

logger = logging.getLogger(__name__)

ERROR_PREFIX = "ERROR: "

MESSAGE_SYSTEM_PROMPT = """You are a professional software engineer writing concise Git commit messages.
Summarize the intent of the following changes in one clear sentence.
Start with a verb such as "Add", "Fix", "Update" or "Refactor" and name what changed.
Reply with the commit message only, no quotes and no explanation."""


def truncate_diff(diff: str, max_chars: int) -> str:
    if max_chars <= 0 or len(diff) <= max_chars:
        return diff
    omitted = len(diff) - max_chars
    return diff[:max_chars] + f"\n[... diff truncated - {omitted} characters omitted ...]\n"


def generate_commit_message(repo: str, llm, cancel: Optional[CancelToken] = None,
                            max_diff_chars: int = 20000, git_timeout: float = 120) -> str:
    diff = collect_diff(repo, timeout=git_timeout, cancel=cancel)
    if diff == NO_CHANGES:
        return NO_CHANGES

    try:
        reply = llm.complete(MESSAGE_SYSTEM_PROMPT, truncate_diff(diff, max_diff_chars), cancel=cancel)
    except AgentTimeoutError:
        # run-level deadline / cancel stops the run; a slow request is just a failed tool
        if cancel is not None and (cancel.cancelled or cancel.expired):
            raise
        logger.warning("commit message request timed out")
        return f"{ERROR_PREFIX}Failed to generate commit message: request timed out"
    except Exception as e:
        logger.warning("commit message generation failed: %s", e)
        return f"{ERROR_PREFIX}Failed to generate commit message: {e}"

    message = (reply or "").strip()
    if not message:
        return f"{ERROR_PREFIX}Failed to generate commit message: model returned an empty reply"
    return message

from __future__ import annotations
from typing import Optional, Sequence

"""
Exception hierarchy for commit-agent.

Tools never raise for git or LLM failures; they return strings the model can
read. What does escape a run is configuration trouble, provider errors inside
the agent loop, the turn limit, and timeouts/cancellation.
"""


class CommitAgentError(Exception):
    """Base class for every error raised by commit-agent."""


class ConfigError(CommitAgentError):
    """Missing API key, unusable repo path, bad option values."""


class LLMError(CommitAgentError):
    """The provider call failed (auth, quota, bad request, network)."""


class GitCommandError(CommitAgentError):
    def __init__(self, args: Sequence[str], returncode: int, stderr: str = "", stdout: str = ""):
        self.argv = list(args)
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        detail = (stderr or stdout).strip() or f"exit status {returncode}"
        super().__init__(f"{' '.join(self.argv)}: {detail}")


class AgentTimeoutError(CommitAgentError):
    """A subprocess or LLM call ran out of time, or the run deadline passed."""

    def __init__(self, message: str, seconds: Optional[float] = None):
        super().__init__(message)
        self.seconds = seconds


class RunCancelled(AgentTimeoutError):
    """The run's cancel token was fired."""


class MaxTurnsExceeded(CommitAgentError):
    def __init__(self, max_turns: int):
        super().__init__(f"agent did not finish within {max_turns} LLM turns")
        self.max_turns = max_turns

from __future__ import annotations
import json as _json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..cancellation import CancelToken
from ..errors import AgentTimeoutError
from .git_tools import collect_diff, git_commit, git_push, NO_CHANGES
from .message import generate_commit_message, ERROR_PREFIX

logger = logging.getLogger(__name__)

ToolFn = Callable[[Dict[str, Any]], str]

_JSON_TYPES = {
    "string": str,
    "boolean": bool,
    "integer": int,
    "object": dict,
}


@dataclass
class ToolSpec:
    """Tool descriptor: what the model sees."""
    name: str
    description: str
    properties: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)

    @property
    def schema(self) -> Dict[str, Any]:
        return {"type": "object", "properties": self.properties, "required": list(self.required)}

    def to_openai(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {"name": self.name, "description": self.description, "parameters": self.schema},
        }

    def to_anthropic(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "input_schema": self.schema}

    def validate(self, args: Dict[str, Any]) -> Optional[str]:
        """Return an error string for bad arguments, None when they fit."""
        if not isinstance(args, dict):
            return "arguments must be an object"
        for key in self.required:
            if key not in args:
                return f"missing required argument '{key}'"
        for key, value in args.items():
            if key not in self.properties:
                return f"unexpected argument '{key}'"
            expected = _JSON_TYPES.get(self.properties[key].get("type"))
            # bool is an int subclass; keep them apart
            if expected and (not isinstance(value, expected) or (expected is int and isinstance(value, bool))):
                return f"argument '{key}' must be of type {self.properties[key]['type']}"
        return None


TOOL_SPECS: List[ToolSpec] = [
    ToolSpec(
        name="generate_commit_message",
        description="Generate a concise, meaningful commit message based on the git diff and untracked files.",
    ),
    ToolSpec(
        name="git_commit",
        description="Stage all changes and commit them with the given message.",
        properties={"message": {"type": "string", "description": "The commit message to use."}},
        required=["message"],
    ),
    ToolSpec(
        name="git_push",
        description="Push committed changes on the current branch to the remote repository.",
    ),
]


class ToolRegistry:
    def __init__(self, repo: str, llm=None, cancel: Optional[CancelToken] = None,
                 git_timeout: float = 120, max_diff_chars: int = 20000):
        self.repo = repo
        self.llm = llm
        self.cancel = cancel
        self.git_timeout = git_timeout
        self.max_diff_chars = max_diff_chars
        self.specs: Dict[str, ToolSpec] = {s.name: s for s in TOOL_SPECS}
        self._tools: dict[str, ToolFn] = {
            "generate_commit_message": lambda a: generate_commit_message(
                self.repo, self.llm, cancel=self.cancel,
                max_diff_chars=self.max_diff_chars, git_timeout=self.git_timeout),
            "git_commit": lambda a: git_commit(self.repo, a["message"], timeout=self.git_timeout, cancel=self.cancel),
            "git_push": lambda a: git_push(self.repo, timeout=self.git_timeout, cancel=self.cancel),
        }

    @classmethod
    def from_config(cls, config, llm, cancel: Optional[CancelToken] = None) -> "ToolRegistry":
        return cls(config.repo, llm=llm, cancel=cancel,
                   git_timeout=config.git_timeout, max_diff_chars=config.max_diff_chars)

    def tool_specs(self) -> List[ToolSpec]:
        return list(self.specs.values())

    def dispatch(self, tool: str, args: Dict[str, Any]) -> str:
        if tool not in self._tools:
            logger.warning("model requested unknown tool %r", tool)
            return _json.dumps({"status": "error", "tool": tool, "error": "unknown tool"})
        args = {} if args is None else args
        problem = self.specs[tool].validate(args)
        if problem:
            logger.warning("rejected %s call: %s", tool, problem)
            return _json.dumps({"status": "error", "tool": tool, "error": f"invalid arguments: {problem}"})
        logger.debug("dispatch %s %s", tool, _json.dumps(args))
        try:
            out = self._tools[tool](args)
        except AgentTimeoutError:
            raise
        except Exception as e:
            logger.exception("tool %s crashed", tool)
            return _json.dumps({"status": "error", "tool": tool, "error": f"{type(e).__name__}: {e}"})
        return _json.dumps({"status": "ok", "tool": tool, "output": out})


__all__ = [
    "ToolSpec", "ToolRegistry", "TOOL_SPECS",
    "collect_diff", "git_commit", "git_push", "generate_commit_message",
    "NO_CHANGES", "ERROR_PREFIX",
]

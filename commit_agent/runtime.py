from __future__ import annotations
import enum
import logging
from typing import List, Optional, Sequence, Union

from rich.console import Console
from rich.markup import escape

from .cancellation import CancelToken
from .config import AgentConfig
from .conversation import Message
from .errors import MaxTurnsExceeded
from .llm import LLMClient
from .tools import ToolRegistry

console = Console()
logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an autonomous Git assistant.
1. If the user asks to commit but gives no message, call generate_commit_message first.
2. Then call git_commit with that message, unchanged.
3. If the user asks to push, call git_push after the commit succeeded.
If generate_commit_message reports "No changes detected." or an error, do not commit; tell the user.
Never write shell commands yourself, only use the tools.
When you are done, reply with a short summary of what happened."""

MAX_RESULT_LENGTH = 5000  # characters kept per tool result


class AgentState(enum.Enum):
    AWAITING_LLM = "awaiting-llm"
    AWAITING_TOOL = "awaiting-tool"
    DONE = "done"


class Agent:
    """LLM <-> tool loop for one run.

    Everything the run touches (LLM client, tool registry, cancel token) is
    owned by the instance; pass them in to override.
    """

    def __init__(self, config: AgentConfig,
                 llm=None,
                 tools: Optional[ToolRegistry] = None,
                 cancel: Optional[CancelToken] = None):
        self.config = config
        self.cancel = cancel or CancelToken(config.run_timeout)
        self.llm = llm if llm is not None else LLMClient(config)
        self.tools = tools if tools is not None else ToolRegistry.from_config(config, self.llm, self.cancel)
        self.state = AgentState.AWAITING_LLM
        self.turns = 0

    def run(self, messages: Union[str, Sequence[Message]]) -> List[Message]:
        if isinstance(messages, str):
            messages = [Message.user(messages)]
        conversation: List[Message] = list(messages)
        self.state = AgentState.AWAITING_LLM
        self.turns = 0
        reply: Optional[Message] = None

        while self.state is not AgentState.DONE:
            if self.state is AgentState.AWAITING_LLM:
                if self.turns >= self.config.max_turns:
                    raise MaxTurnsExceeded(self.config.max_turns)
                self.cancel.check()
                if self.config.debug:
                    console.rule(f"Step {self.turns + 1}")
                reply = self.llm.chat(SYSTEM_PROMPT, conversation, self.tools.tool_specs(), cancel=self.cancel)
                self.turns += 1
                conversation.append(reply)
                if reply.content and self.config.debug:
                    console.print(escape(reply.content))
                self.state = AgentState.AWAITING_TOOL if reply.tool_calls else AgentState.DONE
                if self.state is AgentState.DONE:
                    logger.debug("no tool calls, agent finished after %d turn(s)", self.turns)

            elif self.state is AgentState.AWAITING_TOOL:
                for call in reply.tool_calls:
                    self.cancel.check()
                    console.print(f"[dim]Running {escape(call.name)}...[/dim]")
                    result = self.tools.dispatch(call.name, call.arguments)
                    if self.config.debug:
                        console.print(f"[bold]RESULT[/bold]: {escape(result)}")
                    conversation.append(Message.tool_result(call, truncate_result(result)))
                self.state = AgentState.AWAITING_LLM

        return conversation


def truncate_result(result: str) -> str:
    if len(result) <= MAX_RESULT_LENGTH:
        return result
    omitted = len(result) - MAX_RESULT_LENGTH
    return result[:MAX_RESULT_LENGTH] + f"\n[... Output truncated - {omitted} characters omitted ...]"

from __future__ import annotations
import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

import anthropic
import openai

from .cancellation import CancelToken
from .config import AgentConfig
from .conversation import Message, ToolCall
from .errors import AgentTimeoutError, LLMError

logger = logging.getLogger(__name__)


# -------- wire conversion --------

def to_openai_messages(system: str, messages: Sequence[Message]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = [{"role": "system", "content": system}]
    for m in messages:
        if m.role == "tool":
            out.append({"role": "tool", "tool_call_id": m.tool_call_id, "content": m.content})
        elif m.role == "assistant" and m.tool_calls:
            out.append({
                "role": "assistant",
                "content": m.content or None,
                "tool_calls": [{
                    "id": c.id,
                    "type": "function",
                    "function": {"name": c.name, "arguments": json.dumps(c.arguments)},
                } for c in m.tool_calls],
            })
        else:
            out.append({"role": m.role, "content": m.content})
    return out


def to_anthropic_messages(messages: Sequence[Message]) -> List[Dict[str, Any]]:
    """Anthropic wants tool results as user-role blocks, all results for one
    assistant turn in a single user message. System messages are dropped; the
    system prompt travels separately."""
    out: List[Dict[str, Any]] = []
    for m in messages:
        if m.role == "system":
            continue
        if m.role == "tool":
            block = {"type": "tool_result", "tool_use_id": m.tool_call_id, "content": m.content}
            prev = out[-1] if out else None
            if prev and prev["role"] == "user" and isinstance(prev["content"], list) \
                    and all(b.get("type") == "tool_result" for b in prev["content"]):
                prev["content"].append(block)
            else:
                out.append({"role": "user", "content": [block]})
        elif m.role == "assistant":
            blocks: List[Dict[str, Any]] = []
            if m.content:
                blocks.append({"type": "text", "text": m.content})
            for c in m.tool_calls:
                blocks.append({"type": "tool_use", "id": c.id, "name": c.name, "input": c.arguments})
            out.append({"role": "assistant", "content": blocks or m.content})
        else:
            out.append({"role": "user", "content": m.content})
    return out


def _parse_arguments(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        args = json.loads(raw or "{}")
    except (TypeError, json.JSONDecodeError):
        return {}
    return args if isinstance(args, dict) else {}


def parse_openai_message(message) -> Message:
    calls = []
    for tc in getattr(message, "tool_calls", None) or []:
        calls.append(ToolCall(
            id=tc.id or f"call_{uuid.uuid4().hex[:12]}",
            name=tc.function.name,
            arguments=_parse_arguments(tc.function.arguments),
        ))
    return Message.assistant(message.content or "", calls)


def parse_anthropic_response(response) -> Message:
    texts, calls = [], []
    for block in response.content:
        if block.type == "text":
            texts.append(block.text)
        elif block.type == "tool_use":
            calls.append(ToolCall(id=block.id, name=block.name, arguments=_parse_arguments(block.input)))
    return Message.assistant("".join(texts), calls)


# -------- client --------

class LLMClient:
    """Thin wrapper over the OpenAI / Anthropic SDKs for one run."""

    def __init__(self, config: AgentConfig):
        self.config = config
        self.provider = config.provider
        self.model = config.model_id
        self.openai_client = None
        self.anthropic_client = None
        self._init_sdk_clients()

    def _init_sdk_clients(self):
        # max_retries=0: a failed call is reported, never silently repeated
        if self.provider == "anthropic":
            self.anthropic_client = anthropic.Anthropic(
                api_key=self.config.api_key,
                base_url=self.config.base_url or None,
                max_retries=0,
            )
        else:
            self.openai_client = openai.OpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url or None,
                max_retries=0,
            )

    def _timeout(self, cancel: Optional[CancelToken]) -> float:
        timeout = self.config.llm_timeout
        if cancel is not None:
            cancel.check()
            remaining = cancel.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining)
        return timeout

    def complete(self, system: str, prompt: str, cancel: Optional[CancelToken] = None) -> str:
        return self.chat(system, [Message.user(prompt)], tools=(), cancel=cancel).content

    def chat(self, system: str, messages: Sequence[Message], tools=(),
             cancel: Optional[CancelToken] = None) -> Message:
        timeout = self._timeout(cancel)
        logger.debug("LLM call: provider=%s model=%s messages=%d tools=%d",
                     self.provider, self.model, len(messages), len(tools))
        try:
            if self.provider == "anthropic":
                reply = self._chat_anthropic(system, messages, tools, timeout)
            else:
                reply = self._chat_openai(system, messages, tools, timeout)
        except (openai.APITimeoutError, anthropic.APITimeoutError) as e:
            raise AgentTimeoutError(f"LLM request timed out after {timeout:g}s", seconds=timeout) from e
        except (openai.OpenAIError, anthropic.AnthropicError) as e:
            raise LLMError(f"{self.provider} request failed: {e}") from e
        if cancel is not None:
            cancel.check()
        logger.debug("LLM reply: %d chars, %d tool calls", len(reply.content), len(reply.tool_calls))
        return reply

    def _chat_openai(self, system, messages, tools, timeout) -> Message:
        kwargs: Dict[str, Any] = {}
        if tools:
            kwargs["tools"] = [t.to_openai() for t in tools]
            kwargs["tool_choice"] = "auto"
        resp = self.openai_client.chat.completions.create(
            model=self.model,
            messages=to_openai_messages(system, messages),
            temperature=self.config.temperature,
            max_tokens=self.config.max_output_tokens,
            timeout=timeout,
            **kwargs,
        )
        if not resp.choices:
            raise LLMError("openai response contained no choices")
        return parse_openai_message(resp.choices[0].message)

    def _chat_anthropic(self, system, messages, tools, timeout) -> Message:
        kwargs: Dict[str, Any] = {}
        if tools:
            kwargs["tools"] = [t.to_anthropic() for t in tools]
        resp = self.anthropic_client.messages.create(
            model=self.model,
            system=system,
            messages=to_anthropic_messages(messages),
            temperature=self.config.temperature,
            max_tokens=self.config.max_output_tokens,
            timeout=timeout,
            **kwargs,
        )
        return parse_anthropic_response(resp)

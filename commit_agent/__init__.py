from .config import AgentConfig, ModelSpec, MODEL_PRESETS
from .conversation import Message, ToolCall
from .runtime import Agent, AgentState

__all__ = ["AgentConfig", "ModelSpec", "MODEL_PRESETS", "Message", "ToolCall", "Agent", "AgentState"]

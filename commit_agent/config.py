from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError

@dataclass
class ModelSpec:
    id: str
    provider: str = "openai"  # 'openai' covers any OpenAI-compatible endpoint
    base_url: Optional[str] = None
    api_key_env: str = "OPENAI_API_KEY"
    max_output_tokens: int = 2048

GEMINI_OPENAI_BASE = "https://generativelanguage.googleapis.com/v1beta/openai/"

MODEL_PRESETS = {
    # Gemini through its OpenAI-compatible endpoint
    "gemini-2.5-flash": ModelSpec(id="gemini-2.5-flash", base_url=GEMINI_OPENAI_BASE, api_key_env="GOOGLE_API_KEY"),
    "gpt-4o-mini": ModelSpec(id="gpt-4o-mini"),
    "gpt-4o": ModelSpec(id="gpt-4o"),
    "claude-sonnet-4": ModelSpec(id="claude-sonnet-4-20250514", provider="anthropic", api_key_env="ANTHROPIC_API_KEY"),
    "claude-3-5-haiku": ModelSpec(id="claude-3-5-haiku-20241022", provider="anthropic", api_key_env="ANTHROPIC_API_KEY"),
}

DEFAULT_MODEL = "gemini-2.5-flash"

BASE_URL_ENV = {
    "openai": "OPENAI_BASE_URL",
    "anthropic": "ANTHROPIC_BASE_URL",
}


def resolve_model(name: str) -> ModelSpec:
    """Look up a preset, or guess the provider from an arbitrary model name."""
    if name in MODEL_PRESETS:
        return MODEL_PRESETS[name]
    lowered = name.lower()
    if "claude" in lowered or "anthropic" in lowered:
        return ModelSpec(id=name, provider="anthropic", api_key_env="ANTHROPIC_API_KEY")
    if "gemini" in lowered:
        return ModelSpec(id=name, base_url=GEMINI_OPENAI_BASE, api_key_env="GOOGLE_API_KEY")
    return ModelSpec(id=name)


@dataclass
class AgentConfig:
    """Everything one agent run needs. Built fresh per run, never shared."""
    model: str = DEFAULT_MODEL
    repo: str = "."
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.0
    max_output_tokens: Optional[int] = None
    max_turns: int = 10
    llm_timeout: float = 60.0
    git_timeout: float = 120.0
    run_timeout: Optional[float] = None
    max_diff_chars: int = 20000
    debug: bool = False
    spec: ModelSpec = field(init=False, repr=False)

    def __post_init__(self):
        self.spec = resolve_model(self.model)
        if self.max_output_tokens is None:
            self.max_output_tokens = self.spec.max_output_tokens
        if self.max_turns < 1:
            raise ConfigError("max_turns must be at least 1")
        if not os.path.isdir(self.repo):
            raise ConfigError(f"repo must be a directory: {self.repo}")

    @property
    def provider(self) -> str:
        return self.spec.provider

    @property
    def model_id(self) -> str:
        return self.spec.id

    @classmethod
    def from_env(cls, **overrides) -> "AgentConfig":
        """Build a config from .env / the environment, then explicit overrides.

        Precedence for the API key and base URL: explicit argument, then the
        provider's environment variable, then the preset default.
        """
        load_dotenv()
        values = {k: v for k, v in overrides.items() if v is not None}
        values.setdefault("model", os.environ.get("COMMIT_AGENT_MODEL") or DEFAULT_MODEL)
        if "max_turns" not in values and os.environ.get("COMMIT_AGENT_MAX_TURNS"):
            try:
                values["max_turns"] = int(os.environ["COMMIT_AGENT_MAX_TURNS"])
            except ValueError:
                raise ConfigError("COMMIT_AGENT_MAX_TURNS must be an integer")

        spec = resolve_model(values["model"])
        if not values.get("api_key"):
            values["api_key"] = os.environ.get(spec.api_key_env)
        if not values.get("api_key"):
            raise ConfigError(f"Missing API key: set {spec.api_key_env} or pass --api-key")
        if not values.get("base_url"):
            # Presets with their own endpoint (Gemini) ignore OPENAI_BASE_URL
            values["base_url"] = spec.base_url or os.environ.get(BASE_URL_ENV[spec.provider])
        return cls(**values)

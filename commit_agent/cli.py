from __future__ import annotations
import json
import logging
import sys
from typing import List

import typer
from rich import print
from rich.logging import RichHandler
from rich.markup import escape
from dotenv import load_dotenv

from .cancellation import CancelToken
from .config import AgentConfig, MODEL_PRESETS
from .conversation import Message
from .errors import CommitAgentError
from .llm import LLMClient
from .runtime import Agent
from .tools import generate_commit_message, ERROR_PREFIX

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(add_completion=False)

DEFAULT_REQUEST = "Please commit the recent changes and push them."

ROLE_STYLES = {"user": "bold cyan", "assistant": "bold green", "tool": "bold magenta", "system": "bold"}


def _setup_logging(debug: bool):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(rich_tracebacks=debug, show_path=False)],
        force=True,
    )
    # SDK transport chatter is not ours to show
    for noisy in ("httpx", "httpcore", "openai", "anthropic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def render_conversation(messages: List[Message]):
    print("\n[bold]Final Conversation:[/bold]")
    for m in messages:
        style = ROLE_STYLES.get(m.role, "bold")
        label = escape(f"tool:{m.name}" if m.role == "tool" and m.name else m.role)
        if m.content:
            print(f"[{style}]{label}[/{style}]: {escape(m.content)}")
        for call in m.tool_calls:
            print(f"[{style}]{label}[/{style}] -> [bold]{escape(call.name)}[/bold] {escape(json.dumps(call.arguments))}")


def _build_config(**options) -> AgentConfig:
    try:
        return AgentConfig.from_env(**options)
    except CommitAgentError as e:
        print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.command()
def models():
    for k, v in MODEL_PRESETS.items():
        print(f"[bold]{k}[/bold] -> {v.id} ({v.provider}, key: {v.api_key_env})")


@app.command()
def run(request: str = typer.Option(DEFAULT_REQUEST, help="What to ask the git assistant to do"),
        model: str = typer.Option(None, help="Model preset or provider model id (env: COMMIT_AGENT_MODEL)"),
        repo: str = typer.Option(".", help="Path to the git repository"),
        max_turns: int = typer.Option(None, help="Maximum LLM turns before giving up"),
        timeout: float = typer.Option(None, help="Overall run deadline in seconds"),
        base_url: str = typer.Option(None, help="API base URL (overrides env)"),
        api_key: str = typer.Option(None, help="API key (overrides env)"),
        debug: bool = typer.Option(False, help="Enable debug output")):
    _setup_logging(debug)
    config = _build_config(model=model, repo=repo, max_turns=max_turns, run_timeout=timeout,
                           base_url=base_url, api_key=api_key, debug=debug)
    agent = Agent(config, cancel=CancelToken(config.run_timeout))
    try:
        conversation = agent.run(request)
    except KeyboardInterrupt:
        agent.cancel.cancel()
        print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)
    except CommitAgentError as e:
        print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    render_conversation(conversation)


@app.command()
def message(model: str = typer.Option(None, help="Model preset or provider model id"),
            repo: str = typer.Option(".", help="Path to the git repository"),
            base_url: str = typer.Option(None, help="API base URL (overrides env)"),
            api_key: str = typer.Option(None, help="API key (overrides env)"),
            debug: bool = typer.Option(False, help="Enable debug output")):
    """Print a generated commit message without committing."""
    _setup_logging(debug)
    config = _build_config(model=model, repo=repo, base_url=base_url, api_key=api_key, debug=debug)
    cancel = CancelToken(config.run_timeout)
    try:
        text = generate_commit_message(config.repo, LLMClient(config), cancel=cancel,
                                       max_diff_chars=config.max_diff_chars, git_timeout=config.git_timeout)
    except CommitAgentError as e:
        print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    if text.startswith(ERROR_PREFIX):
        print(f"[red]{escape(text)}[/red]")
        raise typer.Exit(1)
    print(escape(text))


def main():
    # If no arguments provided or no recognized command, default to 'run'
    if len(sys.argv) == 1 or (len(sys.argv) > 1 and sys.argv[1] not in ['models', 'run', 'message', '--help']):
        sys.argv.insert(1, 'run')
    app()

if __name__ == "__main__":
    main()

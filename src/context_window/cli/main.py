"""Typer CLI application."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from context_window.budget.token_budget import estimate_tokens
from context_window.config import load_config
from context_window.errors import ConfigError

app = typer.Typer(
    name="context-window",
    help="Fit scored conversation history into a token budget",
    no_args_is_help=True,
)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _config_or_exit(config_path: Optional[Path]):
    try:
        return load_config(config_path)
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)


@app.command()
def optimize(
    messages_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON array of scored messages"),
    target: int = typer.Option(..., "--target", "-t", min=0, help="Target token count"),
    session: str = typer.Option("cli", "--session", "-s", help="Session id"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Select the context that fits TARGET tokens from MESSAGES_FILE."""
    from context_window.cli.display import Display
    from context_window.context.manager import ContextManager
    from context_window.models.requirement import BudgetRequirement

    _setup_logging(verbose)
    config = _config_or_exit(config_path)
    try:
        raw = json.loads(messages_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        typer.echo(f"Could not parse {messages_file}: {exc}", err=True)
        raise typer.Exit(code=2)
    if not isinstance(raw, list):
        typer.echo("Expected a JSON array of messages", err=True)
        raise typer.Exit(code=2)

    manager = ContextManager(config=config)
    result = manager.manage(session, raw, BudgetRequirement(target_tokens=target))
    Display().show_result(result, target)


@app.command()
def config(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.toml"),
) -> None:
    """Show the effective configuration."""
    from context_window.cli.display import Display

    Display().show_config(_config_or_exit(config_path))


@app.command()
def estimate(text: str = typer.Argument(..., help="Text to estimate")) -> None:
    """Print the estimated token count of TEXT."""
    typer.echo(str(estimate_tokens(text)))


if __name__ == "__main__":
    app()

"""Rich terminal rendering for context results."""
from __future__ import annotations

from rich import box
from rich.console import Console
from rich.table import Table

from context_window.budget.token_budget import TokenBudget
from context_window.config import ContextWindowConfig
from context_window.models.context import ContextResult

console = Console()

PREVIEW_CHARS = 60


class Display:
    def __init__(self, console_: Console | None = None):
        self.console = console_ or console
        self.budget = TokenBudget()

    def show_result(self, result: ContextResult, target_tokens: int) -> None:
        table = Table(title="Selected Context", box=box.ROUNDED, border_style="cyan")
        table.add_column("ID", style="bold")
        table.add_column("Role")
        table.add_column("Relevance", justify="right")
        table.add_column("Tokens", justify="right")
        table.add_column("Content")
        for m in result.messages:
            preview = m.content if len(m.content) <= PREVIEW_CHARS else m.content[:PREVIEW_CHARS] + "…"
            table.add_row(
                m.id, m.role.value, f"{m.relevance_score:.2f}",
                str(self.budget.estimate_message_tokens(m)), preview.replace("\n", " "),
            )
        self.console.print(table)
        colour = "green" if result.estimated_tokens <= target_tokens else "yellow"
        self.console.print(
            f"[{colour}]{result.estimated_tokens}/{target_tokens} tokens[/{colour}] | "
            f"strategy: [bold]{result.strategy}[/bold] | "
            f"quality: {result.quality_score:.3f} | "
            f"removed: {result.messages_removed} messages, {result.tokens_removed} tokens"
        )

    def show_config(self, config: ContextWindowConfig) -> None:
        table = Table(title="Context Window Config", box=box.ROUNDED, border_style="cyan")
        table.add_column("Option", style="bold")
        table.add_column("Value", justify="right")
        for key, value in config.model_dump().items():
            table.add_row(key, str(value))
        self.console.print(table)

"""
Interactive prompting and terminal output.

Workflows decide *what* to ask; a ``Prompter`` decides *how*. The
terminal implementation uses Rich; tests pass a scripted one.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable, Iterator, Optional, Protocol

from rich.console import Console
from rich.prompt import Confirm, Prompt

console = Console()


class Prompter(Protocol):
    """Blocking user interaction."""

    def confirm(self, message: str, default: bool = True) -> bool: ...

    def select(self, options: Iterable[str], default: str) -> str: ...

    def prompt_text(self, message: str) -> str: ...


class RichPrompter:
    """Terminal prompter built on ``rich.prompt``."""

    def __init__(self, out: Optional[Console] = None) -> None:
        self.console = out or console

    def confirm(self, message: str, default: bool = True) -> bool:
        return Confirm.ask(f"  {message}", default=default, console=self.console)

    def select(self, options: Iterable[str], default: str) -> str:
        """Numbered list of *options*; Enter keeps *default*."""
        choices = sorted(set(options) | {default}) if default else sorted(set(options))
        for index, option in enumerate(choices, start=1):
            marker = "[green]*[/]" if option == default else " "
            self.console.print(f"  {marker} [cyan]{index}[/]) {option}")
        numbers = [str(index) for index in range(1, len(choices) + 1)]
        extra = {"default": str(choices.index(default) + 1)} if default in choices else {}
        answer = Prompt.ask(
            "  Selection",
            choices=numbers + choices,
            **extra,
            show_choices=False,
            console=self.console,
        )
        if answer in numbers:
            return choices[int(answer) - 1]
        return answer

    def prompt_text(self, message: str) -> str:
        return Prompt.ask(f"  {message}", console=self.console).strip()


def heading(text: str) -> None:
    console.print(f"\n  [bold cyan]{text}[/bold cyan]\n")


def warn(text: str) -> None:
    console.print(f"  [bold yellow]Warning:[/] {text}")


def info(text: str) -> None:
    console.print(f"  {text}")


@contextmanager
def spinner(message: str) -> Iterator[None]:
    """Show a spinner while the block runs."""
    with console.status(f"[cyan]{message}[/]"):
        yield

"""Interactive confirmation prompts.

Every prompt returns None when the user cancels (Ctrl-C or end of input);
callers treat that as a request to abort the whole run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt


@dataclass(frozen=True)
class Choice:
    title: str
    value: str
    description: str = ""
    selected: bool = True


class Prompter(Protocol):
    """Confirmation oracle used by the planner and the executor."""

    def confirm(self, message: str, default: bool = True) -> Optional[bool]:
        ...

    def multiselect(self, message: str, choices: Sequence[Choice]) -> Optional[List[str]]:
        ...

    def text(self, message: str, default: str = "") -> Optional[str]:
        ...


def parse_selection(answer: str, count: int) -> Optional[List[int]]:
    """Parse "1,3 4", "all" or "none" into zero-based indices.

    Returns None when the answer names an index outside 1..count or is not
    a number.
    """
    answer = answer.strip().lower()
    if answer == "all":
        return list(range(count))
    if answer in ("", "none"):
        return []
    indices = []
    for token in re.split(r"[,\s]+", answer):
        if not token:
            continue
        if not token.isdigit():
            return None
        index = int(token) - 1
        if index < 0 or index >= count:
            return None
        if index not in indices:
            indices.append(index)
    return sorted(indices)


class RichPrompter:
    """Prompter backed by rich's prompt widgets."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def confirm(self, message: str, default: bool = True) -> Optional[bool]:
        try:
            return Confirm.ask(message, default=default, console=self.console)
        except (KeyboardInterrupt, EOFError):
            return None

    def text(self, message: str, default: str = "") -> Optional[str]:
        try:
            return Prompt.ask(message, default=default, console=self.console)
        except (KeyboardInterrupt, EOFError):
            return None

    def multiselect(self, message: str, choices: Sequence[Choice]) -> Optional[List[str]]:
        self.console.print(message)
        for number, choice in enumerate(choices, 1):
            mark = "x" if choice.selected else " "
            line = f"  {escape(f'[{mark}]')} {number}. {escape(choice.title)}"
            if choice.description:
                line += f" [dim]{escape(choice.description)}[/dim]"
            self.console.print(line)

        preselected = [str(n) for n, c in enumerate(choices, 1) if c.selected]
        if len(preselected) == len(choices):
            default = "all"
        else:
            default = ",".join(preselected) or "none"

        while True:
            try:
                answer = Prompt.ask(
                    "Select codemods (numbers separated by commas, 'all' or 'none')",
                    default=default,
                    console=self.console,
                )
            except (KeyboardInterrupt, EOFError):
                return None
            indices = parse_selection(answer, len(choices))
            if indices is not None:
                return [choices[i].value for i in indices]
            self.console.print(f"[red]Invalid selection:[/red] {escape(answer)}")

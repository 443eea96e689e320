"""Rich console implementation of the presentation contract."""

from collections.abc import Callable
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.prompt import IntPrompt
from rich.table import Table

from ..models import AggregateIssue, JumpTarget, Reference
from ..picker import Presenter, format_location

TIER_STYLES = {1: "yellow", 2: "dim", 3: "cyan"}


class RichPresenter(Presenter):
    """Renders issues as a table and optionally prompts for a selection."""

    def __init__(
        self,
        console: Console,
        base_dir: str | Path | None = None,
        interactive: bool = False,
    ):
        self.console = console
        self.base_dir = Path(base_dir).resolve() if base_dir else Path.cwd()
        self.interactive = interactive

    def _prompt_index(self, prompt: str, count: int) -> int | None:
        choice = IntPrompt.ask(
            f"{prompt} (0 to cancel)",
            console=self.console,
            choices=[str(i) for i in range(count + 1)],
            show_choices=False,
            default=0,
        )
        if not choice:
            return None
        return choice - 1

    def show_issues(
        self,
        issues: list[AggregateIssue],
        on_select: Callable[[AggregateIssue], None],
    ) -> None:
        table = Table(title="GitHub Issues")
        table.add_column("#", justify="right")
        table.add_column("Status")
        table.add_column("Issue")
        table.add_column("Refs", justify="right")
        table.add_column("Title")

        for index, issue in enumerate(issues, start=1):
            status = "stale" if issue.is_stale else issue.status.value
            table.add_row(
                str(index),
                status,
                issue.identifier,
                str(len(issue.locations)),
                escape(issue.title),
                style=TIER_STYLES[issue.tier],
            )

        self.console.print(table)

        if self.interactive and issues:
            index = self._prompt_index("Select issue", len(issues))
            if index is not None:
                on_select(issues[index])

    def choose_location(
        self,
        issue: AggregateIssue,
        on_choice: Callable[[Reference | None], None],
    ) -> None:
        self.console.print(f"References to #{issue.number}:")
        for index, location in enumerate(issue.locations, start=1):
            self.console.print(
                f"  {index}. {escape(format_location(location, self.base_dir))}",
                highlight=False,
            )

        index = self._prompt_index("Select reference", len(issue.locations))
        on_choice(issue.locations[index] if index is not None else None)

    def jump_to(self, target: JumpTarget) -> None:
        # Editors expect 1-based columns
        self.console.print(
            f"{target.file_path}:{target.line}:{target.start_col + 1}",
            highlight=False,
            soft_wrap=True,
        )

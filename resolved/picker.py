"""Contract between aggregated results and the presentation layer."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from .models import AggregateIssue, JumpTarget, Reference


class Presenter(ABC):
    """Displays issues, lets the user pick one, and jumps to locations."""

    @abstractmethod
    def show_issues(
        self,
        issues: list[AggregateIssue],
        on_select: Callable[[AggregateIssue], None],
    ) -> None:
        """Display ranked issues; call ``on_select`` with the chosen one."""

    @abstractmethod
    def choose_location(
        self,
        issue: AggregateIssue,
        on_choice: Callable[[Reference | None], None],
    ) -> None:
        """Ask which of an issue's locations to open; None means cancelled."""

    @abstractmethod
    def jump_to(self, target: JumpTarget) -> None:
        """Open the file at the given location."""


def format_location(location: Reference, base_dir: str | Path | None = None) -> str:
    """Format a location as ``path:line - comment``, relative to base_dir when possible."""
    path = Path(location.source_file_path)
    if base_dir is not None:
        try:
            path = path.relative_to(base_dir)
        except ValueError:
            pass
    return f"{path}:{location.line} - {location.surrounding_text}"


def handle_issue_selection(issue: AggregateIssue, presenter: Presenter) -> None:
    """Jump straight to a single location, or ask which one when there are several."""
    if not issue.locations:
        return

    if len(issue.locations) == 1:
        presenter.jump_to(issue.locations[0].jump_target())
        return

    def on_choice(location: Reference | None) -> None:
        if location is not None:
            presenter.jump_to(location.jump_target())

    presenter.choose_location(issue, on_choice)


def show_picker(issues: list[AggregateIssue], presenter: Presenter) -> None:
    """Hand ranked issues to the presenter, wiring selection to jumps."""
    presenter.show_issues(
        issues, lambda issue: handle_issue_selection(issue, presenter)
    )

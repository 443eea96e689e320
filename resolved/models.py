"""Pydantic models for references, remote states and aggregated issues."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ReferenceKind(str, Enum):
    """Kind of tracked item a reference points at."""

    ISSUE = "issue"
    PULL_REQUEST = "pull_request"


class IssueStatus(str, Enum):
    """Remote status of a tracked item."""

    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"
    UNKNOWN = "unknown"


RESOLVED_STATUSES = frozenset({IssueStatus.CLOSED, IssueStatus.MERGED})


@dataclass(frozen=True)
class UrlMatch:
    """A single reference detected in one line of text.

    Columns are 0-based and ``end_col`` is exclusive.
    """

    url: str
    owner: str
    repo: str
    kind: ReferenceKind
    number: int
    start_col: int
    end_col: int


class JumpTarget(BaseModel):
    """Location handed to the presentation layer's jump action."""

    model_config = ConfigDict(frozen=True)

    file_path: str
    line: int
    start_col: int
    end_col: int


class Reference(BaseModel):
    """One textual occurrence of a tracked-item identifier."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Canonical GitHub URL of the referenced item")
    owner: str = Field(..., description="Repository owner (user or organization)")
    repo_name: str = Field(..., description="Repository name")
    kind: ReferenceKind = Field(..., description="Issue or pull request")
    number: int = Field(..., description="Issue or pull request number")
    source_file_path: str = Field(
        ..., description="File path (or buffer name) containing the reference"
    )
    line: int = Field(..., description="1-based line number")
    start_col: int = Field(..., description="0-based start column")
    end_col: int = Field(..., description="0-based exclusive end column")
    surrounding_text: str = Field(
        "", description="The line containing the reference, stripped"
    )
    has_staleness_keyword: bool = Field(
        False, description="Whether the line contains a staleness keyword"
    )

    def jump_target(self) -> JumpTarget:
        return JumpTarget(
            file_path=self.source_file_path,
            line=self.line,
            start_col=self.start_col,
            end_col=self.end_col,
        )


class RemoteState(BaseModel):
    """Snapshot of an item's state as reported by GitHub."""

    model_config = ConfigDict(frozen=True)

    status: IssueStatus = Field(..., description="open, closed, merged or unknown")
    title: str = Field("", description="Issue or pull request title")
    labels: frozenset[str] = Field(
        default_factory=frozenset, description="Label names attached to the item"
    )
    state_reason: str | None = Field(
        None, description="GitHub state reason, e.g. 'completed' or 'not_planned'"
    )
    merged_at: datetime | None = Field(
        None, description="Merge timestamp for merged pull requests"
    )

    @property
    def is_resolved(self) -> bool:
        return self.status in RESOLVED_STATUSES


UNKNOWN_STATE = RemoteState(status=IssueStatus.UNKNOWN, title="Unknown")


class AggregateIssue(BaseModel):
    """All references sharing one URL, merged with the resolved remote state.

    Rebuilt on every resolution cycle and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    owner: str
    repo_name: str
    kind: ReferenceKind
    number: int
    title: str
    status: IssueStatus
    locations: tuple[Reference, ...] = Field(
        ..., description="References in discovery order"
    )
    is_stale: bool
    summary: str = Field("", description="Single-line human readable summary")

    @property
    def tier(self) -> int:
        """Attention priority: 1 stale, 2 closed or merged, 3 everything else."""
        if self.is_stale:
            return 1
        if self.status in RESOLVED_STATUSES:
            return 2
        return 3

    @property
    def identifier(self) -> str:
        return f"{self.owner}/{self.repo_name}#{self.number}"


class ResolvedReference(BaseModel):
    """A buffer reference joined with its remote state, for inline display."""

    model_config = ConfigDict(frozen=True)

    reference: Reference
    state: RemoteState
    is_stale: bool

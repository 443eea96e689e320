"""Grouping, staleness and ranking of references into aggregate issues."""

from collections.abc import Iterable, Mapping, Sequence

from .config import IconConfig
from .models import (
    RESOLVED_STATUSES,
    UNKNOWN_STATE,
    AggregateIssue,
    IssueStatus,
    Reference,
    RemoteState,
    ResolvedReference,
)

MAX_TITLE_LENGTH = 50
STATUS_MARKER = "●"


def group_by_url(references: Iterable[Reference]) -> dict[str, list[Reference]]:
    """Group references by URL, keeping first-seen URL order and discovery order."""
    by_url: dict[str, list[Reference]] = {}
    for ref in references:
        by_url.setdefault(ref.url, []).append(ref)
    return by_url


def compute_is_stale(status: IssueStatus, references: Iterable[Reference]) -> bool:
    """An item is stale when it is closed or merged and any reference carries a keyword."""
    if status not in RESOLVED_STATUSES:
        return False
    return any(ref.has_staleness_keyword for ref in references)


def truncate_title(title: str, max_length: int = MAX_TITLE_LENGTH) -> str:
    if len(title) > max_length:
        return title[: max_length - 3] + "..."
    return title


def format_issue(
    owner: str,
    repo_name: str,
    number: int,
    status: IssueStatus,
    title: str,
    ref_count: int,
    is_stale: bool,
    icons: IconConfig | None = None,
) -> str:
    """Format a single-line summary.

    Example: ``● [closed] ✓ owner/repo#42 (2 refs) - Fix the thing``
    """
    icons = icons or IconConfig()
    if is_stale:
        icon = icons.stale
    elif status == IssueStatus.OPEN:
        icon = icons.open
    else:
        icon = icons.closed

    status_text = f"[{status.value:<6}]"
    issue_id = f"{owner}/{repo_name}#{number}"
    ref_info = f" ({ref_count} refs)" if ref_count > 1 else ""

    return (
        f"{STATUS_MARKER} {status_text} {icon}{issue_id}{ref_info}"
        f" - {truncate_title(title)}"
    )


def build_issues(
    grouped: Mapping[str, Sequence[Reference]],
    states: Mapping[str, RemoteState],
    icons: IconConfig | None = None,
) -> list[AggregateIssue]:
    """Build aggregate issues ranked by attention priority.

    Stale issues come first, then closed/merged, then open/unknown. The sort is
    stable, so issues within a tier keep the grouping order.

    Args:
        grouped: URL -> references in discovery order
        states: URL -> resolved remote state; missing URLs are treated as unknown
        icons: Icons used in summaries

    Returns:
        Ordered list of aggregate issues
    """
    issues = []

    for url, refs in grouped.items():
        if not refs:
            continue
        first = refs[0]
        state = states.get(url, UNKNOWN_STATE)
        is_stale = compute_is_stale(state.status, refs)

        issues.append(
            AggregateIssue(
                url=url,
                owner=first.owner,
                repo_name=first.repo_name,
                kind=first.kind,
                number=first.number,
                title=state.title,
                status=state.status,
                locations=tuple(refs),
                is_stale=is_stale,
                summary=format_issue(
                    first.owner,
                    first.repo_name,
                    first.number,
                    state.status,
                    state.title,
                    len(refs),
                    is_stale,
                    icons,
                ),
            )
        )

    issues.sort(key=lambda issue: issue.tier)
    return issues


def resolve_buffer_references(
    references: Iterable[Reference], states: Mapping[str, RemoteState]
) -> list[ResolvedReference]:
    """Join each reference with its state for inline display.

    Unlike aggregate staleness, a single reference is stale only when its own
    line carries a keyword.
    """
    resolved = []
    for ref in references:
        state = states.get(ref.url, UNKNOWN_STATE)
        resolved.append(
            ResolvedReference(
                reference=ref,
                state=state,
                is_stale=state.is_resolved and ref.has_staleness_keyword,
            )
        )
    return resolved

"""Detection of GitHub issue and pull request references in text."""

import re
from collections.abc import Iterable, Sequence

from ..models import Reference, ReferenceKind, UrlMatch

# Full URLs, e.g. https://github.com/owner/repo/issues/42 or .../pull/7
GITHUB_URL_PATTERN = re.compile(
    r"https?://(?:www\.)?github\.com/"
    r"(?P<owner>[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)/"
    r"(?P<repo>[A-Za-z0-9_.-]+)/"
    r"(?P<kind>issues|pull)/"
    r"(?P<number>\d+)(?!\d)"
)

# Shorthand, e.g. owner/repo#42
GITHUB_SHORTHAND_PATTERN = re.compile(
    r"(?<![\w./:-])"
    r"(?P<owner>[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)/"
    r"(?P<repo>[A-Za-z0-9_.-]+)"
    r"#(?P<number>\d+)(?!\w)"
)

_KIND_BY_PATH = {"issues": ReferenceKind.ISSUE, "pull": ReferenceKind.PULL_REQUEST}
_PATH_BY_KIND = {kind: path for path, kind in _KIND_BY_PATH.items()}


def canonical_url(owner: str, repo: str, kind: ReferenceKind, number: int) -> str:
    """Build the canonical URL used as the identity of a tracked item."""
    return f"https://github.com/{owner}/{repo}/{_PATH_BY_KIND[kind]}/{number}"


def _build_match(
    owner: str, repo: str, kind: ReferenceKind, number_text: str, span: tuple[int, int]
) -> UrlMatch | None:
    number = int(number_text)
    if number <= 0:
        return None
    return UrlMatch(
        url=canonical_url(owner, repo, kind, number),
        owner=owner,
        repo=repo,
        kind=kind,
        number=number,
        start_col=span[0],
        end_col=span[1],
    )


def extract_urls(line: str) -> list[UrlMatch]:
    """Extract GitHub issue/PR references from one line of text.

    Full URLs and ``owner/repo#N`` shorthand are both recognised. A line may
    hold several references, including an issue and a pull request with the
    same owner/repo.

    Args:
        line: A single line of text

    Returns:
        Matches ordered by start column; empty if the line has none
    """
    if not isinstance(line, str) or not line:
        return []

    matches: list[UrlMatch] = []
    taken: list[tuple[int, int]] = []

    for m in GITHUB_URL_PATTERN.finditer(line):
        match = _build_match(
            m.group("owner"),
            m.group("repo"),
            _KIND_BY_PATH[m.group("kind")],
            m.group("number"),
            m.span(),
        )
        if match is not None:
            matches.append(match)
            taken.append(m.span())

    for m in GITHUB_SHORTHAND_PATTERN.finditer(line):
        start, end = m.span()
        if any(start < t_end and t_start < end for t_start, t_end in taken):
            continue
        match = _build_match(
            m.group("owner"),
            m.group("repo"),
            ReferenceKind.ISSUE,
            m.group("number"),
            m.span(),
        )
        if match is not None:
            matches.append(match)

    matches.sort(key=lambda match: match.start_col)
    return matches


def has_stale_keywords(
    line: str, keywords: Iterable[str], case_sensitive: bool = False
) -> bool:
    """Check whether a line contains any staleness keyword.

    Args:
        line: A single line of text
        keywords: Keywords suggesting the reference should be revisited
        case_sensitive: Match keywords with exact case

    Returns:
        True if any non-empty keyword occurs in the line
    """
    if not isinstance(line, str) or not line:
        return False

    haystack = line if case_sensitive else line.lower()
    for keyword in keywords:
        if not keyword:
            continue
        needle = keyword if case_sensitive else keyword.lower()
        if needle in haystack:
            return True
    return False


def extract_references(
    lines: Iterable[str],
    source: str,
    keywords: Sequence[str],
    case_sensitive: bool = False,
) -> list[Reference]:
    """Extract references from a sequence of lines.

    Args:
        lines: Text lines in order; line numbers start at 1
        source: File path or buffer name recorded on each reference
        keywords: Staleness keywords
        case_sensitive: Match keywords with exact case

    Returns:
        References in line then column order
    """
    references: list[Reference] = []

    for line_number, line_text in enumerate(lines, start=1):
        urls = extract_urls(line_text)
        if not urls:
            continue

        has_keywords = has_stale_keywords(line_text, keywords, case_sensitive)
        comment_text = line_text.strip()
        for url_match in urls:
            references.append(
                Reference(
                    url=url_match.url,
                    owner=url_match.owner,
                    repo_name=url_match.repo,
                    kind=url_match.kind,
                    number=url_match.number,
                    source_file_path=source,
                    line=line_number,
                    start_col=url_match.start_col,
                    end_col=url_match.end_col,
                    surrounding_text=comment_text,
                    has_staleness_keyword=has_keywords,
                )
            )

    return references

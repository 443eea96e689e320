"""Test configuration and fixtures."""

from collections.abc import Callable, Mapping, Sequence

import pytest

from resolved.github_client.models import FetchRequest, FetchResult
from resolved.models import IssueStatus, Reference, ReferenceKind, RemoteState
from resolved.session import BufferProvider

ISSUE_URL = "https://github.com/owner/repo/issues/42"
PULL_URL = "https://github.com/owner/repo/pull/7"


class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """Records fetch_batch calls and answers from a fixed state table."""

    def __init__(self, states: Mapping[str, RemoteState] | None = None):
        self.states = dict(states or {})
        self.calls: list[list[FetchRequest]] = []

    async def fetch_batch(
        self, requests: Sequence[FetchRequest]
    ) -> dict[str, FetchResult]:
        self.calls.append(list(requests))
        return {
            request.url: FetchResult(state=self.states[request.url])
            for request in requests
            if request.url in self.states
        }

    @property
    def requested_urls(self) -> list[set[str]]:
        return [{request.url for request in call} for call in self.calls]


class FakeBuffers(BufferProvider):
    """In-memory buffers keyed by integer id."""

    def __init__(self) -> None:
        self.contents: dict[int, list[str]] = {}

    def get_lines(self, buffer_id: int) -> list[str] | None:  # type: ignore[override]
        lines = self.contents.get(buffer_id)
        return list(lines) if lines is not None else None

    def get_name(self, buffer_id: int) -> str:  # type: ignore[override]
        return f"buffer-{buffer_id}"

    def delete(self, buffer_id: int) -> None:
        self.contents.pop(buffer_id, None)


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def fake_buffers() -> FakeBuffers:
    return FakeBuffers()


@pytest.fixture
def closed_state() -> RemoteState:
    return RemoteState(status=IssueStatus.CLOSED, title="Fix", state_reason="completed")


@pytest.fixture
def open_state() -> RemoteState:
    return RemoteState(status=IssueStatus.OPEN, title="Still broken")


@pytest.fixture
def make_reference() -> Callable[..., Reference]:
    """Factory for references with sensible defaults."""

    def _make(
        url: str = ISSUE_URL,
        number: int = 42,
        kind: ReferenceKind = ReferenceKind.ISSUE,
        line: int = 1,
        has_keyword: bool = False,
        path: str = "/repo/src/main.py",
    ) -> Reference:
        return Reference(
            url=url,
            owner="owner",
            repo_name="repo",
            kind=kind,
            number=number,
            source_file_path=path,
            line=line,
            start_col=3,
            end_col=3 + len(url),
            surrounding_text=f"# {'TODO ' if has_keyword else ''}{url}",
            has_staleness_keyword=has_keyword,
        )

    return _make

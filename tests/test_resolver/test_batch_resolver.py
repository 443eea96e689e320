"""Tests for the batch resolver."""

import asyncio

import pytest

from resolved.aggregator import group_by_url
from resolved.cache import StateCache
from resolved.github_client.models import FetchResult
from resolved.models import UNKNOWN_STATE, IssueStatus, ReferenceKind, RemoteState
from resolved.resolver import BatchResolver, build_fetch_requests

ISSUE_URL = "https://github.com/owner/repo/issues/42"
PULL_URL = "https://github.com/owner/repo/pull/7"
OTHER_URL = "https://github.com/owner/repo/issues/99"


class TestBatchResolver:
    """Test BatchResolver class."""

    @pytest.mark.asyncio
    async def test_fetches_once_per_distinct_uncached_url(
        self, manual_clock, fake_fetcher, make_reference, closed_state
    ) -> None:
        """Test a URL referenced many times is requested once, in one call."""
        fake_fetcher.states[ISSUE_URL] = closed_state
        refs = [make_reference(line=i) for i in range(1, 6)]
        refs.append(
            make_reference(url=PULL_URL, number=7, kind=ReferenceKind.PULL_REQUEST)
        )
        resolver = BatchResolver(StateCache(300, clock=manual_clock), fake_fetcher.fetch_batch)

        states = await resolver.resolve(group_by_url(refs))

        assert len(fake_fetcher.calls) == 1
        assert [r.url for r in fake_fetcher.calls[0]] == [ISSUE_URL, PULL_URL]
        assert states[ISSUE_URL] == closed_state

    @pytest.mark.asyncio
    async def test_requests_exactly_uncached_urls(
        self, manual_clock, fake_fetcher, make_reference, closed_state, open_state
    ) -> None:
        """Test cached URLs are never requested and uncached ones always are."""
        cache = StateCache(300, clock=manual_clock)
        cache.set(ISSUE_URL, closed_state)
        fake_fetcher.states[OTHER_URL] = open_state
        refs = [make_reference(), make_reference(url=OTHER_URL, number=99)]
        resolver = BatchResolver(cache, fake_fetcher.fetch_batch)

        states = await resolver.resolve(group_by_url(refs))

        assert fake_fetcher.requested_urls == [{OTHER_URL}]
        assert states == {ISSUE_URL: closed_state, OTHER_URL: open_state}
        assert cache.get(OTHER_URL) == open_state

    @pytest.mark.asyncio
    async def test_all_cached_skips_fetch(
        self, manual_clock, fake_fetcher, make_reference, closed_state
    ) -> None:
        """Test no fetch call is made when everything is cached."""
        cache = StateCache(300, clock=manual_clock)
        cache.set(ISSUE_URL, closed_state)
        resolver = BatchResolver(cache, fake_fetcher.fetch_batch)

        states = await resolver.resolve(group_by_url([make_reference()]))

        assert fake_fetcher.calls == []
        assert states == {ISSUE_URL: closed_state}

    @pytest.mark.asyncio
    async def test_empty_input_skips_fetch(self, manual_clock, fake_fetcher) -> None:
        """Test resolving nothing makes no fetch call."""
        resolver = BatchResolver(StateCache(300, clock=manual_clock), fake_fetcher.fetch_batch)

        assert await resolver.resolve({}) == {}
        assert fake_fetcher.calls == []

    @pytest.mark.asyncio
    async def test_unresolved_url_is_unknown_and_retried(
        self, manual_clock, fake_fetcher, make_reference
    ) -> None:
        """Test a gap in the response yields unknown, is not cached, and is retried."""
        cache = StateCache(300, clock=manual_clock)
        resolver = BatchResolver(cache, fake_fetcher.fetch_batch)
        grouped = group_by_url([make_reference()])

        states = await resolver.resolve(grouped)

        assert states[ISSUE_URL] == UNKNOWN_STATE
        assert states[ISSUE_URL].status == IssueStatus.UNKNOWN
        assert cache.get(ISSUE_URL) is None

        await resolver.resolve(grouped)
        assert fake_fetcher.requested_urls == [{ISSUE_URL}, {ISSUE_URL}]

    @pytest.mark.asyncio
    async def test_expired_entry_refetched(
        self, manual_clock, fake_fetcher, make_reference, closed_state
    ) -> None:
        """Test an entry past its TTL is fetched again."""
        cache = StateCache(60, clock=manual_clock)
        cache.set(ISSUE_URL, RemoteState(status=IssueStatus.OPEN, title="Fix"))
        fake_fetcher.states[ISSUE_URL] = closed_state
        resolver = BatchResolver(cache, fake_fetcher.fetch_batch)

        manual_clock.advance(61)
        states = await resolver.resolve(group_by_url([make_reference()]))

        assert fake_fetcher.requested_urls == [{ISSUE_URL}]
        assert states[ISSUE_URL] == closed_state

    @pytest.mark.asyncio
    async def test_fetch_error_propagates(self, manual_clock, make_reference) -> None:
        """Test environment failures from the fetcher abort the cycle."""

        async def failing_fetch(requests):
            raise RuntimeError("service unavailable")

        resolver = BatchResolver(StateCache(60, clock=manual_clock), failing_fetch)

        with pytest.raises(RuntimeError, match="service unavailable"):
            await resolver.resolve(group_by_url([make_reference()]))


def test_build_fetch_requests_uses_first_reference(make_reference) -> None:
    """Test requests carry metadata from the first reference of each URL."""
    grouped = group_by_url(
        [
            make_reference(
                url=PULL_URL, number=7, kind=ReferenceKind.PULL_REQUEST, line=3
            ),
            make_reference(
                url=PULL_URL, number=7, kind=ReferenceKind.PULL_REQUEST, line=9
            ),
        ]
    )

    requests = build_fetch_requests([PULL_URL, PULL_URL], grouped)

    assert len(requests) == 1
    request = requests[0]
    assert request.url == PULL_URL
    assert (request.owner, request.repo, request.number) == ("owner", "repo", 7)
    assert request.kind == ReferenceKind.PULL_REQUEST


@pytest.mark.asyncio
async def test_overlapping_cycles_last_writer_wins(
    manual_clock, make_reference, closed_state, open_state
) -> None:
    """Test two concurrent cycles over overlapping URLs keep the cache consistent."""
    first_entered = asyncio.Event()
    release_first = asyncio.Event()
    calls: list[set[str]] = []

    async def fetch_batch(requests):
        calls.append({request.url for request in requests})
        # The first cycle sees the item closed but finishes last
        if len(calls) == 1:
            state = closed_state
            first_entered.set()
            await release_first.wait()
        else:
            state = open_state
        return {request.url: FetchResult(state=state) for request in requests}

    cache = StateCache(300, clock=manual_clock)
    resolver = BatchResolver(cache, fetch_batch)
    first_refs = group_by_url([make_reference(url=OTHER_URL, number=99), make_reference()])
    second_refs = group_by_url(
        [
            make_reference(),
            make_reference(url=PULL_URL, number=7, kind=ReferenceKind.PULL_REQUEST),
        ]
    )

    async def second_cycle():
        await first_entered.wait()
        states = await resolver.resolve(second_refs)
        release_first.set()
        return states

    first_states, second_states = await asyncio.gather(
        resolver.resolve(first_refs), second_cycle()
    )

    assert calls == [{OTHER_URL, ISSUE_URL}, {ISSUE_URL, PULL_URL}]
    assert first_states == {OTHER_URL: closed_state, ISSUE_URL: closed_state}
    assert second_states == {ISSUE_URL: open_state, PULL_URL: open_state}
    assert cache.get(ISSUE_URL) == closed_state
    assert cache.get(OTHER_URL) == closed_state
    assert cache.get(PULL_URL) == open_state

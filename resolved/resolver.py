"""Batch resolution of remote states for grouped references."""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence

from .cache import StateCache
from .github_client.models import FetchRequest, FetchResult
from .models import UNKNOWN_STATE, Reference, RemoteState

logger = logging.getLogger(__name__)

FetchBatch = Callable[[list[FetchRequest]], Awaitable[Mapping[str, FetchResult]]]


def build_fetch_requests(
    urls: Sequence[str], grouped: Mapping[str, Sequence[Reference]]
) -> list[FetchRequest]:
    """Build one fetch request per distinct URL from its first reference."""
    requests = []
    for url in dict.fromkeys(urls):
        ref = grouped[url][0]
        requests.append(
            FetchRequest(
                url=url,
                owner=ref.owner,
                repo=ref.repo_name,
                number=ref.number,
                kind=ref.kind,
            )
        )
    return requests


class BatchResolver:
    """Fills in remote states from the cache, fetching only what is missing."""

    def __init__(self, cache: StateCache, fetch_batch: FetchBatch):
        """Initialize the resolver.

        Args:
            cache: State cache consulted before fetching and updated afterwards
            fetch_batch: Coroutine function performing one batched lookup
        """
        self.cache = cache
        self.fetch_batch = fetch_batch

    def partition(
        self, grouped: Mapping[str, Sequence[Reference]]
    ) -> tuple[dict[str, RemoteState], list[str]]:
        """Split grouped URLs into cached states and uncached URLs."""
        cached: dict[str, RemoteState] = {}
        uncached: list[str] = []
        for url in grouped:
            state = self.cache.get(url)
            if state is not None:
                cached[url] = state
            else:
                uncached.append(url)
        return cached, uncached

    async def resolve(
        self, grouped: Mapping[str, Sequence[Reference]]
    ) -> dict[str, RemoteState]:
        """Resolve the remote state of every grouped URL.

        The fetch collaborator is called at most once, with exactly the URLs
        that have no fresh cache entry. URLs it cannot resolve map to the
        unknown state and are left out of the cache so the next cycle retries.

        Args:
            grouped: URL -> references sharing that URL

        Returns:
            URL -> remote state, in the iteration order of ``grouped``

        Raises:
            ResolvedEnvironmentError: If the lookup service is unavailable
        """
        cached, uncached = self.partition(grouped)
        if not uncached:
            logger.debug(f"All {len(cached)} states served from cache")
            return {url: cached[url] for url in grouped}

        requests = build_fetch_requests(uncached, grouped)
        logger.debug(
            f"Fetching {len(requests)} states ({len(cached)} served from cache)"
        )
        results = await self.fetch_batch(requests)

        fetched: dict[str, RemoteState] = {}
        for request in requests:
            result = results.get(request.url)
            if result is not None and result.state is not None:
                self.cache.set(request.url, result.state)
                fetched[request.url] = result.state
            else:
                logger.debug(f"No state resolved for {request.url}")

        states: dict[str, RemoteState] = {}
        for url in grouped:
            states[url] = cached.get(url) or fetched.get(url) or UNKNOWN_STATE
        return states

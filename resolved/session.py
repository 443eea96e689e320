"""Session context tying the scanner, cache, resolver and debouncer together."""

import itertools
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from pathlib import Path
from types import TracebackType

from .aggregator import build_issues, group_by_url, resolve_buffer_references
from .cache import StateCache
from .config import ResolvedConfig
from .debounce import BufferId, DebounceCoordinator
from .detection.patterns import extract_references
from .errors import ResolvedEnvironmentError
from .models import AggregateIssue, ResolvedReference
from .resolver import BatchResolver, FetchBatch
from .scanner import CorpusScanner, ProgressCallback, list_tracked_files

logger = logging.getLogger(__name__)

BufferResultsCallback = Callable[[BufferId, list[ResolvedReference]], None]
StatusCallback = Callable[[str], None]
FileLister = Callable[[str | Path | None], Awaitable[list[Path]]]


class BufferProvider(ABC):
    """Host-side access to editable buffers."""

    @abstractmethod
    def get_lines(self, buffer_id: BufferId) -> list[str] | None:
        """Return the buffer's current lines, or None if it no longer exists."""

    def get_name(self, buffer_id: BufferId) -> str:
        """Name recorded as the source path of the buffer's references."""
        return str(buffer_id)

    def is_valid(self, buffer_id: BufferId) -> bool:
        return self.get_lines(buffer_id) is not None


class ResolvedSession:
    """Owns the per-session cache, timer registry and pipeline components.

    Create one per host session and close it when the session ends. Independent
    sessions share no state.
    """

    def __init__(
        self,
        config: ResolvedConfig,
        fetch_batch: FetchBatch,
        buffers: BufferProvider | None = None,
        on_buffer_results: BufferResultsCallback | None = None,
        file_lister: FileLister = list_tracked_files,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the session.

        Args:
            config: Validated configuration
            fetch_batch: Coroutine function resolving a batch of fetch requests
            buffers: Buffer content provider for single-buffer scans
            on_buffer_results: Receives the resolved references of a scanned buffer
            file_lister: Coroutine function listing tracked files under a directory
            clock: Monotonic time source for the cache and progress throttling
        """
        self.config = config
        self.buffers = buffers
        self.on_buffer_results = on_buffer_results
        self.file_lister = file_lister

        self.cache = StateCache(config.cache_ttl, clock=clock)
        self.resolver = BatchResolver(self.cache, fetch_batch)
        self.scanner = CorpusScanner(
            keywords=config.stale_keywords,
            case_sensitive=config.keyword_case_sensitive,
            batch_size=config.batch_size,
            progress_throttle=config.progress_throttle_seconds,
            clock=clock,
        )
        self.debouncer = DebounceCoordinator(config.debounce_ms, self._run_buffer_scan)

        self._enabled = config.enabled
        self._closed = False
        self._scan_ids = itertools.count(1)
        self._latest_scan: dict[BufferId, int] = {}
        self._reported_errors: set[str] = set()

    @property
    def enabled(self) -> bool:
        return self._enabled and not self._closed

    def enable(self) -> None:
        if self._closed:
            raise RuntimeError("Session is closed")
        self._enabled = True

    def disable(self) -> None:
        """Stop buffer scanning and drop results of scans still in flight."""
        self._enabled = False
        self.debouncer.cancel_all()
        self._latest_scan.clear()

    def request_buffer_scan(self, buffer_id: BufferId) -> None:
        """Debounced request to re-scan a buffer after an edit."""
        if not self.enabled:
            logger.debug(f"Ignoring scan request for buffer {buffer_id}: disabled")
            return
        self.debouncer.request(buffer_id)

    def buffer_disposed(self, buffer_id: BufferId) -> None:
        """Host notification that a buffer was deleted."""
        self.debouncer.dispose(buffer_id)
        self._latest_scan.pop(buffer_id, None)

    def _report_environment_error(self, error: ResolvedEnvironmentError) -> None:
        message = str(error)
        if message in self._reported_errors:
            logger.debug(f"Suppressing repeated error: {message}")
            return
        self._reported_errors.add(message)
        logger.error(message)

    async def _run_buffer_scan(self, buffer_id: BufferId) -> None:
        if not self.enabled:
            return
        try:
            await self.scan_buffer(buffer_id)
        except ResolvedEnvironmentError as e:
            self._report_environment_error(e)

    async def scan_buffer(self, buffer_id: BufferId) -> list[ResolvedReference] | None:
        """Scan one buffer's current content and deliver resolved references.

        Returns None without delivering anything if the buffer is gone, or if a
        newer scan of the same buffer started while this one was resolving.
        Fetched states are cached either way.

        Raises:
            ResolvedEnvironmentError: If the lookup service is unavailable
        """
        if self.buffers is None:
            raise RuntimeError("Session has no buffer provider")

        scan_id = next(self._scan_ids)
        self._latest_scan[buffer_id] = scan_id

        lines = self.buffers.get_lines(buffer_id)
        if lines is None:
            logger.debug(f"Buffer {buffer_id} no longer exists, skipping scan")
            self._latest_scan.pop(buffer_id, None)
            return None

        references = extract_references(
            lines,
            self.buffers.get_name(buffer_id),
            self.config.stale_keywords,
            self.config.keyword_case_sensitive,
        )
        states = await self.resolver.resolve(group_by_url(references))

        if self._latest_scan.get(buffer_id) != scan_id:
            logger.debug(f"Scan {scan_id} of buffer {buffer_id} was superseded")
            return None
        if not self.buffers.is_valid(buffer_id):
            logger.debug(f"Buffer {buffer_id} was disposed during scan")
            self._latest_scan.pop(buffer_id, None)
            return None

        results = resolve_buffer_references(references, states)
        if self.on_buffer_results is not None:
            self.on_buffer_results(buffer_id, results)
        return results

    async def scan_workspace(
        self,
        cwd: str | Path | None = None,
        on_progress: ProgressCallback | None = None,
        on_status: StatusCallback | None = None,
    ) -> list[AggregateIssue]:
        """Scan every tracked file and return ranked aggregate issues.

        Args:
            cwd: Directory inside the repository to scan
            on_progress: Raw progress as (completed, total, references_found)
            on_status: Human-readable stage messages

        Returns:
            Aggregate issues, stale first

        Raises:
            ResolvedEnvironmentError: If git or the lookup service is unavailable
        """

        def notify(message: str) -> None:
            logger.info(message)
            if on_status is not None:
                on_status(message)

        def progress(completed: int, total: int, found: int) -> None:
            if on_status is not None:
                on_status(f"Scanning: {completed}/{total} files ({found} refs)")
            if on_progress is not None:
                on_progress(completed, total, found)

        notify("Getting file list...")
        files = await self.file_lister(cwd)
        if not files:
            notify("No tracked files")
            return []

        result = await self.scanner.scan(files, progress)
        if not result.references:
            notify("No GitHub references found")
            return []

        grouped = group_by_url(result.references)
        notify(f"Fetching status for {len(grouped)} issues...")
        states = await self.resolver.resolve(grouped)

        issues = build_issues(grouped, states, self.config.icons)
        notify(f"Found {len(issues)} issues")
        return issues

    async def close(self) -> None:
        """Cancel pending timers, wait for fired scans and drop cached state."""
        if self._closed:
            return
        self._closed = True
        await self.debouncer.close()
        self._latest_scan.clear()
        self.cache.clear()

    async def __aenter__(self) -> "ResolvedSession":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

"""Concurrent, batched scanning of tracked files for GitHub references."""

import asyncio
import logging
import os
import shutil
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .config import DEFAULT_STALE_KEYWORDS
from .detection.patterns import extract_references
from .errors import GitNotFoundError, NotARepositoryError
from .models import Reference

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 1024 * 1024
DEFAULT_BATCH_SIZE = 20
DEFAULT_PROGRESS_THROTTLE = 0.5

ProgressCallback = Callable[[int, int, int], None]


@dataclass
class ScanResult:
    """Outcome of a corpus scan.

    Reference order across files is not deterministic; sort if needed.
    """

    references: list[Reference] = field(default_factory=list)
    completed: int = 0
    total: int = 0


async def list_tracked_files(cwd: str | Path | None = None) -> list[Path]:
    """List git-tracked files as absolute paths.

    Args:
        cwd: Directory inside the repository (defaults to the process cwd)

    Returns:
        Absolute paths in git's order

    Raises:
        GitNotFoundError: If git is not on PATH
        NotARepositoryError: If git ls-files exits non-zero
    """
    if shutil.which("git") is None:
        raise GitNotFoundError()

    root = Path(cwd or os.getcwd()).resolve()
    process = await asyncio.create_subprocess_exec(
        "git",
        "ls-files",
        cwd=root,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()

    if process.returncode != 0:
        raise NotARepositoryError(stderr.decode("utf-8", errors="replace"))

    files = []
    for rel_path in stdout.decode("utf-8", errors="replace").splitlines():
        if rel_path:
            files.append(root / rel_path)
    return files


def read_file_references(
    path: str | Path,
    keywords: Sequence[str] = DEFAULT_STALE_KEYWORDS,
    case_sensitive: bool = False,
) -> list[Reference]:
    """Read one file and extract its references (blocking).

    Files over MAX_FILE_SIZE and files containing a null byte yield no
    references. OSError propagates to the caller.
    """
    with open(path, "rb") as f:
        size = os.fstat(f.fileno()).st_size
        if size > MAX_FILE_SIZE:
            logger.debug(f"Skipping {path}: {size} bytes exceeds size limit")
            return []
        data = f.read(MAX_FILE_SIZE + 1)

    if len(data) > MAX_FILE_SIZE:
        logger.debug(f"Skipping {path}: grew past size limit while reading")
        return []
    if b"\0" in data:
        logger.debug(f"Skipping binary file {path}")
        return []

    text = data.decode("utf-8", errors="replace")
    return extract_references(text.split("\n"), str(path), keywords, case_sensitive)


async def scan_file(
    path: str | Path,
    keywords: Sequence[str] = DEFAULT_STALE_KEYWORDS,
    case_sensitive: bool = False,
) -> list[Reference]:
    """Scan one file without blocking the event loop.

    Unreadable files contribute no references and never raise.
    """
    try:
        return await asyncio.to_thread(
            read_file_references, path, keywords, case_sensitive
        )
    except (OSError, ValueError) as e:
        logger.debug(f"Skipping unreadable file {path}: {e}")
        return []


class CorpusScanner:
    """Scans files in sequential batches with concurrent reads inside a batch."""

    def __init__(
        self,
        keywords: Sequence[str] = DEFAULT_STALE_KEYWORDS,
        case_sensitive: bool = False,
        batch_size: int = DEFAULT_BATCH_SIZE,
        progress_throttle: float = DEFAULT_PROGRESS_THROTTLE,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the scanner.

        Args:
            keywords: Staleness keywords
            case_sensitive: Match keywords with exact case
            batch_size: Files read concurrently per batch
            progress_throttle: Minimum seconds between intermediate progress reports
            clock: Monotonic time source, injectable for tests
        """
        if batch_size <= 0:
            raise ValueError("Batch size must be positive")
        self.keywords = list(keywords)
        self.case_sensitive = case_sensitive
        self.batch_size = batch_size
        self.progress_throttle = progress_throttle
        self._clock = clock

    def _report(
        self, on_progress: ProgressCallback | None, result: ScanResult
    ) -> None:
        if on_progress is None:
            return
        try:
            on_progress(result.completed, result.total, len(result.references))
        except Exception:
            logger.exception("Progress callback failed")

    async def scan(
        self, files: Sequence[str | Path], on_progress: ProgressCallback | None = None
    ) -> ScanResult:
        """Scan files for references.

        Each batch completes before the next one starts, which bounds the number
        of outstanding reads to ``batch_size``. Progress is reported after each
        batch unless the previous report was less than ``progress_throttle``
        seconds ago; the final report always fires.

        Args:
            files: Paths to scan
            on_progress: Called with (completed, total, references_found)

        Returns:
            ScanResult with all references found
        """
        result = ScanResult(total=len(files))
        last_report: float | None = None

        for start in range(0, len(files), self.batch_size):
            batch = files[start : start + self.batch_size]
            batch_refs = await asyncio.gather(
                *(scan_file(path, self.keywords, self.case_sensitive) for path in batch)
            )
            for refs in batch_refs:
                result.references.extend(refs)
            result.completed += len(batch)

            now = self._clock()
            if last_report is None or now - last_report >= self.progress_throttle:
                self._report(on_progress, result)
                last_report = now

        self._report(on_progress, result)
        logger.info(
            f"Scanned {result.completed} files, found {len(result.references)} references"
        )
        return result

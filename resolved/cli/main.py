"""Main CLI entry point."""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from ..config import ResolvedConfig, setup_config
from ..errors import ConfigError, ResolvedEnvironmentError
from ..github_client.client import GitHubClient
from ..models import AggregateIssue
from ..picker import show_picker
from ..session import ResolvedSession
from .options import (
    BATCH_SIZE_OPTION,
    CACHE_TTL_OPTION,
    CASE_SENSITIVE_OPTION,
    PATH_OPTION,
    SELECT_OPTION,
    STALE_KEYWORD_OPTION,
    STALE_ONLY_OPTION,
    TOKEN_OPTION,
    VERBOSE_OPTION,
)
from .presenter import RichPresenter

app = typer.Typer(
    name="resolved",
    help="Find references to closed GitHub issues and merged pull requests",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


async def _run_scan(
    config: ResolvedConfig, client: GitHubClient, path: Path | None
) -> list[AggregateIssue]:
    async with ResolvedSession(config, client.fetch_batch) as session:
        with console.status("Getting file list...") as status:
            return await session.scan_workspace(path, on_status=status.update)


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def scan(
    path: Path | None = PATH_OPTION,
    token: str | None = TOKEN_OPTION,
    cache_ttl: int | None = CACHE_TTL_OPTION,
    stale_keyword: list[str] | None = STALE_KEYWORD_OPTION,
    case_sensitive: bool = CASE_SENSITIVE_OPTION,
    batch_size: int = BATCH_SIZE_OPTION,
    stale_only: bool = STALE_ONLY_OPTION,
    select: bool = SELECT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Scan tracked files for GitHub references and show their status.

    Stale references (closed or merged upstream, with TODO-style wording
    nearby) are listed first, then closed items, then open ones.

    Examples:
        resolved scan
        resolved scan --path ~/src/project --stale-only
        resolved scan -k TODO -k FIXME --select
    """
    _configure_logging(verbose)

    opts: dict[str, object] = {
        "batch_size": batch_size,
        "keyword_case_sensitive": case_sensitive,
    }
    if cache_ttl is not None:
        opts["cache_ttl"] = cache_ttl
    if stale_keyword:
        opts["stale_keywords"] = stale_keyword

    try:
        config = setup_config(opts)
    except ConfigError as e:
        console.print(f"❌ {e}")
        raise typer.Exit(1)

    try:
        client = GitHubClient(token=token, max_concurrency=config.max_concurrent_fetches)
    except ValueError as e:
        console.print(f"❌ {e}")
        raise typer.Exit(1)

    try:
        issues = asyncio.run(_run_scan(config, client, path))
    except ResolvedEnvironmentError as e:
        console.print(f"❌ {e}")
        raise typer.Exit(1)

    if stale_only:
        issues = [issue for issue in issues if issue.is_stale]

    if not issues:
        console.print("No GitHub references found")
        return

    stale_count = sum(1 for issue in issues if issue.is_stale)
    console.print(f"Found {len(issues)} issues ({stale_count} stale)")
    show_picker(issues, RichPresenter(console, base_dir=path, interactive=select))


@app.command(
    name="check-auth", context_settings={"help_option_names": ["-h", "--help"]}
)
def check_auth(
    token: str | None = TOKEN_OPTION, verbose: bool = VERBOSE_OPTION
) -> None:
    """Verify that the GitHub token is accepted."""
    _configure_logging(verbose)

    try:
        client = GitHubClient(token=token)
    except ValueError as e:
        console.print(f"❌ {e}")
        raise typer.Exit(1)

    ok, error = asyncio.run(client.check_auth_async())
    if not ok:
        console.print(f"❌ {error}")
        raise typer.Exit(1)
    console.print("✅ GitHub authentication OK")


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def version() -> None:
    """Show version information."""
    from resolved import __version__

    console.print(f"resolved v{__version__}")


if __name__ == "__main__":
    app()

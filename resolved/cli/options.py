"""Standardized CLI option definitions shared across commands."""

import typer

PATH_OPTION = typer.Option(
    None, "--path", "-p", help="Directory inside the repository to scan (default: cwd)"
)

TOKEN_OPTION = typer.Option(
    None, "--token", "-t", help="GitHub API token (defaults to GITHUB_TOKEN env var)"
)

CACHE_TTL_OPTION = typer.Option(
    None, "--cache-ttl", help="Seconds a fetched issue state stays valid"
)

STALE_KEYWORD_OPTION = typer.Option(
    None,
    "--stale-keyword",
    "-k",
    help="Keyword marking a reference as possibly stale (can be used multiple times)",
)

CASE_SENSITIVE_OPTION = typer.Option(
    False, "--case-sensitive", help="Match stale keywords with exact case"
)

BATCH_SIZE_OPTION = typer.Option(
    20, "--batch-size", help="Number of files read concurrently"
)

STALE_ONLY_OPTION = typer.Option(
    False, "--stale-only", "-s", help="Only show stale references"
)

SELECT_OPTION = typer.Option(
    False, "--select", help="Pick an issue and print its location as path:line:col"
)

VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Show debug logging")

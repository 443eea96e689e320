"""GitHub lookup adapter using PyGitHub."""

import asyncio
import logging
import os
import time
from collections.abc import Sequence

from github import Github
from github.GithubException import (
    BadCredentialsException,
    GithubException,
    RateLimitExceededException,
    UnknownObjectException,
)
from github.Issue import Issue
from github.PullRequest import PullRequest
from github.Repository import Repository

from ..errors import GitHubAuthError
from ..models import IssueStatus, ReferenceKind, RemoteState
from .models import FetchRequest, FetchResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 8
RATE_LIMIT_FLOOR = 10
RATE_LIMIT_RETRY_SECONDS = 60


class GitHubClient:
    """Resolves issue and pull request states with rate limiting."""

    def __init__(
        self, token: str | None = None, max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    ):
        """Initialize GitHub client with authentication.

        Args:
            token: GitHub personal access token. If None, reads from
                GITHUB_TOKEN env var.
            max_concurrency: Maximum lookups in flight at once
        """
        self.token = token or os.getenv("GITHUB_TOKEN")
        if not self.token:
            raise ValueError(
                "GitHub token is required. Set GITHUB_TOKEN environment variable."
            )

        self.github = Github(self.token)
        self.max_concurrency = max_concurrency
        self._repos: dict[str, Repository] = {}

    def _check_rate_limit(self) -> None:
        """Sleep until reset if the remaining request quota is low.

        Raises:
            GitHubAuthError: If GitHub rejects the token
        """
        try:
            remaining, limit = self.github.rate_limiting
        except BadCredentialsException as e:
            raise GitHubAuthError(f"GitHub authentication failed: {e}") from e
        except GithubException as e:
            # Lookups still handle RateLimitExceededException themselves
            logger.debug(f"Rate limit check failed: {e}")
            return
        logger.debug(f"GitHub API rate limit: {remaining}/{limit} requests remaining")

        if remaining < RATE_LIMIT_FLOOR:
            sleep_time = self.github.rate_limiting_resettime - time.time() + 1
            if sleep_time > 0:
                logger.warning(
                    f"Rate limit low, sleeping for {sleep_time:.1f} seconds..."
                )
                time.sleep(sleep_time)

    def _get_repository(self, owner: str, repo: str) -> Repository:
        full_name = f"{owner}/{repo}"
        if full_name not in self._repos:
            self._repos[full_name] = self.github.get_repo(full_name, lazy=True)
        return self._repos[full_name]

    def _convert_issue(self, github_issue: Issue) -> RemoteState:
        """Convert PyGitHub issue to our model."""
        status = (
            IssueStatus.CLOSED if github_issue.state == "closed" else IssueStatus.OPEN
        )
        return RemoteState(
            status=status,
            title=github_issue.title or "",
            labels=frozenset(label.name for label in github_issue.labels),
            state_reason=getattr(github_issue, "state_reason", None),
        )

    def _convert_pull(self, pull: PullRequest) -> RemoteState:
        """Convert PyGitHub pull request to our model."""
        if pull.merged:
            status = IssueStatus.MERGED
        elif pull.state == "closed":
            status = IssueStatus.CLOSED
        else:
            status = IssueStatus.OPEN
        return RemoteState(
            status=status,
            title=pull.title or "",
            labels=frozenset(label.name for label in pull.labels),
            merged_at=pull.merged_at,
        )

    def fetch_state(
        self, owner: str, repo: str, number: int, kind: ReferenceKind
    ) -> RemoteState | None:
        """Fetch the current state of one issue or pull request (blocking).

        Issue numbers that turn out to be pull requests are reported with pull
        request semantics, so a merged PR referenced as ``owner/repo#N`` reads
        as merged.

        Returns:
            RemoteState, or None if the item does not exist or is inaccessible

        Raises:
            GitHubAuthError: If GitHub rejects the token
        """
        for attempt in range(2):
            try:
                repository = self._get_repository(owner, repo)
                if kind == ReferenceKind.PULL_REQUEST:
                    return self._convert_pull(repository.get_pull(number))

                github_issue = repository.get_issue(number)
                if github_issue.pull_request is not None:
                    return self._convert_pull(repository.get_pull(number))
                return self._convert_issue(github_issue)

            except BadCredentialsException as e:
                raise GitHubAuthError(f"GitHub authentication failed: {e}") from e
            except UnknownObjectException:
                logger.debug(f"{owner}/{repo}#{number} not found")
                return None
            except RateLimitExceededException:
                if attempt:
                    logger.warning(
                        f"Rate limit still exceeded, giving up on {owner}/{repo}#{number}"
                    )
                    return None
                logger.warning("Rate limit exceeded, waiting...")
                time.sleep(RATE_LIMIT_RETRY_SECONDS)
            except GithubException as e:
                logger.warning(f"Error fetching {owner}/{repo}#{number}: {e}")
                return None
        return None

    async def fetch_batch(
        self, requests: Sequence[FetchRequest]
    ) -> dict[str, FetchResult]:
        """Fetch states for many items concurrently.

        Lookups run in worker threads, at most ``max_concurrency`` at a time.
        Items that fail individually are absent from the response.

        Args:
            requests: One request per distinct URL

        Returns:
            URL -> FetchResult for every URL that was looked up

        Raises:
            GitHubAuthError: If GitHub rejects the token
        """
        if not requests:
            return {}

        await asyncio.to_thread(self._check_rate_limit)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def fetch_one(request: FetchRequest) -> RemoteState | None:
            async with semaphore:
                return await asyncio.to_thread(
                    self.fetch_state,
                    request.owner,
                    request.repo,
                    request.number,
                    request.kind,
                )

        tasks = [fetch_one(request) for request in requests]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results: dict[str, FetchResult] = {}
        for request, outcome in zip(requests, outcomes, strict=True):
            if isinstance(outcome, GitHubAuthError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.warning(f"Lookup failed for {request.url}: {outcome}")
                continue
            if outcome is not None:
                results[request.url] = FetchResult(state=outcome)

        logger.info(f"Resolved {len(results)}/{len(requests)} items from GitHub")
        return results

    def check_auth(self) -> tuple[bool, str | None]:
        """Verify the token by fetching the authenticated user.

        Returns:
            (True, None) on success, (False, message) otherwise
        """
        try:
            login = self.github.get_user().login
        except BadCredentialsException:
            return False, "GitHub token was rejected"
        except GithubException as e:
            return False, f"GitHub authentication check failed: {e}"
        logger.debug(f"Authenticated to GitHub as {login}")
        return True, None

    async def check_auth_async(self) -> tuple[bool, str | None]:
        return await asyncio.to_thread(self.check_auth)

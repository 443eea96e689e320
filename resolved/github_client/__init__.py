"""GitHub client package for API interaction."""

from .client import GitHubClient
from .models import FetchRequest, FetchResult

__all__ = [
    "FetchRequest",
    "FetchResult",
    "GitHubClient",
]

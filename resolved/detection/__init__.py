"""Reference detection in text."""

from .patterns import (
    canonical_url,
    extract_references,
    extract_urls,
    has_stale_keywords,
)

__all__ = [
    "canonical_url",
    "extract_references",
    "extract_urls",
    "has_stale_keywords",
]

"""Find stale GitHub issue and pull request references in a codebase."""

__version__ = "0.1.0"

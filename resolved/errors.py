"""Exception types raised by resolved."""


class ResolvedError(Exception):
    """Base class for all resolved errors."""


class ConfigError(ResolvedError, ValueError):
    """Raised when configuration options fail validation."""


class ResolvedEnvironmentError(ResolvedError):
    """A required external tool or service is unavailable.

    Reported once to the user; the current operation is aborted and not retried.
    """


class GitNotFoundError(ResolvedEnvironmentError):
    """The git executable could not be found on PATH."""

    def __init__(self) -> None:
        super().__init__("git not found")


class NotARepositoryError(ResolvedEnvironmentError):
    """git ls-files failed, usually because cwd is not inside a repository."""

    def __init__(self, stderr: str = "") -> None:
        self.stderr = stderr.strip()
        message = "Not a git repository"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)


class GitHubAuthError(ResolvedEnvironmentError):
    """GitHub rejected the configured credentials."""

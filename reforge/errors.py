"""Error taxonomy for reforge runs."""

from __future__ import annotations


class ReforgeError(RuntimeError):
    """Base class for failures that abort a run with a user-facing message."""


class InputError(ReforgeError):
    """Raised when the user supplied an unusable repository reference."""


class InvalidRepositoryUrlError(InputError):
    """Raised when a repository URL cannot be parsed."""

    def __init__(self, message: str = "Invalid URL provided.") -> None:
        super().__init__(message)


class GitHubError(ReforgeError):
    """Raised when the GitHub API returns a non-retriable failure."""


class RepositoryNotFoundError(GitHubError):
    def __init__(self) -> None:
        super().__init__("Repository not found. It may be private or spelled incorrectly.")


class InvalidTokenError(GitHubError):
    def __init__(self) -> None:
        super().__init__("The provided GitHub token is invalid or expired.")


class RateLimitError(GitHubError):
    def __init__(self) -> None:
        super().__init__(
            "GitHub API rate limit exceeded. Please provide a Personal Access Token to continue."
        )


class NetworkError(GitHubError):
    """Raised when GitHub stays unreachable after all retries."""

    MESSAGE = (
        "A network error occurred trying to contact the GitHub API. This could be due to:\n"
        "1. No internet connection.\n"
        "2. A firewall or proxy blocking the connection.\n"
        "3. DNS resolution failing for api.github.com.\n\n"
        "Run with --verbose for more specific error details."
    )

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.MESSAGE)


class EmptyRepositoryError(ReforgeError):
    def __init__(self) -> None:
        super().__init__("Repository appears to be empty or contains no readable files.")


class LLMError(ReforgeError):
    """Raised when the language model endpoint fails or returns garbage."""


class SelectionError(ReforgeError):
    """Raised when the file selection reply cannot be interpreted."""


class NoArchiveError(ReforgeError):
    """Raised when an archive is requested before a run produced files."""


class RunInProgressError(ReforgeError):
    """Raised when a run is started while another one owns the session."""

    def __init__(self) -> None:
        super().__init__("A run is already in progress. Wait for it to finish.")


__all__ = [
    "EmptyRepositoryError",
    "GitHubError",
    "InputError",
    "InvalidRepositoryUrlError",
    "InvalidTokenError",
    "LLMError",
    "NetworkError",
    "NoArchiveError",
    "RateLimitError",
    "ReforgeError",
    "RepositoryNotFoundError",
    "RunInProgressError",
    "SelectionError",
]

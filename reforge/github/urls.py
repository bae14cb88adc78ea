"""Parsing of GitHub repository URLs."""

from __future__ import annotations

from urllib.parse import urlparse

from ..errors import InvalidRepositoryUrlError
from ..models import RepoRef

_GITHUB_HOSTS = {"github.com", "www.github.com"}


def parse_github_url(url: str) -> RepoRef:
    """Return the owner/repo pair for a ``https://github.com/<owner>/<repo>`` URL."""
    try:
        parsed = urlparse(url.strip())
    except ValueError as exc:
        raise InvalidRepositoryUrlError() from exc
    if parsed.scheme not in {"http", "https"}:
        raise InvalidRepositoryUrlError()
    if (parsed.hostname or "").lower() not in _GITHUB_HOSTS:
        raise InvalidRepositoryUrlError()

    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) < 2:
        raise InvalidRepositoryUrlError()
    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        raise InvalidRepositoryUrlError()
    return RepoRef(owner=owner, repo=repo)


def archive_name_for(url: str, default: str = "reimplemented-project") -> str:
    """Derive a download name from the last segment of a repository URL."""
    segment = url.rstrip("/").rsplit("/", 1)[-1] if url else ""
    if segment.endswith(".git"):
        segment = segment[: -len(".git")]
    return segment or default


__all__ = ["archive_name_for", "parse_github_url"]

"""GitHub REST client that downloads a repository's readable source files."""

from __future__ import annotations

import base64
import binascii
import json
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from .. import __version__
from ..config import DEFAULT_GITHUB_API_BASE
from ..errors import (
    GitHubError,
    InvalidTokenError,
    NetworkError,
    RateLimitError,
    RepositoryNotFoundError,
)
from ..logging import get_logger
from ..models import BlobRef, RepoRef, SourceFile


@dataclass
class _HttpResponse:
    status: int
    reason: str
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class GitHubClient:
    """Walks a repository tree and fetches blob contents with bounded retries."""

    def __init__(
        self,
        *,
        api_base: str = DEFAULT_GITHUB_API_BASE,
        token: str | None = None,
        batch_size: int = 20,
        max_retries: int = 3,
        backoff: float = 0.3,
        request_timeout: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.token = token or None
        self.batch_size = max(1, batch_size)
        self.max_retries = max(0, max_retries)
        self.backoff = backoff
        self.request_timeout = request_timeout
        self._sleep = sleep
        self.logger = get_logger("github")

    def fetch_repository(self, repo: RepoRef) -> List[SourceFile]:
        """Download every decodable blob on the repository's default branch."""
        branch = self.get_default_branch(repo)
        tree_sha = self.get_tree_sha(repo, branch)
        tree = self.get_recursive_tree(repo, tree_sha)
        self.logger.info("Fetching %d blobs from %s@%s", len(tree), repo.full_name, branch)

        files: List[SourceFile] = []
        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for start in range(0, len(tree), self.batch_size):
                batch = tree[start : start + self.batch_size]
                contents = list(executor.map(lambda blob: self.get_blob_content(repo, blob), batch))
                for blob, content in zip(batch, contents):
                    if content is not None:
                        files.append(SourceFile(path=blob.path, content=content))

        self.logger.info("Read %d of %d files", len(files), len(tree))
        return files

    def get_default_branch(self, repo: RepoRef) -> str:
        response = self._perform_request(self._repo_url(repo))
        if not response.ok:
            if response.status in {403, 429}:
                raise RateLimitError()
            if response.status == 404:
                raise RepositoryNotFoundError()
            if response.status == 401:
                raise InvalidTokenError()
            raise GitHubError(
                f"Failed to fetch repository details ({response.status} {response.reason})."
            )

        details = self._decode_json(response, "repository details")
        branch = details.get("default_branch") if isinstance(details, dict) else None
        if not isinstance(branch, str) or not branch:
            raise GitHubError("Could not determine the default branch for the repository.")
        return branch

    def get_tree_sha(self, repo: RepoRef, branch: str) -> str:
        url = f"{self._repo_url(repo)}/branches/{quote(branch, safe='')}"
        response = self._perform_request(url)
        if not response.ok:
            raise GitHubError(
                f"Failed to get details for branch '{branch}': {response.status} {response.reason}"
            )
        data = self._decode_json(response, f"branch '{branch}'")
        try:
            sha = data["commit"]["commit"]["tree"]["sha"]
        except (KeyError, TypeError) as exc:
            raise GitHubError(f"Branch '{branch}' response did not include a tree sha.") from exc
        return str(sha)

    def get_recursive_tree(self, repo: RepoRef, tree_sha: str) -> List[BlobRef]:
        url = f"{self._repo_url(repo)}/git/trees/{tree_sha}?recursive=1"
        response = self._perform_request(url)
        if not response.ok:
            raise GitHubError(
                f"Failed to fetch repository file tree: {response.status} {response.reason}"
            )
        data = self._decode_json(response, "file tree")
        if not isinstance(data, dict):
            raise GitHubError("GitHub returned an unexpected file tree payload.")
        if data.get("truncated"):
            self.logger.warning(
                "Repository tree is too large and has been truncated by the GitHub API. "
                "Some files may be missing from the analysis."
            )
        entries = data.get("tree") or []
        return [
            BlobRef(path=str(item["path"]), sha=str(item["sha"]))
            for item in entries
            if isinstance(item, dict) and item.get("type") == "blob" and item.get("path") and item.get("sha")
        ]

    def get_blob_content(self, repo: RepoRef, blob: BlobRef) -> Optional[str]:
        """Return the decoded text of a blob, or ``None`` when it cannot be read."""
        response = self._perform_request(f"{self._repo_url(repo)}/git/blobs/{blob.sha}")
        if not response.ok:
            self.logger.warning("Failed to fetch content for %s. Status: %d", blob.path, response.status)
            return None
        try:
            data = json.loads(response.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            self.logger.warning("Blob payload for %s was not valid JSON, skipping.", blob.path)
            return None

        encoding = data.get("encoding") if isinstance(data, dict) else None
        if encoding != "base64":
            self.logger.warning("Unsupported encoding '%s' for %s, skipping.", encoding, blob.path)
            return None
        try:
            raw = base64.b64decode(str(data.get("content") or ""))
            return raw.decode("utf-8")
        except (binascii.Error, ValueError):
            self.logger.warning("Failed to decode content for %s, likely a binary file. Skipping.", blob.path)
            return None

    def _perform_request(self, url: str) -> _HttpResponse:
        attempt = 0
        while True:
            try:
                response = self._send(url)
            except (URLError, TimeoutError, ConnectionError) as exc:
                if attempt >= self.max_retries:
                    self.logger.debug("Giving up on %s after %d retries: %s", url, attempt, exc)
                    raise NetworkError() from exc
                delay = self._delay(attempt)
                self.logger.warning(
                    "Request to %s failed with a network error. Retrying in %dms...",
                    url,
                    int(delay * 1000),
                )
            else:
                if response.status < 500 or attempt >= self.max_retries:
                    return response
                delay = self._delay(attempt)
                self.logger.warning(
                    "Request to %s failed with status %d. Retrying in %dms...",
                    url,
                    response.status,
                    int(delay * 1000),
                )
            self._sleep(delay)
            attempt += 1

    def _send(self, url: str) -> _HttpResponse:
        self.logger.debug("GET %s", url)
        request = Request(url, headers=self._headers(), method="GET")
        try:
            with urlopen(request, timeout=self.request_timeout) as response:  # type: ignore[arg-type]
                return _HttpResponse(
                    status=int(response.status),
                    reason=str(response.reason or ""),
                    body=response.read(),
                )
        except HTTPError as exc:
            # The error doubles as the response; release its socket.
            if exc.fp is not None:
                exc.close()
            return _HttpResponse(status=exc.code, reason=str(exc.reason or ""), body=b"")

    def _delay(self, attempt: int) -> float:
        return self.backoff * (2**attempt)

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": f"reforge/{__version__}",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _repo_url(self, repo: RepoRef) -> str:
        return f"{self.api_base}/{quote(repo.owner, safe='')}/{quote(repo.repo, safe='')}"

    @staticmethod
    def _decode_json(response: _HttpResponse, what: str) -> Any:
        try:
            return json.loads(response.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise GitHubError(f"GitHub returned an invalid response for {what}.") from exc


__all__ = ["GitHubClient"]

"""GitHub repository access."""

from .client import GitHubClient
from .urls import parse_github_url

__all__ = ["GitHubClient", "parse_github_url"]

"""Core data models shared across reforge components."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RepoRef:
    """Owner/name pair identifying a GitHub repository."""

    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class BlobRef:
    """A file entry from the repository tree, addressed by blob sha."""

    path: str
    sha: str


@dataclass(frozen=True)
class SourceFile:
    """A repository file with its decoded text content."""

    path: str
    content: str


@dataclass(frozen=True)
class ReimplementedFile:
    """A file produced by the model during re-implementation."""

    path: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "content": self.content}

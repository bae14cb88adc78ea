"""Run state and progress stages observed by the CLI and service layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import ReimplementedFile, RepoRef, SourceFile


class RunState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ANALYZED = "analyzed"
    REIMPLEMENTED = "reimplemented"
    ERROR = "error"


class StageStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (StageStatus.COMPLETE, StageStatus.ERROR)


STAGE_FETCH = 1
STAGE_SELECT = 2
STAGE_ANALYZE = 3
STAGE_REIMPLEMENT = 4
STAGE_READY = 5

STAGE_TEXTS: Tuple[Tuple[int, str], ...] = (
    (STAGE_FETCH, "Download and read all repository files"),
    (STAGE_SELECT, "AI selects relevant files for analysis"),
    (STAGE_ANALYZE, "AI analyzes code architecture"),
    (STAGE_REIMPLEMENT, "AI re-implements the project"),
    (STAGE_READY, "Ready for download"),
)

_ORDER = {
    StageStatus.PENDING: 0,
    StageStatus.IN_PROGRESS: 1,
    StageStatus.COMPLETE: 2,
    StageStatus.ERROR: 2,
}


@dataclass
class ProgressStage:
    """One step of a run; status only moves forward."""

    id: int
    text: str
    status: StageStatus = StageStatus.PENDING

    def advance(self, status: StageStatus) -> None:
        if self.status.is_terminal:
            raise ValueError(
                f"Stage {self.id} is already {self.status.value}; cannot move to {status.value}"
            )
        if _ORDER[status] <= _ORDER[self.status]:
            raise ValueError(
                f"Stage {self.id} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text, "status": self.status.value}


def default_stages() -> List[ProgressStage]:
    return [ProgressStage(id=stage_id, text=text) for stage_id, text in STAGE_TEXTS]


@dataclass
class SessionState:
    """Everything a UI needs to render the current run."""

    repo_url: Optional[str] = None
    repo: Optional[RepoRef] = None
    run_state: RunState = RunState.IDLE
    error_message: Optional[str] = None
    stages: List[ProgressStage] = field(default_factory=default_stages)
    selected_files: Optional[Sequence[SourceFile]] = None
    analysis: Optional[str] = None
    reimplemented_files: Optional[Sequence[ReimplementedFile]] = None

    def stage(self, stage_id: int) -> ProgressStage:
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        raise KeyError(stage_id)

    def in_progress_stage(self) -> Optional[ProgressStage]:
        for stage in self.stages:
            if stage.status is StageStatus.IN_PROGRESS:
                return stage
        return None

    def to_dict(self, *, include_content: bool = True) -> Dict[str, Any]:
        files = self.reimplemented_files
        return {
            "repo_url": self.repo_url,
            "repo": self.repo.full_name if self.repo else None,
            "state": self.run_state.value,
            "error": self.error_message,
            "stages": [stage.to_dict() for stage in self.stages],
            "selected_files": (
                [file.path for file in self.selected_files]
                if self.selected_files is not None
                else None
            ),
            "analysis": self.analysis,
            "reimplemented_files": (
                [
                    record.to_dict() if include_content else {"path": record.path}
                    for record in files
                ]
                if files is not None
                else None
            ),
        }


__all__ = [
    "ProgressStage",
    "RunState",
    "STAGE_ANALYZE",
    "STAGE_FETCH",
    "STAGE_READY",
    "STAGE_REIMPLEMENT",
    "STAGE_SELECT",
    "STAGE_TEXTS",
    "SessionState",
    "StageStatus",
    "default_stages",
]

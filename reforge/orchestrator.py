"""Sequences fetch, selection, analysis, re-implementation and packaging for one run."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from .analyzer import ArchitectureAnalyzer
from .config import ReforgeConfig, load_config
from .errors import (
    EmptyRepositoryError,
    GitHubError,
    NoArchiveError,
    ReforgeError,
    RunInProgressError,
)
from .github.client import GitHubClient
from .github.urls import archive_name_for, parse_github_url
from .llm.runner import LLMRunner
from .logging import get_logger
from .models import ReimplementedFile
from .packager import ArchivePackager
from .progress import (
    STAGE_ANALYZE,
    STAGE_FETCH,
    STAGE_READY,
    STAGE_REIMPLEMENT,
    STAGE_SELECT,
    RunState,
    SessionState,
    StageStatus,
)
from .prompting.builder import PromptBuilder
from .reimplementer import Reimplementer
from .selector import RelevanceSelector, filter_files

Observer = Callable[[SessionState], None]
GitHubClientFactory = Callable[[Optional[str]], GitHubClient]

MISSING_URL_MESSAGE = "Please enter a valid GitHub repository URL."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."
DOWNLOAD_ERROR_PREFIX = "Could not download repository. Reason: "


class Orchestrator:
    """Owns the session state and drives a run through its five stages."""

    def __init__(
        self,
        config: ReforgeConfig | None = None,
        *,
        github_client_factory: GitHubClientFactory | None = None,
        llm_runner: LLMRunner | None = None,
        prompt_builder: PromptBuilder | None = None,
        selector: RelevanceSelector | None = None,
        analyzer: ArchitectureAnalyzer | None = None,
        reimplementer: Reimplementer | None = None,
        packager: ArchivePackager | None = None,
        observers: Optional[Iterable[Observer]] = None,
    ) -> None:
        self.config = config or load_config()
        self.logger = get_logger("orchestrator")
        self._github_client_factory = github_client_factory or self._default_github_client
        self._llm_runner = llm_runner
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._selector = selector
        self._analyzer = analyzer
        self._reimplementer = reimplementer
        self.packager = packager or ArchivePackager()
        self._observers: List[Observer] = list(observers or [])
        self.state = SessionState()
        self._run_lock = threading.Lock()

    def add_observer(self, observer: Observer) -> None:
        self._observers.append(observer)

    def run(self, repo_url: str | None, token: str | None = None) -> SessionState:
        """Run the full pipeline for ``repo_url`` and return the final state.

        Only one run may own the session at a time; a concurrent call raises
        :class:`RunInProgressError` and leaves the active run untouched.
        """
        if not self._run_lock.acquire(blocking=False):
            raise RunInProgressError()
        try:
            return self._run_locked(repo_url, token)
        finally:
            self._run_lock.release()

    @property
    def running(self) -> bool:
        return self._run_lock.locked()

    def _run_locked(self, repo_url: str | None, token: str | None) -> SessionState:
        url = (repo_url or "").strip()
        if not url:
            self._reset(None)
            self._fail(MISSING_URL_MESSAGE)
            return self.state

        self._reset(url)
        self.state.run_state = RunState.LOADING
        self._notify()

        try:
            self._run_stages(url, token)
        except ReforgeError as exc:
            message = str(exc)
            if isinstance(exc, GitHubError):
                message = f"{DOWNLOAD_ERROR_PREFIX}{message}"
            self.logger.error("Run failed: %s", message)
            self._fail(message)
        except Exception as exc:
            self.logger.exception("Unexpected failure during run")
            self._fail(str(exc) or UNKNOWN_ERROR_MESSAGE)
        return self.state

    def export_archive(self, directory: Path | None = None) -> Path:
        """Write the re-implemented files as ``<repo>.zip`` and return the path."""
        name, records = self._archive_contents()
        target_dir = directory or self.config.output_dir or Path.cwd()
        return self.packager.write_archive(records, name, target_dir)

    def build_archive(self) -> Tuple[str, bytes]:
        """Return the archive file name and its bytes for the current session."""
        name, records = self._archive_contents()
        return f"{name}.zip", self.packager.build_archive(records)

    def _run_stages(self, url: str, token: str | None) -> None:
        repo = parse_github_url(url)
        self.state.repo = repo

        self._set_stage(STAGE_FETCH, StageStatus.IN_PROGRESS)
        client = self._github_client_factory(token or self.config.github.token)
        all_files = client.fetch_repository(repo)
        if not all_files:
            raise EmptyRepositoryError()
        self._set_stage(STAGE_FETCH, StageStatus.COMPLETE)

        self._set_stage(STAGE_SELECT, StageStatus.IN_PROGRESS)
        relevant_paths = self._resolve_selector().select([file.path for file in all_files])
        selected = filter_files(all_files, relevant_paths)
        self.state.selected_files = tuple(selected)
        self._set_stage(STAGE_SELECT, StageStatus.COMPLETE)

        self._set_stage(STAGE_ANALYZE, StageStatus.IN_PROGRESS)
        self.state.analysis = ""
        self._notify()
        analysis = self._resolve_analyzer().analyze(selected, on_chunk=self._append_analysis)
        self.state.analysis = analysis
        self._set_stage(STAGE_ANALYZE, StageStatus.COMPLETE)
        self.state.run_state = RunState.ANALYZED
        self._notify()

        self._set_stage(STAGE_REIMPLEMENT, StageStatus.IN_PROGRESS)
        records: List[ReimplementedFile] = []
        self.state.reimplemented_files = records
        self._notify()
        for record in self._resolve_reimplementer().stream(selected, analysis):
            records.append(record)
            self._notify()
        self.state.reimplemented_files = tuple(records)
        self._set_stage(STAGE_REIMPLEMENT, StageStatus.COMPLETE)
        self.logger.info("Re-implementation produced %d files", len(records))

        self._set_stage(STAGE_READY, StageStatus.COMPLETE)
        self.state.run_state = RunState.REIMPLEMENTED
        self._notify()

    def _append_analysis(self, chunk: str) -> None:
        self.state.analysis = (self.state.analysis or "") + chunk
        self._notify()

    def _reset(self, url: str | None) -> None:
        self.state = SessionState(repo_url=url)

    def _set_stage(self, stage_id: int, status: StageStatus) -> None:
        stage = self.state.stage(stage_id)
        stage.advance(status)
        self.logger.info("[%d/5] %s: %s", stage.id, stage.text, status.value)
        self._notify()

    def _fail(self, message: str) -> None:
        stage = self.state.in_progress_stage()
        if stage is not None:
            stage.advance(StageStatus.ERROR)
        if isinstance(self.state.reimplemented_files, list):
            self.state.reimplemented_files = tuple(self.state.reimplemented_files)
        self.state.run_state = RunState.ERROR
        self.state.error_message = message
        self._notify()

    def _notify(self) -> None:
        for observer in self._observers:
            observer(self.state)

    def _archive_contents(self) -> Tuple[str, List[ReimplementedFile]]:
        records = list(self.state.reimplemented_files or ())
        if not records:
            raise NoArchiveError("There are no re-implemented files to download yet.")
        return archive_name_for(self.state.repo_url or ""), records

    def _default_github_client(self, token: str | None) -> GitHubClient:
        settings = self.config.github
        return GitHubClient(
            api_base=settings.api_base,
            token=token,
            batch_size=settings.batch_size,
            max_retries=settings.max_retries,
            backoff=settings.backoff,
            request_timeout=settings.request_timeout,
        )

    def _resolve_llm_runner(self) -> LLMRunner:
        if self._llm_runner is None:
            settings = self.config.llm
            kwargs: dict[str, object] = {}
            if settings.api_key:
                kwargs["api_key"] = settings.api_key
            if settings.temperature is not None:
                kwargs["temperature"] = settings.temperature
            if settings.request_timeout is not None:
                kwargs["request_timeout"] = settings.request_timeout
            self._llm_runner = LLMRunner(
                settings.model,
                base_url=settings.base_url,
                max_tokens=settings.max_tokens,
                **kwargs,  # type: ignore[arg-type]
            )
        return self._llm_runner

    def _resolve_selector(self) -> RelevanceSelector:
        if self._selector is None:
            self._selector = RelevanceSelector(
                self._resolve_llm_runner(),
                self.prompt_builder,
                max_files=self.config.selection.max_files,
            )
        return self._selector

    def _resolve_analyzer(self) -> ArchitectureAnalyzer:
        if self._analyzer is None:
            self._analyzer = ArchitectureAnalyzer(self._resolve_llm_runner(), self.prompt_builder)
        return self._analyzer

    def _resolve_reimplementer(self) -> Reimplementer:
        if self._reimplementer is None:
            self._reimplementer = Reimplementer(self._resolve_llm_runner(), self.prompt_builder)
        return self._reimplementer


__all__ = ["Orchestrator", "MISSING_URL_MESSAGE", "UNKNOWN_ERROR_MESSAGE"]

"""FastAPI application entrypoint for reforge service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..errors import NoArchiveError, ReforgeError, RunInProgressError
from ..orchestrator import Orchestrator
from ..progress import SessionState


class RunRequest(BaseModel):
    repo_url: str
    github_token: Optional[str] = None


class StageResponse(BaseModel):
    id: int
    text: str
    status: str


class ReimplementedFileResponse(BaseModel):
    path: str
    content: str


class SessionResponse(BaseModel):
    state: str
    repo_url: Optional[str] = None
    repo: Optional[str] = None
    error: Optional[str] = None
    stages: List[StageResponse]
    selected_files: Optional[List[str]] = None
    analysis: Optional[str] = None
    reimplemented_files: Optional[List[ReimplementedFileResponse]] = None


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def _session_response(state: SessionState) -> SessionResponse:
    return SessionResponse(**state.to_dict())


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing a single reforge session."""

    app = FastAPI(title="Reforge Service", version="1.0.0")
    holder: Dict[str, Orchestrator] = {}

    async def get_orchestrator() -> Orchestrator:
        # One session per process; created on first use.
        if "session" not in holder:
            holder["session"] = orchestrator_factory()
        return holder["session"]

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/runs", response_model=SessionResponse)
    async def start_run(
        payload: RunRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> SessionResponse:
        def _run() -> SessionState:
            return orchestrator.run(payload.repo_url, token=payload.github_token)

        loop = asyncio.get_running_loop()
        state = await loop.run_in_executor(None, _run)
        return _session_response(state)

    @app.get("/runs/current", response_model=SessionResponse)
    async def current_run(
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> SessionResponse:
        return _session_response(orchestrator.state)

    @app.get("/runs/current/archive")
    async def download_archive(
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Response:
        filename, data = orchestrator.build_archive()
        return Response(
            content=data,
            media_type="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.exception_handler(NoArchiveError)
    async def no_archive_handler(
        _: Any, exc: NoArchiveError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(RunInProgressError)
    async def run_in_progress_handler(
        _: Any, exc: RunInProgressError
    ) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ReforgeError)
    async def reforge_error_handler(
        _: Any, exc: ReforgeError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    try:
        import uvicorn
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install uvicorn`."
        ) from exc

    app = create_app()
    uvicorn.run(app, host=host, port=port)

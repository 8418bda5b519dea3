"""FastAPI application entrypoint for repowiki service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..errors import ConfigError, LockBusyError, NotARepositoryError, RepoWikiError
from ..orchestrator import HookOutcome, Orchestrator, UpdateOutcome


class HookRequest(BaseModel):
    path: str


class HookResponse(BaseModel):
    status: str
    reason: Optional[str] = None
    commit: Optional[str] = None


class UpdateRequest(BaseModel):
    path: str
    commit: Optional[str] = None


class CycleModel(BaseModel):
    target: str
    status: str
    files: list[str] = []
    affected_sections: list[str] = []
    committed: bool = False


class UpdateResponse(BaseModel):
    status: str
    baseline: Optional[str] = None
    catch_up_exhausted: bool = False
    cycles: list[CycleModel] = []


class StatusResponse(BaseModel):
    root: str
    configured: bool
    enabled: bool
    hook_installed: bool
    engine_path: Optional[str] = None
    wiki_path: Optional[str] = None
    page_count: int = 0
    last_run: Optional[str] = None
    last_commit_hash: Optional[str] = None
    locked_by: Optional[int] = None


class HealthResponse(BaseModel):
    status: str
    version: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing repowiki operations."""
    app = FastAPI(title="repowiki", version=__version__)

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.get("/status", response_model=StatusResponse)
    async def status(
        path: str,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> StatusResponse:
        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, orchestrator.status, path)
        return StatusResponse(
            root=str(report.root),
            configured=report.configured,
            enabled=report.enabled,
            hook_installed=report.hook_installed,
            engine_path=str(report.engine_path) if report.engine_path else None,
            wiki_path=report.wiki_path,
            page_count=report.page_count,
            last_run=report.last_run,
            last_commit_hash=report.last_commit_hash,
            locked_by=report.lock.pid if report.lock else None,
        )

    @app.post("/hooks/post-commit", response_model=HookResponse)
    async def post_commit(
        payload: HookRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> HookResponse:
        loop = asyncio.get_running_loop()
        outcome: HookOutcome | None = await loop.run_in_executor(
            None, orchestrator.run_hook, payload.path
        )
        if outcome is None:
            return HookResponse(status="skipped", reason="not-a-repository")
        if not outcome.decision.allowed:
            return HookResponse(
                status="skipped",
                reason=outcome.decision.reason,
                commit=outcome.decision.commit,
            )
        return HookResponse(
            status="launched" if outcome.launched else "launch-failed",
            commit=outcome.decision.commit,
        )

    @app.post("/update", response_model=UpdateResponse)
    async def update(
        payload: UpdateRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> UpdateResponse:
        def _run_update() -> UpdateOutcome:
            return orchestrator.run_update(payload.path, commit=payload.commit)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run_update)
        return UpdateResponse(
            status="ok" if result.changed else "skipped",
            baseline=result.baseline,
            catch_up_exhausted=result.catch_up_exhausted,
            cycles=[
                CycleModel(
                    target=cycle.target,
                    status=cycle.status,
                    files=list(cycle.plan.files) if cycle.plan else [],
                    affected_sections=list(cycle.plan.affected_sections) if cycle.plan else [],
                    committed=cycle.committed,
                )
                for cycle in result.cycles
            ],
        )

    @app.exception_handler(LockBusyError)
    async def lock_busy_handler(_: Any, exc: LockBusyError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(NotARepositoryError)
    async def not_a_repository_handler(_: Any, exc: NotARepositoryError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RepoWikiError)
    async def repowiki_error_handler(_: Any, exc: RepoWikiError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["create_app", "run_service"]

"""Run control endpoints: start, resume, status, reset, continuation dispatch."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from devsweep.core.exceptions import InputError
from devsweep.models.run_state import RunKind, RunPhase, RunReport
from devsweep.orchestration import Runtime

router = APIRouter(tags=["runs"])


class StartRunRequest(BaseModel):
    """Items for a new run; omit to enumerate deactivated accounts."""

    items: Optional[list[str]] = None


def _runtime(request: Request) -> Runtime:
    return request.app.state.runtime


@router.get("/runs/{kind}")
async def get_status(kind: RunKind, request: Request) -> dict[str, Any]:
    status = _runtime(request).engine(kind).status()
    if status is None:
        return {"kind": kind.value, "phase": RunPhase.IDLE.value}
    return {"phase": RunPhase.RUNNING.value, **status.model_dump(mode="json")}


@router.post("/runs/{kind}/start")
async def start_run(kind: RunKind, request: Request, body: StartRunRequest | None = None) -> RunReport:
    runtime = _runtime(request)
    engine = runtime.engine(kind)
    items = body.items if body is not None else None
    if items is None:
        items = [] if engine.phase() is RunPhase.RUNNING else await runtime.directory.list_deactivated_accounts()
    try:
        return await engine.start(items)
    except InputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post("/runs/{kind}/resume")
async def resume_run(kind: RunKind, request: Request) -> RunReport:
    return await _runtime(request).engine(kind).resume()


@router.post("/runs/{kind}/reset")
async def reset_run(kind: RunKind, request: Request, full: bool = False) -> dict[str, Any]:
    _runtime(request).engine(kind).reset(full=full)
    return {"kind": kind.value, "phase": RunPhase.IDLE.value, "full": full}


@router.post("/continuations/dispatch")
async def dispatch_continuations(request: Request) -> dict[str, list[str]]:
    """Cron hook: fire every continuation that is due now."""
    fired = await _runtime(request).worker().run_once()
    return {"fired": fired}

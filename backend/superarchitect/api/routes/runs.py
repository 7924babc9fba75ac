"""Pipeline run endpoints.

Runs execute in-process as asyncio tasks and live in a module-level registry
for the lifetime of the process. Progress is available by polling the run or
by streaming its status events over server-sent events.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from superarchitect.api.dependencies import error_response, get_generator
from superarchitect.engine.pipeline import PipelineRun, submit_brief
from superarchitect.engine.status import AGENT_ROSTER
from superarchitect.errors import BriefPreconditionError
from superarchitect.generators.base import Generator
from superarchitect.models.contracts import (
    AgentProfile,
    Brief,
    CreateRunResponse,
    ErrorResponse,
    RunState,
)

logger = structlog.get_logger()

router = APIRouter(tags=["runs"])

_runs: dict[str, PipelineRun] = {}

_NOT_FOUND = ("run_not_found", "Run not found")


def _sse(event: str, payload: str) -> str:
    return f"event: {event}\ndata: {payload}\n\n"


@router.get("/agents", response_model=list[AgentProfile])
async def list_agents() -> list[AgentProfile]:
    """The fixed agent roster, in pipeline order."""
    return list(AGENT_ROSTER)


@router.post(
    "/runs",
    status_code=201,
    response_model=CreateRunResponse,
    responses={422: {"model": ErrorResponse}},
)
async def create_run(body: dict, generator: Generator = Depends(get_generator)):
    """Validate a brief and start its pipeline run."""
    try:
        brief = Brief.model_validate(body)
    except ValidationError as exc:
        messages = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        ]
        return error_response(422, "invalid_brief", "; ".join(messages))

    try:
        run = submit_brief(brief, generator)
    except BriefPreconditionError as exc:
        return error_response(422, "invalid_brief", exc.message)

    _runs[run.run_id] = run
    logger.info("run_created", run_id=run.run_id)
    return CreateRunResponse(run_id=run.run_id)


@router.get(
    "/runs/{run_id}",
    response_model=RunState,
    responses={404: {"model": ErrorResponse}},
)
async def get_run(run_id: str):
    """Current phase, agent statuses and, once settled, designs or error."""
    run = _runs.get(run_id)
    if run is None:
        return error_response(404, *_NOT_FOUND)
    return run.state()


@router.get("/runs/{run_id}/events", responses={404: {"model": ErrorResponse}})
async def stream_run_events(run_id: str):
    """Server-sent events: a snapshot, every later status event, then the final state."""
    run = _runs.get(run_id)
    if run is None:
        return error_response(404, *_NOT_FOUND)

    # Subscribe before the snapshot so nothing falls between the two
    subscription = run.bus.subscribe()

    async def _events() -> AsyncIterator[str]:
        yield _sse("snapshot", run.state().model_dump_json())
        async for event in subscription:
            yield _sse("status", event.model_dump_json())
        if not run.done:
            # The bus closes inside the task, just before it settles
            await asyncio.wait([run.task])
        yield _sse("end", run.state().model_dump_json())

    return StreamingResponse(
        _events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


def clear_runs() -> None:
    _runs.clear()



async def cancel_unfinished_runs() -> int:
    """Cancel every run still in flight and wait for them to settle.

    Returns the number of runs cancelled. Called at process shutdown.
    """
    pending = [run.task for run in _runs.values() if not run.done]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.wait(pending)
    return len(pending)

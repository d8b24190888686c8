"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import RunAccepted, RunRecord, RunRequest, RunStatus
from services.runner import RunnerService, build_default_runner

router = APIRouter()


def get_runner() -> RunnerService:
    return build_default_runner()


@router.post(
    "/runs",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=RunAccepted,
    summary="Start a fleet run in the background.",
)
async def submit_run(
    request: RunRequest,
    runner: RunnerService = Depends(get_runner),
) -> RunAccepted:
    try:
        run_id = runner.enqueue_run(request)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return RunAccepted(run_id=run_id)


@router.get(
    "/runs",
    response_model=List[RunRecord],
    summary="List runs, newest first.",
)
async def list_runs(
    status_filter: Optional[RunStatus] = Query(default=None, alias="status"),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    runner: RunnerService = Depends(get_runner),
) -> List[RunRecord]:
    return runner.list_runs(status=status_filter, limit=limit)


@router.get(
    "/runs/{run_id}",
    response_model=RunRecord,
    summary="Fetch the status and cycle outcomes of a run.",
)
async def get_run(
    run_id: str,
    runner: RunnerService = Depends(get_runner),
) -> RunRecord:
    try:
        return runner.fetch_run(run_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.delete(
    "/runs/{run_id}",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=RunRecord,
    summary="Request cancellation of a run before its next cycle.",
)
async def cancel_run(
    run_id: str,
    runner: RunnerService = Depends(get_runner),
) -> RunRecord:
    try:
        return runner.cancel_run(run_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from app.errors import TransportError
from app.models import Repository, ScanOutcome
from app.services.lifecycle import ScanLifecycleController

router = APIRouter(prefix="/api", tags=["scans"])


class ScanAccepted(BaseModel):
    scan_id: int
    repository_id: int


class ScanState(BaseModel):
    is_scanning: bool
    status_message: str | None = None
    outcome: ScanOutcome


def get_controller(request: Request) -> ScanLifecycleController:
    return request.app.state.controller


@router.get("/repositories", response_model=List[Repository])
async def list_repositories(controller: ScanLifecycleController = Depends(get_controller)):
    """
    List the repositories the scanner knows about.
    """
    try:
        return await controller.list_repositories()
    except TransportError as e:
        raise HTTPException(status_code=502, detail=f"Failed to load repositories: {e}")


@router.post("/scans/{repository_id}", response_model=ScanAccepted, status_code=202)
async def start_scan(
    repository_id: int,
    controller: ScanLifecycleController = Depends(get_controller),
):
    """
    Submit a scan for a repository and follow it in the background.
    """
    try:
        handle = await controller.submit(repository_id)
    except TransportError as e:
        raise HTTPException(status_code=502, detail=f"Failed to start scan: {e}")

    controller.start_follow(handle)
    return ScanAccepted(scan_id=handle.scan_id, repository_id=repository_id)


@router.post("/repositories/{repository_id}/resume", status_code=202)
async def resume_scan(
    repository_id: int,
    controller: ScanLifecycleController = Depends(get_controller),
):
    """
    Select a repository and pick up its latest scan in the background.
    """
    controller.start_resume(repository_id)
    return {"repository_id": repository_id}


@router.get("/scans/current", response_model=ScanState, response_model_exclude_none=True)
async def get_current_scan(controller: ScanLifecycleController = Depends(get_controller)):
    if controller.current is None:
        raise HTTPException(status_code=404, detail="No scan selected")
    return ScanState(
        is_scanning=controller.is_scanning,
        status_message=controller.status_message,
        outcome=controller.current,
    )


@router.delete("/scans/current", status_code=204)
async def clear_current_scan(controller: ScanLifecycleController = Depends(get_controller)):
    controller.reset()

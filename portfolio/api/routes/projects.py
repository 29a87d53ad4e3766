from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool

from portfolio.api.deps import get_project_service
from portfolio.core.security import require_admin
from portfolio.schemas.projects import ProjectCollection, ProjectsRefreshOut, ProjectsUpdateOut
from portfolio.services.errors import StoreUnavailableError, StoreValidationError
from portfolio.services.projects import ProjectRefreshResult, ProjectService
from portfolio.services.store import Section, get_store

router = APIRouter()


@router.get("", response_model=ProjectCollection)
def get_projects(store=Depends(get_store)) -> ProjectCollection:
    try:
        return store.read(Section.PROJECTS)
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@router.post("", response_model=ProjectsUpdateOut, dependencies=[Depends(require_admin)])
def update_projects(payload: Any = Body(...), store=Depends(get_store)) -> ProjectsUpdateOut:
    try:
        document = store.write(Section.PROJECTS, payload, merge=True)
    except StoreValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return ProjectsUpdateOut(message="Projects updated successfully", data=document)


@router.post("/refresh", response_model=ProjectsRefreshOut, dependencies=[Depends(require_admin)])
async def refresh_projects(service: ProjectService = Depends(get_project_service)) -> ProjectsRefreshOut:
    result = await run_project_refresh(service)
    return to_refresh_out(result)


async def run_project_refresh(service: ProjectService) -> ProjectRefreshResult:
    try:
        result = await service.refresh_from_feed()
    except StoreValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    if not result.refreshed and not await run_in_threadpool(service.store.exists, Section.PROJECTS):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=result.warning or "Failed to refresh projects from feed",
        )
    return result


def to_refresh_out(result: ProjectRefreshResult) -> ProjectsRefreshOut:
    message = "Projects refreshed from feed successfully" if result.refreshed else "Serving stored projects"
    return ProjectsRefreshOut(
        refreshed=result.refreshed,
        message=message,
        syndicated_count=result.syndicated_count,
        warning=result.warning,
        fallback_used=result.fallback_used,
        data=result.collection,
    )

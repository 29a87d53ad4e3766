from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from portfolio.core.security import require_admin, require_sync_token
from portfolio.schemas.experience import ExperienceDocument, ExperienceSyncOut, ExperienceUpdateOut
from portfolio.services.errors import StoreUnavailableError, StoreValidationError
from portfolio.services.store import Section, get_store

router = APIRouter()


@router.get("", response_model=ExperienceDocument)
def get_experience(store=Depends(get_store)) -> ExperienceDocument:
    try:
        return store.read(Section.EXPERIENCE)
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@router.post("", response_model=ExperienceUpdateOut, dependencies=[Depends(require_admin)])
def update_experience(payload: Any = Body(...), store=Depends(get_store)) -> ExperienceUpdateOut:
    document = _write_experience(store, payload)
    return ExperienceUpdateOut(message="Experience data updated successfully", data=document)


@router.post("/sync", response_model=ExperienceSyncOut, dependencies=[Depends(require_sync_token)])
def sync_experience(payload: Any = Body(...), store=Depends(get_store)) -> ExperienceSyncOut:
    if not isinstance(payload, dict) or not isinstance(payload.get("experiences"), list):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid experience data format")

    document = _write_experience(store, payload)
    return ExperienceSyncOut(
        message="Experience data updated successfully",
        experience_count=len(document.experiences),
    )


def _write_experience(store, payload: Any) -> ExperienceDocument:
    try:
        return store.write(Section.EXPERIENCE, payload, merge=True)
    except StoreValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

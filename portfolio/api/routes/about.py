from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from portfolio.core.security import require_admin
from portfolio.schemas.about import AboutDocument, AboutUpdateOut
from portfolio.services.errors import StoreUnavailableError, StoreValidationError
from portfolio.services.store import Section, get_store

router = APIRouter()


@router.get("", response_model=AboutDocument)
def get_about(store=Depends(get_store)) -> AboutDocument:
    try:
        return store.read(Section.ABOUT)
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@router.post("", response_model=AboutUpdateOut, dependencies=[Depends(require_admin)])
def update_about(payload: Any = Body(...), store=Depends(get_store)) -> AboutUpdateOut:
    try:
        document = store.write(Section.ABOUT, payload)
    except StoreValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return AboutUpdateOut(message="About content updated successfully", data=document)

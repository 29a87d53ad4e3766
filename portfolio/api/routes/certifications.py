from fastapi import APIRouter, Depends, HTTPException, Query, status

from portfolio.api.deps import get_certification_service
from portfolio.core.config import Settings, get_settings
from portfolio.core.security import require_webhook_token
from portfolio.core.timestamps import utc_now_iso
from portfolio.schemas.certifications import CertificationsOut, CertificationsRefreshOut
from portfolio.services.badges import CertificationService, CertificationsResult
from portfolio.services.errors import UpstreamError

router = APIRouter()


@router.get("", response_model=CertificationsOut)
async def list_certifications(
    username: str | None = Query(default=None, min_length=1),
    refresh: bool = Query(default=False),
    settings: Settings = Depends(get_settings),
    service: CertificationService = Depends(get_certification_service),
) -> CertificationsOut:
    try:
        result = await service.get_certifications(username or settings.credly_username, force_refresh=refresh)
    except UpstreamError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch certifications: {exc}",
        ) from exc
    return to_certifications_out(result)


@router.api_route(
    "/refresh",
    methods=["GET", "POST"],
    response_model=CertificationsRefreshOut,
    dependencies=[Depends(require_webhook_token)],
)
async def refresh_certifications(
    username: str | None = Query(default=None, min_length=1),
    settings: Settings = Depends(get_settings),
    service: CertificationService = Depends(get_certification_service),
) -> CertificationsRefreshOut:
    result = await run_certifications_refresh(service, username or settings.credly_username)
    if result.warning is None:
        message = "Certifications cache refreshed successfully"
    else:
        message = "Serving cached certifications"
    return CertificationsRefreshOut(
        message=message,
        count=len(result.certifications),
        timestamp=utc_now_iso(),
        warning=result.warning,
    )


async def run_certifications_refresh(service: CertificationService, username: str) -> CertificationsResult:
    try:
        return await service.refresh(username)
    except UpstreamError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to refresh certifications: {exc}",
        ) from exc


def to_certifications_out(result: CertificationsResult) -> CertificationsOut:
    return CertificationsOut(
        data=result.certifications,
        count=len(result.certifications),
        last_updated=result.last_updated,
        cached=result.cached,
        warning=result.warning,
    )

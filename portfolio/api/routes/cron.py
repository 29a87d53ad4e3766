import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool

from portfolio.api.deps import get_certification_service, get_project_service
from portfolio.api.routes.certifications import run_certifications_refresh
from portfolio.api.routes.projects import run_project_refresh
from portfolio.core.config import Settings, get_settings
from portfolio.core.security import require_cron_secret
from portfolio.core.timestamps import utc_now_iso
from portfolio.schemas.certifications import CronRunOut
from portfolio.services.badges import CertificationService
from portfolio.services.errors import StoreUnavailableError
from portfolio.services.projects import ProjectService
from portfolio.services.store import Section

router = APIRouter(dependencies=[Depends(require_cron_secret)])
logger = logging.getLogger(__name__)


@router.api_route("/refresh-certifications", methods=["GET", "POST"], response_model=CronRunOut)
async def cron_refresh_certifications(
    settings: Settings = Depends(get_settings),
    service: CertificationService = Depends(get_certification_service),
) -> CronRunOut:
    result = await run_certifications_refresh(service, settings.credly_username)
    logger.info("cron certifications refresh count=%s warning=%s", len(result.certifications), result.warning)
    return CronRunOut(
        message="Cron job executed successfully",
        timestamp=utc_now_iso(),
        refresh_result={
            "count": len(result.certifications),
            "lastUpdated": result.last_updated,
            "cached": result.cached,
            "warning": result.warning,
        },
    )


@router.api_route("/refresh-projects", methods=["GET", "POST"], response_model=CronRunOut)
async def cron_refresh_projects(service: ProjectService = Depends(get_project_service)) -> CronRunOut:
    try:
        collection = await run_in_threadpool(service.store.read, Section.PROJECTS)
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    if not collection.settings.auto_sync:
        logger.info("cron projects refresh skipped: auto sync disabled")
        return CronRunOut(
            message="Auto sync disabled; nothing to do",
            timestamp=utc_now_iso(),
            refresh_result={"refreshed": False, "skipped": True},
        )

    result = await run_project_refresh(service)
    logger.info("cron projects refresh refreshed=%s count=%s", result.refreshed, result.syndicated_count)
    return CronRunOut(
        message="Cron job executed successfully",
        timestamp=utc_now_iso(),
        refresh_result={
            "refreshed": result.refreshed,
            "syndicatedCount": result.syndicated_count,
            "warning": result.warning,
            "fallbackUsed": result.fallback_used,
        },
    )

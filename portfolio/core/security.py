import hmac
import logging

from fastapi import Depends, Header, HTTPException, status

from portfolio.core.config import Settings, get_settings
from portfolio.services.errors import AuthError

logger = logging.getLogger(__name__)


def verify_bearer_token(authorization: str | None, expected: str) -> None:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthError("bearer token required")
    token = authorization.split(" ", maxsplit=1)[1].strip()
    if not token or not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        raise AuthError("invalid bearer token")


def _enforce_optional_token(expected: str | None, authorization: str | None, *, guard: str) -> None:
    # Unset secret means the endpoint is open.
    if not expected:
        return
    try:
        verify_bearer_token(authorization, expected)
    except AuthError as exc:
        logger.warning("rejected request guard=%s reason=%s", guard, exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized") from exc


async def require_admin(
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> None:
    if not settings.admin_token:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="admin auth is not configured",
        )
    try:
        verify_bearer_token(authorization, settings.admin_token)
    except AuthError as exc:
        logger.warning("rejected admin request reason=%s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized") from exc


async def require_cron_secret(
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> None:
    _enforce_optional_token(settings.cron_secret, authorization, guard="cron")


async def require_webhook_token(
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> None:
    _enforce_optional_token(settings.certifications_webhook_token, authorization, guard="certifications_webhook")


async def require_sync_token(
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> None:
    _enforce_optional_token(settings.experience_sync_token, authorization, guard="experience_sync")

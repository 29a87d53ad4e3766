from fastapi import Depends, Request

from portfolio.core.config import Settings, get_settings
from portfolio.services.badges import CertificationService, CredlyClient
from portfolio.services.cache import TTLCache
from portfolio.services.feeds import FeedClient
from portfolio.services.projects import ProjectService
from portfolio.services.store import ContentStore, get_store
from portfolio.services.uploads import UploadStore


def get_cache(request: Request) -> TTLCache:
    return request.app.state.cache


def get_credly_client(request: Request) -> CredlyClient:
    return request.app.state.credly_client


def get_feed_client(settings: Settings = Depends(get_settings)) -> FeedClient:
    return FeedClient(timeout_seconds=settings.upstream_timeout_seconds)


def get_certification_service(
    settings: Settings = Depends(get_settings),
    cache: TTLCache = Depends(get_cache),
    client: CredlyClient = Depends(get_credly_client),
    store: ContentStore = Depends(get_store),
) -> CertificationService:
    return CertificationService(
        cache=cache,
        client=client,
        store=store,
        cache_ttl_minutes=settings.certifications_cache_ttl_minutes,
        badge_url_base=settings.credly_badge_url_base,
    )


def get_project_service(
    settings: Settings = Depends(get_settings),
    store: ContentStore = Depends(get_store),
    client: FeedClient = Depends(get_feed_client),
) -> ProjectService:
    return ProjectService(store=store, client=client, default_feed_url=settings.feed_url)


def get_upload_store(settings: Settings = Depends(get_settings)) -> UploadStore:
    return UploadStore(
        settings.uploads_dir,
        max_bytes=settings.upload_max_bytes,
        allowed_types=settings.upload_allowed_types,
    )

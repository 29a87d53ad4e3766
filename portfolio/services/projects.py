from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi.concurrency import run_in_threadpool

from portfolio.core.timestamps import utc_now_iso
from portfolio.schemas.projects import ProjectCollection
from portfolio.services.errors import FeedError
from portfolio.services.feeds import FeedClient, fetch_articles
from portfolio.services.store import ContentStore, Section

logger = logging.getLogger(__name__)


class FeedNotConfiguredError(FeedError):
    """Raised when neither the stored collection nor settings name a feed."""


@dataclass(slots=True)
class ProjectRefreshResult:
    refreshed: bool
    collection: ProjectCollection
    syndicated_count: int = 0
    warning: str | None = None
    fallback_used: bool = False


class ProjectService:
    def __init__(self, *, store: ContentStore, client: FeedClient, default_feed_url: str | None = None) -> None:
        self.store = store
        self.client = client
        self.default_feed_url = default_feed_url

    def feed_url_for(self, collection: ProjectCollection) -> str:
        feed_url = collection.source_feed_url or self.default_feed_url
        if not feed_url:
            raise FeedNotConfiguredError("no source feed url configured")
        return feed_url

    async def refresh_from_feed(self) -> ProjectRefreshResult:
        """Replace syndicated items wholesale from the feed.

        A failed fetch leaves the stored document as it was and hands it back
        with a warning.
        """
        current = await run_in_threadpool(self.store.read, Section.PROJECTS)
        try:
            feed_url = self.feed_url_for(current)
            syndicated = await fetch_articles(feed_url, self.client)
        except FeedError as exc:
            logger.warning("project feed refresh failed error=%s", exc)
            return ProjectRefreshResult(
                refreshed=False,
                collection=current,
                syndicated_count=len(current.syndicated_items),
                warning=f"Failed to fetch feed: {exc}",
                fallback_used=current.settings.fallback_to_manual,
            )

        updated = current.with_syndicated_items(syndicated, last_updated=utc_now_iso())
        if not updated.source_feed_url:
            updated.source_feed_url = feed_url
        written = await run_in_threadpool(self.store.write, Section.PROJECTS, updated)
        return ProjectRefreshResult(refreshed=True, collection=written, syndicated_count=len(syndicated))

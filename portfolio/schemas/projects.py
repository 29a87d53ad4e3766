from datetime import datetime, timezone
from typing import Literal

from pydantic import Field, model_validator

from portfolio.core.timestamps import parse_timestamp
from portfolio.schemas.base import CamelModel

ProjectType = Literal["syndicated", "manual"]

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class Project(CamelModel):
    id: str
    title: str
    description: str = ""
    image: str = ""
    technologies: list[str] = Field(default_factory=list)
    icon: str = "Cpu"
    color: str = "from-gray-500 to-gray-600"
    source_url: str | None = None
    github: str | None = None
    demo: str | None = None
    highlights: list[str] = Field(default_factory=list)
    type: ProjectType = "manual"
    featured: bool = False
    published_date: str | None = None
    categories: list[str] = Field(default_factory=list)
    content_snippet: str | None = None


class ProjectSettings(CamelModel):
    auto_sync: bool = True
    max_items: int = Field(default=10, ge=0)
    fallback_to_manual: bool = True
    include_manual: bool = True


class ProjectCollection(CamelModel):
    """Persisted projects document.

    ``combined_items`` is a derived view and is recomputed whenever a
    collection is built, so whatever a caller sends for it is discarded.
    """

    last_updated: str | None = None
    source_feed_url: str | None = None
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    syndicated_items: list[Project] = Field(default_factory=list)
    manual_items: list[Project] = Field(default_factory=list)
    combined_items: list[Project] = Field(default_factory=list)

    @model_validator(mode="after")
    def recompute_combined_items(self) -> "ProjectCollection":
        self.combined_items = combine_projects(
            syndicated=self.syndicated_items,
            manual=self.manual_items,
            settings=self.settings,
        )
        return self

    def with_syndicated_items(self, items: list[Project], *, last_updated: str) -> "ProjectCollection":
        payload = self.model_dump(by_alias=False)
        payload["syndicated_items"] = [item.model_dump(by_alias=False) for item in items]
        payload["last_updated"] = last_updated
        return ProjectCollection.model_validate(payload)


def combine_projects(
    *,
    syndicated: list[Project],
    manual: list[Project],
    settings: ProjectSettings,
) -> list[Project]:
    combined: list[Project] = []
    if settings.include_manual:
        combined.extend(manual)
    combined.extend(syndicated)
    # Stable sort: newest first, then featured ahead of everything else.
    combined.sort(key=lambda project: parse_timestamp(project.published_date) or _OLDEST, reverse=True)
    combined.sort(key=lambda project: not project.featured)
    return [project.model_copy() for project in combined[: settings.max_items]]


class ProjectsRefreshOut(CamelModel):
    refreshed: bool
    message: str
    syndicated_count: int = 0
    warning: str | None = None
    fallback_used: bool = False
    data: ProjectCollection


class ProjectsUpdateOut(CamelModel):
    success: bool = True
    message: str
    data: ProjectCollection

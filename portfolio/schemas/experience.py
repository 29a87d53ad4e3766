from uuid import uuid4

from pydantic import Field

from portfolio.schemas.base import CamelModel


class Profile(CamelModel):
    name: str = ""
    title: str = ""
    location: str = ""
    summary: str = ""


class ExperienceEntry(CamelModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    title: str
    company: str
    location: str = ""
    start_date: str | None = None
    end_date: str | None = None
    period: str | None = None
    type: str = "Full-time"
    current: bool = False
    description: str | None = None
    achievements: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)


class ExperienceDocument(CamelModel):
    last_updated: str | None = None
    profile: Profile = Field(default_factory=Profile)
    experiences: list[ExperienceEntry]
    stats: dict[str, str] = Field(default_factory=dict)


class ExperienceSyncOut(CamelModel):
    success: bool = True
    message: str
    experience_count: int


class ExperienceUpdateOut(CamelModel):
    success: bool = True
    message: str
    data: ExperienceDocument

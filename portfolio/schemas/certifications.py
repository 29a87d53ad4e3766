from typing import Any

from pydantic import Field

from portfolio.schemas.base import CamelModel


class Certification(CamelModel):
    id: str
    name: str
    issuer: str
    issuer_url: str = "#"
    date: str
    expires_at: str | None = None
    image_url: str = ""
    description: str = ""
    badge_url: str
    category: str
    level: str
    color: str


class CertificationSnapshot(CamelModel):
    """Last successful badge batch, persisted as the ``certifications`` section."""

    last_updated: str | None = None
    username: str | None = None
    certifications: list[Certification] = Field(default_factory=list)


class CertificationsOut(CamelModel):
    success: bool = True
    data: list[Certification] = Field(default_factory=list)
    count: int = 0
    last_updated: str | None = None
    cached: bool = False
    warning: str | None = None


class CertificationsRefreshOut(CamelModel):
    success: bool = True
    message: str
    count: int
    timestamp: str
    warning: str | None = None


class CronRunOut(CamelModel):
    success: bool = True
    message: str
    timestamp: str
    refresh_result: dict[str, Any] = Field(default_factory=dict)

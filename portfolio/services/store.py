from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from portfolio.core.config import get_settings
from portfolio.core.timestamps import utc_now_iso
from portfolio.schemas.about import AboutDocument, default_about
from portfolio.schemas.base import CamelModel
from portfolio.schemas.certifications import CertificationSnapshot
from portfolio.schemas.experience import ExperienceDocument, Profile
from portfolio.schemas.projects import ProjectCollection
from portfolio.services.errors import StoreNotFoundError, StoreUnavailableError, StoreValidationError

logger = logging.getLogger(__name__)


class Section(str, Enum):
    ABOUT = "about"
    EXPERIENCE = "experience"
    PROJECTS = "projects"
    CERTIFICATIONS = "certifications"


DEFAULT_PROFILE = Profile(
    name="Joyson Fernandes",
    title="Cloud DevOps Engineer",
    location="London, UK",
    summary="Passionate about automation, cloud architecture, and building efficient infrastructure solutions.",
)

DEFAULT_EXPERIENCE_STATS = {
    "yearsExperience": "0",
    "usersSupported": "0",
    "uptimeAchieved": "0%",
    "responseTimeImprovement": "0%",
}


def default_experience() -> ExperienceDocument:
    return ExperienceDocument(
        profile=DEFAULT_PROFILE.model_copy(),
        experiences=[],
        stats=dict(DEFAULT_EXPERIENCE_STATS),
    )


@dataclass(frozen=True, slots=True)
class SectionModel:
    model: type[CamelModel]
    default: Callable[[], CamelModel]


SECTIONS: dict[Section, SectionModel] = {
    Section.ABOUT: SectionModel(model=AboutDocument, default=default_about),
    Section.EXPERIENCE: SectionModel(model=ExperienceDocument, default=default_experience),
    Section.PROJECTS: SectionModel(model=ProjectCollection, default=ProjectCollection),
    Section.CERTIFICATIONS: SectionModel(model=CertificationSnapshot, default=CertificationSnapshot),
}


class ContentStore:
    """One JSON document per section under ``data_dir``.

    Writes replace the whole document through a temp file and ``os.replace``
    so readers never observe a partial file. Writers are not serialized:
    the last write wins.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)

    def path_for(self, section: Section) -> Path:
        return self.data_dir / f"{Section(section).value}.json"

    def exists(self, section: Section) -> bool:
        return self.path_for(section).is_file()

    def read(self, section: Section) -> Any:
        section = Section(section)
        try:
            raw = self._load(section)
        except StoreNotFoundError:
            logger.info("content section missing, serving defaults section=%s", section.value)
            return SECTIONS[section].default()

        try:
            return SECTIONS[section].model.model_validate(raw)
        except ValidationError as exc:
            logger.error("stored document failed validation section=%s errors=%s", section.value, exc.error_count())
            raise StoreUnavailableError(f"stored {section.value} document is invalid") from exc

    def write(self, section: Section, payload: CamelModel | dict[str, Any], *, merge: bool = False) -> Any:
        """Validate and persist a whole document.

        With ``merge`` set, top-level fields absent from ``payload`` are taken
        from the stored document (or the section default) before validation.
        """
        section = Section(section)
        entry = SECTIONS[section]
        raw = payload.model_dump(by_alias=True) if isinstance(payload, CamelModel) else payload
        if not isinstance(raw, dict):
            raise StoreValidationError(f"{section.value} document must be a JSON object")
        if merge:
            raw = {**self.read(section).to_document(), **raw}

        try:
            document = entry.model.model_validate({**raw, "lastUpdated": utc_now_iso()})
        except ValidationError as exc:
            raise StoreValidationError(_format_validation_error(section, exc)) from exc

        if section is Section.EXPERIENCE:
            _warn_on_inconsistent_current_flags(document)

        self._atomic_write(section, document.to_document())
        logger.info("content section written section=%s", section.value)
        return document

    def _load(self, section: Section) -> Any:
        path = self.path_for(section)
        try:
            contents = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise StoreNotFoundError(f"{section.value} document not found") from exc
        except OSError as exc:
            raise StoreUnavailableError(f"unable to read {section.value} document") from exc

        try:
            return json.loads(contents)
        except json.JSONDecodeError as exc:
            logger.error("stored document is not valid JSON section=%s path=%s", section.value, path)
            raise StoreUnavailableError(f"stored {section.value} document is corrupt") from exc

    def _atomic_write(self, section: Section, document: dict[str, Any]) -> None:
        path = self.path_for(section)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, indent=2, ensure_ascii=False)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(temp_name, path)
            except BaseException:
                Path(temp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.exception("content section write failed section=%s", section.value)
            raise StoreUnavailableError(f"unable to write {section.value} document") from exc


def _format_validation_error(section: Section, exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or section.value
        problems.append(f"{location}: {error.get('msg', 'invalid value')}")
    return f"invalid {section.value} document: " + "; ".join(problems)


def _warn_on_inconsistent_current_flags(document: ExperienceDocument) -> None:
    for entry in document.experiences:
        if entry.current and entry.end_date:
            logger.warning("current experience has an end date id=%s end_date=%s", entry.id, entry.end_date)


@lru_cache
def get_store() -> ContentStore:
    return ContentStore(get_settings().data_dir)

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from portfolio.core.timestamps import utc_now_iso
from portfolio.services.errors import UploadRejectedError

logger = logging.getLogger(__name__)

PROFILE_PICTURE_PREFIX = "profile-picture-"
EXTENSIONS_BY_TYPE = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}
PROFILE_PICTURE_RE = re.compile(r"^profile-picture-(\d+)-[0-9a-f]{8}\.(?:jpg|jpeg|png|webp)$", re.IGNORECASE)
SAFE_FILENAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


@dataclass(slots=True)
class StoredUpload:
    filename: str
    size: int
    content_type: str
    uploaded_at: str


class UploadStore:
    def __init__(self, uploads_dir: str | Path, *, max_bytes: int, allowed_types: list[str]) -> None:
        self.uploads_dir = Path(uploads_dir)
        self.max_bytes = max_bytes
        self.allowed_types = {content_type.lower() for content_type in allowed_types}

    def save_profile_picture(self, data: bytes, content_type: str | None) -> StoredUpload:
        normalized_type = (content_type or "").split(";", maxsplit=1)[0].strip().lower()
        if normalized_type not in self.allowed_types or normalized_type not in EXTENSIONS_BY_TYPE:
            raise UploadRejectedError("Invalid file type. Please upload JPEG, PNG, or WebP images.")
        if not data:
            raise UploadRejectedError("No file uploaded")
        if len(data) > self.max_bytes:
            raise UploadRejectedError(f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB.")

        filename = f"{PROFILE_PICTURE_PREFIX}{int(time.time() * 1000)}-{uuid4().hex[:8]}{EXTENSIONS_BY_TYPE[normalized_type]}"
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        (self.uploads_dir / filename).write_bytes(data)
        logger.info("stored profile picture filename=%s size=%s", filename, len(data))
        return StoredUpload(
            filename=filename,
            size=len(data),
            content_type=normalized_type,
            uploaded_at=utc_now_iso(),
        )

    def latest_profile_picture(self) -> str | None:
        if not self.uploads_dir.is_dir():
            return None
        candidates = []
        for path in self.uploads_dir.iterdir():
            match = PROFILE_PICTURE_RE.match(path.name)
            if match and path.is_file():
                candidates.append((int(match.group(1)), path.name))
        if not candidates:
            return None
        return max(candidates)[1]

    def resolve(self, filename: str) -> Path | None:
        if not SAFE_FILENAME_RE.match(filename):
            return None
        path = self.uploads_dir / filename
        return path if path.is_file() else None

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import httpx
import pytest

os.environ.setdefault("PF_OTEL_ENABLED", "false")

from portfolio.services.store import ContentStore  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path: Path) -> ContentStore:
    return ContentStore(tmp_path / "data")


def make_badge(
    badge_id: str = "badge-1",
    *,
    name: str = "AWS Certified Solutions Architect - Associate",
    issuer: str = "Amazon Web Services Training and Certification",
    state: str = "accepted",
    issued_at: str | None = "2023-05-10T12:00:00.000Z",
    entities: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    if entities is None:
        entities = [{"entity": {"name": issuer, "vanity_url": f"https://www.credly.com/org/{badge_id}"}}]
    return {
        "id": badge_id,
        "issued_at": issued_at,
        "expires_at": "2026-05-10T12:00:00.000Z",
        "state": state,
        "image_url": f"https://images.credly.com/images/{badge_id}.png",
        "badge_template": {
            "id": f"template-{badge_id}",
            "name": name,
            "description": f"{name} description",
            "image_url": "https://images.credly.com/images/template.png",
            "issuer": {"entities": entities},
        },
    }


class CountingHandler:
    """MockTransport handler that records calls and replays a scripted response."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self.respond = respond
        self.calls: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(str(request.url))
        return self.respond(request)


@pytest.fixture
def badges_handler() -> CountingHandler:
    badges = [
        make_badge("badge-1"),
        make_badge("badge-2", name="Microsoft Certified: Azure Fundamentals", issuer="Microsoft"),
    ]
    return CountingHandler(lambda request: httpx.Response(200, json={"data": badges}, request=request))


@pytest.fixture
def env_settings() -> Iterator[Callable[..., None]]:
    from portfolio.core.config import get_settings

    touched: list[str] = []

    def apply(**values: str) -> None:
        for key, value in values.items():
            name = f"PF_{key.upper()}"
            os.environ[name] = value
            touched.append(name)
        get_settings.cache_clear()

    yield apply

    for name in touched:
        os.environ.pop(name, None)
    get_settings.cache_clear()


@pytest.fixture
def api(store: ContentStore, tmp_path: Path, env_settings) -> Iterator[Any]:
    from portfolio.api.deps import get_cache
    from portfolio.main import app
    from portfolio.services.cache import TTLCache
    from portfolio.services.store import get_store

    env_settings(uploads_dir=str(tmp_path / "uploads"))
    cache = TTLCache()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_cache] = lambda: cache

    yield app

    app.dependency_overrides.clear()

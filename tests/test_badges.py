from __future__ import annotations

import asyncio

import httpx
import pytest

from conftest import CountingHandler, make_badge
from portfolio.services.badges import (
    CertificationService,
    CredlyClient,
    build_certification,
    fetch_badges,
    filter_badges,
)
from portfolio.services.cache import TTLCache
from portfolio.services.errors import UpstreamError
from portfolio.services.store import Section


def _client(handler: CountingHandler, clock=None) -> CredlyClient:
    return CredlyClient(
        "https://credly.test",
        response_cache=TTLCache(clock=clock),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_filter_badges_drops_incomplete_and_unaccepted_entries() -> None:
    raw = [
        make_badge("ok-1"),
        make_badge("pending", state="pending"),
        make_badge("no-entities", entities=[]),
        make_badge("no-entity-name", entities=[{"entity": {"url": "https://example.org"}}]),
        make_badge("no-issued-at", issued_at=None),
        "not-a-badge",
        make_badge("ok-2", name="Microsoft Certified: Azure Fundamentals", issuer="Microsoft"),
    ]

    kept = filter_badges(raw)
    assert [badge["id"] for badge in kept] == ["ok-1", "ok-2"]


def test_filter_badges_drops_badge_without_issuer_entities() -> None:
    badge = make_badge("no-issuer")
    del badge["badge_template"]["issuer"]["entities"]

    assert filter_badges([badge, make_badge("ok")]) == [make_badge("ok")]


def test_build_certification_maps_fields() -> None:
    certification = build_certification(make_badge("abc-123"))

    assert certification.id == "abc-123"
    assert certification.name == "AWS Certified Solutions Architect - Associate"
    assert certification.issuer == "Amazon Web Services Training and Certification"
    assert certification.issuer_url == "https://www.credly.com/org/abc-123"
    assert certification.date == "2023"
    assert certification.expires_at == "2026-05-10T12:00:00Z"
    assert certification.image_url == "https://images.credly.com/images/abc-123.png"
    assert certification.badge_url == "https://www.credly.com/badges/abc-123"
    assert certification.category == "Cloud"
    assert certification.level == "Associate"
    assert certification.color == "from-orange-500 to-orange-600"


def test_build_certification_falls_back_for_optional_fields() -> None:
    badge = make_badge("bare", entities=[{"entity": {"name": "Some Issuer"}}])
    badge["image_url"] = None
    badge["expires_at"] = None

    certification = build_certification(badge)
    assert certification.issuer_url == "#"
    assert certification.image_url == "https://images.credly.com/images/template.png"
    assert certification.expires_at is None


def test_fetch_badges_output_matches_valid_input_count(badges_handler: CountingHandler) -> None:
    certifications = asyncio.run(fetch_badges("someone", _client(badges_handler)))

    assert len(certifications) == 2
    for certification in certifications:
        assert certification.category
        assert certification.level
        assert certification.color
    assert badges_handler.calls == ["https://credly.test/users/someone/badges.json"]


def test_fetch_badges_returns_empty_list_when_nothing_is_valid() -> None:
    handler = CountingHandler(
        lambda request: httpx.Response(200, json={"data": [make_badge("x", state="pending")]}, request=request)
    )

    assert asyncio.run(fetch_badges("someone", _client(handler))) == []


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, text="unavailable"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"unexpected": True}),
    ],
)
def test_fetch_badges_raises_upstream_error_on_bad_response(response: httpx.Response) -> None:
    handler = CountingHandler(lambda request: response)

    with pytest.raises(UpstreamError):
        asyncio.run(fetch_badges("someone", _client(handler)))


def test_fetch_badges_wraps_transport_errors() -> None:
    def fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(UpstreamError):
        asyncio.run(fetch_badges("someone", _client(CountingHandler(fail))))


def test_fetch_badges_wraps_malformed_base_url(badges_handler: CountingHandler) -> None:
    client = CredlyClient(
        "http://[::1",
        client=httpx.AsyncClient(transport=httpx.MockTransport(badges_handler)),
    )

    with pytest.raises(UpstreamError):
        asyncio.run(fetch_badges("someone", client))
    assert badges_handler.calls == []


def test_service_calls_upstream_once_within_ttl(badges_handler: CountingHandler, clock) -> None:
    service = CertificationService(cache=TTLCache(clock=clock), client=_client(badges_handler, clock))

    async def run():
        first = await service.get_certifications("someone")
        clock.advance(30 * 60)
        second = await service.get_certifications("someone")
        return first, second

    first, second = asyncio.run(run())
    assert len(badges_handler.calls) == 1
    assert first.cached is False
    assert second.cached is True
    assert [c.id for c in second.certifications] == [c.id for c in first.certifications]


def test_service_force_refresh_bypasses_cache_and_writes_back(badges_handler: CountingHandler, clock) -> None:
    cache = TTLCache(clock=clock)
    service = CertificationService(cache=cache, client=_client(badges_handler, clock))

    async def run():
        await service.get_certifications("someone")
        refreshed = await service.get_certifications("someone", force_refresh=True)
        cached = await service.get_certifications("someone")
        return refreshed, cached

    refreshed, cached = asyncio.run(run())
    assert len(badges_handler.calls) == 2
    assert refreshed.cached is False
    assert cached.cached is True


def test_service_falls_back_to_expired_cache_on_upstream_failure(clock) -> None:
    responses = iter(
        [
            httpx.Response(200, json={"data": [make_badge("badge-1")]}),
            httpx.Response(500, text="upstream down"),
        ]
    )
    handler = CountingHandler(lambda request: next(responses))
    service = CertificationService(cache=TTLCache(clock=clock), client=_client(handler, clock))

    async def run():
        await service.get_certifications("someone")
        clock.advance(2 * 60 * 60)
        return await service.get_certifications("someone")

    result = asyncio.run(run())
    assert len(handler.calls) == 2
    assert result.cached is True
    assert result.warning == "Using cached data due to API error"
    assert [c.id for c in result.certifications] == ["badge-1"]


def test_service_falls_back_to_persisted_snapshot(store, badges_handler: CountingHandler) -> None:
    asyncio.run(
        CertificationService(cache=TTLCache(), client=_client(badges_handler), store=store).get_certifications("someone")
    )
    assert store.exists(Section.CERTIFICATIONS)

    failing = CountingHandler(lambda request: httpx.Response(502, text="bad gateway"))
    restarted = CertificationService(cache=TTLCache(), client=_client(failing), store=store)
    result = asyncio.run(restarted.get_certifications("someone"))

    assert result.cached is True
    assert result.warning is not None
    assert len(result.certifications) == 2


def test_service_raises_without_any_fallback(store) -> None:
    failing = CountingHandler(lambda request: httpx.Response(500, text="down"))
    service = CertificationService(cache=TTLCache(), client=_client(failing), store=store)

    with pytest.raises(UpstreamError):
        asyncio.run(service.get_certifications("someone"))


def test_refresh_invalidates_and_refetches(badges_handler: CountingHandler, clock) -> None:
    cache = TTLCache(clock=clock)
    service = CertificationService(cache=cache, client=_client(badges_handler, clock))

    async def run():
        await service.get_certifications("someone")
        return await service.refresh("someone")

    result = asyncio.run(run())
    assert len(badges_handler.calls) == 2
    assert result.cached is False
    assert cache.has("certifications:someone")

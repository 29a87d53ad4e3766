from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx
from fastapi.concurrency import run_in_threadpool

from portfolio.core.timestamps import parse_timestamp, to_iso, utc_now_iso
from portfolio.schemas.certifications import Certification, CertificationSnapshot
from portfolio.services.cache import TTLCache, certifications_cache_key
from portfolio.services.classification import DEFAULT_RULES, ClassificationRules, classify
from portfolio.services.errors import StoreError, UpstreamError
from portfolio.services.store import ContentStore, Section

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; Portfolio-Bot/1.0)"
DEFAULT_BADGE_URL_BASE = "https://www.credly.com/badges"


class CredlyClient:
    """Reads public badge listings, memoising raw responses for a short window."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        response_cache_ttl_minutes: float = 5.0,
        response_cache: TTLCache | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.response_cache_ttl_minutes = response_cache_ttl_minutes
        self.response_cache = response_cache if response_cache is not None else TTLCache()
        self._client = client

    def badges_url(self, username: str) -> str:
        return f"{self.base_url}/users/{quote(username, safe='')}/badges.json"

    async def fetch_badges(self, username: str, *, use_cache: bool = True) -> list[dict[str, Any]]:
        url = self.badges_url(username)
        if use_cache:
            cached = self.response_cache.get(url)
            if cached is not None:
                return cached

        if self._client is not None:
            response = await self._get(self._client, url)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await self._get(client, url)

        if response.status_code != 200:
            raise UpstreamError(f"badge service answered status={response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError("badge service returned a non-JSON body") from exc

        badges = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(badges, list):
            raise UpstreamError("badge service response has no data list")

        self.response_cache.set(url, badges, self.response_cache_ttl_minutes)
        return badges

    async def _get(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        try:
            return await client.get(url, headers={"User-Agent": USER_AGENT, "Accept": "application/json"})
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise UpstreamError(f"badge service unreachable: {exc.__class__.__name__}") from exc


def filter_badges(raw_badges: list[Any]) -> list[dict[str, Any]]:
    accepted: list[dict[str, Any]] = []
    for badge in raw_badges:
        reason = _rejection_reason(badge)
        if reason is not None:
            badge_id = badge.get("id") if isinstance(badge, dict) else None
            logger.warning("dropping badge id=%s reason=%s", badge_id, reason)
            continue
        accepted.append(badge)
    return accepted


def _rejection_reason(badge: Any) -> str | None:
    if not isinstance(badge, dict):
        return "not_an_object"
    if badge.get("state") != "accepted":
        return "not_accepted"
    if not _as_text(badge.get("issued_at")):
        return "missing_issued_at"
    template = badge.get("badge_template")
    if not isinstance(template, dict) or not _as_text(template.get("name")):
        return "missing_template_name"
    if _issuer_entity(template) is None:
        return "missing_issuer"
    return None


def _issuer_entity(template: dict[str, Any]) -> dict[str, Any] | None:
    issuer = template.get("issuer")
    if not isinstance(issuer, dict):
        return None
    entities = issuer.get("entities")
    if not isinstance(entities, list) or not entities:
        return None
    first = entities[0]
    entity = first.get("entity") if isinstance(first, dict) else None
    if not isinstance(entity, dict) or not _as_text(entity.get("name")):
        return None
    return entity


def build_certification(
    badge: dict[str, Any],
    *,
    badge_url_base: str = DEFAULT_BADGE_URL_BASE,
    rules: ClassificationRules = DEFAULT_RULES,
) -> Certification:
    template = badge["badge_template"]
    entity = _issuer_entity(template)
    if entity is None:
        raise ValueError("badge has no issuer entity")

    issued_at = parse_timestamp(badge.get("issued_at"))
    if issued_at is None:
        raise ValueError(f"unparseable issued_at: {badge.get('issued_at')!r}")
    expires_at = parse_timestamp(badge.get("expires_at"))

    name = _as_text(template.get("name")) or ""
    issuer_name = _as_text(entity.get("name")) or ""
    classification = classify(name, issuer_name, rules)
    badge_id = str(badge.get("id") or "")

    return Certification(
        id=badge_id,
        name=name,
        issuer=issuer_name,
        issuer_url=_as_text(entity.get("vanity_url")) or _as_text(entity.get("url")) or "#",
        date=f"{issued_at.year:04d}",
        expires_at=to_iso(expires_at) if expires_at else None,
        image_url=_as_text(badge.get("image_url")) or _as_text(template.get("image_url")) or "",
        description=_as_text(template.get("description")) or "",
        badge_url=f"{badge_url_base.rstrip('/')}/{badge_id}",
        category=classification.category,
        level=classification.level,
        color=classification.color,
    )


async def fetch_badges(
    identity: str,
    client: CredlyClient,
    *,
    use_cache: bool = True,
    badge_url_base: str = DEFAULT_BADGE_URL_BASE,
) -> list[Certification]:
    raw_badges = await client.fetch_badges(identity, use_cache=use_cache)
    certifications: list[Certification] = []
    for badge in filter_badges(raw_badges):
        try:
            certifications.append(build_certification(badge, badge_url_base=badge_url_base))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("failed to map badge id=%s error=%s", badge.get("id"), exc)
    logger.info(
        "badge ingestion complete identity=%s received=%s kept=%s",
        identity,
        len(raw_badges),
        len(certifications),
    )
    return certifications


@dataclass(slots=True)
class CertificationsResult:
    certifications: list[Certification] = field(default_factory=list)
    last_updated: str | None = None
    cached: bool = False
    warning: str | None = None


class CertificationService:
    def __init__(
        self,
        *,
        cache: TTLCache,
        client: CredlyClient,
        store: ContentStore | None = None,
        cache_ttl_minutes: float = 60.0,
        badge_url_base: str = DEFAULT_BADGE_URL_BASE,
    ) -> None:
        self.cache = cache
        self.client = client
        self.store = store
        self.cache_ttl_minutes = cache_ttl_minutes
        self.badge_url_base = badge_url_base

    async def get_certifications(self, username: str, *, force_refresh: bool = False) -> CertificationsResult:
        key = certifications_cache_key(username)
        # Captured before ``get`` purges an expired entry.
        stale = self.cache.get_stale(key)

        if not force_refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return CertificationsResult(
                    certifications=list(cached.certifications),
                    last_updated=cached.last_updated,
                    cached=True,
                )

        return await self._ingest(username, use_transport_cache=not force_refresh, stale=stale)

    async def refresh(self, username: str) -> CertificationsResult:
        key = certifications_cache_key(username)
        stale = self.cache.get_stale(key)
        self.cache.delete(key)
        return await self._ingest(username, use_transport_cache=False, stale=stale)

    async def _ingest(
        self,
        username: str,
        *,
        use_transport_cache: bool,
        stale: CertificationSnapshot | None,
    ) -> CertificationsResult:
        try:
            certifications = await fetch_badges(
                username,
                self.client,
                use_cache=use_transport_cache,
                badge_url_base=self.badge_url_base,
            )
        except UpstreamError as exc:
            logger.warning("badge ingestion failed username=%s error=%s", username, exc)
            fallback = stale or await run_in_threadpool(self._persisted_snapshot, username)
            if fallback is None:
                raise
            return CertificationsResult(
                certifications=list(fallback.certifications),
                last_updated=fallback.last_updated,
                cached=True,
                warning="Using cached data due to API error",
            )

        snapshot = CertificationSnapshot(
            last_updated=utc_now_iso(),
            username=username,
            certifications=certifications,
        )
        self.cache.set(certifications_cache_key(username), snapshot, self.cache_ttl_minutes)
        await run_in_threadpool(self._persist_snapshot, snapshot)
        return CertificationsResult(
            certifications=list(certifications),
            last_updated=snapshot.last_updated,
            cached=False,
        )

    def _persisted_snapshot(self, username: str) -> CertificationSnapshot | None:
        if self.store is None:
            return None
        try:
            snapshot = self.store.read(Section.CERTIFICATIONS)
        except StoreError as exc:
            logger.warning("persisted certifications unavailable error=%s", exc)
            return None
        if snapshot.username != username or snapshot.last_updated is None:
            return None
        return snapshot

    def _persist_snapshot(self, snapshot: CertificationSnapshot) -> None:
        if self.store is None:
            return
        try:
            self.store.write(Section.CERTIFICATIONS, snapshot)
        except StoreError as exc:
            logger.warning("unable to persist certifications snapshot error=%s", exc)


def _as_text(value: Any) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None

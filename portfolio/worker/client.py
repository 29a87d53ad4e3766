from __future__ import annotations

from typing import Any

import httpx


class RefreshClient:
    def __init__(
        self,
        base_url: str,
        cron_secret: str | None = None,
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.headers = {"Authorization": f"Bearer {cron_secret}"} if cron_secret else {}
        self._transport = transport

    async def refresh_certifications(self) -> dict[str, Any]:
        return await self._post("/cron/refresh-certifications")

    async def refresh_projects(self) -> dict[str, Any]:
        return await self._post("/cron/refresh-projects")

    async def _post(self, path: str) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            response = await client.post(f"{self.base_url}{path}", headers=self.headers)
            response.raise_for_status()
            return response.json()

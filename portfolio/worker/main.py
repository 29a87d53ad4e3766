from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from opentelemetry import trace

from portfolio.core.config import get_worker_settings
from portfolio.core.telemetry import configure_logging, setup_worker_telemetry, shutdown_worker_telemetry
from portfolio.worker.client import RefreshClient

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(slots=True)
class RefreshTask:
    name: str
    interval_seconds: float
    run: Callable[[], Awaitable[dict[str, Any]]]
    last_run_at: float | None = None

    def due(self, now: float) -> bool:
        return self.last_run_at is None or now - self.last_run_at >= self.interval_seconds


def build_tasks(client: RefreshClient, *, certifications_interval: float, projects_interval: float) -> list[RefreshTask]:
    return [
        RefreshTask("certifications", certifications_interval, client.refresh_certifications),
        RefreshTask("projects", projects_interval, client.refresh_projects),
    ]


async def run_due_tasks(tasks: list[RefreshTask], *, now: float) -> list[str]:
    """Run every due task; a task is only marked as run after it succeeds."""
    ran: list[str] = []
    for task in tasks:
        if not task.due(now):
            continue
        with tracer.start_as_current_span("worker.refresh") as span:
            span.set_attribute("refresh.task", task.name)
            result = await task.run()
        logger.info("refresh task=%s result=%s", task.name, result.get("refreshResult"))
        task.last_run_at = now
        ran.append(task.name)
    return ran


async def run_worker() -> None:
    settings = get_worker_settings()
    configure_logging()
    telemetry_runtime = setup_worker_telemetry(settings)
    client = RefreshClient(
        settings.api_base_url,
        settings.cron_secret,
        timeout_seconds=settings.request_timeout_seconds,
    )
    tasks = build_tasks(
        client,
        certifications_interval=settings.certifications_refresh_interval_seconds,
        projects_interval=settings.projects_refresh_interval_seconds,
    )

    backoff = settings.poll_interval_seconds
    try:
        while True:
            try:
                with tracer.start_as_current_span("worker.poll_cycle"):
                    await run_due_tasks(tasks, now=time.monotonic())
                backoff = settings.poll_interval_seconds
                await asyncio.sleep(settings.poll_interval_seconds)
            except Exception as exc:  # pragma: no cover - keep the loop alive
                jitter = random.uniform(0.0, 0.5)
                sleep_for = min(backoff * (2.0 + jitter), settings.max_backoff_seconds)
                logger.exception("worker iteration failed: %s; retry in %.1fs", exc, sleep_for)
                await asyncio.sleep(sleep_for)
                backoff = sleep_for
    finally:
        shutdown_worker_telemetry(telemetry_runtime)


if __name__ == "__main__":
    asyncio.run(run_worker())

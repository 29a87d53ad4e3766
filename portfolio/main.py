from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI
from starlette.requests import Request

from portfolio.api.router import api_router
from portfolio.core.config import get_settings
from portfolio.core.telemetry import TelemetryRuntime, configure_logging, setup_api_telemetry, shutdown_api_telemetry
from portfolio.services.badges import CredlyClient
from portfolio.services.cache import TTLCache

settings = get_settings()
_telemetry_runtime: TelemetryRuntime | None = None
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        yield
    finally:
        if _telemetry_runtime is not None:
            shutdown_api_telemetry(app, _telemetry_runtime)
        app.state.cache.clear()


configure_logging()
app = FastAPI(title=settings.app_name, lifespan=lifespan)
# One cache per process, shared by every request through app.state.
app.state.cache = TTLCache()
app.state.credly_client = CredlyClient(
    settings.credly_base_url,
    timeout_seconds=settings.upstream_timeout_seconds,
    response_cache_ttl_minutes=settings.upstream_response_cache_ttl_minutes,
)
_telemetry_runtime = setup_api_telemetry(app, settings)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started_at = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started_at) * 1000.0
    logger.info(
        "http request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


app.include_router(api_router)

"""FastAPI application entrypoint for the story publishing service."""

from __future__ import annotations

from time import perf_counter
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from storysite.accounts.router import router as accounts_router
from storysite.auth.middleware import AUTH_CONTEXT_KEY, resolve_request_auth_context
from storysite.auth.router import router as auth_router
from storysite.core.config import get_settings
from storysite.core.errors import StorysiteError
from storysite.core.logger import bind_request_context, clear_request_context, get_logger
from storysite.core.metrics import record_http_request, record_rate_limit_block, render_prometheus_metrics
from storysite.core.observability import capture_exception, init_sentry, sentry_scope
from storysite.core.rate_limit import RateLimitDecision, get_ip_rate_limiter
from storysite.media.router import references_router as media_references_router
from storysite.media.router import router as media_router
from storysite.sites.router import router as sites_router
from storysite.storage.db import load_models
from storysite.storage.db import test_connection as test_db_connection
from storysite.storage.redis_client import test_connection as test_redis_connection
from storysite.stories.router import router as stories_router


settings = get_settings()
logger = get_logger("storysite.api")

app = FastAPI(title=settings.app_name, version=settings.app_version)


def _resolve_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _apply_rate_limit_headers(response: Response, decision: RateLimitDecision) -> None:
    response.headers["x-rate-limit-limit"] = str(decision.limit)
    response.headers["x-rate-limit-remaining"] = str(decision.remaining)
    response.headers["x-rate-limit-reset"] = str(decision.reset_seconds)


def _site_domain(path: str) -> Optional[str]:
    if not path.startswith("/sites/"):
        return None
    return path[len("/sites/") :].split("/", 1)[0] or None


def _metrics_path(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _rate_limit_scope(path: str) -> str:
    return "sites" if path.startswith("/sites") else "api"


def _rate_limited(decision: RateLimitDecision) -> JSONResponse:
    record_rate_limit_block(kind="ip")
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded",
            "code": "rate_limited",
            "limit": decision.limit,
            "remaining": decision.remaining,
            "reset_seconds": decision.reset_seconds,
        },
    )


def _ip_rate_limit_active() -> bool:
    return settings.ip_rate_limit_enabled and settings.env.lower() in {"prod", "production"}


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    started_at = perf_counter()
    path = request.url.path
    request_id = request.headers.get("x-request-id") or str(uuid4())
    auth_context = resolve_request_auth_context(request)
    setattr(request.state, AUTH_CONTEXT_KEY, auth_context)

    account_id = auth_context.account_id if auth_context is not None else None
    bind_request_context(request_id=request_id, account_id=account_id, site_domain=_site_domain(path))

    response = None
    decision = None
    status_code = 500
    try:
        with sentry_scope(account_id=account_id, request_id=request_id):
            if _ip_rate_limit_active():
                decision = get_ip_rate_limiter().check(ip=_resolve_client_ip(request), scope=_rate_limit_scope(path))
            if decision is not None and not decision.allowed:
                response = _rate_limited(decision)
            else:
                response = await call_next(request)
        status_code = int(response.status_code)
    finally:
        if settings.metrics_enabled:
            record_http_request(
                method=request.method,
                path=_metrics_path(request),
                status_code=status_code,
                duration_seconds=perf_counter() - started_at,
            )
        clear_request_context()

    if decision is not None:
        _apply_rate_limit_headers(response, decision)
    response.headers["x-request-id"] = request_id
    return response


@app.exception_handler(StorysiteError)
async def storysite_error_handler(request: Request, exc: StorysiteError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("request_failed", path=request.url.path, code=exc.code, error=str(exc))
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    capture_exception(exc)
    logger.error("unhandled_exception", path=request.url.path, error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Internal server error", "code": "internal_error"})


@app.on_event("startup")
def on_startup() -> None:
    load_models()
    sentry_enabled = init_sentry()
    logger.info(
        "application_startup",
        env=settings.env,
        version=settings.app_version,
        sentry_enabled=sentry_enabled,
        metrics_enabled=settings.metrics_enabled,
        ip_rate_limit_enabled=settings.ip_rate_limit_enabled,
        storage_provider=settings.storage_provider,
        platform_domain_suffix=settings.platform_domain_suffix,
    )


@app.get("/health")
def health() -> JSONResponse:
    db_ok, db_error = test_db_connection()
    redis_ok, redis_error = test_redis_connection()

    healthy = db_ok and redis_ok
    status = "ok" if healthy else "degraded"

    payload = {
        "status": status,
        "env": settings.env,
        "services": {
            "database": {"ok": db_ok, "error": db_error},
            "redis": {"ok": redis_ok, "error": redis_error},
            "storage": {"provider": settings.storage_provider},
        },
    }

    return JSONResponse(content=payload, status_code=200 if healthy else 503)


@app.get("/version")
def version() -> dict[str, str]:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "env": settings.env,
    }


@app.get("/metrics")
def metrics() -> PlainTextResponse:
    if not settings.metrics_enabled:
        return PlainTextResponse("metrics disabled\n", status_code=404)

    payload = render_prometheus_metrics(
        app_name=settings.app_name,
        app_version=settings.app_version,
        env=settings.env,
    )
    return PlainTextResponse(
        payload,
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


app.include_router(auth_router)
app.include_router(accounts_router)
app.include_router(stories_router)
app.include_router(media_router)
app.include_router(media_references_router)
app.include_router(sites_router)

"""
HTTP application: security headers, HTTPS enforcement, health, and the engine mount.
"""

import importlib
from contextlib import asynccontextmanager
from typing import Optional
import backoff
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from loguru import logger
from starlette.types import ASGIApp
from idp_gateway.config import settings
from idp_gateway.constants import REDIS_CONNECT_INTERVAL_SECONDS, REDIS_CONNECT_MAX_TRIES
from idp_gateway.exceptions import BackendUnavailable
from idp_gateway.provider import ProviderConfiguration, build_provider_configuration
from idp_gateway.router import router
from idp_gateway.safe_redis import SafeRedis

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-XSS-Protection": "0",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}


@backoff.on_exception(
    backoff.constant,
    BackendUnavailable,
    jitter=None,
    interval=REDIS_CONNECT_INTERVAL_SECONDS,
    max_tries=REDIS_CONNECT_MAX_TRIES,
)
async def wait_for_redis(client: SafeRedis):
    await client.ping()


def load_engine(factory_path: str, configuration: ProviderConfiguration) -> ASGIApp:
    """
    Import "package.module:factory" and build the engine app from the provider configuration.
    """
    module_name, _, attr = factory_path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Engine factory must look like 'package.module:factory', got {factory_path!r}")
    factory = getattr(importlib.import_module(module_name), attr)
    engine = factory(configuration)
    logger.info(f"Loaded protocol engine from {factory_path}")
    return engine


def is_secure(request: Request, trust_proxy: bool) -> bool:
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-proto")
        if forwarded:
            return forwarded.split(",")[0].strip().lower() == "https"
    return request.url.scheme == "https"


def create_app(
    engine: Optional[ASGIApp] = None,
    redis_client: Optional[SafeRedis] = None,
    engine_factory: Optional[str] = None,
) -> FastAPI:
    """
    Build the front end. The engine's ASGI app, given directly or built by the
    engine factory (ENGINE_FACTORY by default), is mounted last and handles every
    path not matched here, including its own 404s.
    """
    client = redis_client if redis_client is not None else settings.redis_client

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Waiting for redis...")
        await wait_for_redis(client)
        logger.success(f"Redis is reachable, serving issuer {settings.issuer}")
        yield
        await client.close()

    app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.redis = client
    configuration = build_provider_configuration(settings)
    app.state.provider_configuration = configuration

    @app.middleware("http")
    async def require_https(request: Request, call_next):
        if is_secure(request, settings.trust_proxy):
            return await call_next(request)
        if request.method in ("GET", "HEAD"):
            return RedirectResponse(
                url=str(request.url.replace(scheme="https")),
                status_code=status.HTTP_302_FOUND,
            )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "invalid_request",
                "error_description": "do yourself a favor and only use https",
            },
        )

    # Registered last so it wraps the https check and decorates its responses too.
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    app.include_router(router)
    factory_path = engine_factory or settings.engine_factory
    if engine is None and factory_path:
        engine = load_engine(factory_path, configuration)
    if engine is not None:
        app.mount("/", engine)
    else:
        logger.warning("No protocol engine configured, only front-end routes are served")
    return app

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
import uvicorn

from .core.config import Config, setup_logging
from .core.access import AccessPolicy, AuthorizationDenied
from .core.addresses import ClientAddress, rate_limit_key
from .edge_routes import create_hello_router, create_monitor_router
from .monitor_service import MonitorService
from .security_headers import SecurityHeadersMiddleware

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("ulink.access")

FAVICON_PATH = "/favicon.ico"
FAVICON_ALLOW = "GET, HEAD, OPTIONS"


def client_rate_limit_key(request: Request) -> str:
    """Rate limit key: first X-Forwarded-For hop behind a proxy, else the peer."""
    return rate_limit_key(ClientAddress.from_request(request))


def create_app(config: Optional[Config] = None) -> FastAPI:
    """
    Build the edge service application.

    All per-instance state (limiter, access policy, monitor cache) hangs off
    the returned app; nothing is kept at module level.
    """
    if config is None:
        config = Config.from_env()

    access_policy = AccessPolicy.from_config(config)
    monitor_service = MonitorService(refresh_seconds=config.monitor_refresh_seconds)
    limiter = Limiter(key_func=client_rate_limit_key)

    favicon: Optional[bytes] = None
    if config.favicon_file:
        favicon = config.favicon_file.read_bytes()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(f"Starting µLink on {config.listen_host}:{config.listen_port}")
        logger.info(f"  Static files: {config.static_dir}")
        logger.info(f"  /hello rate limit: {config.rate_limit}")
        logger.info(f"  Monitor trusted addresses: {', '.join(config.trusted_addresses) or '(none)'}")
        if config.monitor_allow_loopback:
            logger.info("  ✓ Monitor accepts any loopback address")
        monitor_service.prime()

        yield

        # Shutdown
        logger.info("Shutting down µLink")

    app = FastAPI(
        title="µLink",
        description="Minimal HTTP edge service",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.config = config
    app.state.limiter = limiter
    app.state.access_policy = access_policy
    app.state.monitor_service = monitor_service

    @app.exception_handler(AuthorizationDenied)
    async def authorization_denied_handler(request: Request, exc: AuthorizationDenied):
        logger.warning(f"Denied {request.url.path} to {exc.peer}: {exc.reason}")
        return JSONResponse({"detail": "Unauthorized"}, status_code=401)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning(f"Rate limit exceeded for {client_rate_limit_key(request)}: {exc.detail}")
        return JSONResponse(
            {
                "detail": "Too many requests. Please try again later.",
                "error": "rate_limit_exceeded"
            },
            status_code=429,
        )

    # Middleware: the last one added runs first, so this reads bottom-up
    app.add_middleware(SecurityHeadersMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET"],
        # only basic headers to keep the surface small
        allow_headers=["Origin", "Content-Type", "Accept"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        latency_ms = (time.perf_counter() - started) * 1000
        peer = request.client.host if request.client else "-"
        access_logger.info(
            f"[{time.strftime('%H:%M:%S')}] [{peer}] {response.status_code} - "
            f"{latency_ms:.3f}ms {request.method} {request.url.path}"
        )
        return response

    # favicon goes outside the access log so icon requests are not logged
    @app.middleware("http")
    async def serve_favicon(request: Request, call_next):
        if request.url.path != FAVICON_PATH:
            return await call_next(request)

        if request.method not in ("GET", "HEAD"):
            status = 200 if request.method == "OPTIONS" else 405
            return Response(status_code=status, headers={"Allow": FAVICON_ALLOW})

        if favicon is None:
            return Response(status_code=204)
        return Response(
            content=favicon,
            media_type="image/x-icon",
            headers={"Cache-Control": "public, max-age=31536000"},
        )

    # Routes; static files are mounted last so they never shadow them
    app.include_router(create_monitor_router(config, access_policy, monitor_service))
    app.include_router(create_hello_router(config, limiter))
    app.mount("/", StaticFiles(directory=config.static_dir, html=True), name="static")

    return app


def serve(config: Config):
    """Run the service until interrupted."""
    uvicorn.run(
        create_app(config),
        host=config.listen_host,
        port=config.listen_port,
        log_level=config.log_level.lower(),
        access_log=False,
    )


def main():
    config = Config.from_env()
    setup_logging(config)
    serve(config)


if __name__ == "__main__":
    main()

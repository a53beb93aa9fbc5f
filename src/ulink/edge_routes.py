"""
API Routes for the edge service

/hello echoes the caller's observed address(es); /api/monitor serves
process metrics to local callers only.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from slowapi import Limiter

from .core.access import AccessPolicy
from .core.addresses import ClientAddress, resolve_address
from .monitor_service import MonitorService, render_dashboard


def create_monitor_router(config, access_policy: AccessPolicy, monitor_service: MonitorService):
    """
    Create the router for the local-only monitor endpoint.

    Args:
        config: Config instance (dashboard settings)
        access_policy: AccessPolicy deciding who counts as local
        monitor_service: MonitorService providing statistics

    Returns:
        APIRouter with /api/monitor
    """
    router = APIRouter(prefix="/api", tags=["monitor"])

    def require_local_access(request: Request):
        # peer only; X-Forwarded-For is never trusted here
        peer = request.client.host if request.client else ""
        access_policy.authorize(peer)

    @router.get("/monitor", dependencies=[Depends(require_local_access)])
    def monitor(request: Request):
        """Statistics as JSON when asked for, otherwise the HTML dashboard."""
        accept = request.headers.get("accept", "")
        if config.monitor_api_only or "application/json" in accept:
            return JSONResponse(monitor_service.get_stats().to_dict())

        return HTMLResponse(render_dashboard(
            title=config.monitor_title,
            refresh_seconds=config.monitor_refresh_seconds,
            font_url=config.monitor_font_url,
            chartjs_url=config.monitor_chartjs_url,
        ))

    return router


def create_hello_router(config, limiter: Limiter):
    """
    Create the router for the rate-limited address echo endpoint.

    Args:
        config: Config instance (rate limit)
        limiter: slowapi Limiter shared with the application state

    Returns:
        APIRouter with /hello
    """
    router = APIRouter(tags=["hello"])

    @router.get("/hello", response_class=PlainTextResponse)
    @limiter.limit(config.rate_limit)
    async def hello(request: Request):
        address = ClientAddress.from_request(request)
        return PlainTextResponse(resolve_address(address.peer, address.forwarded))

    return router

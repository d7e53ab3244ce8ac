"""FastAPI route handlers."""

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse, RedirectResponse

from core.config import Config
from core.exceptions import ProxyError
from core.protocols import RequestLogger
from core.router import base_url
from services.sitemap import render_sitemap

ROBOTS_TEMPLATE = "User-agent: *\nAllow: /\n\nSitemap: {base}/sitemap.xml"


def _public_base_url(request: Request) -> str:
    """Origin the client used to reach us (https only when TLS terminated here)."""
    host = request.headers.get("host") or request.url.netloc
    scheme = "https" if request.url.scheme == "https" else "http"
    return base_url(scheme, host)


def _has_body(request: Request) -> bool:
    headers = request.headers
    return "content-length" in headers or "transfer-encoding" in headers


def _error_response(exc: ProxyError, route: str, logger: RequestLogger) -> Response:
    """Plain-text 500 carrying the error description."""
    message = str(exc)
    logger.log_error(route, 500, message)
    return PlainTextResponse(message, status_code=500)


async def handle_request(
    request: Request,
    path: str,
    config: Config,
    logger: RequestLogger,
) -> Response:
    """Dispatch every inbound request to its handler."""
    logger.log_request(request.method, str(request.url))
    decision = request.app.state.route_decider.decide(path)

    if decision.route == "root":
        return handle_root(request, config)
    if decision.route == "sitemap":
        return await handle_sitemap(request)
    if decision.route == "robots":
        return handle_robots(request)
    return await handle_proxy(request, decision.path, logger)


def handle_root(request: Request, config: Config) -> Response:
    """Redirect the bare domain to the configured homepage."""
    url = f"{_public_base_url(request)}/{config.site.slug}"
    return RedirectResponse(url, status_code=301)


def handle_robots(request: Request) -> Response:
    """Serve a permissive robots.txt pointing at our sitemap."""
    content = ROBOTS_TEMPLATE.format(base=_public_base_url(request))
    return Response(content=content, media_type="text/plain")


async def handle_sitemap(request: Request) -> Response:
    """Serve sitemap.xml built from the backend collection."""
    builder = request.app.state.sitemap_builder
    entries = await builder.build(_public_base_url(request))
    return Response(content=render_sitemap(entries), media_type="application/xml")


async def handle_proxy(request: Request, path: str, logger: RequestLogger) -> Response:
    """Relay the request to the site backend."""
    proxy_service = request.app.state.proxy_service
    prepared = proxy_service.prepare(
        request.method,
        request.url.path,
        request.url.query,
        request.headers.raw,
        request.stream() if _has_body(request) else None,
    )
    try:
        return await proxy_service.proxy(path, prepared)
    except ProxyError as e:
        return _error_response(e, path, logger)

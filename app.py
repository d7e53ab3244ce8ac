"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from api.handlers import handle_request
from core.config import Config
from core.headers import HeaderBuilder
from core.inject import HtmlInjector
from core.protocols import RequestLogger
from core.router import RouteDecider
from core.transform import ResponseTransformer
from services.proxy_service import ProxyService
from services.sitemap import SitemapBuilder
from services.upstream import BackendClient, create_http_client

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = create_http_client(transport)
        backend = BackendClient(client, config.site.domain)
        injector = HtmlInjector(
            config.site.google_site_verification,
            config.site.page_title,
            config.site.page_description,
        )
        app.state.route_decider = RouteDecider()
        app.state.proxy_service = ProxyService(
            backend=backend,
            transformer=ResponseTransformer(injector),
            header_builder=HeaderBuilder(),
            logger=logger,
        )
        app.state.sitemap_builder = SitemapBuilder(backend, config.site, logger)
        try:
            yield
        finally:
            await client.aclose()

    app = FastAPI(
        title="Potion Proxy",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.api_route("/{path:path}", methods=PROXY_METHODS)
    async def proxy_all(request: Request, path: str):
        return await handle_request(request, path, config, logger)

    return app

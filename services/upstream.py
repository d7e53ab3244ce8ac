"""HTTP client for the site backend."""

import json
from typing import Any
from urllib.parse import quote_plus

import httpx

from core.exceptions import ConfigurationError, MalformedUpstreamJSON, UpstreamUnreachable
from core.request_types import ProxyRequest

IMAGE_PREFIX = "/image/"

# Backend API calls are made as a desktop browser
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
API_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "User-Agent": BROWSER_USER_AGENT,
}


def escape_image_url(url: str, domain: str) -> str:
    """Escape the nested URL of a backend image-proxy path.

    ``https://site/image/https://cdn/a.png`` becomes
    ``https://site/image/https%3A%2F%2Fcdn%2Fa.png``. URLs without the
    ``<domain>/image/https://`` marker are returned unchanged.
    """
    marker = domain + IMAGE_PREFIX
    start = url.find(marker + "https://")
    if start == -1:
        return url
    split = start + len(marker)
    return url[:split] + quote_plus(url[split:], safe="")


def create_http_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Build the shared outbound client; redirects are relayed, never followed."""
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=None,
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
        transport=transport,
    )


class BackendClient:
    """Issue proxied and API requests against the site backend."""

    def __init__(self, client: httpx.AsyncClient, domain: str) -> None:
        if not domain:
            raise ConfigurationError("site.domain is not configured")
        self._client = client
        self._domain = domain.rstrip("/")

    @property
    def domain(self) -> str:
        return self._domain

    def build_target_url(self, path: str, query: str = "") -> str:
        """Map an inbound path and query onto the backend origin."""
        if not path.startswith("/"):
            path = "/" + path
        url = f"{self._domain}{path}"
        if query:
            url += f"?{query}"
        return escape_image_url(url, self._domain)

    async def send(self, request: ProxyRequest) -> httpx.Response:
        """Send a proxied request and return the unread, streaming response.

        The caller owns the response and must close it.
        """
        upstream = self._client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body,
        )
        try:
            return await self._client.send(upstream, stream=True)
        except httpx.RequestError as e:
            raise UpstreamUnreachable(str(e) or type(e).__name__, url=request.url) from e

    async def post_api(self, endpoint: str, payload: dict[str, Any]) -> Any:
        """POST a JSON payload to a backend API endpoint and parse the reply."""
        url = f"{self._domain}{endpoint}"
        try:
            response = await self._client.post(url, json=payload, headers=API_HEADERS)
        except httpx.RequestError as e:
            raise UpstreamUnreachable(
                f"failed to send request: {str(e) or type(e).__name__}", url=url
            ) from e

        try:
            return json.loads(response.content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedUpstreamJSON(
                f"failed to parse JSON from {endpoint} (status {response.status_code}): {e}"
            ) from e

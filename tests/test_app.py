import gzip
import json
from datetime import date

import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from services.sitemap import LOAD_PAGE_CHUNK_ENDPOINT, QUERY_COLLECTION_ENDPOINT

from conftest import ROOT_PAGE_ID

HTML = b"<html><head><title>Old</title></head><body>page</body></html>"


def raw_response(status_code, headers=None, body=b""):
    """Unread backend response, as a real transport would return it."""
    return httpx.Response(status_code, headers=headers, stream=httpx.ByteStream(body))


class ResetMidBody(httpx.AsyncByteStream):
    """Backend body that drops the connection after the first chunk."""

    async def __aiter__(self):
        yield b"<html><head>"
        raise httpx.ReadError("connection reset mid-body")


class FakeBackend:
    """MockTransport handler serving canned responses by path."""

    def __init__(self):
        self.routes: dict[str, httpx.Response] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path in self.routes:
            return self.routes[request.url.path]
        return raw_response(404, {"Content-Type": "text/plain"}, b"not found")


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(config, logger, backend):
    app = create_app(config, logger, transport=httpx.MockTransport(backend))
    with TestClient(app, base_url="http://example.com") as test_client:
        yield test_client


class TestRouting:
    def test_root_redirects_to_slug(self, client, backend):
        response = client.get("/", follow_redirects=False)

        assert response.status_code == 301
        assert response.headers["location"] == "http://example.com/blog"
        assert backend.requests == []

    def test_root_redirect_uses_https_for_tls_connections(self, config, logger, backend):
        app = create_app(config, logger, transport=httpx.MockTransport(backend))
        with TestClient(app, base_url="https://example.com") as tls_client:
            response = tls_client.get("/", follow_redirects=False)

        assert response.headers["location"] == "https://example.com/blog"

    def test_robots(self, client):
        response = client.get("/robots.txt")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == (
            "User-agent: *\nAllow: /\n\nSitemap: http://example.com/sitemap.xml"
        )

    def test_requests_are_logged(self, client, logger):
        client.get("/robots.txt")

        assert logger.requests == [("GET", "http://example.com/robots.txt")]


class TestSitemap:
    def test_sitemap_lists_homepage_and_pages(self, client, backend):
        backend.routes[LOAD_PAGE_CHUNK_ENDPOINT] = httpx.Response(
            200,
            json={
                "recordMap": {
                    "block": {
                        ROOT_PAGE_ID: {"value": {"view_ids": ["v1"], "collection_id": "c1"}}
                    }
                }
            },
        )
        backend.routes[QUERY_COLLECTION_ENDPOINT] = httpx.Response(
            200,
            json={
                "result": {
                    "reducerResults": {
                        "collection_group_results": {
                            "blockIds": ["11112222-3333-4444-5555-666677778888"]
                        }
                    }
                }
            },
        )

        response = client.get("/sitemap.xml")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/xml"
        assert response.text.count("<url>") == 2
        assert "<loc>http://example.com/blog</loc>" in response.text
        assert "<loc>http://example.com/11112222333344445555666677778888</loc>" in response.text
        assert f"<lastmod>{date.today().isoformat()}</lastmod>" in response.text

    def test_sitemap_survives_missing_view_ids(self, client, backend, logger):
        backend.routes[LOAD_PAGE_CHUNK_ENDPOINT] = httpx.Response(
            200,
            json={"recordMap": {"block": {ROOT_PAGE_ID: {"value": {"collection_id": "c1"}}}}},
        )

        response = client.get("/sitemap.xml")

        assert response.status_code == 200
        assert response.text.count("<url>") == 1
        assert "<priority>1.0</priority>" in response.text
        assert logger.errors


class TestProxy:
    def test_html_is_injected_and_regzipped(self, client, backend):
        backend.routes["/blog"] = raw_response(
            200,
            {"Content-Type": "text/html; charset=utf-8", "Content-Encoding": "gzip"},
            gzip.compress(HTML),
        )

        response = client.get("/blog")

        assert response.status_code == 200
        assert response.headers["content-encoding"] == "gzip"
        assert "google-site-verification" in response.text
        assert 'const PAGE_TITLE = "My Blog";' in response.text
        assert response.text.endswith("</head><body>page</body></html>")

    def test_plain_html_gets_fresh_content_length(self, client, backend):
        backend.routes["/blog"] = raw_response(200, {"Content-Type": "text/html"}, HTML)

        response = client.get("/blog")

        assert "content-encoding" not in response.headers
        assert int(response.headers["content-length"]) == len(response.content)
        assert len(response.content) > len(HTML)

    def test_public_page_data_loses_interstitial_flag(self, client, backend):
        backend.routes["/api/v3/getPublicPageData"] = raw_response(
            200,
            {"Content-Encoding": "gzip", "Content-Type": "application/json"},
            gzip.compress(
                json.dumps({"requireInterstitial": True, "spaceName": "Blog"}).encode()
            ),
        )

        response = client.post("/api/v3/getPublicPageData", json={"type": "block-space"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {"spaceName": "Blog"}
        sent = backend.requests[-1]
        assert sent.method == "POST"
        assert json.loads(sent.content) == {"type": "block-space"}

    def test_malformed_public_page_data_is_a_500(self, client, backend, logger):
        backend.routes["/api/v3/getPublicPageData"] = raw_response(
            200, {"Content-Type": "application/json"}, b"{oops"
        )

        response = client.post("/api/v3/getPublicPageData", json={})

        assert response.status_code == 500
        assert response.text.startswith("Failed to parse JSON")
        assert logger.errors[0][1] == 500

    def test_other_content_passes_through_untouched(self, client, backend, logger):
        payload = bytes(range(256))
        backend.routes["/_assets/app.js"] = raw_response(
            203,
            {"Content-Type": "application/javascript", "X-Backend": "1"},
            payload,
        )

        response = client.get("/_assets/app.js")

        assert response.status_code == 203
        assert response.content == payload
        assert response.headers["x-backend"] == "1"
        assert logger.responses == [("_assets/app.js", 203, "pass_through")]

    def test_redirects_are_relayed_not_followed(self, client, backend):
        backend.routes["/login"] = raw_response(302, {"Location": "/signin?next=/blog"})

        response = client.get("/login", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/signin?next=/blog"
        assert len(backend.requests) == 1

    def test_request_headers_and_query_are_forwarded(self, client, backend, logger):
        backend.routes["/blog"] = raw_response(200, body=b"ok")

        client.get("/blog?v=2", headers={"X-Custom": "yes", "Cookie": "a=1"})

        sent = backend.requests[-1]
        assert str(sent.url) == "https://notion.site/blog?v=2"
        assert sent.headers["x-custom"] == "yes"
        assert sent.headers["cookie"] == "a=1"
        assert sent.headers["host"] == "notion.site"
        assert logger.targets == ["https://notion.site/blog?v=2"]

    def test_image_urls_are_escaped(self, client, backend):
        client.get("/image/https://example.com/a.png?x=1")

        sent = backend.requests[-1]
        assert sent.url.raw_path == b"/image/https%3A%2F%2Fexample.com%2Fa.png%3Fx%3D1"

    def test_unreachable_backend_is_a_500_with_error_text(self, config, logger):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        app = create_app(config, logger, transport=httpx.MockTransport(handler))
        with TestClient(app, base_url="http://example.com") as test_client:
            response = test_client.get("/blog")

        assert response.status_code == 500
        assert response.text == "connection refused"
        assert logger.errors == [("blog", 500, "connection refused")]

    def test_connection_reset_mid_body_is_a_500_with_error_text(self, client, backend, logger):
        backend.routes["/blog"] = httpx.Response(
            200, headers={"Content-Type": "text/html"}, stream=ResetMidBody()
        )

        response = client.get("/blog")

        assert response.status_code == 500
        assert response.text == "connection reset mid-body"
        assert logger.errors == [("blog", 500, "connection reset mid-body")]

    def test_brotli_pages_keep_their_encoding(self, client, backend, logger):
        body = b"\x1b\x03\x00\xf8opaque-brotli"
        backend.routes["/blog"] = raw_response(
            200, {"Content-Type": "text/html", "Content-Encoding": "br"}, body
        )

        with client.stream("GET", "/blog") as response:
            relayed = b"".join(response.iter_raw())

        assert response.status_code == 200
        assert response.headers["content-encoding"] == "br"
        assert relayed == body
        assert logger.errors == []

    def test_not_modified_gzip_page_has_no_body(self, client, backend, logger):
        backend.routes["/blog"] = raw_response(
            304, {"Content-Type": "text/html", "Content-Encoding": "gzip", "ETag": '"v1"'}
        )

        response = client.get("/blog", headers={"If-None-Match": '"v1"'})

        assert response.status_code == 304
        assert response.content == b""
        assert response.headers["etag"] == '"v1"'
        assert logger.responses == [("blog", 304, "pass_through")]

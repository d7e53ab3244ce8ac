"""Proxy pipeline: fetch from the backend, transform, respond."""

import httpx
from fastapi import Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from core.encoding import ContentDecoder
from core.exceptions import UpstreamUnreachable
from core.headers import HeaderBuilder, RawHeaders
from core.protocols import RequestLogger
from core.request_types import ProxyRequest
from core.transform import Branch, ResponseTransformer
from services.upstream import BackendClient

# Statuses that never carry a body
BODILESS_STATUSES = frozenset({204, 304})


def _is_bodiless(method: str, status_code: int) -> bool:
    return method == "HEAD" or status_code < 200 or status_code in BODILESS_STATUSES


class ProxyService:
    """Relay one inbound request to the backend and shape the reply."""

    def __init__(
        self,
        backend: BackendClient,
        transformer: ResponseTransformer,
        header_builder: HeaderBuilder,
        logger: RequestLogger,
        decoder: ContentDecoder | None = None,
    ) -> None:
        self._backend = backend
        self._transformer = transformer
        self._headers = header_builder
        self._logger = logger
        self._decoder = decoder or ContentDecoder()

    def prepare(
        self,
        method: str,
        path: str,
        query: str,
        headers: RawHeaders,
        body=None,
    ) -> ProxyRequest:
        """Build the upstream request for an inbound one."""
        url = self._backend.build_target_url(path, query)
        self._logger.log_proxy_target(url)
        return ProxyRequest(
            method=method,
            url=url,
            headers=self._headers.build_upstream_headers(headers),
            body=body,
        )

    async def proxy(self, path: str, request: ProxyRequest) -> Response:
        """Fetch from the backend and return the response for the browser.

        Raises ProxyError subclasses on transport, JSON or compression
        failures; the caller maps them to an error response.
        """
        upstream = await self._backend.send(request)
        if _is_bodiless(request.method, upstream.status_code):
            branch = Branch.PASS_THROUGH
        else:
            branch = self._transformer.select(path, upstream.headers.get("content-type"))
        self._logger.log_response(path, upstream.status_code, branch.value)

        if not branch.materializes:
            return self._stream(upstream)

        try:
            raw = b"".join([chunk async for chunk in upstream.aiter_raw()])
        except httpx.RequestError as e:
            raise UpstreamUnreachable(str(e) or type(e).__name__, url=request.url) from e
        finally:
            await upstream.aclose()
        return self._rewrite(branch, upstream, raw)

    def _stream(self, upstream: httpx.Response) -> StreamingResponse:
        """Relay the body byte for byte without buffering it."""
        response = StreamingResponse(
            upstream.aiter_raw(),
            status_code=upstream.status_code,
            background=BackgroundTask(upstream.aclose),
        )
        response.raw_headers.extend(
            self._headers.build_downstream_headers(upstream.headers.raw, materialized=False)
        )
        return response

    def _rewrite(self, branch: Branch, upstream: httpx.Response, raw: bytes) -> Response:
        """Decode, transform and re-encode a fully read body."""
        decoded = self._decoder.decode(raw, upstream.headers.get("content-encoding"))

        if not decoded.decoded:
            # Still encoded: relay the original bytes under their original encoding
            if decoded.compressed:
                self._logger.log_error(
                    branch.value, upstream.status_code, "Failed to create gzip reader; passing body through"
                )
            response = Response(content=raw, status_code=upstream.status_code)
            response.raw_headers.extend(
                self._headers.build_downstream_headers(
                    upstream.headers.raw, materialized=True, keep_encoding=True
                )
            )
            return response

        content = self._transformer.transform(branch, decoded.content)
        body = self._decoder.encode(content, decoded.compressed)

        response = Response(content=body, status_code=upstream.status_code)
        response.raw_headers.extend(
            self._headers.build_downstream_headers(
                upstream.headers.raw,
                materialized=True,
                gzip=decoded.compressed and bool(body),
                content_type="application/json" if branch is Branch.STRIP_FIELD else None,
            )
        )
        return response

"""Header construction for upstream requests and downstream responses."""

RawHeaders = list[tuple[bytes, bytes]]

# Connection-scoped headers that must not be relayed between hops
HOP_BY_HOP = frozenset(
    {
        b"connection",
        b"keep-alive",
        b"proxy-connection",
        b"transfer-encoding",
        b"upgrade",
    }
)


class HeaderBuilder:
    """Copy headers between the browser and the site backend."""

    def build_upstream_headers(self, headers: RawHeaders) -> RawHeaders:
        """Copy inbound headers verbatim; Host comes from the target URL."""
        return [(key, value) for key, value in headers if key.lower() != b"host"]

    def build_downstream_headers(
        self,
        headers: RawHeaders,
        *,
        materialized: bool,
        gzip: bool = False,
        keep_encoding: bool = False,
        content_type: str | None = None,
    ) -> RawHeaders:
        """Copy backend headers onto the response sent to the browser.

        For materialized bodies Content-Length is left to the response
        object, which sizes the buffered body. Content-Encoding is replaced
        by what the proxy actually emits, unless ``keep_encoding`` says the
        buffered bytes are still the backend's encoded originals.
        """
        dropped = set(HOP_BY_HOP)
        if materialized:
            dropped.add(b"content-length")
            if not keep_encoding:
                dropped.add(b"content-encoding")
        if content_type:
            dropped.add(b"content-type")

        downstream = [
            (key.lower(), value) for key, value in headers if key.lower() not in dropped
        ]
        if content_type:
            downstream.append((b"content-type", content_type.encode("latin-1")))
        if materialized and gzip and not keep_encoding:
            downstream.append((b"content-encoding", b"gzip"))
        return downstream

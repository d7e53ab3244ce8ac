"""Transparent gzip handling for backend response bodies."""

import gzip
import zlib
from dataclasses import dataclass

from core.exceptions import CompressionError

IDENTITY_ENCODINGS = frozenset({"", "identity"})


@dataclass(frozen=True)
class DecodedBody:
    """A backend body as plain bytes, plus how it arrived.

    ``compressed`` is True when the backend declared gzip. ``decoded`` is
    False when the body could not be turned into plain bytes, either
    because the gzip stream is broken or because the backend used an
    encoding we do not rewrite (``br``, ``deflate``, ...). ``content`` then
    still holds the original encoded bytes.
    """

    content: bytes
    compressed: bool = False
    decoded: bool = True


def is_gzip(content_encoding: str | None) -> bool:
    """Check if a Content-Encoding header value declares gzip."""
    return (content_encoding or "").strip().lower() == "gzip"


def is_identity(content_encoding: str | None) -> bool:
    """Check if a Content-Encoding header value leaves the body as-is."""
    return (content_encoding or "").strip().lower() in IDENTITY_ENCODINGS


class ContentDecoder:
    """Decode and symmetrically re-encode gzip bodies."""

    def decode(self, body: bytes, content_encoding: str | None) -> DecodedBody:
        """Gunzip the body if the backend declared gzip.

        Unencoded bodies come back as-is; any other encoding is opaque.
        """
        if is_identity(content_encoding):
            return DecodedBody(body)
        if not is_gzip(content_encoding):
            return DecodedBody(body, decoded=False)
        try:
            return DecodedBody(gzip.decompress(body), compressed=True)
        except (OSError, EOFError, zlib.error):
            return DecodedBody(body, compressed=True, decoded=False)

    def encode(self, content: bytes, compressed: bool) -> bytes:
        """Re-apply gzip when the original body was gzip."""
        if not compressed or not content:
            return content
        try:
            return gzip.compress(content)
        except (OSError, zlib.error) as e:
            raise CompressionError(f"Failed to gzip response: {e}") from e

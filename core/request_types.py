"""Shared request data types."""

from collections.abc import AsyncIterator
from dataclasses import dataclass

from core.headers import RawHeaders


@dataclass(frozen=True)
class ProxyRequest:
    """Prepared data for an upstream request."""

    method: str
    url: str
    headers: RawHeaders
    body: AsyncIterator[bytes] | None = None

"""Response body transformations for proxied backend responses."""

import json
from enum import Enum
from typing import Any

from core.exceptions import MalformedUpstreamJSON
from core.inject import HtmlInjector

PUBLIC_PAGE_DATA_PATH = "api/v3/getPublicPageData"
INTERSTITIAL_FIELD = "requireInterstitial"


class Branch(str, Enum):
    """How a backend response is handled on its way to the browser."""

    STRIP_FIELD = "strip_field"
    INJECT_SCRIPT = "inject_script"
    PASS_THROUGH = "pass_through"

    @property
    def materializes(self) -> bool:
        """Whether the body must be fully read before it can be sent."""
        return self is not Branch.PASS_THROUGH


def strip_json_field(body: bytes, field: str = INTERSTITIAL_FIELD) -> bytes:
    """Remove one top-level key from a JSON object body."""
    try:
        data: Any = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedUpstreamJSON(f"Failed to parse JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedUpstreamJSON(
            f"Failed to parse JSON: expected an object, got {type(data).__name__}"
        )

    data.pop(field, None)

    try:
        return json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise MalformedUpstreamJSON(f"Failed to marshal JSON: {e}") from e


class ResponseTransformer:
    """Pick and apply the transformation for a backend response."""

    def __init__(self, injector: HtmlInjector, page_data_path: str = PUBLIC_PAGE_DATA_PATH):
        self._injector = injector
        self._page_data_path = page_data_path

    def select(self, path: str, content_type: str | None) -> Branch:
        """Return the branch for a response; first match wins."""
        if path == self._page_data_path:
            return Branch.STRIP_FIELD
        if "text/html" in (content_type or ""):
            return Branch.INJECT_SCRIPT
        return Branch.PASS_THROUGH

    def transform(self, branch: Branch, body: bytes) -> bytes:
        """Rewrite an already-decoded body for a materializing branch."""
        if branch is Branch.STRIP_FIELD:
            return strip_json_field(body)
        if branch is Branch.INJECT_SCRIPT:
            return self._injector.inject_bytes(body)
        return body

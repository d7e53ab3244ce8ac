"""Sitemap generation from the backend's collection API.

The sitemap always lists the configured homepage. Pages of the root
collection are discovered with two backend calls: the root page is loaded to
learn its collection and view, then that collection is queried for its first
page of results. Any failure along the way is logged and the homepage-only
sitemap is served instead.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any
from xml.etree import ElementTree as ET

from core.config import SiteSettings
from core.exceptions import MissingExpectedShape, ProxyError
from core.lookup import dig, dig_str
from core.protocols import RequestLogger
from services.upstream import BackendClient

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'

LOAD_PAGE_CHUNK_ENDPOINT = "/api/v3/loadCachedPageChunkV2"
QUERY_COLLECTION_ENDPOINT = "/api/v3/queryCollection"

PAGE_CHUNK_LIMIT = 30
QUERY_PAGE_SIZE = 50

ROOT_PRIORITY = 1.0
PAGE_PRIORITY = 0.8


@dataclass(frozen=True)
class SitemapEntry:
    """A single <url> element."""

    loc: str
    lastmod: str
    changefreq: str = "daily"
    priority: float = PAGE_PRIORITY


@dataclass(frozen=True)
class CollectionReference:
    """Collection and view backing the sitemap root page."""

    collection_id: str
    view_id: str


def render_sitemap(entries: list[SitemapEntry]) -> str:
    """Render entries as a sitemap XML document."""
    urlset = ET.Element("urlset", {"xmlns": SITEMAP_NS})
    for entry in entries:
        url = ET.SubElement(urlset, "url")
        ET.SubElement(url, "loc").text = entry.loc
        ET.SubElement(url, "lastmod").text = entry.lastmod
        ET.SubElement(url, "changefreq").text = entry.changefreq
        ET.SubElement(url, "priority").text = f"{entry.priority:.1f}"
    ET.indent(urlset, space="  ")
    return XML_HEADER + ET.tostring(urlset, encoding="unicode")


class SitemapBuilder:
    """Enumerate site pages through the backend and build sitemap entries."""

    def __init__(
        self,
        backend: BackendClient,
        site: SiteSettings,
        logger: RequestLogger,
    ) -> None:
        self._backend = backend
        self._site = site
        self._logger = logger

    async def build(self, base_url: str, today: date | None = None) -> list[SitemapEntry]:
        """Return the homepage entry followed by every discovered page."""
        lastmod = (today or date.today()).isoformat()
        entries = [
            SitemapEntry(
                loc=f"{base_url}/{self._site.slug}",
                lastmod=lastmod,
                priority=ROOT_PRIORITY,
            )
        ]
        try:
            entries.extend(await self.load_database_pages(base_url, lastmod))
        except ProxyError as e:
            self._logger.log_error("sitemap", 200, f"Failed to load database pages: {e}")
        return entries

    async def load_database_pages(self, base_url: str, lastmod: str) -> list[SitemapEntry]:
        reference = await self.resolve_collection()
        page_ids = await self.query_page_ids(reference)
        if not page_ids:
            raise MissingExpectedShape("no pages found in the collection view")
        return [
            SitemapEntry(loc=f"{base_url}/{page_id.replace('-', '')}", lastmod=lastmod)
            for page_id in page_ids
        ]

    async def resolve_collection(self) -> CollectionReference:
        """Load the root page and read its collection and first view."""
        root_id = self._site.sitemap_id
        result = await self._backend.post_api(
            LOAD_PAGE_CHUNK_ENDPOINT,
            {
                "page": {"id": root_id},
                "limit": PAGE_CHUNK_LIMIT,
                "cursor": {"stack": []},
                "verticalColumns": False,
            },
        )
        value = dig(result, "recordMap", "block", root_id, "value")
        view_id = dig_str(value, "view_ids", 0)
        collection_id = dig_str(value, "collection_id")
        if view_id is None or collection_id is None:
            raise MissingExpectedShape("failed to find viewID or collectionID")
        return CollectionReference(collection_id=collection_id, view_id=view_id)

    async def query_page_ids(self, reference: CollectionReference) -> list[str]:
        """Query the first page of the collection and return its block ids."""
        result = await self._backend.post_api(
            QUERY_COLLECTION_ENDPOINT,
            self._query_payload(reference),
        )
        block_ids: Any = dig(
            result, "result", "reducerResults", "collection_group_results", "blockIds"
        )
        if not isinstance(block_ids, list):
            return []
        page_ids = [block_id for block_id in block_ids if isinstance(block_id, str)]
        return page_ids[:QUERY_PAGE_SIZE]

    def _query_payload(self, reference: CollectionReference) -> dict[str, Any]:
        return {
            "collection": {"id": reference.collection_id},
            "collectionView": {"id": reference.view_id},
            "loader": {
                "type": "reducer",
                "reducers": {
                    "collection_group_results": {
                        "type": "results",
                        "limit": QUERY_PAGE_SIZE,
                    },
                },
                "sort": [],
                "searchQuery": "",
                "userTimeZone": self._site.user_time_zone,
            },
        }

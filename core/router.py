"""Request routing logic - maps inbound paths to handlers."""

from dataclasses import dataclass
from typing import Literal

Route = Literal["root", "sitemap", "robots", "proxy"]

SPECIAL_PATHS: dict[str, Route] = {
    "": "root",
    "sitemap.xml": "sitemap",
    "robots.txt": "robots",
}


@dataclass(frozen=True)
class RouteDecision:
    """Routing decision for a request."""

    route: Route
    path: str


class RouteDecider:
    """Decide which handler serves an inbound path."""

    def decide(self, path: str) -> RouteDecision:
        """Return the route for a path; exact match after the leading slash."""
        path = path.removeprefix("/")
        return RouteDecision(route=SPECIAL_PATHS.get(path, "proxy"), path=path)


def base_url(scheme: str, host: str) -> str:
    """Public origin of this proxy as seen by the client."""
    return f"{scheme}://{host}"

import pytest

from core.config import Config, ProxySettings, SiteSettings

BACKEND = "https://notion.site"
ROOT_PAGE_ID = "root-page-id"


class RecordingLogger:
    """RequestLogger that keeps every call for assertions."""

    def __init__(self):
        self.requests: list[tuple[str, str]] = []
        self.targets: list[str] = []
        self.responses: list[tuple[str, int, str]] = []
        self.errors: list[tuple[str, int, str]] = []

    def log_request(self, method: str, url: str) -> None:
        self.requests.append((method, url))

    def log_proxy_target(self, url: str) -> None:
        self.targets.append(url)

    def log_response(self, path: str, status: int, branch: str) -> None:
        self.responses.append((path, status, branch))

    def log_error(self, route: str, status: int, message: str) -> None:
        self.errors.append((route, status, message))


@pytest.fixture
def site() -> SiteSettings:
    return SiteSettings(
        domain=BACKEND,
        slug="blog",
        google_site_verification="verify-token",
        page_title="My Blog",
        page_description="Notes and essays",
        sitemap_id=ROOT_PAGE_ID,
    )


@pytest.fixture
def config(site) -> Config:
    return Config(proxy=ProxySettings(debug=False, dashboard=False), site=site)


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()

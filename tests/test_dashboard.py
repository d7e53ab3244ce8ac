import pytest

from core.config import Config, ProxySettings, SiteSettings
from ui import log_utils
from ui.dashboard import Dashboard


@pytest.fixture
def log_file(tmp_path, monkeypatch):
    path = tmp_path / "logs" / "proxy.log"
    monkeypatch.setattr(log_utils, "CLI_LOG_FILE", path)
    return path


def _dashboard(debug: bool) -> Dashboard:
    config = Config(
        proxy=ProxySettings(debug=debug, dashboard=False),
        site=SiteSettings(domain="https://notion.site"),
    )
    return Dashboard(config, live=False).start()


def test_debug_lines_are_written_when_enabled(log_file):
    dashboard = _dashboard(debug=True)

    dashboard.log_request("GET", "http://example.com/blog")
    dashboard.log_proxy_target("https://notion.site/blog")

    lines = log_file.read_text().splitlines()
    assert "DEBUG: Method: GET, URL: http://example.com/blog" in lines[0]
    assert "DEBUG: Proxying request to: https://notion.site/blog" in lines[1]


def test_debug_lines_are_skipped_when_disabled(log_file):
    dashboard = _dashboard(debug=False)

    dashboard.log_request("GET", "http://example.com/blog")
    dashboard.log_response("blog", 200, "inject_script")

    assert not log_file.exists()


def test_errors_are_always_written_and_kept_short(log_file):
    dashboard = _dashboard(debug=False)

    for i in range(5):
        dashboard.log_error("blog", 500, f"error {i} " + "x" * 100)

    assert len(dashboard._errors) == 3
    assert dashboard._errors[0].startswith("blog 500: error 4")
    assert dashboard._errors[0].endswith("...")
    assert log_file.read_text().count("ERROR:") == 5


def test_layout_renders_recent_responses(log_file):
    dashboard = _dashboard(debug=False)
    dashboard.log_request("GET", "http://example.com/blog")
    dashboard.log_response("blog", 200, "inject_script")
    dashboard.log_response("_assets/app.js", 304, "pass_through")

    assert dashboard._request_count == 1
    assert dashboard._branch_count["inject_script"] == 1
    assert [info.path for info in dashboard._recent] == ["/_assets/app.js", "/blog"]
    assert dashboard._build_layout() is not None


def test_clear_logs_truncates(log_file):
    log_utils.write_cli_log("STARTUP", "Proxy started", port=8080)
    assert "port=8080" in log_file.read_text()

    log_utils.clear_logs()

    assert log_file.read_text() == ""

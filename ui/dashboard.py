"""Real-time CLI dashboard for proxy monitoring."""

from datetime import datetime
from threading import Lock

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from ui.log_utils import short_path, write_cli_log

console = Console()

BRANCH_STYLES = {
    "strip_field": "yellow",
    "inject_script": "green",
    "pass_through": "blue",
}


class RequestInfo:
    """Info about a single proxied response."""

    def __init__(self, path: str, status: int, branch: str, timestamp: datetime):
        self.path = short_path("/" + path.lstrip("/"))
        self.status = status
        self.branch = branch
        self.timestamp = timestamp


class Dashboard:
    """Real-time dashboard showing proxied traffic and errors."""

    def __init__(self, config: Config, *, live: bool = True):
        self.config = config
        self._live_enabled = live
        self._lock = Lock()
        self._recent: list[RequestInfo] = []
        self._max_recent = 12
        self._request_count = 0
        self._branch_count = {branch: 0 for branch in BRANCH_STYLES}
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        if not self._live_enabled:
            return self
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_request(self, method: str, url: str) -> None:
        """Record an inbound request."""
        with self._lock:
            self._request_count += 1
            self._refresh()
        if self.config.proxy.debug:
            write_cli_log("DEBUG", f"Method: {method}, URL: {url}")

    def log_proxy_target(self, url: str) -> None:
        """Record the backend URL a request is forwarded to."""
        if self.config.proxy.debug:
            write_cli_log("DEBUG", f"Proxying request to: {url}")

    def log_response(self, path: str, status: int, branch: str) -> None:
        """Record how a backend response was handled."""
        with self._lock:
            self._branch_count[branch] = self._branch_count.get(branch, 0) + 1
            self._recent.insert(0, RequestInfo(path, status, branch, datetime.now()))
            self._recent = self._recent[: self._max_recent]
            self._refresh()
        if self.config.proxy.debug:
            write_cli_log("RESPONSE", path, status=status, branch=branch)

    def log_error(self, route: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{route} {status}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
        write_cli_log("ERROR", message[:200], route=route, status=status)

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_requests_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Potion Proxy", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Requests: {self._request_count}")
        for branch, style in BRANCH_STYLES.items():
            stats.append("  |  ")
            stats.append(f"{branch}: {self._branch_count.get(branch, 0)}", style=style)
        stats.append("  |  ")
        stats.append(f"Port: {self.config.proxy.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_requests_panel(self) -> Panel:
        """Build the recent responses table."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Status", width=6)
            table.add_column("Branch", width=14)
            table.add_column("Path", ratio=1)

            for info in self._recent:
                status_style = "red" if info.status >= 500 else "yellow" if info.status >= 300 else ""
                table.add_row(
                    info.timestamp.strftime("%H:%M:%S"),
                    Text(str(info.status), style=status_style),
                    Text(info.branch, style=BRANCH_STYLES.get(info.branch, "")),
                    info.path,
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(
            content,
            title=f"[blue]{self.config.site.domain or 'backend not set'}[/blue]",
            border_style="blue",
        )

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            content = Text(
                f"Serving on http://{self.config.proxy.host}:{self.config.proxy.port}",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")

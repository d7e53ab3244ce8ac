"""CLI entry point for potion-proxy."""

import sys
from datetime import datetime

from pydantic import ValidationError
from rich.console import Console

from app import create_app
from core.config import CONFIG_FILE, load_config
from ui.dashboard import Dashboard
from ui.log_utils import CLI_LOG_FILE, clear_logs, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    # Handle CLI arguments
    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg == "--config":
            console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
            console.print(f"[bold]Log:[/bold] {CLI_LOG_FILE}")
            return

        if arg in ("--help", "-h"):
            _print_help()
            return

    try:
        config = load_config()
    except ValidationError as e:
        console.print(f"[red][ERROR][/red] Invalid configuration: {e}")
        sys.exit(1)

    # The backend domain is the one setting we cannot run without
    if not config.site.domain:
        console.print("[red][ERROR][/red] Site domain not configured!")
        console.print(f"[dim]Edit {CONFIG_FILE} and set site.domain, or export SITE_DOMAIN[/dim]")
        sys.exit(1)

    clear_logs()
    dashboard = Dashboard(config, live=config.proxy.dashboard)

    import uvicorn

    app = create_app(config, dashboard)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.proxy.host,
        port=config.proxy.port,
        log_level="warning",
        # The scheme for redirects and robots.txt is the inbound connection's own
        proxy_headers=False,
    )
    server = uvicorn.Server(uvicorn_config)

    dashboard.start()
    start_time = datetime.now()
    write_cli_log("STARTUP", "Proxy started", port=config.proxy.port, backend=config.site.domain)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", duration=str(duration))
        dashboard.stop()


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Potion Proxy[/bold cyan]

Serves a public Notion site under your own domain, with SEO tweaks and a sitemap.

[bold]Usage:[/bold]
    potion-proxy              Start with live dashboard
    potion-proxy --config     Show config locations
    potion-proxy --help       Show this help

[bold]Environment overrides:[/bold]
    SITE_DOMAIN, SITE_SLUG, GOOGLE_SITE_VERIFICATION, PAGE_TITLE,
    PAGE_DESCRIPTION, SITEMAP_ID, USER_TIME_ZONE, HOST, PORT, DEBUG
"""
    console.print(help_text)


if __name__ == "__main__":
    main()

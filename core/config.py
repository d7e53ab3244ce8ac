"""Configuration models and loading."""

import json
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

CONFIG_DIR = Path.home() / ".config" / "potion-proxy"
CONFIG_FILE = CONFIG_DIR / "config.json"

# Environment variable -> (section, field)
ENV_OVERRIDES = {
    "SITE_DOMAIN": ("site", "domain"),
    "SITE_SLUG": ("site", "slug"),
    "GOOGLE_SITE_VERIFICATION": ("site", "google_site_verification"),
    "PAGE_TITLE": ("site", "page_title"),
    "PAGE_DESCRIPTION": ("site", "page_description"),
    "SITEMAP_ID": ("site", "sitemap_id"),
    "USER_TIME_ZONE": ("site", "user_time_zone"),
    "HOST": ("proxy", "host"),
    "PORT": ("proxy", "port"),
    "DEBUG": ("proxy", "debug"),
}


class ProxySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = True
    dashboard: bool = True


class SiteSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    domain: str = ""
    slug: str = ""
    google_site_verification: str = ""
    page_title: str = ""
    page_description: str = ""
    sitemap_id: str = ""
    user_time_zone: str = "Asia/Shanghai"

    @field_validator("domain")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class Config(BaseModel):
    model_config = ConfigDict(frozen=True)

    proxy: ProxySettings = Field(default_factory=ProxySettings)
    site: SiteSettings = Field(default_factory=SiteSettings)


def apply_env_overrides(data: dict, environ: dict[str, str] | None = None) -> dict:
    """Overlay environment variables onto raw config data."""
    environ = os.environ if environ is None else environ
    data = {section: dict(values) for section, values in data.items() if isinstance(values, dict)}
    for var, (section, field) in ENV_OVERRIDES.items():
        if var in environ:
            data.setdefault(section, {})[field] = environ[var]
    return data


def load_config() -> Config:
    """Load configuration from JSON file, creating default if needed."""
    if not CONFIG_FILE.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        default = Config()
        CONFIG_FILE.write_text(default.model_dump_json(indent=2))
        data = {}
    else:
        try:
            data = json.loads(CONFIG_FILE.read_text())
            Config.model_validate(data)
        except (json.JSONDecodeError, ValidationError):
            # Backup corrupted config and recreate default
            backup = CONFIG_FILE.with_suffix(".json.bak")
            CONFIG_FILE.rename(backup)
            CONFIG_FILE.write_text(Config().model_dump_json(indent=2))
            data = {}

    return Config.model_validate(apply_env_overrides(data))

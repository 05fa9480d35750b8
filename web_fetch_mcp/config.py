from __future__ import annotations

import dataclasses
import os
import pathlib
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import yaml

from web_fetch_mcp.utils.errors import ConfigError

CONFIG_ENV_VAR = "WEB_FETCH_MCP_CONFIG"

DEFAULT_USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/120.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/16.6 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/144.0.0.0 Safari/537.36 Edg/144.0.0.0",
)

DEFAULT_STEALTH_URL = (
    "https://raw.githubusercontent.com/requireCool/stealth.min.js/main/stealth.min.js"
)

WAIT_POLICIES = ("load", "domcontentloaded", "networkidle0", "networkidle2")


@dataclass(frozen=True)
class BrowserConfig:
    executable_path: Optional[str] = None
    headless: bool = True
    width: int = 1280
    height: int = 800
    user_agents: tuple[str, ...] = DEFAULT_USER_AGENTS
    stealth: bool = True
    stealth_url: str = DEFAULT_STEALTH_URL
    timeout: int = 30000

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ConfigError(f"viewport must be positive, got {self.width}x{self.height}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be > 0 ms, got {self.timeout}")
        if not self.user_agents:
            raise ConfigError("user_agents must contain at least one entry")
        if self.stealth and not self.stealth_url.startswith("http"):
            raise ConfigError(f"stealth_url must begin with http, got: {self.stealth_url}")

    def merged(self, overrides: Optional[Mapping[str, Any]] = None) -> "BrowserConfig":
        """Return a copy with the non-None ``overrides`` applied."""
        if not overrides:
            return self
        known = {f.name for f in dataclasses.fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"unknown browser options: {', '.join(sorted(unknown))}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "user_agents" in changes:
            agents = changes["user_agents"]
            if not isinstance(agents, (list, tuple)):
                raise ConfigError(f"user_agents must be a list of strings, got: {agents!r}")
            changes["user_agents"] = tuple(str(ua) for ua in agents)
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class Settings:
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    fetch_timeout: int = 30000
    link_cap: int = 10
    image_cap: int = 10
    wait_until: str = "networkidle2"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.fetch_timeout <= 0:
            raise ConfigError(f"fetch_timeout must be > 0 ms, got {self.fetch_timeout}")
        if self.link_cap < 1 or self.image_cap < 1:
            raise ConfigError("link_cap and image_cap must be >= 1")
        if self.wait_until not in WAIT_POLICIES:
            raise ConfigError(
                f"wait_until must be one of {', '.join(WAIT_POLICIES)}, got {self.wait_until}"
            )


def load_config(path: Optional[str] = None) -> Settings:
    """Load settings from a YAML file.

    ``path`` falls back to the ``WEB_FETCH_MCP_CONFIG`` environment variable.
    Without either, the built-in defaults are returned.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return Settings()

    try:
        raw = pathlib.Path(path).read_text(encoding="utf-8")
        data = yaml.safe_load(raw) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file must be a YAML mapping, got {type(data).__name__}")

    browser_raw = data.get("browser") or {}
    if not isinstance(browser_raw, dict):
        raise ConfigError("browser section must be a YAML mapping")

    try:
        browser = BrowserConfig().merged(browser_raw)
        return Settings(
            browser=browser,
            fetch_timeout=int(data.get("fetch_timeout", 30000)),
            link_cap=int(data.get("link_cap", 10)),
            image_cap=int(data.get("image_cap", 10)),
            wait_until=str(data.get("wait_until", "networkidle2")),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid value in {path}: {e}") from e

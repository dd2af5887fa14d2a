import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from endpoints import BASE_URL

DEFAULT_SESSION_PATH = ".alshare/session.json"
DEFAULT_HTTP_LOG = "alshare_http.log"
DEFAULT_VIEWER_URL = "http://localhost:8080/view"
PAGE_SIZE = 30


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    return value


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value not in ("", "0", "false", "FALSE")


@dataclass
class ShareSettings:
    default_password: Optional[str] = None
    passwordless_enabled: bool = False

    @property
    def passwordless_active(self) -> bool:
        return self.passwordless_enabled and bool(self.default_password)


@dataclass
class Settings:
    server_url: str = BASE_URL
    token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    custom_domain: Optional[str] = None
    viewer_url: str = DEFAULT_VIEWER_URL
    page_size: int = PAGE_SIZE
    timeout: float = 30.0
    http_log_path: Optional[str] = DEFAULT_HTTP_LOG
    session_path: str = DEFAULT_SESSION_PATH
    share: ShareSettings = field(default_factory=ShareSettings)


def share_settings_from(session: Dict[str, Any]) -> ShareSettings:
    share = session.get("share") or {}
    return ShareSettings(
        default_password=share.get("default_password") or None,
        passwordless_enabled=bool(share.get("passwordless_enabled", False)),
    )


def load_settings(session: Optional[Dict[str, Any]] = None) -> Settings:
    """Build settings from a loaded session dict, then let env vars override."""
    session = session or {}
    connection = session.get("connection") or {}
    settings = Settings(
        server_url=connection.get("server_url") or BASE_URL,
        token=connection.get("token") or None,
        custom_domain=connection.get("custom_domain") or None,
        share=share_settings_from(session),
    )

    settings.server_url = _env_str("ALSHARE_SERVER_URL", settings.server_url) or BASE_URL
    settings.token = _env_str("ALSHARE_TOKEN", settings.token) or None
    settings.username = _env_str("ALSHARE_USERNAME") or None
    settings.password = _env_str("ALSHARE_PASSWORD") or None
    settings.custom_domain = _env_str("ALSHARE_R2_DOMAIN", settings.custom_domain) or None
    settings.viewer_url = _env_str("ALSHARE_VIEWER_URL", DEFAULT_VIEWER_URL) or DEFAULT_VIEWER_URL
    settings.page_size = max(_env_int("ALSHARE_PAGE_SIZE", PAGE_SIZE), 1)
    settings.timeout = _env_float("ALSHARE_TIMEOUT", 30.0)
    settings.http_log_path = _env_str("ALSHARE_HTTP_LOG", DEFAULT_HTTP_LOG) or None
    settings.session_path = _env_str("ALSHARE_SESSION", DEFAULT_SESSION_PATH) or DEFAULT_SESSION_PATH
    settings.share.default_password = (
        _env_str("ALSHARE_DEFAULT_SHARE_PASSWORD", settings.share.default_password) or None
    )
    settings.share.passwordless_enabled = _env_bool(
        "ALSHARE_PASSWORDLESS", settings.share.passwordless_enabled
    )
    return settings

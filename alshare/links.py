"""Share-link URL surface.

Single item: ``<viewer>?path=<quoted path>&c=<token>``
Gallery:     ``<viewer>?type=gallery&c=<token>``

Passwordless links additionally carry ``&pm=1&pk=<base64 password>``. That
parameter is plain base64 of the operator's default share password: anyone
holding the link can read it. It is an opt-in convenience for operators who
share with a known default password, not confidentiality, and the encoding is
kept as-is so existing links keep opening.
"""
import base64
import binascii
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, quote, urlsplit

from .config import ShareSettings

MODE_SINGLE = "single"
MODE_GALLERY = "gallery"


@dataclass(frozen=True)
class ShareLinkParams:
    mode: str
    token: Optional[str] = None
    path: Optional[str] = None
    passwordless_key: Optional[str] = None

    @property
    def is_gallery(self) -> bool:
        return self.mode == MODE_GALLERY


def obfuscate_password(password: str) -> str:
    return base64.b64encode(password.encode("utf-8")).decode("ascii")


def reveal_password(key: str) -> Optional[str]:
    try:
        value = base64.b64decode(key.strip().replace(" ", "+").encode("ascii"), validate=True).decode("utf-8")
    except (ValueError, UnicodeError, binascii.Error):
        return None
    return value or None


def passwordless_key_for(settings: ShareSettings, password: str) -> Optional[str]:
    """Obfuscated password for the link, only when it is the operator's default."""
    if not settings.passwordless_active:
        return None
    if password != settings.default_password:
        return None
    return obfuscate_password(password)


def compose_share_link(
    base_url: str,
    token: str,
    path: Optional[str] = None,
    passwordless_key: Optional[str] = None,
) -> str:
    if not token:
        raise ValueError("A share token is required")
    if path:
        query = f"path={quote(path, safe='')}&c={quote(token, safe='')}"
    else:
        query = f"type={MODE_GALLERY}&c={quote(token, safe='')}"
    if passwordless_key:
        query += f"&pm=1&pk={quote(passwordless_key, safe='')}"
    separator = "&" if "?" in base_url else "?"
    if base_url.endswith(("?", "&")):
        separator = ""
    return f"{base_url}{separator}{query}"


def parse_share_link(url: str) -> ShareLinkParams:
    query = urlsplit(url).query if "?" in url or "://" in url else url.lstrip("?")
    params = parse_qs(query, keep_blank_values=True)

    def first(name: str) -> Optional[str]:
        values = params.get(name)
        return values[0] if values and values[0] != "" else None

    mode = MODE_GALLERY if first("type") == MODE_GALLERY else MODE_SINGLE
    key = first("pk") if first("pm") == "1" else None
    return ShareLinkParams(mode=mode, token=first("c"), path=first("path"), passwordless_key=key)

import logging
import mimetypes
import os
import posixpath
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp", "bmp", "avif")

# mimetypes misses or misreports several image formats on older platforms
_IMAGE_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "avif": "image/avif",
    "svg": "image/svg+xml",
    "heic": "image/heic",
    "heif": "image/heif",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "ico": "image/x-icon",
}

GENERIC_CONTENT_TYPE = "application/octet-stream"


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter('%(levelname)s %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    if os.getenv("ALSHARE_DEBUG", "0") in ("1", "true", "TRUE"):
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)
    return logger


def redacted_headers(headers: Dict[str, Any]) -> Dict[str, Any]:
    redacted = {}
    for k, v in headers.items():
        if k.lower() in ('authorization', 'cookie', 'password'):
            redacted[k] = '[REDACTED]'
        else:
            redacted[k] = v
    return redacted


def redact_payload(payload: Any) -> Any:
    if not isinstance(payload, (dict, list)):
        return payload
    secret_keys = (
        "token",
        "password",
        "authorization",
        "cookie",
        "sign",
    )
    if isinstance(payload, list):
        return [redact_payload(item) for item in payload]
    redacted: Dict[str, Any] = {}
    for key, value in payload.items():
        key_l = str(key).lower()
        if any(k in key_l for k in secret_keys):
            redacted[key] = "***"
        else:
            redacted[key] = redact_payload(value)
    return redacted


def append_log_line(path: str, line: str) -> None:
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    safe_line = line.rstrip("\n")
    with open(path, "a", encoding="utf-8") as handle:
        handle.write(f"[{timestamp}] {safe_line}\n")


def truncate_text(text: str, limit: int = 2000) -> str:
    if text is None:
        return ""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...[truncated {len(text) - limit} chars]"


def format_bytes(num: int) -> str:
    step = 1024.0
    units = ['B', 'KB', 'MB', 'GB', 'TB']
    size = float(num)
    for unit in units:
        if size < step:
            return f"{size:.2f}{unit}"
        size /= step
    return f"{size:.2f}PB"


def normalize_path(path: str) -> str:
    """Absolute POSIX form without trailing slash; "" and "." map to "/"."""
    path = (path or "").strip().replace("\\", "/")
    if not path.startswith("/"):
        path = "/" + path
    path = posixpath.normpath(path)
    # normpath keeps a leading "//"
    if path.startswith("//"):
        path = "/" + path.lstrip("/")
    return path


def join_path(parent: str, name: str) -> str:
    parent = normalize_path(parent)
    name = name.strip("/")
    if parent == "/":
        return f"/{name}"
    return f"{parent}/{name}"


def split_path(path: str) -> Tuple[str, str]:
    path = normalize_path(path)
    parent, name = posixpath.split(path)
    return parent or "/", name


def extension_of(name: str) -> str:
    _, ext = posixpath.splitext(name)
    return ext[1:].lower()


def is_image_name(name: str) -> bool:
    return extension_of(name) in IMAGE_EXTENSIONS


def guess_content_type(name: str, declared: Optional[str] = None) -> str:
    if declared and declared != GENERIC_CONTENT_TYPE and "/" in declared:
        return declared
    ext = extension_of(name)
    if ext in _IMAGE_MIME_TYPES:
        return _IMAGE_MIME_TYPES[ext]
    guessed, _ = mimetypes.guess_type(name)
    return guessed or GENERIC_CONTENT_TYPE

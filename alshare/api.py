from typing import Iterable, List, Optional
from urllib.parse import quote, urlsplit
import os

from endpoints import FS
from .client import AlistClient
from .classify import ErrorKind, classify_message
from .errors import AlshareError, ApiError, AuthRequired
from .models import BatchResult, FileInfo, ListResult, PathResult
from .utils import guess_content_type, join_path, normalize_path, split_path

R2_HOST_SUFFIX = ".r2.cloudflarestorage.com"


def list_dir(
    client: AlistClient,
    path: str,
    password: Optional[str] = None,
    page: int = 1,
    per_page: int = 0,
    refresh: bool = False,
) -> ListResult:
    payload = {
        "path": normalize_path(path),
        "password": password or "",
        "page": int(page),
        "per_page": int(per_page),
        "refresh": bool(refresh),
    }
    resp = client.request(FS["list"]["method"], FS["list"]["path"], json=payload)
    try:
        body = client.json_or_raise(resp)
    except ApiError as exc:
        if not isinstance(exc, AuthRequired) and classify_message(exc.message) is ErrorKind.AUTH_REQUIRED:
            raise AuthRequired(exc.message, code=exc.code) from exc
        raise
    data = body.get("data") or {}
    rows = data.get("content") or []
    items = [FileInfo.from_api(row) for row in rows]
    total = int(data.get("total") or len(items))
    return ListResult(items=items, total=total)


def _rewrite_r2(raw_url: str, custom_domain: Optional[str]) -> str:
    parts = urlsplit(raw_url)
    if not custom_domain or not parts.hostname or not parts.hostname.endswith(R2_HOST_SUFFIX):
        return raw_url
    object_path = parts.path.lstrip("/")
    if not object_path:
        return raw_url
    return f"{custom_domain}/{object_path}"


def _normalize_scheme(raw_url: str, prefer_scheme: Optional[str]) -> str:
    parts = urlsplit(raw_url)
    host = parts.hostname or ""
    if "sharepoint.com" in host:
        if parts.scheme == "http":
            return parts._replace(scheme="https").geturl()
        return raw_url
    if prefer_scheme in ("http", "https") and parts.scheme in ("http", "https"):
        return parts._replace(scheme=prefer_scheme).geturl()
    return raw_url


def get_direct_link(
    client: AlistClient,
    path: str,
    password: Optional[str] = None,
    prefer_scheme: Optional[str] = None,
) -> str:
    payload = {"path": normalize_path(path), "password": password or ""}
    resp = client.request(FS["get"]["method"], FS["get"]["path"], json=payload)
    data = client.json_or_raise(resp).get("data") or {}
    raw_url = data.get("raw_url") or ""
    if not raw_url:
        raise ApiError(f"No direct link for {path}")
    raw_url = _normalize_scheme(raw_url, prefer_scheme)
    rewritten = _rewrite_r2(raw_url, client.custom_domain)
    if rewritten != raw_url:
        client.logger.debug("R2 link rewritten %s -> %s", raw_url, rewritten)
    return rewritten


def upload_file(
    client: AlistClient,
    remote_dir: str,
    local_path: str,
    name: Optional[str] = None,
    content_type: Optional[str] = None,
    password: Optional[str] = None,
) -> dict:
    filename = name or os.path.basename(local_path)
    full_path = join_path(remote_dir, filename)
    headers = {
        "File-Path": quote(full_path, safe=""),
        "Content-Type": guess_content_type(filename, content_type),
    }
    if password:
        headers["Password"] = password
    with open(local_path, "rb") as handle:
        resp = client.request(FS["put"]["method"], FS["put"]["path"], content=handle.read(), headers=headers)
    payload = client.json_or_raise(resp)
    client.logger.info("Uploaded %s -> %s", local_path, full_path)
    return payload


def create_folder(client: AlistClient, parent: str, name: str) -> dict:
    payload = {"path": join_path(parent, name)}
    resp = client.request(FS["mkdir"]["method"], FS["mkdir"]["path"], json=payload)
    return client.json_or_raise(resp)


def ensure_folder(client: AlistClient, parent: str, name: str) -> str:
    path = join_path(parent, name)
    try:
        create_folder(client, parent, name)
    except ApiError as exc:
        if "exist" not in exc.message.lower():
            raise
        client.logger.debug("Folder %s already exists", path)
    return path


def remove(client: AlistClient, path: str) -> dict:
    directory, name = split_path(path)
    if not name:
        raise ApiError("Refusing to remove the root directory")
    payload = {"dir": directory, "names": [name]}
    resp = client.request(FS["remove"]["method"], FS["remove"]["path"], json=payload)
    return client.json_or_raise(resp)


def remove_many(client: AlistClient, paths: Iterable[str]) -> BatchResult:
    results: List[PathResult] = []
    for path in paths:
        try:
            remove(client, path)
        except AlshareError as exc:
            client.logger.warning("Delete failed for %s: %s", path, exc)
            results.append(PathResult(path=path, success=False, error=str(exc)))
        else:
            results.append(PathResult(path=path, success=True))
    return BatchResult(results=results)

"""Shared fixtures: an in-memory AList backend behind httpx.MockTransport."""

import json
import posixpath
from typing import Dict, List, Optional, Set
from urllib.parse import unquote

import httpx
import pytest

from alshare.client import AlistClient
from alshare.models import TokenAuth
from alshare.password_store import DirectoryPasswordStore

SERVER_URL = "http://alist.test"
TOKEN = "tok-123"


def _ok(data=None) -> httpx.Response:
    return httpx.Response(200, json={"code": 200, "message": "success", "data": data})


def _err(code: int, message: str) -> httpx.Response:
    return httpx.Response(200, json={"code": code, "message": message, "data": None})


class FakeAlist:
    """Just enough of the AList fs API to drive the client end to end."""

    def __init__(self) -> None:
        self.dirs: Dict[str, List[dict]] = {"/": []}
        self.passwords: Dict[str, str] = {}
        self.fail_remove: Set[str] = set()
        self.raw_urls: Dict[str, str] = {}
        self.uploads: Dict[str, dict] = {}
        self.requests: List[httpx.Request] = []
        self.users = {"admin": "secret"}
        self.require_token = True
        self.protected_message = "failed get objs: failed get dir: object not found"

    # tree helpers

    def add_dir(self, path: str, password: Optional[str] = None) -> None:
        parent, name = posixpath.split(path)
        if path not in self.dirs:
            self.dirs[path] = []
            self.dirs.setdefault(parent, []).append({"name": name, "is_dir": True, "size": 0})
        if password:
            self.passwords[path] = password

    def add_file(self, path: str, size: int = 100) -> None:
        parent, name = posixpath.split(path)
        self.dirs.setdefault(parent, []).append(
            {"name": name, "is_dir": False, "size": size, "modified": "2024-01-01T00:00:00Z",
             "thumb": f"{SERVER_URL}/t{path}", "type": 5}
        )

    def exists(self, path: str) -> bool:
        if path in self.dirs:
            return True
        parent, name = posixpath.split(path)
        return any(row["name"] == name for row in self.dirs.get(parent, []))

    def list_calls(self, path: Optional[str] = None) -> List[dict]:
        calls = [json.loads(r.content) for r in self.requests if r.url.path == "/api/fs/list"]
        if path is not None:
            calls = [c for c in calls if c["path"] == path]
        return calls

    # transport

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = request.url.path
        if route == "/api/auth/login":
            body = json.loads(request.content)
            if self.users.get(body.get("username")) == body.get("password"):
                return _ok({"token": TOKEN})
            return _err(400, "password is incorrect")

        if self.require_token and request.headers.get("Authorization") != TOKEN:
            return _err(401, "token is invalidated")

        if route == "/api/fs/list":
            return self._list(json.loads(request.content))
        if route == "/api/fs/get":
            body = json.loads(request.content)
            path = body["path"]
            if path in self.dirs or not self.exists(path):
                return _err(500, "object not found")
            return _ok({"name": posixpath.basename(path), "raw_url": self.raw_urls.get(path, f"https://cdn.test{path}")})
        if route == "/api/fs/put":
            path = unquote(request.headers["File-Path"])
            self.uploads[path] = {
                "content": request.content,
                "content_type": request.headers.get("Content-Type"),
                "password": request.headers.get("Password"),
            }
            self.add_file(path, size=len(request.content))
            return _ok()
        if route == "/api/fs/mkdir":
            path = json.loads(request.content)["path"]
            if self.exists(path):
                return _err(500, "failed to make dir: file exists")
            self.add_dir(path)
            return _ok()
        if route == "/api/fs/remove":
            body = json.loads(request.content)
            for name in body["names"]:
                path = posixpath.join(body["dir"], name)
                if path in self.fail_remove:
                    return _err(500, f"failed to remove {path}: permission denied")
                if not self.exists(path):
                    return _err(500, "object not found")
                parent_rows = self.dirs[body["dir"]]
                self.dirs[body["dir"]] = [r for r in parent_rows if r["name"] != name]
            return _ok()
        return httpx.Response(404, json={"code": 404, "message": "not found"})

    def _list(self, body: dict) -> httpx.Response:
        path = body["path"]
        required = self.passwords.get(path)
        if required and body.get("password") != required:
            return _err(500, self.protected_message)
        if path not in self.dirs:
            return _err(500, "failed get objs: failed get dir: object not found")
        rows = self.dirs[path]
        page, per_page = body.get("page", 1), body.get("per_page", 0)
        content = rows[(page - 1) * per_page: page * per_page] if per_page else rows
        return _ok({"content": content or None, "total": len(rows), "readme": "", "write": True, "provider": "Local"})


@pytest.fixture()
def backend() -> FakeAlist:
    return FakeAlist()


@pytest.fixture()
def http_log(tmp_path) -> str:
    return str(tmp_path / "http.log")


@pytest.fixture()
def client(backend, http_log):
    c = AlistClient(
        base_url=SERVER_URL,
        auth=TokenAuth(TOKEN),
        http_log_path=http_log,
        transport=httpx.MockTransport(backend.handler),
    )
    yield c
    c.close()


@pytest.fixture()
def store() -> DirectoryPasswordStore:
    return DirectoryPasswordStore()

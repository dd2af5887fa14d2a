"""Tests for the AList client and the fs operations built on it."""

import httpx
import pytest

from alshare.api import ensure_folder, get_direct_link, list_dir, remove, remove_many, upload_file
from alshare.client import AlistClient
from alshare.errors import ApiError, AuthRequired, PartialBatchFailure, TransportError
from alshare.models import CredentialAuth, TokenAuth
from conftest import SERVER_URL, TOKEN


def _client(backend, auth, **kwargs):
    return AlistClient(SERVER_URL, auth, transport=httpx.MockTransport(backend.handler), **kwargs)


class TestClient:
    def test_token_is_sent(self, backend, client):
        backend.add_dir("/a")

        list_dir(client, "/a")

        assert backend.requests[-1].headers["Authorization"] == TOKEN

    def test_lazy_login_with_credentials(self, backend):
        backend.add_dir("/a")
        with _client(backend, CredentialAuth("admin", "secret")) as client:
            list_dir(client, "/a")

            assert client.token == TOKEN
        assert [r.url.path for r in backend.requests] == ["/api/auth/login", "/api/fs/list"]

    def test_bad_credentials(self, backend):
        with _client(backend, CredentialAuth("admin", "nope")) as client:
            with pytest.raises(ApiError) as exc_info:
                list_dir(client, "/")

        assert "incorrect" in exc_info.value.message

    def test_invalid_token_raises_auth_required(self, backend):
        with _client(backend, TokenAuth("stale")) as client:
            with pytest.raises(AuthRequired):
                list_dir(client, "/")

    def test_http_401_raises_auth_required(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"message": "guest disabled"}))
        with AlistClient(SERVER_URL, transport=transport) as client:
            with pytest.raises(AuthRequired) as exc_info:
                list_dir(client, "/")

        assert exc_info.value.message == "guest disabled"

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        with AlistClient(SERVER_URL, TokenAuth(TOKEN), transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(TransportError):
                list_dir(client, "/")

    def test_connection_config_never_carries_account_password(self, backend):
        with _client(backend, CredentialAuth("admin", "secret")) as client:
            assert client.connection_config().auth is None
            client.login()
            assert client.connection_config().auth == TokenAuth(TOKEN)

    def test_http_log_is_redacted(self, backend, client, http_log):
        backend.add_dir("/vault", password="s3cr3t-dir")

        list_dir(client, "/vault", password="s3cr3t-dir")

        with open(http_log, encoding="utf-8") as handle:
            text = handle.read()
        assert "/api/fs/list" in text
        assert "s3cr3t-dir" not in text
        assert TOKEN not in text


class TestListDir:
    def test_items_and_total(self, backend, client):
        backend.add_dir("/p")
        backend.add_dir("/p/sub")
        backend.add_file("/p/a.jpg", size=2048)

        listing = list_dir(client, "p/")

        assert [(i.name, i.is_dir) for i in listing.items] == [("sub", True), ("a.jpg", False)]
        assert listing.items[1].size == 2048
        assert listing.items[1].thumbnail_url == f"{SERVER_URL}/t/p/a.jpg"
        assert listing.total == 2

    def test_null_content(self, backend, client):
        backend.add_dir("/empty")

        listing = list_dir(client, "/empty")

        assert listing.items == []
        assert listing.total == 0

    def test_password_wording_raises_auth_required(self, backend, client):
        backend.add_dir("/p", password="pw")
        backend.protected_message = "password is incorrect or you have no permission"

        with pytest.raises(AuthRequired):
            list_dir(client, "/p")


class TestDirectLink:
    def test_raw_url(self, backend, client):
        backend.add_file("/a.jpg")

        assert get_direct_link(client, "/a.jpg") == "https://cdn.test/a.jpg"

    def test_r2_link_uses_custom_domain(self, backend):
        backend.add_file("/a.jpg")
        backend.raw_urls["/a.jpg"] = "https://bucket.acc.r2.cloudflarestorage.com/photos/a.jpg?X-Amz-Signature=1"
        with _client(backend, TokenAuth(TOKEN), custom_domain="https://img.example/") as client:
            assert get_direct_link(client, "/a.jpg") == "https://img.example/photos/a.jpg"

    def test_r2_link_without_custom_domain_is_kept(self, backend, client):
        raw = "https://bucket.acc.r2.cloudflarestorage.com/photos/a.jpg"
        backend.add_file("/a.jpg")
        backend.raw_urls["/a.jpg"] = raw

        assert get_direct_link(client, "/a.jpg") == raw

    def test_sharepoint_is_upgraded_to_https(self, backend, client):
        backend.add_file("/doc.png")
        backend.raw_urls["/doc.png"] = "http://contoso.sharepoint.com/sites/x/doc.png"

        assert get_direct_link(client, "/doc.png", prefer_scheme="http") == "https://contoso.sharepoint.com/sites/x/doc.png"

    def test_prefer_scheme(self, backend, client):
        backend.add_file("/a.jpg")

        assert get_direct_link(client, "/a.jpg", prefer_scheme="http") == "http://cdn.test/a.jpg"

    def test_missing_file(self, backend, client):
        with pytest.raises(ApiError):
            get_direct_link(client, "/nope.jpg")


class TestWrites:
    def test_upload(self, backend, client, tmp_path):
        local = tmp_path / "cat.webp"
        local.write_bytes(b"RIFF....WEBP")
        backend.add_dir("/up")

        upload_file(client, "/up", str(local), name="my cat.webp", password="dirpw")

        sent = backend.requests[-1]
        assert sent.headers["File-Path"] == "%2Fup%2Fmy%20cat.webp"
        assert backend.uploads["/up/my cat.webp"] == {
            "content": b"RIFF....WEBP",
            "content_type": "image/webp",
            "password": "dirpw",
        }

    def test_upload_keeps_declared_type(self, backend, client, tmp_path):
        local = tmp_path / "blob"
        local.write_bytes(b"x")

        upload_file(client, "/", str(local), content_type="image/png")

        assert backend.uploads["/blob"]["content_type"] == "image/png"

    def test_ensure_folder_creates(self, backend, client):
        assert ensure_folder(client, "/", "new") == "/new"
        assert backend.exists("/new")

    def test_ensure_folder_existing_is_fine(self, backend, client):
        backend.add_dir("/old")

        assert ensure_folder(client, "/", "old") == "/old"

    def test_remove_refuses_root(self, backend, client):
        with pytest.raises(ApiError):
            remove(client, "/")
        assert backend.requests == []


class TestBatchRemove:
    def test_partial_failure_is_reported_per_path(self, backend, client):
        backend.add_dir("/d")
        paths = [f"/d/{i}.jpg" for i in range(1, 6)]
        for path in paths:
            backend.add_file(path)
        backend.fail_remove = {"/d/2.jpg", "/d/4.jpg"}

        batch = remove_many(client, paths)

        assert batch.total == 5
        assert batch.success_count == 3
        assert batch.fail_count == 2
        assert [r.path for r in batch.failures] == ["/d/2.jpg", "/d/4.jpg"]
        assert all("permission denied" in r.error for r in batch.failures)
        assert not backend.exists("/d/1.jpg")
        assert backend.exists("/d/2.jpg")
        with pytest.raises(PartialBatchFailure):
            batch.raise_for_failures()

    def test_all_succeed(self, backend, client):
        backend.add_file("/x.jpg")

        batch = remove_many(client, ["/x.jpg"])

        assert batch.success
        batch.raise_for_failures()

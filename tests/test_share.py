"""End-to-end tests: create a share link, then open it."""

import json

import httpx
import pytest

from alshare.client import AlistClient
from alshare.codec import decode_bundle
from alshare.config import ShareSettings
from alshare.consumer import LinkConsumer, UnlockState
from alshare.errors import ApiError
from alshare.links import parse_share_link
from alshare.models import CredentialAuth, TokenAuth
from alshare.share import create_share_link
from conftest import SERVER_URL, TOKEN

VIEWER = "https://viewer.example/view"


class TestCreateShareLink:
    def test_gallery_link_round_trip(self, client):
        url = create_share_link(
            client, ShareSettings(), VIEWER, password="pw", image_paths=["/g/1.jpg", "g/2.jpg"], title="Trip"
        )

        params = parse_share_link(url)
        bundle = decode_bundle(params.token, "pw")
        assert params.is_gallery
        assert params.passwordless_key is None
        assert bundle.image_paths == ("/g/1.jpg", "/g/2.jpg")
        assert bundle.title == "Trip"
        assert bundle.connection.server_url == SERVER_URL
        assert bundle.connection.auth == TokenAuth(TOKEN)

    def test_single_item_link(self, client):
        url = create_share_link(client, ShareSettings(), VIEWER, password="pw", path="/g/1.jpg")

        params = parse_share_link(url)
        assert params.path == "/g/1.jpg"
        assert decode_bundle(params.token, "pw").image_paths is None

    def test_password_required_without_passwordless_mode(self, client):
        with pytest.raises(ValueError):
            create_share_link(client, ShareSettings("d", False), VIEWER, path="/a.jpg")

    def test_exactly_one_target(self, client):
        with pytest.raises(ValueError):
            create_share_link(client, ShareSettings(), VIEWER, password="pw", path="/a.jpg", image_paths=["/b.jpg"])
        with pytest.raises(ValueError):
            create_share_link(client, ShareSettings(), VIEWER, password="pw")
        with pytest.raises(ValueError):
            create_share_link(client, ShareSettings(), VIEWER, password="pw", image_paths=[])

    def test_credential_client_shares_a_token_not_its_password(self, backend):
        transport = httpx.MockTransport(backend.handler)
        with AlistClient(SERVER_URL, CredentialAuth("admin", "secret"), transport=transport) as client:
            url = create_share_link(client, ShareSettings(), VIEWER, password="pw", path="/a.jpg")

        bundle = decode_bundle(parse_share_link(url).token, "pw")
        assert bundle.connection.auth == TokenAuth(TOKEN)
        assert "secret" not in json.dumps(bundle.to_dict())
        assert [r.url.path for r in backend.requests] == ["/api/auth/login"]

    def test_failed_login_creates_no_link(self, backend):
        transport = httpx.MockTransport(backend.handler)
        with AlistClient(SERVER_URL, CredentialAuth("admin", "wrong"), transport=transport) as client:
            with pytest.raises(ApiError):
                create_share_link(client, ShareSettings(), VIEWER, password="pw", path="/a.jpg")


class TestPasswordlessSharing:
    def test_default_password_link_opens_without_prompt(self, backend, client):
        backend.add_dir("/g")
        backend.add_file("/g/1.jpg")
        settings = ShareSettings(default_password="d3fault", passwordless_enabled=True)

        url = create_share_link(client, settings, VIEWER, image_paths=["/g/1.jpg"])
        consumer = LinkConsumer(url)

        assert consumer.start().state is UnlockState.UNLOCKED
        assert [item.url for item in consumer.fetch_items(client)] == ["https://cdn.test/g/1.jpg"]

    def test_custom_password_still_prompts(self, client):
        settings = ShareSettings(default_password="d3fault", passwordless_enabled=True)

        url = create_share_link(client, settings, VIEWER, password="custom", path="/a.jpg")
        consumer = LinkConsumer(url)

        assert parse_share_link(url).passwordless_key is None
        assert consumer.start().state is UnlockState.PROMPTING
        assert consumer.submit("custom").state is UnlockState.UNLOCKED

"""
Tests for the Netlify API client.
The requests session is mocked, so no real token or network is needed.

Run:
    python -m pytest tests/test_netlify_client.py -v
"""

import hashlib

import pytest
import requests
from unittest.mock import MagicMock, patch

from sitedeploy.api.netlify_client import NetlifyClient
from sitedeploy.api.exceptions import (
    AuthenticationError,
    BadRequestError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
)
from sitedeploy.utils.config import Settings


# ---------------------------------------------------------------------------
# Helpers / fixtures
# ---------------------------------------------------------------------------

API = "https://api.netlify.com/api/v1"

SITE_JSON = {
    "id": "site-1",
    "name": "my-site",
    "custom_domain": "www.example.com",
    "domain_aliases": ["example.com", "example.com", "shop.example.com"],
    "url": "http://www.example.com",
    "ssl_url": "https://www.example.com",
    "created_at": "2024-05-01T10:00:00Z",
}


def _settings(**overrides):
    values = dict(
        netlify_token="nfp_test_token_1234567890",
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="testsecret",
        aws_region="us-east-1",
        s3_bucket_name="site-bucket",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _response(status=200, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status
    if json_data is None:
        response.content = b""
        response.json.side_effect = ValueError("no json")
    else:
        response.content = b"{...}"
        response.json.return_value = json_data
    response.text = text
    return response


def _client(*responses):
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = list(responses)
    return NetlifyClient(_settings(), session=session), session


# ===========================================================================
# 1. Request handling and error mapping
# ===========================================================================

class TestRequestHandling:

    def test_auth_header_is_set(self):
        client, session = _client()

        assert session.headers["Authorization"] == "Bearer nfp_test_token_1234567890"
        assert session.headers["Accept"] == "application/json"

    def test_uses_configured_timeout(self):
        client, session = _client(_response(200, SITE_JSON))

        client.get_site("site-1")

        kwargs = session.request.call_args.kwargs
        assert kwargs["method"] == "GET"
        assert kwargs["url"] == f"{API}/sites/site-1"
        assert kwargs["timeout"] == 30.0

    @pytest.mark.parametrize("status, error", [
        (400, BadRequestError),
        (422, BadRequestError),
        (401, AuthenticationError),
        (403, AuthenticationError),
        (404, NotFoundError),
        (429, RateLimitError),
        (500, ServerError),
        (503, ServerError),
    ])
    def test_status_codes_map_to_errors(self, status, error):
        client, _ = _client(_response(status, {"message": "nope"}))

        with pytest.raises(error) as exc_info:
            client.get_site("site-1")

        assert exc_info.value.status_code == status

    def test_bad_request_keeps_provider_message(self):
        client, _ = _client(_response(422, {"message": "Cannot update domain aliases while primary domain is set"}))

        with pytest.raises(BadRequestError, match="domain aliases while primary"):
            client.update_site("site-1", alias_domains=["a.com"])

    def test_non_json_error_body(self):
        client, _ = _client(_response(502, None, text="Bad Gateway"))

        with pytest.raises(ServerError, match="Bad Gateway"):
            client.get_site("site-1")

    def test_timeout_becomes_network_error(self):
        client, _ = _client(requests.exceptions.Timeout())

        with pytest.raises(NetworkError, match="timed out"):
            client.get_site("site-1")

    def test_connection_error_becomes_network_error(self):
        client, _ = _client(requests.exceptions.ConnectionError("refused"))

        with pytest.raises(NetworkError):
            client.list_sites()

    def test_no_retry_on_server_error(self):
        client, session = _client(_response(500, {"message": "down"}), _response(200, SITE_JSON))

        with pytest.raises(ServerError):
            client.get_site("site-1")

        assert session.request.call_count == 1


# ===========================================================================
# 2. Sites
# ===========================================================================

class TestSites:

    def test_get_site_parses_domains(self):
        client, _ = _client(_response(200, SITE_JSON))

        site = client.get_site("site-1")

        assert site.primary_domain == "www.example.com"
        assert site.alias_domains == ["example.com", "shop.example.com"]
        assert site.public_url == "https://www.example.com"
        assert site.created_at_display().startswith("2024-05-01T10:00:00")

    def test_get_site_handles_null_domains(self):
        client, _ = _client(_response(200, {"id": "site-1", "name": "x", "custom_domain": None, "domain_aliases": None}))

        site = client.get_site("site-1")

        assert site.primary_domain == ""
        assert site.alias_domains == []
        assert site.created_at_display() == ""

    def test_get_site_empty_body_is_not_found(self):
        client, _ = _client(_response(200, {}))

        with pytest.raises(NotFoundError):
            client.get_site("site-1")

    def test_list_sites_reads_all_pages(self):
        page1 = [{"id": "1", "name": "a"}, {"id": "2", "name": "b"}]
        page2 = [{"id": "3", "name": "c"}]
        client, session = _client(_response(200, page1), _response(200, page2))

        sites = client.list_sites(per_page=2)

        assert [site.id for site in sites] == ["1", "2", "3"]
        assert session.request.call_count == 2
        assert session.request.call_args.kwargs["params"] == {"filter": "all", "page": 2, "per_page": 2}

    def test_create_site_posts_name(self):
        client, session = _client(_response(201, {"id": "new", "name": "fresh"}))

        site = client.create_site("fresh")

        assert site.id == "new"
        assert session.request.call_args.kwargs["json"] == {"name": "fresh"}

    def test_update_site_sends_full_domain_state(self):
        client, session = _client(_response(200, SITE_JSON))

        client.update_site(
            "site-1",
            name="my-site",
            primary_domain="",
            alias_domains=["a.com"],
            record_txt_value="token"
        )

        kwargs = session.request.call_args.kwargs
        assert kwargs["method"] == "PATCH"
        assert kwargs["json"] == {
            "name": "my-site",
            "custom_domain": None,
            "domain_aliases": ["a.com"],
            "record_txt_value": "token",
        }

    def test_rename_only_sends_name(self):
        client, session = _client(_response(200, SITE_JSON))

        client.update_site("site-1", name="renamed")

        assert session.request.call_args.kwargs["json"] == {"name": "renamed"}

    def test_delete_site(self):
        client, session = _client(_response(204))

        client.delete_site("site-1")

        assert session.request.call_args.kwargs["method"] == "DELETE"


# ===========================================================================
# 3. Deploys
# ===========================================================================

class TestDeploys:

    def test_deploy_files_uploads_only_required(self):
        index = b"<h1>Hello</h1>"
        style = b"body{}"
        index_sha = hashlib.sha1(index).hexdigest()
        style_sha = hashlib.sha1(style).hexdigest()

        client, session = _client(
            _response(200, {"id": "dep-1", "state": "uploading", "required": [index_sha]}),
            _response(200, {"id": "file"}),
        )

        deploy = client.deploy_files("site-1", {"index.html": index, "css/site.css": style}, title="t")

        assert deploy.id == "dep-1"
        first, second = session.request.call_args_list
        assert first.kwargs["url"] == f"{API}/sites/site-1/deploys"
        assert first.kwargs["json"]["files"] == {"/index.html": index_sha, "/css/site.css": style_sha}
        assert first.kwargs["json"]["title"] == "t"
        assert second.kwargs["method"] == "PUT"
        assert second.kwargs["url"] == f"{API}/deploys/dep-1/files/index.html"
        assert second.kwargs["data"] == index
        assert session.request.call_count == 2

    def test_deploy_directory_skips_ignored_entries(self, tmp_path):
        (tmp_path / "index.html").write_text("<h1>x</h1>")
        (tmp_path / ".DS_Store").write_bytes(b"junk")
        (tmp_path / "assets").mkdir()
        (tmp_path / "assets" / "app.js").write_text("1")
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "HEAD").write_text("ref")

        client, _ = _client()
        with patch.object(client, "deploy_files") as mock_deploy:
            client.deploy_directory("site-1", tmp_path, title="dir")

        files = mock_deploy.call_args.args[1]
        assert set(files) == {"index.html", "assets/app.js"}
        assert mock_deploy.call_args.kwargs["title"] == "dir"

    def test_get_deploy(self):
        client, _ = _client(_response(200, {"id": "dep-1", "state": "error", "error_message": "build failed"}))

        deploy = client.get_deploy("dep-1")

        assert deploy.is_error
        assert deploy.is_terminal
        assert deploy.error_message == "build failed"

    def test_get_current_user(self):
        client, session = _client(_response(200, {"email": "me@example.com"}))

        assert client.get_current_user()["email"] == "me@example.com"
        assert session.request.call_args.kwargs["url"] == f"{API}/user"

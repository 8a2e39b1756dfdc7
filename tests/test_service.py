"""Tests for the signing HTTP service."""

import json
from urllib.parse import parse_qsl, urlsplit

import pytest
from starlette.testclient import TestClient

from osspresign.common.metrics import method_label
from osspresign.common.settings import Settings
from osspresign.service.main import create_app
from osspresign.signer import HashlibProvider, Presigner

CREDENTIALS = {
    "accessKeyId": "AKID",
    "accessKeySecret": "SECRET",
    "region": "oss-cn-hangzhou",
    "bucket": "my-bucket",
}


def _query(url: str) -> dict[str, str]:
    return dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))


@pytest.fixture
def client(settings, fixed_clock):
    app = create_app(settings, presigner=Presigner(HashlibProvider(), clock=fixed_clock))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def bare_client(fixed_clock):
    """Client whose settings carry no default credentials."""
    settings = Settings(
        _env_file=None,
        access_key_id=None,
        access_key_secret=None,
        bucket=None,
        region=None,
        endpoint=None,
    )
    app = create_app(settings, presigner=Presigner(HashlibProvider(), clock=fixed_clock))
    with TestClient(app) as test_client:
        yield test_client


class TestSignEndpoint:
    """GET/POST /sign."""

    def test_post_json_body(self, client, presigner, signing_request):
        resp = client.post("/sign", json={**CREDENTIALS, "object": "a/b.txt", "expires": 60})

        assert resp.status_code == 200
        assert resp.json() == {"url": presigner.sign_url(signing_request)}

    def test_get_uses_settings_defaults(self, client):
        resp = client.get("/sign", params={"object": "report.csv"})

        assert resp.status_code == 200
        url = resp.json()["url"]
        assert urlsplit(url).netloc == "env-bucket.cn-shanghai.aliyuncs.com"
        assert urlsplit(url).path == "/report.csv"
        query = _query(url)
        assert query["x-oss-expires"] == "3600"
        assert query["x-oss-credential"].startswith("ENVID/20240101/cn-shanghai/oss/")

    def test_body_takes_precedence_over_query(self, client):
        resp = client.post(
            "/sign?bucket=query-bucket&objectName=from-query.txt",
            json={"bucket": "body-bucket", "objectName": "from-body.txt"},
        )

        url = resp.json()["url"]
        assert urlsplit(url).netloc.startswith("body-bucket.")
        assert urlsplit(url).path == "/from-body.txt"

    def test_options_json_string(self, client):
        options = json.dumps({**CREDENTIALS, "endpoint": "https://cdn.example.com"})
        resp = client.get("/sign", params={"options": options, "key": "x.txt"})

        assert resp.status_code == 200
        assert resp.json()["url"].startswith("https://cdn.example.com/x.txt?")

    def test_method_uppercased(self, client):
        resp = client.post("/sign", json={**CREDENTIALS, "object": "k", "method": "put"})
        assert resp.status_code == 200

    def test_additional_headers_json_string(self, client):
        resp = client.get(
            "/sign",
            params={"object": "k", "additionalHeaders": '["X-Custom-1", "Content-Type"]'},
        )
        assert _query(resp.json()["url"])["x-oss-additional-headers"] == "x-custom-1"

    def test_additional_headers_comma_list(self, client):
        resp = client.get("/sign", params={"object": "k", "additional_headers": "Range, X-A"})
        assert _query(resp.json()["url"])["x-oss-additional-headers"] == "range;x-a"

    def test_additional_headers_snake_case_in_options(self, client):
        resp = client.post(
            "/sign",
            json={"object": "k", "options": {**CREDENTIALS, "additional_headers": "X-A"}},
        )
        assert _query(resp.json()["url"])["x-oss-additional-headers"] == "x-a"

    def test_request_parts(self, client):
        resp = client.post(
            "/sign",
            json={
                "object": "k",
                "request": {
                    "headers": {"Content-Type": "text/plain"},
                    "queries": {"response-content-disposition": "attachment"},
                },
            },
        )

        assert resp.status_code == 200
        assert _query(resp.json()["url"])["response-content-disposition"] == "attachment"

    def test_security_token_alias(self, client):
        resp = client.post("/sign", json={"object": "k", "stsToken": "tok"})
        assert _query(resp.json()["url"])["x-oss-security-token"] == "tok"

    def test_non_json_body_falls_back_to_query(self, client):
        resp = client.post("/sign?object=q.txt", content=b"not json")

        assert resp.status_code == 200
        assert urlsplit(resp.json()["url"]).path == "/q.txt"

    def test_request_id_echoed(self, client):
        resp = client.get("/sign", params={"object": "k"}, headers={"X-Request-ID": "req-1"})
        assert resp.headers["X-Request-ID"] == "req-1"


class TestSignErrors:
    """Error responses."""

    def test_missing_credentials(self, bare_client):
        resp = bare_client.post("/sign", json={"bucket": "b", "object": "k"})

        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "missing_field"
        assert "Missing required option(s)" in body["error"]

    def test_credentials_from_request_only(self, bare_client):
        resp = bare_client.post("/sign", json={**CREDENTIALS, "object": "k"})
        assert resp.status_code == 200

    def test_invalid_expires(self, client):
        resp = client.get("/sign", params={"object": "k", "expires": "soon"})

        assert resp.status_code == 400
        assert resp.json()["code"] == "bad_request"

    def test_signer_error_is_500(self, client):
        resp = client.post("/sign", json={"object": "k", "expires": 10**7})

        assert resp.status_code == 500
        body = resp.json()
        assert body["code"] == "configuration_error"
        assert "expires" in body["error"]

    def test_missing_region_without_endpoint(self, bare_client):
        payload = {k: v for k, v in CREDENTIALS.items() if k != "region"}
        resp = bare_client.post("/sign", json={**payload, "object": "k"})

        assert resp.status_code == 500
        assert "endpoint" in resp.json()["error"]

    def test_unencodable_header_name_is_json_500(self, client):
        resp = client.post(
            "/sign",
            content=b'{"object": "a.txt", "request": {"headers": {"x-oss-meta-\\ud800": "v"}}}',
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 500
        assert resp.json()["code"] == "encoding_error"


class TestAuxiliaryRoutes:
    """Health and metrics."""

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}

    def test_metrics_after_signing(self, client):
        client.get("/sign", params={"object": "k"})
        resp = client.get("/metrics")

        assert resp.status_code == 200
        assert "osspresign_urls_signed_total" in resp.text

    def test_unknown_method_label_is_bounded(self, client):
        client.post("/sign", json={"object": "k", "method": "FOO-BAR-BAZ"})
        resp = client.get("/metrics")

        assert 'method="OTHER"' in resp.text
        assert "FOO-BAR-BAZ" not in resp.text


class TestMethodLabel:
    """Metric label normalization."""

    @pytest.mark.parametrize(
        "method,expected",
        [("GET", "GET"), ("put", "PUT"), ("DELETE", "DELETE"), ("FOO", "OTHER"), ("", "OTHER")],
    )
    def test_method_label(self, method, expected):
        assert method_label(method) == expected

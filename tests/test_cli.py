"""Tests for the osspresign CLI."""

import json
from urllib.parse import parse_qsl, urlsplit

from click.testing import CliRunner

from osspresign.cli import cli

BASE_ARGS = [
    "sign",
    "--access-key-id",
    "AKID",
    "--access-key-secret",
    "SECRET",
    "--bucket",
    "my-bucket",
    "--region",
    "oss-cn-hangzhou",
]


def _url_from(output: str) -> str:
    return next(line for line in output.splitlines() if line.startswith("https://"))


def test_sign_prints_url():
    result = CliRunner().invoke(cli, [*BASE_ARGS, "--object", "a/b.txt"])

    assert result.exit_code == 0, result.output
    url = _url_from(result.output)
    assert urlsplit(url).netloc == "my-bucket.cn-hangzhou.aliyuncs.com"
    assert urlsplit(url).path == "/a/b.txt"
    assert dict(parse_qsl(urlsplit(url).query))["x-oss-expires"] == "60"


def test_sign_with_headers_and_queries():
    result = CliRunner().invoke(
        cli,
        [
            *BASE_ARGS,
            "--object",
            "k",
            "--header",
            "X-Custom=1",
            "--additional-header",
            "X-Custom",
            "--query",
            "versionId=v1",
            "--expires",
            "120",
            "--hash-provider",
            "cryptography",
        ],
    )

    assert result.exit_code == 0, result.output
    query = dict(parse_qsl(urlsplit(_url_from(result.output)).query))
    assert query["x-oss-additional-headers"] == "x-custom"
    assert query["versionId"] == "v1"
    assert query["x-oss-expires"] == "120"


def test_verbose_shows_intermediates():
    result = CliRunner().invoke(cli, [*BASE_ARGS, "--object", "k", "--verbose"])

    assert result.exit_code == 0, result.output
    assert "Canonical request" in result.output
    assert "UNSIGNED-PAYLOAD" in result.output
    assert "String to sign" in result.output


def test_missing_bucket_fails():
    args = [a for a in BASE_ARGS if a not in ("--bucket", "my-bucket")]
    result = CliRunner().invoke(cli, [*args, "--object", "k"])

    assert result.exit_code == 1
    assert "bucket" in result.output


def test_config_file_supplies_defaults(tmp_path):
    config = tmp_path / "osspresign.json"
    config.write_text(
        json.dumps(
            {
                "osspresign": {
                    "access_key_id": "CFGID",
                    "access_key_secret": "CFGSECRET",
                    "bucket": "cfg-bucket",
                    "region": "oss-eu-central-1",
                }
            }
        )
    )

    result = CliRunner().invoke(cli, ["--config", str(config), "sign", "--object", "k"])

    assert result.exit_code == 0, result.output
    url = _url_from(result.output)
    assert urlsplit(url).netloc == "cfg-bucket.eu-central-1.aliyuncs.com"
    assert dict(parse_qsl(urlsplit(url).query))["x-oss-credential"].startswith("CFGID/")

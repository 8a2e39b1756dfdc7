"""Pytest configuration and fixtures."""

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from osspresign.common.settings import Settings
from osspresign.signer import HashlibProvider, Presigner, SigningRequest

FIXED_NOW = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock frozen at 2024-01-01T00:00:00Z."""
    return lambda: FIXED_NOW


@pytest.fixture
def presigner(fixed_clock) -> Presigner:
    """Presigner with the stdlib hash provider and a frozen clock."""
    return Presigner(HashlibProvider(), clock=fixed_clock)


@pytest.fixture
def signing_request() -> SigningRequest:
    """The reference object-level GET request."""
    return SigningRequest(
        access_key_id="AKID",
        access_key_secret="SECRET",
        region="oss-cn-hangzhou",
        bucket="my-bucket",
        object="a/b.txt",
        method="GET",
        expires=60,
    )


@pytest.fixture
def settings() -> Settings:
    """Settings with default credentials and no .env lookup."""
    return Settings(
        _env_file=None,
        access_key_id="ENVID",
        access_key_secret="ENVSECRET",
        bucket="env-bucket",
        region="oss-cn-shanghai",
        endpoint=None,
        security_token=None,
        cloud_box_id=None,
        default_expires=3600,
    )


ENV_NAMES = (
    "OSS_ACCESS_KEY_ID",
    "ACCESS_KEY_ID",
    "ACCESSKEYID",
    "OSS_ACCESS_KEY_SECRET",
    "ACCESS_KEY_SECRET",
    "ACCESSSECRET",
    "OSS_BUCKET",
    "BUCKET",
    "OSS_REGION",
    "REGION",
    "OSS_ENDPOINT",
    "ENDPOINT",
    "OSS_STS_TOKEN",
    "STS_TOKEN",
    "OSS_CLOUDBOX_ID",
    "CLOUD_BOX_ID",
    "CLOUDBOXID",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep credentials from the host environment out of tests."""
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)

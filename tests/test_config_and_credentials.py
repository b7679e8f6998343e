try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import hashlib

import pytest
from pydantic import ValidationError

from gdms_report.core.config import AppSettings, GdmsSettings, ReportSettings
from gdms_report.core.credentials import GdmsCredentials, hash_password
from gdms_report.models import Token
from gdms_report.utils.coerce import as_int, coalesce_int, display_text, normalize_mac, normalize_status


def test_password_hash_is_sha256_of_md5_hex() -> None:
    md5 = hashlib.md5(b"admin@1234").hexdigest()

    assert hash_password("admin@1234") == hashlib.sha256(md5.encode()).hexdigest()


def test_credentials_are_immutable_and_drop_the_plain_password() -> None:
    creds = GdmsCredentials(
        domain="gdms.test", username="u", password="p", client_id="c", client_secret="s"
    )

    assert creds.password_hash == hash_password("p")
    assert creds.base_url == "https://gdms.test"
    assert not hasattr(creds, "password")
    with pytest.raises(AttributeError):
        creds.username = "other"  # type: ignore[misc]


def test_credentials_require_identity_fields() -> None:
    with pytest.raises(ValueError):
        GdmsCredentials(domain="", username="u", password="p", client_id="c", client_secret="s")


def test_credentials_from_environment_settings() -> None:
    creds = GdmsCredentials.from_settings(GdmsSettings())

    assert creds.domain == "gdms.test"
    assert creds.client_secret == "csecret"
    assert creds.password_hash == hash_password("s3cret")
    assert creds.scope is None


def test_settings_reject_inverted_refresh_bounds(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GDMS_REFRESH_MIN_SLEEP", "60")
    monkeypatch.setenv("GDMS_REFRESH_MAX_SLEEP", "30")

    with pytest.raises(ValidationError):
        GdmsSettings()


def test_report_settings_defaults_and_validation(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = ReportSettings()
    assert settings.status_pool_size == 20
    assert settings.device_page_size == 5000
    assert settings.status_batch_deadline_seconds is None

    monkeypatch.setenv("GDMS_STATUS_POOL_SIZE", "0")
    with pytest.raises(ValidationError):
        ReportSettings()


def test_app_settings_nest_gdms_and_report() -> None:
    settings = AppSettings()

    assert settings.gdms.username == "operator"
    assert settings.gdms.refresh_loop_enabled is False
    assert settings.report.org_page_size == 1000


def test_token_validity_boundary() -> None:
    token = Token(access_token="t", expires_at=1000.0)

    assert token.is_valid(now=879.0, skew_seconds=120)
    assert not token.is_valid(now=880.0, skew_seconds=120)


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, "—"), ("  ", "—"), (" x ", "x"), (0, "0"), (True, "true")],
)
def test_display_text(value, expected) -> None:
    assert display_text(value) == expected


def test_integer_coercions() -> None:
    assert as_int(" 42 ") == 42
    assert as_int("4.2") is None
    assert as_int(3.0) == 3
    assert as_int(" 3.0 ") == 3
    assert as_int(3.5) is None
    assert as_int(True) is None
    assert coalesce_int(None, "x", "7", 9) == 7
    assert coalesce_int(None, "") is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, "Unallocated"), ("", "Unallocated"), ("NULL", "Unallocated"), (" AA ", "AA")],
)
def test_normalize_mac(value, expected) -> None:
    assert normalize_mac(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1", "Active"), ("up", "Active"), (0, "Inactive"), ("Down", "Inactive"), (None, "Abnormal")],
)
def test_normalize_status(value, expected) -> None:
    assert normalize_status(value) == expected

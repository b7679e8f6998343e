"""Tests for the organization export script."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json
from pathlib import Path

import httpx
import pytest

from gdms_report.clients import GdmsApiClient
from scripts import export_orgs

from _fakes import FakeGdms, body_of, ok


@pytest.fixture()
def fake_gdms(monkeypatch: pytest.MonkeyPatch) -> FakeGdms:
    fake = FakeGdms()
    fake.route(
        "org/list",
        lambda request: ok({"result": [{"id": 1, "organization": "Acme"}, {"id": 2, "organization": "Globex"}]}),
    )
    fake.route(
        "device/list",
        lambda request: ok({"result": [{"mac": f"MAC-{body_of(request)['orgId']}"}], "pages": 1}),
    )
    fake.route(
        "device/account/status",
        lambda request: ok({"accountStatus": 1, "sipAccountInfoList": [{"sipUserId": "1001", "account": 1}]}),
    )
    fake.route(
        "sip/account/list",
        lambda request: ok({"result": [{"id": 5, "sipUserId": "1001", "orgId": body_of(request)["orgId"]}]}),
    )

    def from_settings(cls, settings, **kwargs):
        return fake.client()

    monkeypatch.setattr(GdmsApiClient, "from_settings", classmethod(from_settings))
    return fake


def test_export_with_query_writes_files(tmp_path: Path, fake_gdms: FakeGdms, capsys) -> None:
    exit_code = export_orgs.main(
        ["--query", "acme", "--output-dir", str(tmp_path), "--no-refresh-loop"],
        ask=lambda prompt: pytest.fail("should not prompt when --query is given"),
    )

    assert exit_code == export_orgs.EXIT_OK
    mapped = json.loads((tmp_path / "sip_accounts_with_devices.json").read_text(encoding="utf-8"))
    assert mapped["data"][0]["mac"] == "MAC-1"
    assert [body_of(r)["orgId"] for r in fake_gdms.api_requests("device/list")] == [1]
    assert "1: Acme" in capsys.readouterr().out


def test_export_prompts_for_names_when_no_query(tmp_path: Path, fake_gdms: FakeGdms) -> None:
    prompts: list[str] = []

    def ask(prompt: str) -> str:
        prompts.append(prompt)
        return "glob"

    exit_code = export_orgs.main(["--output-dir", str(tmp_path), "--no-refresh-loop"], ask=ask)

    assert exit_code == export_orgs.EXIT_OK
    assert len(prompts) == 1
    assert "comma-separated" in prompts[0]
    assert [body_of(r)["orgId"] for r in fake_gdms.api_requests("device/list")] == [2]


def test_export_reports_unmatched_names(tmp_path: Path, fake_gdms: FakeGdms, capsys) -> None:
    exit_code = export_orgs.main(["--query", "initech", "--output-dir", str(tmp_path)])

    assert exit_code == export_orgs.EXIT_SELECTION_ERROR
    assert "No organizations matched" in capsys.readouterr().err


def test_export_reports_gdms_failures(tmp_path: Path, fake_gdms: FakeGdms, capsys) -> None:
    fake_gdms.route("org/list", lambda request: httpx.Response(500, text="down"))

    exit_code = export_orgs.main(["--query", "acme", "--output-dir", str(tmp_path)])

    assert exit_code == export_orgs.EXIT_GDMS_ERROR
    assert "GDMS request failed" in capsys.readouterr().err


def test_export_requires_gdms_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GDMS_USERNAME", raising=False)

    exit_code = export_orgs.main(["--query", "acme"])

    assert exit_code == export_orgs.EXIT_VALIDATION_ERROR

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio

import httpx
import pytest

from gdms_report.clients import GdmsHttpError
from gdms_report.models import Device, DeviceAccountStatus, Organization
from gdms_report.services.status_enrichment import (
    DEADLINE_EXCEEDED_MESSAGE,
    NO_STATUS_DATA_MESSAGE,
    StatusEnrichmentService,
)

from _fakes import FakeGdms, body_of, ok

ACME = Organization(id=1, name="Acme")
GLOBEX = Organization(id=2, name="Globex")


class StubStatusClient:
    def __init__(self, *, failing=(), missing=(), delays=None) -> None:
        self.failing = set(failing)
        self.missing = set(missing)
        self.delays = delays or {}
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_device_account_status(self, mac: str):
        self.calls.append(mac)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(mac, 0.001))
            if mac in self.failing:
                raise GdmsHttpError(500, "internal error")
            if mac in self.missing:
                return None
            return DeviceAccountStatus(
                account_status=1,
                dnd=0,
                sip_account_info_list=[{"sipUserId": f"u-{mac}", "account": 1}],
            )
        finally:
            self.in_flight -= 1


def _device(mac, org: Organization, **extra) -> Device:
    return Device(mac=mac, device_name=f"dev {mac}", org_id=org.id, org_name=org.name, **extra)


@pytest.mark.asyncio
async def test_success_and_failures_partition_devices_with_a_mac() -> None:
    client = StubStatusClient(failing={"M2"}, missing={"M3"})
    devices = [
        _device("M1", ACME),
        _device("M2", ACME),
        _device("M3", ACME),
        _device("", ACME),
        _device(None, ACME),
        _device("M4", GLOBEX),
    ]
    service = StatusEnrichmentService(client, pool_size=4)

    payload = await service.enrich(devices, [ACME, GLOBEX])

    success = {d.mac for d in payload.success}
    failures = {d.mac: d.error for d in payload.failures}
    assert success == {"M1", "M4"}
    assert set(failures) == {"M2", "M3"}
    assert failures["M3"] == NO_STATUS_DATA_MESSAGE
    assert "500" in failures["M2"]
    assert not success & set(failures)
    assert payload.meta.total == 4
    assert payload.meta.success == 2
    assert payload.meta.failures == 2
    assert sorted(client.calls) == ["M1", "M2", "M3", "M4"]


@pytest.mark.asyncio
async def test_only_selected_organizations_are_looked_up() -> None:
    client = StubStatusClient()
    devices = [_device("M1", ACME), _device("M2", GLOBEX)]

    payload = await StatusEnrichmentService(client).enrich(devices, [GLOBEX])

    assert client.calls == ["M2"]
    assert [d.mac for d in payload.success] == ["M2"]


@pytest.mark.asyncio
async def test_merged_rows_carry_status_and_org() -> None:
    client = StubStatusClient()
    device = _device("M1", ACME, sn="SN-1", isSynchronized=1)

    payload = await StatusEnrichmentService(client).enrich([device], [ACME])

    enriched = payload.success[0]
    assert enriched.org_id == 1
    assert enriched.org_name == "Acme"
    assert enriched.account_status == 1
    assert enriched.dnd == 0
    assert enriched.sip_account_info_list[0].sip_user_id == "u-M1"
    assert enriched.sn == "SN-1"
    row = enriched.to_vendor_dict()
    assert row["accountStatus"] == 1
    assert row["isSynchronized"] == 1


@pytest.mark.asyncio
async def test_concurrency_never_exceeds_pool_size() -> None:
    client = StubStatusClient(delays={f"M{i}": 0.01 for i in range(12)})
    devices = [_device(f"M{i}", ACME) for i in range(12)]

    payload = await StatusEnrichmentService(client, pool_size=3).enrich(devices, [ACME])

    assert payload.meta.success == 12
    assert 1 <= client.max_in_flight <= 3


@pytest.mark.asyncio
async def test_batch_deadline_cancels_pending_lookups() -> None:
    client = StubStatusClient(delays={"SLOW": 5})
    devices = [_device("FAST", ACME), _device("SLOW", ACME)]
    service = StatusEnrichmentService(client, pool_size=2, batch_deadline_seconds=0.2)

    payload = await service.enrich(devices, [ACME])

    assert [d.mac for d in payload.success] == ["FAST"]
    assert [(d.mac, d.error) for d in payload.failures] == [("SLOW", DEADLINE_EXCEEDED_MESSAGE)]


@pytest.mark.asyncio
async def test_no_selected_organizations_yields_empty_payload() -> None:
    client = StubStatusClient()

    payload = await StatusEnrichmentService(client).enrich([_device("M1", ACME)], [])

    assert payload.meta.total == 0
    assert client.calls == []


def test_pool_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        StatusEnrichmentService(StubStatusClient(), pool_size=0)


@pytest.mark.asyncio
async def test_http_500_for_one_mac_lands_in_failures_only() -> None:
    fake = FakeGdms()

    def handler(request: httpx.Request) -> httpx.Response:
        if body_of(request)["mac"] == "AA:BB:CC":
            return httpx.Response(500, text="internal error")
        return ok({"accountStatus": 1, "sipAccountInfoList": []})

    fake.route("device/account/status", handler)
    client = fake.client()
    devices = [_device("AA:BB:CC", ACME), _device("DD:EE:FF", ACME)]

    payload = await StatusEnrichmentService(client, pool_size=2).enrich(devices, [ACME])

    failed = [d for d in payload.failures if d.mac == "AA:BB:CC"]
    assert len(failed) == 1
    assert failed[0].error
    assert all(d.mac != "AA:BB:CC" for d in payload.success)
    assert [d.mac for d in payload.success] == ["DD:EE:FF"]
    assert len(fake.grants) == 1


class ExplodingStatusClient(StubStatusClient):
    async def get_device_account_status(self, mac: str):
        if mac == "BAD":
            raise RuntimeError("unexpected payload shape")
        return await super().get_device_account_status(mac)


@pytest.mark.asyncio
async def test_unexpected_lookup_error_is_recorded_as_a_failure() -> None:
    client = ExplodingStatusClient()
    devices = [_device("BAD", ACME), _device("GOOD", ACME)]

    payload = await StatusEnrichmentService(client, pool_size=2).enrich(devices, [ACME])

    assert [d.mac for d in payload.success] == ["GOOD"]
    assert [(d.mac, d.error) for d in payload.failures] == [("BAD", "unexpected payload shape")]


@pytest.mark.asyncio
async def test_undecodable_status_response_for_one_mac_keeps_the_others() -> None:
    fake = FakeGdms()

    def handler(request: httpx.Request) -> httpx.Response:
        if body_of(request)["mac"] == "AA:BB:CC":
            return httpx.Response(
                200, content=b"definitely not gzip", headers={"content-encoding": "gzip"}
            )
        return ok({"accountStatus": 1, "sipAccountInfoList": []})

    fake.route("device/account/status", handler)
    devices = [_device("AA:BB:CC", ACME), _device("DD:EE:FF", ACME)]

    payload = await StatusEnrichmentService(fake.client(), pool_size=2).enrich(devices, [ACME])

    assert [d.mac for d in payload.success] == ["DD:EE:FF"]
    assert [d.mac for d in payload.failures] == ["AA:BB:CC"]
    assert payload.failures[0].error


@pytest.mark.asyncio
async def test_cancelling_enrich_cancels_its_lookups() -> None:
    client = StubStatusClient(delays={"M1": 5, "M2": 5})
    devices = [_device("M1", ACME), _device("M2", ACME)]
    service = StatusEnrichmentService(client, pool_size=2)

    run = asyncio.create_task(service.enrich(devices, [ACME]))
    for _ in range(50):
        await asyncio.sleep(0)
        if client.in_flight == 2:
            break
    assert client.in_flight == 2

    run.cancel()
    with pytest.raises(asyncio.CancelledError):
        await run

    assert client.in_flight == 0

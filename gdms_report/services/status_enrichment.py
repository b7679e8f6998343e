"""
Concurrent per-device account status enrichment.

Each device with a MAC becomes one lookup task. At most ``pool_size`` lookups
are in flight at once. Tasks never touch shared collections: each returns an
outcome and the caller partitions the outcomes once every task has finished.

Without a batch deadline the run takes at most roughly
``ceil(devices / pool_size) * per-call timeout``, since a lookup that times out
holds its pool slot for the full HTTP timeout.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Protocol, Sequence, Union

from gdms_report.errors import GdmsError
from gdms_report.models.gdms import (
    Device,
    DeviceAccountStatus,
    EnrichedDevice,
    FailedDevice,
    Organization,
    StatusPayload,
)

logger = logging.getLogger(__name__)

DEADLINE_EXCEEDED_MESSAGE = "status lookup cancelled: batch deadline exceeded"
NO_STATUS_DATA_MESSAGE = "No status data"

Outcome = Union[EnrichedDevice, FailedDevice]


class StatusLookupClient(Protocol):
    async def get_device_account_status(self, mac: str) -> Optional[DeviceAccountStatus]: ...


class StatusEnrichmentService:
    """Fan per-MAC status lookups out over a bounded number of concurrent tasks."""

    DEFAULT_POOL_SIZE = 20

    def __init__(
        self,
        client: StatusLookupClient,
        *,
        pool_size: int = DEFAULT_POOL_SIZE,
        batch_deadline_seconds: float | None = None,
    ) -> None:
        if pool_size < 1:
            raise ValueError("pool_size must be >= 1")
        self._client = client
        self._pool_size = pool_size
        self._deadline = batch_deadline_seconds

    async def enrich(
        self,
        devices: Sequence[Device],
        organizations: Sequence[Organization],
    ) -> StatusPayload:
        """Look up every device of every selected organization and split the results."""
        if not organizations:
            logger.info("No organizations selected; skipping device account status fetch")
            return StatusPayload.build([], [])

        devices_by_org: Dict[Optional[int], List[Device]] = defaultdict(list)
        for device in devices:
            devices_by_org[device.org_id].append(device)

        slots = asyncio.Semaphore(self._pool_size)
        jobs: List[tuple[Device, asyncio.Task]] = []
        for org in organizations:
            org_devices = devices_by_org.get(org.id) or []
            if not org_devices:
                logger.info("No devices found for org %s (%s)", org.id, org.name)
                continue
            logger.info("Org %s (%s): looking up %s device(s)", org.id, org.name, len(org_devices))
            for device in org_devices:
                if not device.normalized_mac:
                    continue
                task = asyncio.create_task(self._lookup(slots, device, org))
                jobs.append((device, task))

        if jobs:
            tasks = [task for _, task in jobs]
            try:
                _, pending = await asyncio.wait(tasks, timeout=self._deadline)
            finally:
                unfinished = [task for task in tasks if not task.done()]
                for task in unfinished:
                    task.cancel()
                if unfinished:
                    await asyncio.gather(*unfinished, return_exceptions=True)
            if pending:
                logger.warning(
                    "Batch deadline of %ss hit; %s lookup(s) cancelled", self._deadline, len(pending)
                )

        success: List[EnrichedDevice] = []
        failures: List[FailedDevice] = []
        for device, task in jobs:
            outcome = (
                FailedDevice.from_device(device, DEADLINE_EXCEEDED_MESSAGE)
                if task.cancelled()
                else task.result()
            )
            if isinstance(outcome, EnrichedDevice):
                success.append(outcome)
            else:
                failures.append(outcome)

        payload = StatusPayload.build(success, failures)
        logger.info(
            "Device status enrichment finished: total=%s success=%s failures=%s",
            payload.meta.total,
            payload.meta.success,
            payload.meta.failures,
        )
        return payload

    async def _lookup(self, slots: asyncio.Semaphore, device: Device, org: Organization) -> Outcome:
        mac = device.normalized_mac
        async with slots:
            try:
                status = await self._client.get_device_account_status(mac)
            except GdmsError as exc:
                logger.warning("Status lookup failed for %s: %s", mac, exc)
                return FailedDevice.from_device(device, str(exc) or type(exc).__name__)
            except Exception as exc:  # pylint: disable=broad-except
                logger.exception("Unexpected error looking up status for %s", mac)
                return FailedDevice.from_device(device, str(exc) or type(exc).__name__)

        if status is None:
            logger.warning("No status data for %s", mac)
            return FailedDevice.from_device(device, NO_STATUS_DATA_MESSAGE)
        logger.debug("Status OK for %s (%s)", mac, device.device_name)
        return EnrichedDevice.merge(device, status, org_id=org.id, org_name=org.name)


__all__ = [
    "DEADLINE_EXCEEDED_MESSAGE",
    "NO_STATUS_DATA_MESSAGE",
    "StatusEnrichmentService",
    "StatusLookupClient",
]

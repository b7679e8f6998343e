"""
FastAPI routes exposing GDMS reports.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Awaitable, List, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query

from gdms_report.dependencies import get_report_service
from gdms_report.errors import GdmsError, TransportError
from gdms_report.schemas import DeviceReportRow, OrgName, SipReportRow
from gdms_report.services import GdmsReportService

router = APIRouter()
logger = logging.getLogger(__name__)

ReportServiceDependency = Annotated[GdmsReportService, Depends(get_report_service)]

T = TypeVar("T")


async def _call_gdms(action: str, operation: Awaitable[T]) -> T:
    """Await ``operation``, turning GDMS failures into gateway errors."""
    try:
        return await operation
    except TransportError as exc:
        logger.warning("%s timed out or could not reach GDMS: %s", action, exc)
        raise HTTPException(
            status_code=HTTPStatus.GATEWAY_TIMEOUT,
            detail=f"GDMS unreachable while building {action}.",
        ) from exc
    except GdmsError as exc:
        logger.warning("%s failed: %s", action, exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail=f"GDMS request failed while building {action}: {exc}",
        ) from exc


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/gdms/org-names", response_model=List[OrgName])
async def get_org_names(service: ReportServiceDependency) -> List[OrgName]:
    """Organization ids and names."""
    return await _call_gdms("organization list", service.get_org_names())


@router.get("/gdms/report", response_model=List[DeviceReportRow])
async def get_device_report(
    service: ReportServiceDependency,
    org_id: int = Query(..., alias="orgId", description="GDMS organization id."),
) -> List[DeviceReportRow]:
    """Device report for one organization, enriched with account status."""
    return await _call_gdms("device report", service.get_device_report(org_id))


@router.get("/gdms/sip-report", response_model=List[SipReportRow])
async def get_sip_report(
    service: ReportServiceDependency,
    org_id: int = Query(..., alias="orgId", description="GDMS organization id."),
) -> List[SipReportRow]:
    """SIP account report for one organization."""
    return await _call_gdms("SIP report", service.get_sip_report(org_id))


__all__ = ["router"]

# controller/maintenance_controller.py
from fastapi import APIRouter, Depends, status
from controller.controller_dependencies import get_maintenance_service, rate_limit
from model.api import PromoteRequest, RepairRequest, RepairResponse, ScanRequest
from model.drift import ScanReport
from model.promotion import PromotionResult
from service.maintenance_service import MaintenanceService
from util.constants import InternalURIs

maintenance_router = APIRouter(dependencies=[Depends(rate_limit)])


@maintenance_router.post(
    InternalURIs.PROMOTE,
    response_model=PromotionResult,
    status_code=status.HTTP_200_OK,
)
async def promote(
    payload: PromoteRequest,
    service: MaintenanceService = Depends(get_maintenance_service),
) -> PromotionResult:
    return await service.promote(payload.stagingId, payload.clientId, payload.slots)


@maintenance_router.post(InternalURIs.SCAN, response_model=ScanReport)
async def scan(
    payload: ScanRequest | None = None,
    service: MaintenanceService = Depends(get_maintenance_service),
) -> ScanReport:
    payload = payload or ScanRequest()
    return await service.scan(offset=payload.offset, limit=payload.limit)


@maintenance_router.post(InternalURIs.REPAIR, response_model=RepairResponse)
async def repair(
    payload: RepairRequest | None = None,
    service: MaintenanceService = Depends(get_maintenance_service),
) -> RepairResponse:
    report = await service.repair(payload.driftRecords if payload else None)
    return RepairResponse(ok=not report.errors, report=report)


@maintenance_router.post(InternalURIs.FIX_PATHS, response_model=RepairResponse)
async def fix_paths(
    service: MaintenanceService = Depends(get_maintenance_service),
) -> RepairResponse:
    report = await service.fix_paths()
    return RepairResponse(ok=not report.errors, report=report)

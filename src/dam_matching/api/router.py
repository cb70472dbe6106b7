"""dam_matching REST endpoints.

POST /clearing/day-ahead      : clear 24 hours of hourly and block bids
POST /clearing/single-period  : clear one period of hourly bids (no blocks)
"""

from fastapi import APIRouter, Request

from src.dam_common.response import ApiResponse, success_response
from src.dam_matching.application.schemas import ClearDayRequest, SinglePeriodRequest
from src.dam_matching.application.service import ClearingApplicationService

router = APIRouter(prefix="/clearing", tags=["clearing"])

_service = ClearingApplicationService()


@router.post("/day-ahead")
async def clear_day_ahead(req: ClearDayRequest, request: Request) -> ApiResponse:
    result = await _service.clear_day(req)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/single-period")
async def clear_single_period(req: SinglePeriodRequest, request: Request) -> ApiResponse:
    result = await _service.clear_single_period(req)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp

# backend/evbooking/routes/v1/stations.py
"""
Station schedule and slot routes - API v1

Endpoints:
    GET /stations/{station_id}/slots - Bookable slots for a local date
    GET /stations/{station_id}/schedules - Schedules in a date range
    POST /stations/{station_id}/schedules - Add a day's schedule (staff)
    PUT /schedules/{schedule_id} - Change a schedule (staff)
    DELETE /schedules/{schedule_id} - Remove a schedule (staff)
"""

import asyncio
from datetime import date
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status

from ...api.dependencies import (
    get_current_actor,
    get_slot_availability_service,
    get_station_schedule_service,
    require_staff,
)
from ...core.config import settings
from ...core.exceptions import DomainException
from ...principal import ActorPrincipal
from ...schemas.station import ScheduleResponse, ScheduleWrite, SlotListResponse, SlotResponse
from ...services.slot_availability_service import SlotAvailabilityService
from ...services.station_schedule_service import StationScheduleService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["stations-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("/stations/{station_id}/slots", response_model=SlotListResponse)
async def get_station_slots(
    station_id: str,
    day: date = Query(..., alias="date", description="Local date at the station"),
    granularity: Optional[int] = Query(None, description="Slot length in minutes"),
    _actor: ActorPrincipal = Depends(get_current_actor),
    slot_service: SlotAvailabilityService = Depends(get_slot_availability_service),
) -> SlotListResponse:
    """
    Split the station's opening hours into slots with remaining capacity.

    Availability is recomputed from the live booking set on every call.
    """
    try:
        step = granularity if granularity is not None else settings.default_slot_minutes
        slots = await asyncio.to_thread(slot_service.compute_slots, station_id, day, step)
        return SlotListResponse(
            station_id=station_id,
            schedule_date=day,
            granularity_minutes=step,
            slots=[SlotResponse.model_validate(slot) for slot in slots],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/stations/{station_id}/schedules", response_model=List[ScheduleResponse])
async def list_station_schedules(
    station_id: str,
    from_date: date = Query(..., alias="from"),
    to_date: date = Query(..., alias="to"),
    _actor: ActorPrincipal = Depends(get_current_actor),
    schedule_service: StationScheduleService = Depends(get_station_schedule_service),
) -> List[ScheduleResponse]:
    try:
        schedules = await asyncio.to_thread(
            schedule_service.list_schedules, station_id, from_date, to_date
        )
        return [ScheduleResponse.from_schedule(s) for s in schedules]
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/stations/{station_id}/schedules",
    response_model=ScheduleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_station_schedule(
    station_id: str,
    payload: ScheduleWrite = Body(...),
    _actor: ActorPrincipal = Depends(require_staff),
    schedule_service: StationScheduleService = Depends(get_station_schedule_service),
) -> ScheduleResponse:
    try:
        schedule = await asyncio.to_thread(
            schedule_service.create_schedule,
            station_id,
            payload.schedule_date,
            payload.open_minutes,
            payload.close_minutes,
            payload.max_concurrent,
        )
        return ScheduleResponse.from_schedule(schedule)
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/schedules/{schedule_id}", response_model=ScheduleResponse)
async def update_station_schedule(
    schedule_id: str,
    payload: ScheduleWrite = Body(...),
    _actor: ActorPrincipal = Depends(require_staff),
    schedule_service: StationScheduleService = Depends(get_station_schedule_service),
) -> ScheduleResponse:
    """Existing bookings are left untouched by schedule edits."""
    try:
        schedule = await asyncio.to_thread(
            schedule_service.update_schedule,
            schedule_id,
            payload.schedule_date,
            payload.open_minutes,
            payload.close_minutes,
            payload.max_concurrent,
        )
        return ScheduleResponse.from_schedule(schedule)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/schedules/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_station_schedule(
    schedule_id: str,
    _actor: ActorPrincipal = Depends(require_staff),
    schedule_service: StationScheduleService = Depends(get_station_schedule_service),
) -> Response:
    try:
        await asyncio.to_thread(schedule_service.delete_schedule, schedule_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)

"""
Calendar API

리스팅 × 날짜 가용성 그리드, 점유율, 예약 가능 여부 체크
"""
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.v1.bookings import validate_target
from app.api.v1.listings import ListingDTO
from app.api.v1.schemas.reservations import ConflictDTO
from app.core.config import settings
from app.db.session import get_db
from app.domain.reservations import IntervalKind, ReservationInterval, as_utc
from app.services.availability_service import MatchMode, Occupancy, iter_days
from app.services.calendar_service import CalendarService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar", tags=["Calendar"])


# ========== DTOs ==========

class CalendarCellDTO(BaseModel):
    """달력 셀 하나"""
    date: date
    occupancy: Occupancy
    kind: Optional[IntervalKind] = None  # DIRECT 일 때 BOOKING / BLOCK
    label: Optional[str] = None          # 게스트 이름 또는 차단 사유
    source_id: Optional[str] = None      # booking.id / block.id


class OccupancyDTO(BaseModel):
    """점유율 데이터"""
    total_days: int
    booked_days: int
    blocked_days: int
    hierarchy_blocked_days: int
    free_days: int
    occupancy_rate: float  # 0~100


class CalendarRowDTO(BaseModel):
    listing: ListingDTO
    cells: list[CalendarCellDTO]
    occupancy: OccupancyDTO


class CalendarGridDTO(BaseModel):
    """달력 그리드"""
    start: date
    end: date
    match_mode: MatchMode
    rows: list[CalendarRowDTO]


class AvailabilityCheckRequest(BaseModel):
    """예약 가능 여부 체크 요청"""
    property_id: str
    room_id: Optional[str] = None
    check_in: datetime
    check_out: datetime


class AvailabilityCheckResponse(BaseModel):
    """예약 가능 여부 체크 응답"""
    available: bool
    conflicts: list[ConflictDTO]
    message: str


# ========== Endpoints ==========

@router.get("/availability", response_model=CalendarGridDTO)
def get_availability(
    start: Optional[date] = Query(default=None, description="시작일 (기본: 오늘)"),
    end: Optional[date] = Query(default=None, description="종료일, 포함 (기본: 시작일 + 6일)"),
    property_id: Optional[str] = Query(default=None, description="특정 숙소만 (기본: 전체)"),
    match: MatchMode = Query(default=MatchMode.STAY, description="stay | checkin"),
    db: Session = Depends(get_db),
) -> CalendarGridDTO:
    """
    리스팅 × 날짜 가용성 그리드

    - 예약 (취소 제외)
    - 차단
    - 숙소 ↔ 객실 계층 차단
    - 리스팅별 점유율
    """
    if start is None:
        start = date.today()
    if end is None:
        end = start + timedelta(days=6)

    if end < start:
        raise HTTPException(status_code=400, detail="end must not be before start")

    span = (end - start).days + 1
    if span > settings.CALENDAR_MAX_RANGE_DAYS:
        raise HTTPException(
            status_code=400,
            detail=f"Range too long: {span} days (max {settings.CALENDAR_MAX_RANGE_DAYS})",
        )

    view = CalendarService(db).build_view(start, end, property_id=property_id, match_mode=match)
    if property_id and not view.listings:
        raise HTTPException(status_code=404, detail=f"Property not found: {property_id}")

    summaries = {s.listing_id: s for s in view.summaries}
    days = list(iter_days(start, end))

    rows = []
    for listing in view.listings:
        cells = []
        for day in days:
            cell = view.grid[(listing.id, day)]
            cells.append(CalendarCellDTO(
                date=day,
                occupancy=cell.occupancy,
                kind=cell.kind,
                label=cell.interval.label if cell.interval else None,
                source_id=cell.interval.source_id if cell.interval else None,
            ))

        summary = summaries[listing.id]
        rows.append(CalendarRowDTO(
            listing=ListingDTO.from_listing(listing),
            cells=cells,
            occupancy=OccupancyDTO(
                total_days=summary.total_days,
                booked_days=summary.booked_days,
                blocked_days=summary.blocked_days,
                hierarchy_blocked_days=summary.hierarchy_blocked_days,
                free_days=summary.free_days,
                occupancy_rate=summary.occupancy_rate,
            ),
        ))

    return CalendarGridDTO(start=start, end=end, match_mode=match, rows=rows)


@router.post("/check-availability", response_model=AvailabilityCheckResponse)
def check_availability(
    request: AvailabilityCheckRequest,
    db: Session = Depends(get_db),
) -> AvailabilityCheckResponse:
    """
    예약 가능 여부 체크

    check_in ~ check_out 사이 모든 충돌을 반환 (첫 번째만이 아니라 전부)
    """
    validate_target(db, request.property_id, request.room_id, request.check_in, request.check_out)

    candidate = ReservationInterval(
        start=as_utc(request.check_in),
        end=as_utc(request.check_out),
        room_id=request.room_id or None,
        property_id=request.property_id,
    )
    results = CalendarService(db).find_conflicts(request.property_id, candidate)

    if not results:
        message = f"{request.check_in.date()} ~ {request.check_out.date()} is available."
    else:
        types = sorted({r.conflict_type.value for r in results})
        message = f"Not available: {len(results)} conflict(s) ({', '.join(types)})"

    return AvailabilityCheckResponse(
        available=not results,
        conflicts=[ConflictDTO.from_result(r) for r in results],
        message=message,
    )

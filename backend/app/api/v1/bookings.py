# backend/app/api/v1/bookings.py
"""
Bookings API

- 예약/차단 목록 조회
- 예약 생성: 숙소 → 객실 계층 충돌 감지 후 충돌이면 409 (override=true 면 통과)
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.api.v1.schemas.reservations import conflict_exception
from app.db.session import get_db
from app.domain.models.booking import BookingSource, BookingStatus
from app.domain.reservations import IntervalKind, ReservationInterval, as_utc
from app.repositories.block_repository import BlockRepository
from app.repositories.booking_repository import BookingRepository
from app.repositories.property_repository import PropertyRepository
from app.services.calendar_service import CalendarService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


# ========== DTOs ==========

class BookingCreate(BaseModel):
    """예약 생성 요청"""
    property_id: str
    room_id: Optional[str] = Field(None, description="없으면 숙소 전체 예약")
    customer_name: str = Field(..., min_length=1)
    check_in: datetime
    check_out: datetime
    price: float = Field(..., gt=0)
    source: BookingSource = BookingSource.DIRECT
    status: BookingStatus = BookingStatus.CONFIRMED
    guest_count: int = Field(1, ge=1)
    advance_amount: float = Field(0, ge=0)
    guest_requests: Optional[str] = None
    notes: Optional[str] = None
    override: bool = Field(False, description="충돌이 있어도 강제로 생성")


class BookingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    room_id: Optional[str] = None
    customer_name: str
    check_in: datetime
    check_out: datetime
    price: float
    source: str
    status: str
    guest_count: int
    advance_amount: float
    guest_requests: Optional[str] = None
    notes: Optional[str] = None
    ical_uid: Optional[str] = None


class BlockRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    room_id: Optional[str] = None
    start_date: datetime
    end_date: datetime
    reason: Optional[str] = None


class BookingsAndBlocksDTO(BaseModel):
    bookings: List[BookingRead]
    blocks: List[BlockRead]


# ========== Helpers ==========

def validate_target(
    db: Session,
    property_id: str,
    room_id: Optional[str],
    start: datetime,
    end: datetime,
) -> None:
    """숙소 존재 / 객실 소속 / 기간 검증 (bookings, blocks 공통)"""
    repo = PropertyRepository(db)
    if repo.get_by_id(property_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

    if room_id and repo.get_room_in_property(property_id, room_id) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Room does not belong to this property",
        )

    if as_utc(end) <= as_utc(start):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end must be after start",
        )


# ========== Endpoints ==========

@router.get("", response_model=BookingsAndBlocksDTO)
def list_bookings(
    property_id: Optional[str] = Query(default=None, description="특정 숙소만 (기본: 전체)"),
    db: Session = Depends(get_db),
) -> BookingsAndBlocksDTO:
    """
    예약 + 차단 목록

    property_id 를 명시하면 그 숙소만, 없으면 전체 숙소.
    """
    if property_id:
        property_ids = [property_id]
    else:
        property_ids = [p.id for p in PropertyRepository(db).list_all()]

    bookings = BookingRepository(db).list_by_properties(property_ids)
    blocks = BlockRepository(db).list_by_properties(property_ids)

    return BookingsAndBlocksDTO(
        bookings=[BookingRead.model_validate(b) for b in bookings],
        blocks=[BlockRead.model_validate(b) for b in blocks],
    )


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreate,
    db: Session = Depends(get_db),
) -> BookingRead:
    """
    예약 생성

    1. 숙소/객실/기간 검증
    2. 같은 숙소의 예약(취소 제외) + 차단과 충돌 검사
    3. 충돌이고 override 가 아니면 409
    4. 저장
    """
    validate_target(db, request.property_id, request.room_id, request.check_in, request.check_out)

    candidate = ReservationInterval(
        start=as_utc(request.check_in),
        end=as_utc(request.check_out),
        room_id=request.room_id or None,
        property_id=request.property_id,
        kind=IntervalKind.BOOKING,
        label=request.customer_name,
    )

    # 취소 예약은 달력을 차지하지 않으므로 검사하지 않는다
    if request.status != BookingStatus.CANCELLED:
        result = CalendarService(db).check_conflict(request.property_id, candidate)
        if result.has_conflict:
            if not request.override:
                logger.info(
                    f"BOOKINGS_API: Rejected booking property={request.property_id} "
                    f"room={request.room_id} type={result.conflict_type.value}"
                )
                raise conflict_exception(result)
            logger.warning(
                f"BOOKINGS_API: Conflict overridden property={request.property_id} "
                f"room={request.room_id} type={result.conflict_type.value}"
            )

    try:
        booking = BookingRepository(db).create({
            "property_id": request.property_id,
            "room_id": request.room_id or None,
            "customer_name": request.customer_name,
            "check_in": candidate.start,
            "check_out": candidate.end,
            "price": request.price,
            "source": request.source.value,
            "status": request.status.value,
            "guest_count": request.guest_count,
            "advance_amount": request.advance_amount,
            "guest_requests": request.guest_requests,
            "notes": request.notes,
        })
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("BOOKINGS_API: Failed to create booking")
        raise

    db.refresh(booking)
    return BookingRead.model_validate(booking)

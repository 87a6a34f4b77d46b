# backend/app/api/v1/schemas/reservations.py
"""
예약 구간 / 충돌 응답 공통 스키마 (bookings, blocks, calendar 에서 공유)
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status
from pydantic import BaseModel

from app.domain.reservations import ReservationInterval
from app.services.conflict_detector import ConflictResult


class IntervalDTO(BaseModel):
    """예약 구간"""
    start: datetime
    end: datetime
    room_id: Optional[str] = None
    property_id: Optional[str] = None
    is_entire_property: bool
    kind: str
    source_id: Optional[str] = None
    label: Optional[str] = None

    @classmethod
    def from_interval(cls, interval: ReservationInterval) -> "IntervalDTO":
        return cls(
            start=interval.start,
            end=interval.end,
            room_id=interval.room_id,
            property_id=interval.property_id,
            is_entire_property=interval.is_entire_property,
            kind=interval.kind.value,
            source_id=interval.source_id,
            label=interval.label,
        )


class ConflictDTO(BaseModel):
    """충돌 판정"""
    has_conflict: bool
    conflict_type: Optional[str] = None
    conflicting_interval: Optional[IntervalDTO] = None
    message: str = ""

    @classmethod
    def from_result(cls, result: ConflictResult) -> "ConflictDTO":
        return cls(
            has_conflict=result.has_conflict,
            conflict_type=result.conflict_type.value if result.conflict_type else None,
            conflicting_interval=(
                IntervalDTO.from_interval(result.conflicting_interval)
                if result.conflicting_interval else None
            ),
            message=result.message,
        )


def conflict_exception(result: ConflictResult) -> HTTPException:
    """override 없이 충돌 → 409"""
    dto = ConflictDTO.from_result(result)
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "error": "CONFLICT",
            "message": dto.message,
            "conflict_type": dto.conflict_type,
            "conflicting_interval": (
                dto.conflicting_interval.model_dump(mode="json")
                if dto.conflicting_interval else None
            ),
        },
    )

# backend/app/domain/reservations.py
"""
Reservation Domain

충돌 감지 / 달력 집계가 공통으로 쓰는 도메인 타입.

핵심 원칙:
- 숙소(PROPERTY) → 객실(ROOM) 2단계 계층
- 계층은 클래스 상속이 아니라 room_id 유무로만 표현한다
  (room_id 가 없으면 "숙소 전체" 예약)
- 예약 구간은 half-open [start, end) - 체크아웃 날 = 다음 체크인 날은 충돌 아님
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional


class ListingType(str, Enum):
    """예약 가능한 단위의 종류"""
    PROPERTY = "PROPERTY"  # 숙소 전체
    ROOM = "ROOM"          # 숙소 안의 객실 하나


class IntervalKind(str, Enum):
    """예약 구간의 출처"""
    BOOKING = "booking"  # 고객 예약 (직접/OTA/iCal import)
    BLOCK = "block"      # 호스트가 막아둔 날짜 (청소, 점검, 수동 채널 동기화)


@dataclass(frozen=True)
class Listing:
    """
    달력의 한 줄(row).

    - PROPERTY: id == property_id, room_id 없음
    - ROOM: property_id 는 상위 숙소, room_id == id
    """
    id: str
    type: ListingType
    property_id: str
    room_id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    base_price: Optional[float] = None

    def __post_init__(self) -> None:
        if self.type == ListingType.ROOM and not self.room_id:
            raise ValueError(f"ROOM listing {self.id} must reference a room")
        if self.type == ListingType.PROPERTY and self.room_id is not None:
            raise ValueError(f"PROPERTY listing {self.id} cannot reference a room")

    @property
    def is_room(self) -> bool:
        return self.type == ListingType.ROOM


@dataclass(frozen=True)
class ReservationInterval:
    """
    충돌 감지기 / 가용성 집계기가 다루는 예약 구간.

    - start: 시작 시각 (inclusive)
    - end: 종료 시각 (exclusive)
    - room_id: 없으면 숙소 전체 예약
    - property_id: 집계기가 여러 숙소를 한번에 볼 때만 필요
    - kind / source_id / label: 화면 표시와 응답용 메타데이터
    """
    start: datetime
    end: datetime
    room_id: Optional[str] = None
    property_id: Optional[str] = None
    kind: IntervalKind = IntervalKind.BOOKING
    source_id: Optional[str] = None
    label: Optional[str] = None

    @property
    def is_entire_property(self) -> bool:
        return self.room_id is None

    @property
    def is_valid(self) -> bool:
        return self.start < self.end

    @property
    def start_day(self) -> date:
        return to_day(self.start)

    @property
    def end_day(self) -> date:
        return to_day(self.end)

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "room_id": self.room_id,
            "property_id": self.property_id,
            "is_entire_property": self.is_entire_property,
            "kind": self.kind.value,
            "source_id": self.source_id,
            "label": self.label,
        }


def as_utc(value: datetime | date) -> datetime:
    """
    저장소 경계에서 시각을 UTC aware datetime 으로 통일.

    - date → 그날 00:00 UTC
    - naive datetime → UTC 로 간주
    - aware datetime → UTC 로 변환
    """
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_day(value: datetime | date) -> date:
    """datetime 또는 date 를 date 로"""
    if isinstance(value, datetime):
        return value.date()
    return value

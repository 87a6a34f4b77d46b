"""
Booking Model

고객 예약.
- room_id 가 없으면 숙소 전체 예약
- source=ICAL 인 예약은 외부 캘린더에서 import 된 것 (ical_uid 로 중복 방지)
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import String, Text, Float, Integer, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class BookingStatus(str, Enum):
    """예약 상태"""
    CONFIRMED = "CONFIRMED"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"  # 충돌 감지 / 달력 / export 에서 제외


class BookingSource(str, Enum):
    """예약 유입 채널"""
    DIRECT = "DIRECT"
    AIRBNB = "AIRBNB"
    BOOKING_COM = "BOOKING_COM"
    ICAL = "ICAL"
    OTHER = "OTHER"


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    property_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    room_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)

    check_in: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    check_out: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    advance_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    guest_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    source: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=BookingSource.DIRECT.value,
    )

    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=BookingStatus.CONFIRMED.value,
    )

    guest_requests: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # iCal VEVENT UID (import 된 예약만)
    ical_uid: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_bookings_property_ical_uid", "property_id", "ical_uid", unique=True),
        Index("idx_bookings_property_check_in", "property_id", "check_in"),
    )

    def __repr__(self) -> str:
        return f"<Booking {self.id} {self.customer_name} {self.check_in}~{self.check_out}>"

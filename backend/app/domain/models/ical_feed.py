"""
iCal Feed Model

외부 플랫폼(Airbnb, Booking.com 등)의 iCal export URL 등록 정보.
동기화 시 이 URL 에서 VEVENT 를 가져와 Booking 으로 import 한다.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class IcalFeed(Base):
    """
    - property_id: import 된 예약이 들어갈 숙소
    - room_id: 객실 단위 피드면 객실, 없으면 숙소 전체 예약으로 import
    - last_synced_at: 마지막으로 fetch 에 성공한 시각
    """

    __tablename__ = "ical_feeds"

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
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    url: Mapped[str] = mapped_column(Text, nullable=False)

    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<IcalFeed {self.name} property={self.property_id}>"

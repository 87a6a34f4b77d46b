"""
Booking Repository

예약 저장/조회
- 충돌 감지용: 취소 제외한 숙소 예약
- iCal 동기화용: 이미 import 된 UID 집합
- export 용: 체크인 순 정렬
"""
from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.models.booking import Booking, BookingSource, BookingStatus


class BookingRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, booking_id: str) -> Optional[Booking]:
        return self.db.get(Booking, booking_id)

    def list_by_properties(
        self,
        property_ids: Sequence[str],
        *,
        include_cancelled: bool = True,
    ) -> Sequence[Booking]:
        """여러 숙소의 예약 (체크인 순)"""
        if not property_ids:
            return []
        stmt = select(Booking).where(Booking.property_id.in_(property_ids))
        if not include_cancelled:
            stmt = stmt.where(Booking.status != BookingStatus.CANCELLED.value)
        stmt = stmt.order_by(Booking.check_in.asc())
        return self.db.execute(stmt).scalars().all()

    def list_active_for_property(self, property_id: str) -> Sequence[Booking]:
        """취소되지 않은 숙소 예약 (체크인 순)"""
        return self.list_by_properties([property_id], include_cancelled=False)

    def list_ical_uids(self, property_id: str) -> set[str]:
        """숙소에 이미 import 된 iCal UID 집합"""
        stmt = select(Booking.ical_uid).where(
            Booking.property_id == property_id,
            Booking.source == BookingSource.ICAL.value,
            Booking.ical_uid.isnot(None),
        )
        return set(self.db.execute(stmt).scalars().all())

    def create(self, data: dict) -> Booking:
        """새 예약 생성 (flush 만, commit 은 호출자)"""
        booking = Booking(**data)
        self.db.add(booking)
        self.db.flush()
        return booking

"""
Calendar Service

DB 의 숙소/객실/예약/차단을 순수 도메인 타입으로 바꿔서
ConflictDetector / AvailabilityAggregator 에 넘기는 조립 계층.

- build_listings: 숙소 + 객실 → Listing 리스트 (숙소 전체 먼저, 그 다음 객실)
- booking_to_interval / block_to_interval: ORM → ReservationInterval (UTC 통일)
- CalendarService: 요청 단위로 숙소 범위를 명시적으로 받아서 계산
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from app.domain.models.block import Block
from app.domain.models.booking import Booking
from app.domain.models.property import Property
from app.domain.reservations import (
    IntervalKind,
    Listing,
    ListingType,
    ReservationInterval,
    as_utc,
)
from app.repositories.block_repository import BlockRepository
from app.repositories.booking_repository import BookingRepository
from app.repositories.property_repository import PropertyRepository
from app.services.availability_service import (
    AvailabilityAggregator,
    CellResult,
    MatchMode,
    OccupancySummary,
)
from app.services.conflict_detector import ConflictDetector, ConflictResult

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# 변환 헬퍼
# ─────────────────────────────────────────────────────────────

def build_listings(properties: Iterable[Property]) -> list[Listing]:
    """숙소마다 "Entire Place" 리스팅 하나 + 객실 리스팅들"""
    listings: list[Listing] = []
    for prop in properties:
        listings.append(Listing(
            id=prop.id,
            type=ListingType.PROPERTY,
            property_id=prop.id,
            name=f"{prop.name} (Entire Place)",
            description=prop.description,
            base_price=prop.base_price,
        ))
        for room in prop.rooms or []:
            listings.append(Listing(
                id=room.id,
                type=ListingType.ROOM,
                property_id=prop.id,
                room_id=room.id,
                name=room.name,
                description=room.description,
                base_price=room.base_price,
            ))
    return listings


def booking_to_interval(booking: Booking) -> ReservationInterval:
    return ReservationInterval(
        start=as_utc(booking.check_in),
        end=as_utc(booking.check_out),
        room_id=booking.room_id or None,
        property_id=booking.property_id,
        kind=IntervalKind.BOOKING,
        source_id=booking.id,
        label=booking.customer_name,
    )


def block_to_interval(block: Block) -> ReservationInterval:
    return ReservationInterval(
        start=as_utc(block.start_date),
        end=as_utc(block.end_date),
        room_id=block.room_id or None,
        property_id=block.property_id,
        kind=IntervalKind.BLOCK,
        source_id=block.id,
        label=block.reason,
    )


@dataclass
class AvailabilityView:
    """달력 화면 한 번 그리는 데 필요한 결과"""
    listings: list[Listing]
    grid: dict[tuple[str, date], CellResult]
    summaries: list[OccupancySummary]


# ─────────────────────────────────────────────────────────────
# Service
# ─────────────────────────────────────────────────────────────

class CalendarService:
    def __init__(self, db: Session, detector: Optional[ConflictDetector] = None):
        self.db = db
        self.properties = PropertyRepository(db)
        self.bookings = BookingRepository(db)
        self.blocks = BlockRepository(db)
        self.detector = detector or ConflictDetector()

    def list_listings(self, property_id: Optional[str] = None) -> list[Listing]:
        if property_id:
            props = self.properties.list_by_ids([property_id])
        else:
            props = self.properties.list_all()
        return build_listings(props)

    def load_intervals(
        self,
        property_ids: Sequence[str],
    ) -> tuple[list[ReservationInterval], list[ReservationInterval]]:
        """(취소 제외 예약 구간, 차단 구간)"""
        bookings = [
            booking_to_interval(b)
            for b in self.bookings.list_by_properties(property_ids, include_cancelled=False)
        ]
        blocks = [block_to_interval(b) for b in self.blocks.list_by_properties(property_ids)]
        return bookings, blocks

    def existing_intervals(self, property_id: str) -> list[ReservationInterval]:
        """충돌 감지용: 한 숙소의 예약 + 차단"""
        bookings, blocks = self.load_intervals([property_id])
        return bookings + blocks

    def check_conflict(
        self,
        property_id: str,
        candidate: ReservationInterval,
    ) -> ConflictResult:
        return self.detector.detect_conflict(candidate, self.existing_intervals(property_id))

    def find_conflicts(
        self,
        property_id: str,
        candidate: ReservationInterval,
    ) -> list[ConflictResult]:
        return self.detector.detect_all_conflicts(candidate, self.existing_intervals(property_id))

    def build_view(
        self,
        start: date,
        end: date,
        *,
        property_id: Optional[str] = None,
        match_mode: MatchMode = MatchMode.STAY,
    ) -> AvailabilityView:
        listings = self.list_listings(property_id)
        property_ids = sorted({listing.property_id for listing in listings})
        bookings, blocks = self.load_intervals(property_ids)

        aggregator = AvailabilityAggregator(match_mode)
        grid = aggregator.build_availability(listings, bookings, blocks, start, end)
        summaries = aggregator.summarize(grid, listings)

        logger.info(
            f"CALENDAR_SERVICE: Availability {start}~{end} "
            f"properties={len(property_ids)} listings={len(listings)} "
            f"bookings={len(bookings)} blocks={len(blocks)}"
        )
        return AvailabilityView(listings=listings, grid=grid, summaries=summaries)

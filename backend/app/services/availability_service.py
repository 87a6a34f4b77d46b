"""
Availability Service

리스팅(숙소 전체 + 객실) × 날짜 달력 그리드 집계.

각 (listing, day) 셀은 정확히 하나의 상태를 가진다:
- FREE: 아무 구간도 없음
- DIRECT: 이 리스팅 자체에 예약/차단이 있음 (BOOKING / BLOCK 구분)
- BLOCKED_BY_PARENT: 객실 리스팅인데 숙소 전체가 잡혀 있음
- BLOCKED_BY_CHILD: 숙소 리스팅인데 객실 중 하나라도 잡혀 있음

그리드는 저장하지 않는다. 요청마다 현재 예약/차단 리스트로 새로 계산한다.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Optional, Sequence

from app.domain.reservations import (
    IntervalKind,
    Listing,
    ListingType,
    ReservationInterval,
    to_day,
)

logger = logging.getLogger(__name__)


class Occupancy(str, Enum):
    """셀 점유 상태"""
    FREE = "FREE"
    DIRECT = "DIRECT"
    BLOCKED_BY_PARENT = "BLOCKED_BY_PARENT"
    BLOCKED_BY_CHILD = "BLOCKED_BY_CHILD"


class MatchMode(str, Enum):
    """
    구간이 어떤 날짜를 덮는다고 볼지

    - STAY: start_day <= day < end_day (숙박 기간 전체를 칠한다)
    - CHECKIN: start_day == day (체크인 날만)
    """
    STAY = "stay"
    CHECKIN = "checkin"


@dataclass(frozen=True)
class CellResult:
    """(listing, day) 셀 하나의 분류 결과"""
    occupancy: Occupancy
    kind: Optional[IntervalKind] = None
    interval: Optional[ReservationInterval] = None

    @property
    def is_free(self) -> bool:
        return self.occupancy == Occupancy.FREE


FREE_CELL = CellResult(occupancy=Occupancy.FREE)


@dataclass(frozen=True)
class OccupancySummary:
    """리스팅별 점유 요약"""
    listing_id: str
    total_days: int
    booked_days: int
    blocked_days: int
    hierarchy_blocked_days: int
    free_days: int
    occupancy_rate: float  # 0~100


def iter_days(start: date, end: date):
    """start ~ end (둘 다 포함)"""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


class AvailabilityAggregator:
    """
    리스팅 × 날짜 가용성 집계기

    판정 순서 (먼저 맞는 것):
    1. 이 리스팅 자체의 예약 → DIRECT(BOOKING)
    2. 이 리스팅 자체의 차단 → DIRECT(BLOCK)
    3. 객실이면 상위 숙소 전체 예약/차단 → BLOCKED_BY_PARENT
    4. 숙소면 하위 객실 예약/차단 → BLOCKED_BY_CHILD
    5. FREE
    """

    def __init__(self, match_mode: MatchMode = MatchMode.STAY):
        self.match_mode = match_mode

    # --- 매칭 규칙 ---

    def covers(self, interval: ReservationInterval, day: date) -> bool:
        start_day = to_day(interval.start)
        if self.match_mode == MatchMode.CHECKIN:
            return start_day == day

        end_day = to_day(interval.end)
        # 같은 날 안에서 끝나는 짧은 구간도 그날은 칠한다
        if end_day <= start_day:
            end_day = start_day + timedelta(days=1)
        return start_day <= day < end_day

    @staticmethod
    def _same_property(listing: Listing, interval: ReservationInterval) -> bool:
        return interval.property_id is None or interval.property_id == listing.property_id

    def _is_direct(self, listing: Listing, interval: ReservationInterval) -> bool:
        if not self._same_property(listing, interval):
            return False
        if listing.type == ListingType.PROPERTY:
            return interval.is_entire_property
        return interval.room_id == listing.room_id

    def _is_parent(self, listing: Listing, interval: ReservationInterval) -> bool:
        return (
            listing.type == ListingType.ROOM
            and interval.is_entire_property
            and self._same_property(listing, interval)
        )

    def _is_child(self, listing: Listing, interval: ReservationInterval) -> bool:
        return (
            listing.type == ListingType.PROPERTY
            and not interval.is_entire_property
            and self._same_property(listing, interval)
        )

    def _find(self, intervals: Sequence[ReservationInterval], day: date, predicate) -> Optional[ReservationInterval]:
        for interval in intervals:
            if predicate(interval) and self.covers(interval, day):
                return interval
        return None

    # --- 셀 / 그리드 ---

    def classify_cell(
        self,
        listing: Listing,
        day: date,
        bookings: Sequence[ReservationInterval],
        blocks: Sequence[ReservationInterval],
    ) -> CellResult:
        """(listing, day) 셀 하나 분류"""
        for kind, intervals in ((IntervalKind.BOOKING, bookings), (IntervalKind.BLOCK, blocks)):
            hit = self._find(intervals, day, lambda i: self._is_direct(listing, i))
            if hit is not None:
                return CellResult(occupancy=Occupancy.DIRECT, kind=kind, interval=hit)

        if listing.type == ListingType.ROOM:
            for kind, intervals in ((IntervalKind.BOOKING, bookings), (IntervalKind.BLOCK, blocks)):
                hit = self._find(intervals, day, lambda i: self._is_parent(listing, i))
                if hit is not None:
                    return CellResult(occupancy=Occupancy.BLOCKED_BY_PARENT, kind=kind, interval=hit)

        if listing.type == ListingType.PROPERTY:
            for kind, intervals in ((IntervalKind.BOOKING, bookings), (IntervalKind.BLOCK, blocks)):
                hit = self._find(intervals, day, lambda i: self._is_child(listing, i))
                if hit is not None:
                    return CellResult(occupancy=Occupancy.BLOCKED_BY_CHILD, kind=kind, interval=hit)

        return FREE_CELL

    def build_availability(
        self,
        listings: Iterable[Listing],
        bookings: Iterable[ReservationInterval],
        blocks: Iterable[ReservationInterval],
        start: date,
        end: date,
    ) -> dict[tuple[str, date], CellResult]:
        """
        가용성 그리드 생성

        Args:
            listings: 리스팅 목록 (숙소 전체 + 객실)
            bookings: 취소 제외된 예약 구간
            blocks: 차단 구간
            start: 조회 시작일 (inclusive)
            end: 조회 종료일 (inclusive)

        Returns:
            {(listing_id, day): CellResult}
        """
        if end < start:
            raise ValueError(f"Invalid range: end {end} is before start {start}")

        listing_list = list(listings)
        booking_list = [b for b in bookings if b.is_valid]
        block_list = [b for b in blocks if b.is_valid]
        days = list(iter_days(start, end))

        grid: dict[tuple[str, date], CellResult] = {}
        for listing in listing_list:
            for day in days:
                grid[(listing.id, day)] = self.classify_cell(listing, day, booking_list, block_list)

        logger.debug(
            f"AVAILABILITY: Built grid listings={len(listing_list)} "
            f"days={len(days)} mode={self.match_mode.value}"
        )
        return grid

    def summarize(
        self,
        grid: dict[tuple[str, date], CellResult],
        listings: Iterable[Listing],
    ) -> list[OccupancySummary]:
        """
        리스팅별 점유율

        (DIRECT + 계층 차단 일수) / 전체 일수 × 100
        """
        summaries = []
        for listing in listings:
            cells = [cell for (listing_id, _), cell in grid.items() if listing_id == listing.id]
            total = len(cells)
            booked = sum(1 for c in cells if c.occupancy == Occupancy.DIRECT and c.kind == IntervalKind.BOOKING)
            blocked = sum(1 for c in cells if c.occupancy == Occupancy.DIRECT and c.kind == IntervalKind.BLOCK)
            hierarchy = sum(
                1 for c in cells
                if c.occupancy in (Occupancy.BLOCKED_BY_PARENT, Occupancy.BLOCKED_BY_CHILD)
            )
            free = total - booked - blocked - hierarchy
            occupied = total - free
            rate = (occupied / total * 100) if total > 0 else 0

            summaries.append(OccupancySummary(
                listing_id=listing.id,
                total_days=total,
                booked_days=booked,
                blocked_days=blocked,
                hierarchy_blocked_days=hierarchy,
                free_days=free,
                occupancy_rate=round(rate, 1),
            ))
        return summaries


def build_availability(
    listings: Iterable[Listing],
    bookings: Iterable[ReservationInterval],
    blocks: Iterable[ReservationInterval],
    start: date,
    end: date,
    match_mode: MatchMode = MatchMode.STAY,
) -> dict[tuple[str, date], CellResult]:
    """AvailabilityAggregator(match_mode).build_availability 단축 함수"""
    return AvailabilityAggregator(match_mode).build_availability(listings, bookings, blocks, start, end)

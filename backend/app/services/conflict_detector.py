"""
ConflictDetector: 숙소 → 객실 계층을 고려한 예약 구간 충돌 감지

핵심 원칙:
- 겹침 판정은 half-open [start, end) - 체크아웃 날 체크인은 충돌 아님
- 같은 단위(같은 객실, 또는 둘 다 숙소 전체)가 겹치면 DIRECT
- 숙소 전체 예약 후보 vs 이미 잡힌 객실 → CHILD_BLOCKED
- 객실 예약 후보 vs 이미 잡힌 숙소 전체 → PARENT_BLOCKED
- 서로 다른 객실끼리는 절대 충돌하지 않는다

입력은 이미 한 숙소로 좁혀진 구간 리스트라고 가정한다 (숙소 필터링은 호출자 책임).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from app.domain.reservations import ReservationInterval

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Conflict 결과 데이터 구조
# ─────────────────────────────────────────────────────────────

class ConflictType(str, Enum):
    """충돌 유형 (판정 우선순위 순서)"""
    DIRECT = "DIRECT"                  # 같은 단위가 겹침
    CHILD_BLOCKED = "CHILD_BLOCKED"    # 숙소 전체 후보인데 객실이 이미 잡혀 있음
    PARENT_BLOCKED = "PARENT_BLOCKED"  # 객실 후보인데 숙소 전체가 이미 잡혀 있음


_MESSAGES = {
    ConflictType.DIRECT: "This date range is already booked or blocked.",
    ConflictType.CHILD_BLOCKED: "A room in this property is already booked or blocked for these dates.",
    ConflictType.PARENT_BLOCKED: "The entire property is already booked or blocked for these dates.",
}


@dataclass(frozen=True)
class ConflictResult:
    """충돌 감지 결과"""
    has_conflict: bool
    conflict_type: Optional[ConflictType] = None
    conflicting_interval: Optional[ReservationInterval] = None
    message: str = ""
    details: dict = field(default_factory=dict)

    @classmethod
    def none(cls) -> "ConflictResult":
        return cls(has_conflict=False)

    def to_dict(self) -> dict:
        return {
            "has_conflict": self.has_conflict,
            "conflict_type": self.conflict_type.value if self.conflict_type else None,
            "conflicting_interval": (
                self.conflicting_interval.to_dict() if self.conflicting_interval else None
            ),
            "message": self.message,
        }


# ─────────────────────────────────────────────────────────────
# 순수 함수
# ─────────────────────────────────────────────────────────────

def intervals_overlap(a: ReservationInterval, b: ReservationInterval) -> bool:
    """
    half-open 겹침 판정 (대칭)

    a.start < b.end AND b.start < a.end
    경계가 같으면 (a.end == b.start) 겹치지 않는다.
    """
    return a.start < b.end and b.start < a.end


def classify_conflict(
    candidate: ReservationInterval,
    existing: ReservationInterval,
) -> Optional[ConflictType]:
    """
    이미 겹친다고 판정된 두 구간의 계층 관계로 충돌 유형 결정.
    서로 다른 객실이면 None.
    """
    # 1. 같은 단위
    if candidate.room_id == existing.room_id:
        return ConflictType.DIRECT

    # 2. 숙소 전체 후보 vs 객실
    if candidate.is_entire_property and not existing.is_entire_property:
        return ConflictType.CHILD_BLOCKED

    # 3. 객실 후보 vs 숙소 전체
    if not candidate.is_entire_property and existing.is_entire_property:
        return ConflictType.PARENT_BLOCKED

    return None


# ─────────────────────────────────────────────────────────────
# Conflict Detector
# ─────────────────────────────────────────────────────────────

class ConflictDetector:
    """
    규칙 기반 예약 구간 충돌 감지기

    사용 시점:
    1. 예약 생성 전 (충돌이면 409, override 플래그가 있으면 통과)
    2. 차단 생성 전
    3. 예약 가능 여부 조회
    4. (옵션) iCal import 이벤트 교차 검증
    """

    def detect_conflict(
        self,
        candidate: ReservationInterval,
        existing: Iterable[ReservationInterval],
    ) -> ConflictResult:
        """
        후보 구간과 기존 구간들 간 첫 번째 충돌 감지

        Args:
            candidate: 새 예약/차단 구간 (start < end)
            existing: 같은 숙소의 기존 예약 + 차단 구간

        Returns:
            ConflictResult: 처음 만난 충돌 (없으면 has_conflict=False)
        """
        for result in self._iter_conflicts(candidate, existing):
            return result
        return ConflictResult.none()

    def detect_all_conflicts(
        self,
        candidate: ReservationInterval,
        existing: Iterable[ReservationInterval],
    ) -> List[ConflictResult]:
        """모든 충돌을 입력 순서대로 반환"""
        return list(self._iter_conflicts(candidate, existing))

    def detect_conflicts_batch(
        self,
        candidates: List[ReservationInterval],
        existing: List[ReservationInterval],
    ) -> List[ConflictResult]:
        """
        여러 후보에 대해 일괄 충돌 검사
        """
        results = []
        for candidate in candidates:
            result = self.detect_conflict(candidate, existing)
            results.append(result)
        return results

    def _iter_conflicts(
        self,
        candidate: ReservationInterval,
        existing: Iterable[ReservationInterval],
    ):
        if not candidate.is_valid:
            raise ValueError(
                f"Invalid interval: start {candidate.start} must be before end {candidate.end}"
            )

        for other in existing:
            # start >= end 인 기존 구간은 빈 구간으로 취급
            if not other.is_valid:
                logger.debug(f"CONFLICT_DETECTOR: Ignoring empty interval {other}")
                continue

            if not intervals_overlap(candidate, other):
                continue

            conflict_type = classify_conflict(candidate, other)
            if conflict_type is None:
                continue

            yield ConflictResult(
                has_conflict=True,
                conflict_type=conflict_type,
                conflicting_interval=other,
                message=_MESSAGES[conflict_type],
                details={
                    "candidate_room_id": candidate.room_id,
                    "existing_room_id": other.room_id,
                },
            )


_default_detector = ConflictDetector()


def check_conflict(
    candidate: ReservationInterval,
    existing: Iterable[ReservationInterval],
) -> ConflictResult:
    """ConflictDetector().detect_conflict 단축 함수"""
    return _default_detector.detect_conflict(candidate, existing)

"""
iCal Service

외부 iCal 피드 동기화 및 숙소 캘린더 export
- 피드 URL 에서 .ics fetch (실패는 IcalFetchError 로 구분해서 올린다)
- VEVENT 파싱 후 이미 import 된 UID 는 건너뛰고 새 이벤트만 반환 (reconcile)
- 새 이벤트를 source=ICAL 예약으로 저장 (sync_feed)
- 숙소 예약을 .ics 로 export
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

import httpx
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.domain.models.booking import BookingSource, BookingStatus
from app.domain.models.ical_feed import IcalFeed
from app.domain.reservations import IntervalKind, ReservationInterval, as_utc
from app.repositories.booking_repository import BookingRepository
from app.repositories.ical_feed_repository import IcalFeedRepository
from app.repositories.property_repository import PropertyRepository
from app.services.calendar_service import CalendarService
from app.services.conflict_detector import ConflictResult
from app.services.ical_codec import FeedEvent, ImportedCalendarEvent, generate_feed, parse_feed

logger = logging.getLogger(__name__)


class IcalFetchError(Exception):
    """피드 fetch 실패 (네트워크 오류, 타임아웃, non-2xx)"""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch iCal feed {url}: {reason}")


class IcalFeedNotFound(LookupError):
    pass


@dataclass
class ReconcileResult:
    """
    reconcile 결과

    - imported: 새로 import 할 이벤트 수 (= len(events))
    - skipped: 이미 import 된 UID (또는 같은 피드 안의 중복 UID)
    - cancelled: STATUS:CANCELLED 라서 건너뛴 이벤트
    - events: import 대상 이벤트
    """
    imported: int = 0
    skipped: int = 0
    cancelled: int = 0
    events: list[ImportedCalendarEvent] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.imported + self.skipped + self.cancelled


@dataclass
class FeedSyncResult:
    """피드 하나 동기화 결과 (DB 반영 후)"""
    feed_id: str
    imported: int
    skipped: int
    cancelled: int
    total: int
    last_synced_at: datetime
    conflicts: list[dict] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.total == 0:
            return "No events found in feed"
        return f"Imported {self.imported} events, skipped {self.skipped} duplicates"


class IcalService:
    """
    iCal 서비스

    - fetch_ical: URL 에서 iCal 데이터 가져오기
    - reconcile: 파싱 + UID 중복 제거 (DB 없이 동작)
    - sync_feed: 등록된 피드 하나 동기화 → Booking 저장
    - sync_all: 모든 피드 동기화
    - export_property_feed: 숙소 예약 .ics 생성
    """

    def __init__(
        self,
        db: Optional[Session] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
        check_conflicts: Optional[bool] = None,
    ):
        self.db = db
        self.transport = transport
        self.timeout = timeout if timeout is not None else settings.ICAL_FETCH_TIMEOUT
        self.check_conflicts = (
            check_conflicts if check_conflicts is not None else settings.ICAL_SYNC_CHECK_CONFLICTS
        )

    # ─────────────────────────────────────────────────────────
    # Fetch / Reconcile
    # ─────────────────────────────────────────────────────────

    async def fetch_ical(self, url: str) -> str:
        """
        iCal URL 에서 데이터 fetch

        Args:
            url: iCal URL

        Returns:
            iCal 데이터 문자열

        Raises:
            IcalFetchError: 타임아웃 / 네트워크 오류 / non-2xx
        """
        headers = {"User-Agent": settings.ICAL_USER_AGENT}
        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.get(
                    url,
                    headers=headers,
                    timeout=self.timeout,
                    follow_redirects=True,
                )
        except httpx.TimeoutException as e:
            logger.error(f"ICAL_SERVICE: Timeout fetching iCal: {url}")
            raise IcalFetchError(url, "timeout") from e
        except httpx.HTTPError as e:
            logger.error(f"ICAL_SERVICE: Failed to fetch iCal: {url}, error: {e}")
            raise IcalFetchError(url, str(e) or e.__class__.__name__) from e

        if not response.is_success:
            logger.error(f"ICAL_SERVICE: Feed returned HTTP {response.status_code}: {url}")
            raise IcalFetchError(
                url,
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        return response.text

    @staticmethod
    def reconcile_events(
        events: Iterable[ImportedCalendarEvent],
        already_imported_uids: set[str],
    ) -> ReconcileResult:
        """이미 import 된 UID 를 걸러낸다 (입력 set 은 건드리지 않음)"""
        result = ReconcileResult()
        seen = set(already_imported_uids)

        for event in events:
            if event.is_cancelled:
                result.cancelled += 1
                continue
            if event.uid in seen:
                logger.debug(f"ICAL_SERVICE: Duplicate UID skipped: {event.uid}")
                result.skipped += 1
                continue
            seen.add(event.uid)
            result.events.append(event)

        result.imported = len(result.events)
        return result

    async def reconcile(
        self,
        feed_url: str,
        already_imported_uids: set[str],
    ) -> ReconcileResult:
        """
        피드 fetch → 파싱 → UID 중복 제거

        같은 피드와 최신 UID 집합으로 다시 돌리면 imported=0.
        fetch 실패는 IcalFetchError 로 그대로 올라간다 ("0건" 과 구분).
        """
        text = await self.fetch_ical(feed_url)
        events = parse_feed(text)
        result = self.reconcile_events(events, already_imported_uids)

        logger.info(
            f"ICAL_SERVICE: Reconciled {feed_url}: parsed={len(events)} "
            f"new={result.imported} skipped={result.skipped} cancelled={result.cancelled}"
        )
        return result

    # ─────────────────────────────────────────────────────────
    # DB 동기화
    # ─────────────────────────────────────────────────────────

    def _require_db(self) -> Session:
        if self.db is None:
            raise RuntimeError("IcalService needs a database session for this operation")
        return self.db

    async def sync_feed(self, feed_id: str) -> FeedSyncResult:
        """
        등록된 피드 하나 동기화

        Args:
            feed_id: ical_feeds.id

        Returns:
            FeedSyncResult (flush 만 하고 commit 은 호출자)
        """
        db = self._require_db()
        feed = IcalFeedRepository(db).get(feed_id)
        if feed is None:
            raise IcalFeedNotFound(feed_id)

        bookings = BookingRepository(db)

        # 1. 이미 import 된 UID
        existing_uids = bookings.list_ical_uids(feed.property_id)

        # 2. fetch + 파싱 + 중복 제거 (실패 시 last_synced_at 갱신 안 함)
        reconciled = await self.reconcile(feed.url, existing_uids)

        # 3. (옵션) 교차 검증용 기존 구간
        existing_intervals: list[ReservationInterval] = []
        calendar = CalendarService(db)
        if self.check_conflicts and reconciled.events:
            existing_intervals = calendar.existing_intervals(feed.property_id)

        # 4. 새 이벤트 저장
        imported = 0
        skipped = reconciled.skipped
        conflicts: list[dict] = []

        for event in reconciled.events:
            if self.check_conflicts:
                verdict = self._cross_check(calendar, feed, event, existing_intervals)
                if verdict is not None:
                    conflicts.append({"uid": event.uid, **verdict.to_dict()})

            if self._insert_booking(db, bookings, feed, event):
                imported += 1
            else:
                skipped += 1

        # 5. last_synced_at 갱신 (0건이어도 fetch 성공이면 갱신)
        now = datetime.now(timezone.utc)
        IcalFeedRepository(db).mark_synced(feed, now)

        logger.info(
            f"ICAL_SERVICE: Synced feed={feed.id} property={feed.property_id}, "
            f"imported={imported} skipped={skipped} cancelled={reconciled.cancelled}"
        )

        return FeedSyncResult(
            feed_id=feed.id,
            imported=imported,
            skipped=skipped,
            cancelled=reconciled.cancelled,
            total=reconciled.total,
            last_synced_at=now,
            conflicts=conflicts,
        )

    def _insert_booking(
        self,
        db: Session,
        bookings: BookingRepository,
        feed: IcalFeed,
        event: ImportedCalendarEvent,
    ) -> bool:
        """이벤트 하나를 Booking 으로 저장. 실패하면 False (로그만 남김)"""
        try:
            with db.begin_nested():
                bookings.create({
                    "property_id": feed.property_id,
                    "room_id": feed.room_id,
                    "customer_name": event.summary or "iCal Import",
                    "check_in": as_utc(event.start),
                    "check_out": as_utc(event.end),
                    "price": 0,
                    "source": BookingSource.ICAL.value,
                    "ical_uid": event.uid,
                    "notes": event.description or f"Imported from: {feed.name}",
                    "status": BookingStatus.CONFIRMED.value,
                    "guest_count": 1,
                })
            return True
        except IntegrityError as e:
            logger.error(f"ICAL_SERVICE: Failed to insert iCal booking uid={event.uid}: {e}")
            return False

    def _cross_check(
        self,
        calendar: CalendarService,
        feed: IcalFeed,
        event: ImportedCalendarEvent,
        existing: list[ReservationInterval],
    ) -> Optional[ConflictResult]:
        candidate = ReservationInterval(
            start=as_utc(event.start),
            end=as_utc(event.end),
            room_id=feed.room_id,
            property_id=feed.property_id,
            kind=IntervalKind.BOOKING,
            label=event.summary,
        )
        if not candidate.is_valid:
            return None

        verdict = calendar.detector.detect_conflict(candidate, existing)
        if not verdict.has_conflict:
            return None

        logger.warning(
            f"ICAL_SERVICE: Imported event overlaps existing reservation "
            f"(override taken) uid={event.uid} type={verdict.conflict_type.value}"
        )
        return verdict

    async def sync_all(self) -> dict[str, FeedSyncResult | IcalFetchError]:
        """
        모든 피드 동기화 (피드별 실패 격리)

        Returns:
            {feed_id: FeedSyncResult 또는 IcalFetchError}
        """
        db = self._require_db()
        feeds = IcalFeedRepository(db).list_all()

        results: dict[str, FeedSyncResult | IcalFetchError] = {}
        for feed in feeds:
            try:
                results[feed.id] = await self.sync_feed(feed.id)
            except IcalFetchError as e:
                results[feed.id] = e

        return results

    # ─────────────────────────────────────────────────────────
    # Export
    # ─────────────────────────────────────────────────────────

    def export_property_feed(self, property_id: str, *, now: Optional[datetime] = None) -> Optional[str]:
        """
        숙소의 취소 안 된 예약을 .ics 로 (체크인 순, 종일 이벤트)

        Returns:
            iCal 텍스트, 숙소가 없으면 None
        """
        db = self._require_db()
        prop = PropertyRepository(db).get_by_id(property_id)
        if prop is None:
            return None

        bookings = BookingRepository(db).list_active_for_property(property_id)
        events = [
            FeedEvent(
                uid=f"{b.id}@{settings.ICAL_UID_DOMAIN}",
                summary=b.customer_name,
                start=as_utc(b.check_in),
                end=as_utc(b.check_out),
                description=b.notes,
            )
            for b in bookings
        ]

        return generate_feed(
            events,
            prop.name,
            all_day=True,
            prodid=settings.ICAL_PRODID,
            uid_domain=settings.ICAL_UID_DOMAIN,
            now=now,
        )

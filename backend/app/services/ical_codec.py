"""
iCal Codec

외부 채널(Airbnb, Booking.com 등)과 주고받는 .ics 텍스트 인코딩/디코딩.

- parse_feed: .ics 텍스트 → ImportedCalendarEvent 리스트
  · 절대 예외를 던지지 않는다. 깨진 이벤트는 조용히 빠진다
  · UID / DTSTART / DTEND 셋 다 있어야 이벤트로 인정
- generate_feed: 예약 리스트 → .ics 텍스트 (CRLF, RFC 5545 escaping)
  · VCALENDAR 안에 컴포넌트가 최소 1개 있어야 하므로
    빈 리스트면 취소 상태의 placeholder VEVENT 하나를 넣는다
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from icalendar import Calendar, Event

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "Blocked"
PLACEHOLDER_SUMMARY = "No bookings"

# 줄 접기(folding) 해제: CRLF/LF 다음의 공백 한 칸은 이전 줄의 연속
_FOLDED_LINE = re.compile(r"\r?\n[ \t]")


@dataclass(frozen=True)
class ImportedCalendarEvent:
    """
    피드에서 읽은 VEVENT 하나.

    - start/end: date-only 값은 로컬 자정(naive), Z 붙은 값은 UTC aware
    - status: STATUS 속성 (없으면 None)
    """
    uid: str
    summary: str
    start: datetime
    end: datetime
    description: Optional[str] = None
    status: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return (self.status or "").upper() == "CANCELLED"


@dataclass(frozen=True)
class FeedEvent:
    """export 할 VEVENT 하나"""
    uid: str
    summary: str
    start: datetime | date
    end: datetime | date
    description: Optional[str] = None
    status: str = "CONFIRMED"


# ─────────────────────────────────────────────────────────────
# Parse
# ─────────────────────────────────────────────────────────────

def unfold_lines(text: str) -> list[str]:
    """접힌 줄을 펴고 논리적 줄 단위로 나눈다"""
    return _FOLDED_LINE.sub("", text).splitlines()


def _split_vevent_blocks(lines: list[str]) -> list[list[str]]:
    """
    BEGIN:VEVENT ~ END:VEVENT 블록만 잘라낸다.

    - ':' 가 없는 줄은 버린다
    - END 없이 다시 BEGIN:VEVENT 가 나오면 앞 블록은 버린다
    - VEVENT 안의 하위 컴포넌트(VALARM 등)는 그대로 둔다
    """
    blocks: list[list[str]] = []
    current: Optional[list[str]] = None

    for raw in lines:
        line = raw.strip("\r")
        if ":" not in line:
            continue

        marker = line.strip().upper()
        if marker == "BEGIN:VEVENT":
            if current is not None:
                logger.debug("ICAL_CODEC: Unterminated VEVENT dropped")
            current = [line]
        elif marker == "END:VEVENT":
            if current is not None:
                current.append(line)
                blocks.append(current)
            current = None
        elif current is not None:
            current.append(line)

    return blocks


def _normalize_instant(value) -> Optional[datetime]:
    """
    icalendar 가 돌려준 값을 datetime 으로.

    - date → 그날 00:00 (naive, 로컬 자정)
    - aware datetime (Z 또는 TZID 파라미터) → UTC
    - naive datetime (floating) → 그대로 (로컬)
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return None


def _text(component: Event, name: str) -> Optional[str]:
    value = component.get(name)
    if value is None:
        return None
    text = str(value)
    return text if text != "" else None


def _event_from_block(block: list[str]) -> Optional[ImportedCalendarEvent]:
    try:
        component = Event.from_ical("\r\n".join(block) + "\r\n")
    except Exception as e:
        logger.debug(f"ICAL_CODEC: Unparseable VEVENT skipped: {e}")
        return None

    uid = _text(component, "UID")
    dtstart = component.get("DTSTART")
    dtend = component.get("DTEND")

    # UID / DTSTART / DTEND 중 하나라도 없으면 버린다
    if not uid or dtstart is None or dtend is None:
        return None

    # 값이 깨진 속성은 .dt 접근 시 예외 (icalendar 가 vBroken 으로 보관)
    try:
        start = _normalize_instant(dtstart.dt)
        end = _normalize_instant(dtend.dt)
    except Exception as e:
        logger.debug(f"ICAL_CODEC: Broken DTSTART/DTEND skipped uid={uid}: {e}")
        return None

    if start is None or end is None:
        return None

    return ImportedCalendarEvent(
        uid=uid,
        summary=_text(component, "SUMMARY") or DEFAULT_SUMMARY,
        start=start,
        end=end,
        description=_text(component, "DESCRIPTION"),
        status=_text(component, "STATUS"),
    )


def parse_feed(text: str) -> list[ImportedCalendarEvent]:
    """
    .ics 텍스트에서 VEVENT 추출

    Args:
        text: iCal 데이터 문자열 (CRLF / LF 모두 허용)

    Returns:
        ImportedCalendarEvent 리스트 (피드 순서 유지)
    """
    if not text:
        return []

    events: list[ImportedCalendarEvent] = []
    blocks = _split_vevent_blocks(unfold_lines(text))

    for block in blocks:
        event = _event_from_block(block)
        if event is not None:
            events.append(event)

    dropped = len(blocks) - len(events)
    if dropped:
        logger.info(f"ICAL_CODEC: Dropped {dropped} incomplete VEVENT(s) of {len(blocks)}")

    return events


# ─────────────────────────────────────────────────────────────
# Generate
# ─────────────────────────────────────────────────────────────

def _as_all_day(value: datetime | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _as_utc_timestamp(value: datetime | date) -> datetime:
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _placeholder_event(uid_domain: str, now: datetime) -> FeedEvent:
    today = now.date()
    return FeedEvent(
        uid=f"placeholder@{uid_domain}",
        summary=PLACEHOLDER_SUMMARY,
        start=today,
        end=today + timedelta(days=1),
        status="CANCELLED",
    )


def generate_feed(
    events: Iterable[FeedEvent],
    calendar_name: str,
    *,
    all_day: bool = True,
    prodid: str = "-//LookAround//Export//EN",
    uid_domain: str = "lookaround.app",
    now: Optional[datetime] = None,
) -> str:
    """
    예약 리스트를 .ics 텍스트로 직렬화

    Args:
        events: export 할 이벤트들
        calendar_name: X-WR-CALNAME
        all_day: True 면 DTSTART;VALUE=DATE, False 면 UTC 타임스탬프(...Z)
        prodid: PRODID
        uid_domain: placeholder UID 도메인
        now: DTSTAMP 기준 시각 (기본: 현재 UTC)

    Returns:
        CRLF 줄바꿈의 iCal 텍스트
    """
    stamp = _as_utc_timestamp(now or datetime.now(timezone.utc))

    cal = Calendar()
    cal.add("prodid", prodid)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", calendar_name)

    items = list(events)
    if not items:
        # 컴포넌트 없는 VCALENDAR 는 외부 리더가 invalid 로 거부한다
        items = [_placeholder_event(uid_domain, stamp)]

    convert = _as_all_day if all_day else _as_utc_timestamp

    for item in items:
        vevent = Event()
        vevent.add("uid", item.uid)
        vevent.add("dtstamp", stamp)
        vevent.add("dtstart", convert(item.start))
        vevent.add("dtend", convert(item.end))
        vevent.add("summary", item.summary)
        if item.description:
            vevent.add("description", item.description)
        vevent.add("status", item.status)
        cal.add_component(vevent)

    return cal.to_ical().decode("utf-8")

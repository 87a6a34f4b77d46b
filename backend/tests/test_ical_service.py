from __future__ import annotations

import asyncio
from datetime import datetime

import httpx
import pytest

from conftest import add_booking, room_named, utc

from app.domain.models import Booking, BookingSource, BookingStatus, IcalFeed
from app.services.ical_codec import ImportedCalendarEvent
from app.services.ical_service import IcalFeedNotFound, IcalFetchError, IcalService

FEED_URL = "https://www.airbnb.com/calendar/ical/123.ics"

FEED_TEXT = "\r\n".join([
    "BEGIN:VCALENDAR",
    "VERSION:2.0",
    "BEGIN:VEVENT",
    "UID:evt-1@airbnb.com",
    "DTSTART;VALUE=DATE:20240110",
    "DTEND;VALUE=DATE:20240115",
    "SUMMARY:Reserved",
    "END:VEVENT",
    "BEGIN:VEVENT",
    "UID:evt-2@airbnb.com",
    "DTSTART;VALUE=DATE:20240201",
    "DTEND;VALUE=DATE:20240203",
    "END:VEVENT",
    "BEGIN:VEVENT",
    "UID:evt-3@airbnb.com",
    "DTSTART;VALUE=DATE:20240301",
    "DTEND;VALUE=DATE:20240302",
    "STATUS:CANCELLED",
    "END:VEVENT",
    "END:VCALENDAR",
    "",
])

EMPTY_FEED = "BEGIN:VCALENDAR\r\nVERSION:2.0\r\nEND:VCALENDAR\r\n"


def serve(text: str, status_code: int = 200):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, text=text)

    return httpx.MockTransport(handler), requests


def fail_with(exc: Exception):
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc

    return httpx.MockTransport(handler)


def make_feed(db, prop, room=None, url: str = FEED_URL) -> IcalFeed:
    feed = IcalFeed(property_id=prop.id, room_id=room.id if room else None, name="Airbnb", url=url)
    db.add(feed)
    db.commit()
    return feed


# ---------------------------------------------------------------------------
# fetch / reconcile (no DB)
# ---------------------------------------------------------------------------


def test_fetch_sends_user_agent():
    transport, requests = serve(FEED_TEXT)
    text = asyncio.run(IcalService(transport=transport).fetch_ical(FEED_URL))

    assert text == FEED_TEXT
    assert requests[0].headers["User-Agent"] == "LookAround/1.0"


@pytest.mark.parametrize("status_code", [404, 500, 503])
def test_non_success_status_raises_fetch_error(status_code):
    transport, _ = serve("nope", status_code=status_code)
    with pytest.raises(IcalFetchError) as exc_info:
        asyncio.run(IcalService(transport=transport).reconcile(FEED_URL, set()))

    assert exc_info.value.status_code == status_code
    assert exc_info.value.url == FEED_URL


def test_transport_errors_raise_fetch_error():
    service = IcalService(transport=fail_with(httpx.ConnectError("connection refused")))
    with pytest.raises(IcalFetchError):
        asyncio.run(service.fetch_ical(FEED_URL))

    service = IcalService(transport=fail_with(httpx.ReadTimeout("too slow")))
    with pytest.raises(IcalFetchError) as exc_info:
        asyncio.run(service.fetch_ical(FEED_URL))
    assert exc_info.value.reason == "timeout"


def test_reconcile_skips_known_uids_and_cancelled_events():
    transport, _ = serve(FEED_TEXT)
    result = asyncio.run(IcalService(transport=transport).reconcile(FEED_URL, {"evt-1@airbnb.com"}))

    assert [e.uid for e in result.events] == ["evt-2@airbnb.com"]
    assert result.imported == 1
    assert result.skipped == 1
    assert result.cancelled == 1
    assert result.total == 3


def test_reconcile_is_idempotent():
    transport, _ = serve(FEED_TEXT)
    service = IcalService(transport=transport)
    known: set[str] = set()

    first = asyncio.run(service.reconcile(FEED_URL, known))
    assert first.imported == 2
    assert known == set()  # input set is not mutated

    known |= {e.uid for e in first.events}
    second = asyncio.run(service.reconcile(FEED_URL, known))
    assert second.imported == 0
    assert second.skipped == 2


def test_reconcile_empty_feed_is_not_an_error():
    transport, _ = serve(EMPTY_FEED)
    result = asyncio.run(IcalService(transport=transport).reconcile(FEED_URL, set()))
    assert result.imported == 0
    assert result.total == 0


def test_duplicate_uid_inside_one_feed_is_imported_once():
    event = ImportedCalendarEvent(
        uid="dup", summary="Reserved", start=datetime(2024, 1, 1), end=datetime(2024, 1, 2)
    )
    result = IcalService.reconcile_events([event, event], set())
    assert result.imported == 1
    assert result.skipped == 1


# ---------------------------------------------------------------------------
# sync_feed (DB)
# ---------------------------------------------------------------------------


def test_sync_feed_materializes_bookings(db, villa):
    room_a = room_named(villa, "Room A")
    feed = make_feed(db, villa, room=room_a)
    transport, _ = serve(FEED_TEXT)

    result = asyncio.run(IcalService(db, transport=transport).sync_feed(feed.id))
    db.commit()

    assert result.imported == 2
    assert result.skipped == 0
    assert result.cancelled == 1
    assert result.message == "Imported 2 events, skipped 0 duplicates"

    bookings = db.query(Booking).order_by(Booking.check_in).all()
    assert [b.ical_uid for b in bookings] == ["evt-1@airbnb.com", "evt-2@airbnb.com"]

    first = bookings[0]
    assert first.property_id == villa.id
    assert first.room_id == room_a.id
    assert first.source == BookingSource.ICAL.value
    assert first.status == BookingStatus.CONFIRMED.value
    assert first.customer_name == "Reserved"
    assert first.price == 0
    assert first.notes == "Imported from: Airbnb"
    assert bookings[1].customer_name == "Blocked"

    db.refresh(feed)
    assert feed.last_synced_at is not None


def test_second_sync_imports_nothing(db, villa):
    feed = make_feed(db, villa)
    transport, _ = serve(FEED_TEXT)
    service = IcalService(db, transport=transport)

    asyncio.run(service.sync_feed(feed.id))
    db.commit()
    again = asyncio.run(service.sync_feed(feed.id))
    db.commit()

    assert again.imported == 0
    assert again.skipped == 2
    assert db.query(Booking).count() == 2


def test_empty_feed_still_updates_last_synced_at(db, villa):
    feed = make_feed(db, villa)
    transport, _ = serve(EMPTY_FEED)

    result = asyncio.run(IcalService(db, transport=transport).sync_feed(feed.id))
    db.commit()

    assert result.total == 0
    assert result.message == "No events found in feed"
    db.refresh(feed)
    assert feed.last_synced_at is not None


def test_failed_fetch_leaves_feed_untouched(db, villa):
    feed = make_feed(db, villa)
    transport, _ = serve("boom", status_code=500)

    with pytest.raises(IcalFetchError):
        asyncio.run(IcalService(db, transport=transport).sync_feed(feed.id))
    db.rollback()

    db.refresh(feed)
    assert feed.last_synced_at is None
    assert db.query(Booking).count() == 0


def test_unknown_feed(db):
    with pytest.raises(IcalFeedNotFound):
        asyncio.run(IcalService(db).sync_feed("missing"))


def test_cross_check_reports_overlaps_but_still_imports(db, villa):
    add_booking(db, villa, utc(2024, 1, 12), utc(2024, 1, 14), customer_name="Direct guest")
    feed = make_feed(db, villa)
    transport, _ = serve(FEED_TEXT)

    result = asyncio.run(IcalService(db, transport=transport, check_conflicts=True).sync_feed(feed.id))
    db.commit()

    assert result.imported == 2
    assert len(result.conflicts) == 1
    assert result.conflicts[0]["uid"] == "evt-1@airbnb.com"
    assert result.conflicts[0]["conflict_type"] == "DIRECT"


def test_sync_all_isolates_failures(db, villa):
    good = make_feed(db, villa, url="https://good.example.com/cal.ics")
    bad = make_feed(db, villa, url="https://bad.example.com/cal.ics")

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "bad.example.com":
            return httpx.Response(502, text="bad gateway")
        return httpx.Response(200, text=FEED_TEXT)

    results = asyncio.run(IcalService(db, transport=httpx.MockTransport(handler)).sync_all())
    db.commit()

    assert isinstance(results[bad.id], IcalFetchError)
    assert results[good.id].imported == 2


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


def test_export_property_feed(db, villa):
    add_booking(db, villa, utc(2024, 2, 1, 15), utc(2024, 2, 3, 11), customer_name="Park")
    add_booking(db, villa, utc(2024, 1, 10, 15), utc(2024, 1, 12, 11), customer_name="Choi")
    add_booking(
        db, villa, utc(2024, 1, 20), utc(2024, 1, 22),
        customer_name="Cancelled guest", status=BookingStatus.CANCELLED.value,
    )

    text = IcalService(db).export_property_feed(villa.id, now=utc(2024, 1, 1))

    assert "X-WR-CALNAME:Villa" in text
    assert "Cancelled guest" not in text
    assert text.index("SUMMARY:Choi") < text.index("SUMMARY:Park")
    assert "DTSTART;VALUE=DATE:20240110" in text
    assert "@lookaround.app" in text


def test_export_without_bookings_has_placeholder(db, villa):
    text = IcalService(db).export_property_feed(villa.id, now=utc(2024, 1, 1))
    assert "UID:placeholder@lookaround.app" in text
    assert "STATUS:CANCELLED" in text


def test_export_unknown_property(db):
    assert IcalService(db).export_property_feed("missing") is None


def test_sync_survives_broken_event(db, villa):
    feed = make_feed(db, villa)
    text = FEED_TEXT.replace(
        "BEGIN:VEVENT\r\nUID:evt-2@airbnb.com\r\nDTSTART;VALUE=DATE:20240201",
        "BEGIN:VEVENT\r\nUID:evt-2@airbnb.com\r\nDTSTART:2024",
    )
    transport, _ = serve(text)

    result = asyncio.run(IcalService(db, transport=transport).sync_feed(feed.id))
    db.commit()

    assert result.imported == 1
    assert [b.ical_uid for b in db.query(Booking).all()] == ["evt-1@airbnb.com"]

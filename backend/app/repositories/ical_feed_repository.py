# backend/app/repositories/ical_feed_repository.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.models.ical_feed import IcalFeed


class IcalFeedRepository:
    """
    외부 iCal 피드 등록 정보 레포지토리.
    """

    def __init__(self, session: Session):
        self.session = session

    def get(self, feed_id: str) -> IcalFeed | None:
        return self.session.get(IcalFeed, feed_id)

    def list_all(self) -> Sequence[IcalFeed]:
        stmt = select(IcalFeed).order_by(IcalFeed.created_at.desc())
        return self.session.execute(stmt).scalars().all()

    def create(self, data: dict) -> IcalFeed:
        feed = IcalFeed(**data)
        self.session.add(feed)
        self.session.flush()
        return feed

    def delete(self, feed: IcalFeed) -> None:
        self.session.delete(feed)
        self.session.flush()

    def mark_synced(self, feed: IcalFeed, when: datetime | None = None) -> None:
        feed.last_synced_at = when or datetime.now(timezone.utc)
        self.session.flush()

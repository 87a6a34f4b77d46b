"""
iCal API

- 외부 iCal 피드 등록/삭제/목록
- 피드 수동 동기화 (fetch 실패는 502, "0건" 과 구분)
- 숙소 예약 .ics export (공개 URL, property_id 가 토큰 역할)
"""
import logging
import re
from datetime import datetime
from typing import List, Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.repositories.ical_feed_repository import IcalFeedRepository
from app.repositories.property_repository import PropertyRepository
from app.services.ical_service import IcalFeedNotFound, IcalFetchError, IcalService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ical", tags=["iCal"])


# ========== DTOs ==========

class IcalFeedCreate(BaseModel):
    """iCal 피드 등록 요청"""
    name: str = Field(..., min_length=1)
    url: str
    property_id: str
    room_id: Optional[str] = None

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https", "webcal") or not parsed.netloc:
            raise ValueError("Invalid URL format")
        # webcal:// 은 https 로 받는다
        if parsed.scheme == "webcal":
            return "https" + value[len("webcal"):]
        return value


class IcalFeedRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    url: str
    property_id: str
    room_id: Optional[str] = None
    last_synced_at: Optional[datetime] = None


class IcalSyncResultDTO(BaseModel):
    """iCal 동기화 결과"""
    feed_id: str
    imported: int
    skipped: int
    cancelled: int
    total: int
    last_synced_at: datetime
    message: str
    conflicts: list[dict] = []


# ========== Feeds ==========

@router.get("/feeds", response_model=List[IcalFeedRead])
def list_feeds(db: Session = Depends(get_db)) -> List[IcalFeedRead]:
    return [IcalFeedRead.model_validate(f) for f in IcalFeedRepository(db).list_all()]


@router.post("/feeds", response_model=IcalFeedRead, status_code=status.HTTP_201_CREATED)
def create_feed(
    request: IcalFeedCreate,
    db: Session = Depends(get_db),
) -> IcalFeedRead:
    properties = PropertyRepository(db)
    if properties.get_by_id(request.property_id) is None:
        raise HTTPException(status_code=404, detail="Property not found")
    if request.room_id and properties.get_room_in_property(request.property_id, request.room_id) is None:
        raise HTTPException(status_code=400, detail="Room does not belong to this property")

    feed = IcalFeedRepository(db).create(request.model_dump())
    db.commit()
    db.refresh(feed)
    return IcalFeedRead.model_validate(feed)


@router.delete("/feeds/{feed_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_feed(feed_id: str, db: Session = Depends(get_db)) -> None:
    repo = IcalFeedRepository(db)
    feed = repo.get(feed_id)
    if feed is None:
        raise HTTPException(status_code=404, detail="Feed not found")
    repo.delete(feed)
    db.commit()


@router.post("/feeds/{feed_id}/sync", response_model=IcalSyncResultDTO)
async def sync_feed(
    feed_id: str,
    db: Session = Depends(get_db),
) -> IcalSyncResultDTO:
    """
    iCal 수동 동기화

    - fetch 실패 → 502 (last_synced_at 갱신 안 함)
    - 새 UID 만 import, 이미 있는 UID 는 skipped
    """
    service = IcalService(db)
    try:
        result = await service.sync_feed(feed_id)
        db.commit()
    except IcalFeedNotFound:
        raise HTTPException(status_code=404, detail="Feed not found")
    except IcalFetchError as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch iCal feed: {e.reason}",
        )
    except Exception as e:
        db.rollback()
        logger.error(f"ICAL_API: Sync failed: feed={feed_id}, error: {e}")
        raise

    return IcalSyncResultDTO(
        feed_id=result.feed_id,
        imported=result.imported,
        skipped=result.skipped,
        cancelled=result.cancelled,
        total=result.total,
        last_synced_at=result.last_synced_at,
        message=result.message,
        conflicts=result.conflicts,
    )


# ========== Export ==========

def _export_filename(name: str) -> str:
    return f"{re.sub(r'[^a-zA-Z0-9]', '_', name)}_calendar.ics"


@router.get("/export")
def export_feed(
    property_id: str = Query(..., description="숙소 ID"),
    db: Session = Depends(get_db),
) -> Response:
    """
    숙소 예약 .ics export (인증 없음 - Airbnb 등이 직접 가져감)
    """
    prop = PropertyRepository(db).get_by_id(property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")

    content = IcalService(db).export_property_feed(property_id)

    return Response(
        content=content,
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{_export_filename(prop.name)}"',
            # 외부 플랫폼이 너무 자주 가져가지 않도록 5분 캐시
            "Cache-Control": "public, max-age=300, s-maxage=300",
        },
    )

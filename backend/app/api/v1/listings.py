# backend/app/api/v1/listings.py
"""
Listings API

숙소 + 객실을 달력/예약 모달이 쓰는 평평한 리스팅 목록으로
"""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.domain.reservations import Listing
from app.services.calendar_service import CalendarService

router = APIRouter(prefix="/listings", tags=["listings"])


class ListingDTO(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    type: str  # PROPERTY | ROOM
    property_id: str
    room_id: Optional[str] = None
    base_price: Optional[float] = None

    @classmethod
    def from_listing(cls, listing: Listing) -> "ListingDTO":
        return cls(
            id=listing.id,
            name=listing.name,
            description=listing.description,
            type=listing.type.value,
            property_id=listing.property_id,
            room_id=listing.room_id,
            base_price=listing.base_price,
        )


@router.get("", response_model=List[ListingDTO])
def list_listings(
    property_id: Optional[str] = Query(default=None, description="특정 숙소만"),
    db: Session = Depends(get_db),
) -> List[ListingDTO]:
    listings = CalendarService(db).list_listings(property_id)
    return [ListingDTO.from_listing(listing) for listing in listings]

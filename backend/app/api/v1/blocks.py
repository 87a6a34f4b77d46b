# backend/app/api/v1/blocks.py
"""
Blocks API

호스트 수동 차단 생성/삭제. 예약과 같은 충돌 규칙을 적용한다.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.v1.bookings import BlockRead, validate_target
from app.api.v1.schemas.reservations import conflict_exception
from app.db.session import get_db
from app.domain.reservations import IntervalKind, ReservationInterval, as_utc
from app.repositories.block_repository import BlockRepository
from app.services.calendar_service import CalendarService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blocks", tags=["blocks"])


class BlockCreate(BaseModel):
    """차단 생성 요청"""
    property_id: str
    room_id: Optional[str] = Field(None, description="없으면 숙소 전체 차단")
    start_date: datetime
    end_date: datetime
    reason: Optional[str] = Field(None, max_length=255)
    override: bool = False


@router.post("", response_model=BlockRead, status_code=status.HTTP_201_CREATED)
def create_block(
    request: BlockCreate,
    db: Session = Depends(get_db),
) -> BlockRead:
    validate_target(db, request.property_id, request.room_id, request.start_date, request.end_date)

    candidate = ReservationInterval(
        start=as_utc(request.start_date),
        end=as_utc(request.end_date),
        room_id=request.room_id or None,
        property_id=request.property_id,
        kind=IntervalKind.BLOCK,
        label=request.reason,
    )

    result = CalendarService(db).check_conflict(request.property_id, candidate)
    if result.has_conflict:
        if not request.override:
            raise conflict_exception(result)
        logger.warning(
            f"BLOCKS_API: Conflict overridden property={request.property_id} "
            f"room={request.room_id} type={result.conflict_type.value}"
        )

    block = BlockRepository(db).create({
        "property_id": request.property_id,
        "room_id": request.room_id or None,
        "start_date": candidate.start,
        "end_date": candidate.end,
        "reason": request.reason,
    })
    db.commit()
    db.refresh(block)

    logger.info(f"BLOCKS_API: Created block {block.id} property={block.property_id} room={block.room_id}")
    return BlockRead.model_validate(block)


@router.delete("/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_block(
    block_id: str,
    db: Session = Depends(get_db),
) -> None:
    repo = BlockRepository(db)
    block = repo.get(block_id)
    if block is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Block not found")

    repo.delete(block)
    db.commit()

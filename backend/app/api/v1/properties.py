# backend/app/api/v1/properties.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, ConfigDict
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.repositories.property_repository import PropertyRepository

router = APIRouter(prefix="/properties", tags=["properties"])


# --- Pydantic Schemas ---


class RoomBase(BaseModel):
    name: str = Field(..., description="객실 이름")
    description: str | None = None
    base_price: float | None = Field(None, ge=0)


class RoomCreate(RoomBase):
    pass


class RoomRead(RoomBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str


class PropertyBase(BaseModel):
    name: str = Field(..., description="숙소 이름")
    description: str | None = None
    base_price: float | None = Field(None, ge=0)


class PropertyCreate(PropertyBase):
    rooms: list[RoomCreate] = Field(default_factory=list, description="함께 만들 객실들")


class PropertyRead(PropertyBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    rooms: list[RoomRead] = []


# --- API Endpoints ---


@router.get("", response_model=List[PropertyRead])
def list_properties(
    *,
    db: Session = Depends(get_db),
) -> List[PropertyRead]:
    repo = PropertyRepository(db)
    return [PropertyRead.model_validate(p) for p in repo.list_all()]


@router.get("/{property_id}", response_model=PropertyRead)
def get_property(
    *,
    db: Session = Depends(get_db),
    property_id: str,
) -> PropertyRead:
    repo = PropertyRepository(db)
    prop = repo.get_by_id(property_id)
    if prop is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Property not found",
        )
    return PropertyRead.model_validate(prop)


@router.post(
    "",
    response_model=PropertyRead,
    status_code=status.HTTP_201_CREATED,
)
def create_property(
    *,
    db: Session = Depends(get_db),
    data: PropertyCreate,
) -> PropertyRead:
    repo = PropertyRepository(db)

    prop = repo.create(data.model_dump(exclude={"rooms"}))
    for room in data.rooms:
        repo.add_room(prop, room.model_dump())

    db.commit()
    db.refresh(prop)

    return PropertyRead.model_validate(prop)


@router.post(
    "/{property_id}/rooms",
    response_model=RoomRead,
    status_code=status.HTTP_201_CREATED,
)
def add_room(
    *,
    db: Session = Depends(get_db),
    property_id: str,
    data: RoomCreate,
) -> RoomRead:
    repo = PropertyRepository(db)
    prop = repo.get_by_id(property_id)
    if prop is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Property not found",
        )

    room = repo.add_room(prop, data.model_dump())

    db.commit()
    db.refresh(room)

    return RoomRead.model_validate(room)

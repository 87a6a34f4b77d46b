# backend/app/repositories/property_repository.py
from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.domain.models.property import Property, Room


class PropertyRepository:
    """
    Property / Room 전용 레포지토리.
    """

    def __init__(self, session: Session):
        self.session = session

    # --- 조회 ---

    def get_by_id(self, id_: str) -> Property | None:
        return self.session.get(Property, id_)

    def list_all(self) -> Sequence[Property]:
        stmt = (
            select(Property)
            .options(selectinload(Property.rooms))
            .order_by(Property.name.asc())
        )
        return self.session.execute(stmt).scalars().all()

    def list_by_ids(self, ids: Sequence[str]) -> Sequence[Property]:
        stmt = (
            select(Property)
            .options(selectinload(Property.rooms))
            .where(Property.id.in_(ids))
            .order_by(Property.name.asc())
        )
        return self.session.execute(stmt).scalars().all()

    def get_room(self, room_id: str) -> Room | None:
        return self.session.get(Room, room_id)

    def get_room_in_property(self, property_id: str, room_id: str) -> Room | None:
        stmt = select(Room).where(
            Room.id == room_id,
            Room.property_id == property_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    # --- 생성 ---

    def create(self, data: dict) -> Property:
        prop = Property(**data)
        self.session.add(prop)
        self.session.flush()
        return prop

    def add_room(self, prop: Property, data: dict) -> Room:
        room = Room(property_id=prop.id, **data)
        self.session.add(room)
        self.session.flush()
        return room

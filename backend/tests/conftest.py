"""Shared fixtures: in-memory SQLite session and a TestClient over the v1 router."""

from __future__ import annotations

import os

# app.db.session builds its engine at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ICAL_SYNC_ENABLED"] = "false"

from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.domain.models  # noqa: F401
from app.api.v1.api import api_router
from app.db.base import Base
from app.db.session import get_db
from app.domain.models import Block, Booking, Property, Room


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    app = FastAPI()
    app.include_router(api_router, prefix="/api/v1")

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def villa(db) -> Property:
    """Property with two rooms (A, B)."""
    prop = Property(name="Villa", description="Seaside villa", base_price=300.0)
    prop.rooms = [
        Room(name="Room A", base_price=120.0),
        Room(name="Room B", base_price=100.0),
    ]
    db.add(prop)
    db.commit()
    db.refresh(prop)
    return prop


def room_named(prop: Property, name: str) -> Room:
    return next(r for r in prop.rooms if r.name == name)


def add_booking(db, prop: Property, start: datetime, end: datetime, room: Room | None = None, **extra) -> Booking:
    data = {
        "property_id": prop.id,
        "room_id": room.id if room else None,
        "customer_name": "Guest",
        "check_in": start,
        "check_out": end,
        "price": 100.0,
    }
    data.update(extra)
    booking = Booking(**data)
    db.add(booking)
    db.commit()
    return booking


def add_block(db, prop: Property, start: datetime, end: datetime, room: Room | None = None, reason: str | None = None) -> Block:
    block = Block(
        property_id=prop.id,
        room_id=room.id if room else None,
        start_date=start,
        end_date=end,
        reason=reason,
    )
    db.add(block)
    db.commit()
    return block

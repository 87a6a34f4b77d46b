# backend/app/domain/models/__init__.py

from app.db.base import Base

from .property import Property, Room
from .booking import Booking, BookingSource, BookingStatus
from .block import Block
from .ical_feed import IcalFeed

__all__ = [
    "Base",
    "Property",
    "Room",
    "Booking",
    "BookingSource",
    "BookingStatus",
    "Block",
    "IcalFeed",
]

from datetime import time, timedelta
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from .booking_engine import BookingEngine
from .config import get_settings
from .db import get_db
from .notifications import email_notifiers
from .repositories import (
    MongoBookingStore,
    MongoCustomerDirectory,
    MongoPetDirectory,
    MongoServiceCatalog,
)
from .scheduling import BusinessHours


def business_hours() -> BusinessHours:
    s = get_settings()
    return BusinessHours(
        open_at=time(s.business_open_hour, 0),
        close_at=time(s.business_close_hour, 0),
        step_minutes=s.slot_step_minutes,
        tz=s.business_timezone,
    )


async def get_booking_engine(db: AsyncIOMotorDatabase = Depends(get_db)) -> BookingEngine:
    settings = get_settings()
    return BookingEngine(
        bookings=MongoBookingStore(db),
        services=MongoServiceCatalog(db),
        pets=MongoPetDirectory(db),
        customers=MongoCustomerDirectory(db),
        notifiers=email_notifiers(settings),
        hours=business_hours(),
        cancellation_notice=timedelta(hours=settings.cancellation_notice_hours),
    )

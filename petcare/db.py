from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from .config import get_settings

_settings = get_settings()
_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None

async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    await db.users.create_index("email", unique=True)
    await db.pets.create_index([("owner_id", 1), ("is_active", 1)])
    await db.services.create_index("name", unique=True)
    await db.services.create_index([("category", 1), ("is_active", 1)])
    await db.bookings.create_index([("customer_id", 1), ("start_time", -1)])
    await db.bookings.create_index([("pet_id", 1), ("status", 1), ("start_time", 1)])
    await db.bookings.create_index([("service_id", 1), ("start_time", 1)])

async def get_db() -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is None:
        _client = AsyncIOMotorClient(_settings.mongodb_uri)
        _db = _client[_settings.db_name]
        await ensure_indexes(_db)
    return _db

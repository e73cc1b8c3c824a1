"""
Configuración de pytest: colaboradores en memoria para el motor de reservas
y un cliente ASGI con las dependencias sustituidas.
"""
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
import os

import pytest
from bson import ObjectId
from dotenv import load_dotenv
from httpx import AsyncClient, ASGITransport
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from petcare.booking_engine import BookingEngine
from petcare.scheduling import OCCUPYING_STATUSES, end_of
from petcare.schemas.booking import Booking
from petcare.utils import utcnow

load_dotenv()

# Base de datos de test para los tests que usan test_db/clean_db
TEST_DB_NAME = os.getenv("TEST_DB_NAME", "petcare_test")
TEST_MONGODB_URI = os.getenv("TEST_MONGODB_URI", os.getenv("MONGODB_URI", "mongodb://localhost:27017"))

CUSTOMER_ID = "64b000000000000000000001"
OTHER_CUSTOMER_ID = "64b000000000000000000002"
STAFF_ID = "64b0000000000000000000ff"
SERVICE_ID = "64c000000000000000000001"
INACTIVE_SERVICE_ID = "64c000000000000000000002"
PET_ID = "64d000000000000000000001"
OTHER_PET_ID = "64d000000000000000000002"
INACTIVE_PET_ID = "64d000000000000000000003"


class InMemoryBookingStore:
    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}

    def add(self, **fields) -> Booking:
        doc = {
            "id": str(ObjectId()),
            "customer_id": CUSTOMER_ID,
            "service_id": SERVICE_ID,
            "pet_id": PET_ID,
            "duration": 60,
            "total_price": 45.0,
            "status": "confirmed",
        }
        doc.update(fields)
        self.docs[doc["id"]] = doc
        return Booking(**doc)

    def all(self) -> List[Booking]:
        return sorted((Booking(**d) for d in self.docs.values()), key=lambda b: b.start_time)

    async def find_occupying(self, *, start_before, end_after, pet_id=None, service_id=None, exclude_id=None):
        out = []
        for b in self.all():
            if b.status not in OCCUPYING_STATUSES or b.id == exclude_id:
                continue
            if pet_id is not None and b.pet_id != pet_id:
                continue
            if service_id is not None and b.service_id != service_id:
                continue
            if b.start_time < start_before and end_of(b.start_time, b.duration) > end_after:
                out.append(b)
        return out

    async def insert_if_free(self, doc):
        end = end_of(doc["start_time"], doc["duration"])
        if await self.find_occupying(pet_id=doc["pet_id"], start_before=end, end_after=doc["start_time"]):
            return None
        return self.add(**doc)

    async def get(self, booking_id, customer_id=None):
        d = self.docs.get(booking_id)
        if not d or (customer_id is not None and d["customer_id"] != customer_id):
            return None
        return Booking(**d)

    async def list_for_customer(self, customer_id, status, skip, limit, sort_by, descending):
        items = [b for b in self.all() if b.customer_id == customer_id and (not status or b.status.value == status)]
        items.sort(key=lambda b: getattr(b, sort_by), reverse=descending)
        return items[skip:skip + limit], len(items)

    async def update(self, booking_id, fields, customer_id=None, status_in=None):
        d = self.docs.get(booking_id)
        if not d or (customer_id is not None and d["customer_id"] != customer_id):
            return None
        if status_in is not None and d["status"] not in {getattr(s, "value", s) for s in status_in}:
            return None
        self.docs[booking_id].update(fields, updated_at=utcnow())
        return Booking(**self.docs[booking_id])


class InMemoryServiceCatalog:
    def __init__(self, services: List[Dict[str, Any]]):
        self.services = {s["id"]: s for s in services}

    async def get_active(self, service_id):
        s = self.services.get(service_id)
        return dict(s) if s and s.get("is_active") else None


class InMemoryPetDirectory:
    def __init__(self, pets: List[Dict[str, Any]]):
        self.pets = {p["id"]: p for p in pets}

    async def get_owned_active(self, pet_id, owner_id):
        p = self.pets.get(pet_id)
        if not p or p["owner_id"] != owner_id or not p.get("is_active"):
            return None
        return dict(p)


class InMemoryCustomerDirectory:
    def __init__(self, customers: List[Dict[str, Any]]):
        self.customers = {c["id"]: c for c in customers}

    async def get(self, customer_id):
        c = self.customers.get(customer_id)
        return dict(c) if c else None


class RecordingNotifier:
    def __init__(self, channel: str, fail: bool = False):
        self.channel = channel
        self.fail = fail
        self.sent = []

    async def notify(self, context):
        if self.fail:
            raise RuntimeError(f"SMTP caído ({self.channel})")
        self.sent.append(context)


@pytest.fixture
def day() -> date:
    """Un día laborable cualquiera dentro de una semana."""
    return (utcnow() + timedelta(days=7)).date()


def at(d: date, hour: int, minute: int = 0) -> datetime:
    return datetime(d.year, d.month, d.day, hour, minute)


@pytest.fixture
def store():
    return InMemoryBookingStore()


@pytest.fixture
def catalog():
    return InMemoryServiceCatalog([
        {"id": SERVICE_ID, "name": "Paseo largo", "duration": 60, "price": 45.0, "is_active": True},
        {"id": INACTIVE_SERVICE_ID, "name": "Baño", "duration": 30, "price": 20.0, "is_active": False},
    ])


@pytest.fixture
def pets():
    return InMemoryPetDirectory([
        {"id": PET_ID, "name": "Luna", "species": "dog", "breed": "Beagle", "owner_id": CUSTOMER_ID, "is_active": True},
        {"id": OTHER_PET_ID, "name": "Max", "species": "cat", "breed": "Persa", "owner_id": OTHER_CUSTOMER_ID, "is_active": True},
        {"id": INACTIVE_PET_ID, "name": "Toby", "species": "dog", "breed": "Galgo", "owner_id": CUSTOMER_ID, "is_active": False},
    ])


@pytest.fixture
def customers():
    return InMemoryCustomerDirectory([
        {"id": CUSTOMER_ID, "name": "Ana", "email": "ana@example.com", "phone": "+34600123456"},
    ])


@pytest.fixture
def notifiers():
    return [RecordingNotifier("operator"), RecordingNotifier("customer")]


@pytest.fixture
def engine(store, catalog, pets, customers, notifiers):
    return BookingEngine(
        bookings=store,
        services=catalog,
        pets=pets,
        customers=customers,
        notifiers=notifiers,
    )


@pytest.fixture
def current_user():
    return {"id": CUSTOMER_ID, "name": "Ana", "email": "ana@example.com", "is_staff": False}


@pytest.fixture
def app(engine, current_user):
    from petcare.main import app
    from petcare.deps import get_booking_engine
    from petcare.security import get_current_user

    # Deshabilitar rate limiting en la app para tests
    rate_limiter = app.state.rate_limiter
    app.state.rate_limiter = None
    app.dependency_overrides[get_booking_engine] = lambda: engine
    app.dependency_overrides[get_current_user] = lambda: current_user
    yield app
    app.dependency_overrides.clear()
    app.state.rate_limiter = rate_limiter


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------- MongoDB real ----------

@pytest.fixture
async def test_db():
    """Base de datos de test; se salta el test si no hay MongoDB."""
    from petcare.db import ensure_indexes

    client = AsyncIOMotorClient(TEST_MONGODB_URI, serverSelectionTimeoutMS=2000)
    try:
        await client.admin.command("ping")
    except PyMongoError:
        client.close()
        pytest.skip("MongoDB de test no disponible")
    db = client[TEST_DB_NAME]
    await ensure_indexes(db)
    yield db
    try:
        await client.drop_database(TEST_DB_NAME)
    finally:
        client.close()


@pytest.fixture
async def clean_db(test_db):
    """Limpia la base de datos antes de cada test"""
    for name in await test_db.list_collection_names():
        await test_db[name].delete_many({})
    yield test_db


@pytest.fixture
async def db_client(clean_db):
    """Cliente ASGI sobre la base de test, con autenticación real por JWT."""
    from petcare.main import app
    from petcare.db import get_db

    rate_limiter = app.state.rate_limiter
    app.state.rate_limiter = None
    app.dependency_overrides[get_db] = lambda: clean_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    app.state.rate_limiter = rate_limiter


async def make_user(db, name="Ana", email="ana@example.com", is_staff=False) -> Dict[str, str]:
    """Inserta un usuario y devuelve su id y la cabecera de autorización."""
    from petcare.security import create_access_token, hash_password

    res = await db.users.insert_one({
        "name": name,
        "email": email,
        "password_hash": hash_password("testpass123"),
        "is_staff": is_staff,
        "created_at": utcnow(),
    })
    user_id = str(res.inserted_id)
    return {"id": user_id, "headers": {"Authorization": f"Bearer {create_access_token(user_id)}"}}

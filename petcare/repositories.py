# petcare/repositories.py
"""
Colaboradores de persistencia que usa el motor de reservas.

Los Protocol describen lo que el motor necesita; las clases Mongo* son la
implementación real sobre Motor. En tests se sustituyen por versiones en
memoria.
"""
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
import logging

from .errors import StoreError
from .scheduling import OCCUPYING_STATUSES, end_of
from .schemas.booking import Booking
from .utils import to_id, utcnow

logger = logging.getLogger(__name__)

MAX_INSERT_ATTEMPTS = 3


class BookingStore(Protocol):
    async def find_occupying(
        self,
        *,
        start_before: datetime,
        end_after: datetime,
        pet_id: Optional[str] = None,
        service_id: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> List[Booking]: ...

    async def insert_if_free(self, doc: Dict[str, Any]) -> Optional[Booking]: ...

    async def get(self, booking_id: str, customer_id: Optional[str] = None) -> Optional[Booking]: ...

    async def list_for_customer(
        self,
        customer_id: str,
        status: Optional[str],
        skip: int,
        limit: int,
        sort_by: str,
        descending: bool,
    ) -> Tuple[List[Booking], int]: ...

    async def update(
        self,
        booking_id: str,
        fields: Dict[str, Any],
        customer_id: Optional[str] = None,
        status_in: Optional[Iterable[str]] = None,
    ) -> Optional[Booking]: ...


class ServiceCatalog(Protocol):
    async def get_active(self, service_id: str) -> Optional[Dict[str, Any]]: ...


class PetDirectory(Protocol):
    async def get_owned_active(self, pet_id: str, owner_id: str) -> Optional[Dict[str, Any]]: ...


class CustomerDirectory(Protocol):
    async def get(self, customer_id: str) -> Optional[Dict[str, Any]]: ...


@contextmanager
def _store_errors(op: str):
    try:
        yield
    except PyMongoError as e:
        logger.error("Error de base de datos en %s: %s", op, e)
        raise StoreError(op) from e


def _oid_or_none(value: str) -> Optional[ObjectId]:
    return ObjectId(value) if ObjectId.is_valid(value) else None


def _to_booking(doc: Dict[str, Any]) -> Booking:
    return Booking(**to_id(doc))


class MongoBookingStore:
    def __init__(self, db: AsyncIOMotorDatabase):
        self._db = db

    async def find_occupying(
        self,
        *,
        start_before: datetime,
        end_after: datetime,
        pet_id: Optional[str] = None,
        service_id: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> List[Booking]:
        # start < start_before AND start + duration > end_after
        q: Dict[str, Any] = {
            "status": {"$in": [s.value for s in OCCUPYING_STATUSES]},
            "start_time": {"$lt": start_before},
            "$expr": {
                "$gt": [
                    {"$add": ["$start_time", {"$multiply": ["$duration", 60000]}]},
                    end_after,
                ]
            },
        }
        if pet_id is not None:
            q["pet_id"] = pet_id
        if service_id is not None:
            q["service_id"] = service_id
        if exclude_id and ObjectId.is_valid(exclude_id):
            q["_id"] = {"$ne": ObjectId(exclude_id)}
        with _store_errors("find_occupying"):
            docs = await self._db.bookings.find(q).sort("start_time", 1).to_list(None)
        return [_to_booking(d) for d in docs]

    async def _pet_version(self, pet_id: str) -> int:
        doc = await self._db.pet_booking_versions.find_one({"_id": pet_id})
        return int(doc["version"]) if doc else 0

    async def _bump_pet_version(self, pet_id: str, seen: int) -> bool:
        if seen == 0:
            try:
                await self._db.pet_booking_versions.insert_one({"_id": pet_id, "version": 1})
                return True
            except DuplicateKeyError:
                return False
        res = await self._db.pet_booking_versions.update_one(
            {"_id": pet_id, "version": seen}, {"$inc": {"version": 1}}
        )
        return res.matched_count == 1

    async def insert_if_free(self, doc: Dict[str, Any]) -> Optional[Booking]:
        """
        Inserta la reserva si la mascota no tiene otra ocupante solapada.

        Escritores concurrentes para la misma mascota se serializan con un
        compare-and-swap sobre ``pet_booking_versions``: quien pierde el CAS
        borra su inserción y repite la comprobación.
        """
        pet_id = doc["pet_id"]
        start = doc["start_time"]
        end = end_of(start, doc["duration"])
        with _store_errors("insert_if_free"):
            for attempt in range(1, MAX_INSERT_ATTEMPTS + 1):
                seen = await self._pet_version(pet_id)
                clashes = await self.find_occupying(pet_id=pet_id, start_before=end, end_after=start)
                if clashes:
                    return None
                res = await self._db.bookings.insert_one(dict(doc))
                if await self._bump_pet_version(pet_id, seen):
                    created = await self._db.bookings.find_one({"_id": res.inserted_id})
                    return _to_booking(created)
                await self._db.bookings.delete_one({"_id": res.inserted_id})
                logger.info("Escritura concurrente para la mascota %s, reintento %d", pet_id, attempt)
        raise StoreError(f"No se pudo reservar para la mascota {pet_id} tras {MAX_INSERT_ATTEMPTS} intentos")

    async def get(self, booking_id: str, customer_id: Optional[str] = None) -> Optional[Booking]:
        oid = _oid_or_none(booking_id)
        if oid is None:
            return None
        q: Dict[str, Any] = {"_id": oid}
        if customer_id is not None:
            q["customer_id"] = customer_id
        with _store_errors("get"):
            doc = await self._db.bookings.find_one(q)
        return _to_booking(doc) if doc else None

    async def list_for_customer(
        self,
        customer_id: str,
        status: Optional[str],
        skip: int,
        limit: int,
        sort_by: str,
        descending: bool,
    ) -> Tuple[List[Booking], int]:
        q: Dict[str, Any] = {"customer_id": customer_id}
        if status:
            q["status"] = status
        with _store_errors("list_for_customer"):
            total = await self._db.bookings.count_documents(q)
            docs = await (
                self._db.bookings.find(q)
                .sort(sort_by, -1 if descending else 1)
                .skip(skip)
                .limit(limit)
                .to_list(limit)
            )
        return [_to_booking(d) for d in docs], total

    async def update(
        self,
        booking_id: str,
        fields: Dict[str, Any],
        customer_id: Optional[str] = None,
        status_in: Optional[Iterable[str]] = None,
    ) -> Optional[Booking]:
        """Actualiza la reserva; con ``status_in`` solo si su estado sigue en ese conjunto."""
        oid = _oid_or_none(booking_id)
        if oid is None:
            return None
        q: Dict[str, Any] = {"_id": oid}
        if customer_id is not None:
            q["customer_id"] = customer_id
        if status_in is not None:
            q["status"] = {"$in": [getattr(s, "value", s) for s in status_in]}
        with _store_errors("update"):
            doc = await self._db.bookings.find_one_and_update(
                q,
                {"$set": {**fields, "updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        return _to_booking(doc) if doc else None


class MongoServiceCatalog:
    def __init__(self, db: AsyncIOMotorDatabase):
        self._db = db

    async def get_active(self, service_id: str) -> Optional[Dict[str, Any]]:
        oid = _oid_or_none(service_id)
        if oid is None:
            return None
        with _store_errors("service.get_active"):
            doc = await self._db.services.find_one({"_id": oid, "is_active": True})
        return to_id(doc) if doc else None


class MongoPetDirectory:
    def __init__(self, db: AsyncIOMotorDatabase):
        self._db = db

    async def get_owned_active(self, pet_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
        oid = _oid_or_none(pet_id)
        if oid is None:
            return None
        with _store_errors("pet.get_owned_active"):
            doc = await self._db.pets.find_one({"_id": oid, "owner_id": owner_id, "is_active": True})
        return to_id(doc) if doc else None


class MongoCustomerDirectory:
    def __init__(self, db: AsyncIOMotorDatabase):
        self._db = db

    async def get(self, customer_id: str) -> Optional[Dict[str, Any]]:
        oid = _oid_or_none(customer_id)
        if oid is None:
            return None
        with _store_errors("customer.get"):
            doc = await self._db.users.find_one({"_id": oid}, {"password_hash": 0})
        return to_id(doc) if doc else None

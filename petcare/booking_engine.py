# petcare/booking_engine.py
"""
Motor de reservas: detección de conflictos, admisión de reservas,
huecos disponibles y elegibilidad de cancelación.

Todos los colaboradores (almacén de reservas, catálogo, mascotas, clientes
y notificadores) se inyectan en el constructor.
"""
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging

from .errors import AdmissionError, StoreError
from .notifications import BookingContext, NotificationOutcome, Notifier, dispatch
from .repositories import BookingStore, CustomerDirectory, PetDirectory, ServiceCatalog
from .scheduling import BusinessHours, can_cancel, conflicting, end_of, iter_slots
from .schemas.booking import AvailabilityOut, Booking, BookingStatus, PaymentStatus, ServiceSummary, Slot
from .utils import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    return text.strip() or None


class BookingEngine:
    def __init__(
        self,
        bookings: BookingStore,
        services: ServiceCatalog,
        pets: PetDirectory,
        customers: CustomerDirectory,
        notifiers: Sequence[Notifier] = (),
        hours: BusinessHours = BusinessHours(),
        cancellation_notice: timedelta = timedelta(hours=2),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.bookings = bookings
        self.services = services
        self.pets = pets
        self.customers = customers
        self.notifiers = list(notifiers)
        self.hours = hours
        self.cancellation_notice = cancellation_notice
        self.clock = clock

    # ---------- Conflictos ----------

    async def has_conflict(
        self,
        pet_id: str,
        candidate_start: datetime,
        candidate_duration_minutes: int,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        if candidate_duration_minutes <= 0:
            raise ValueError("candidate_duration_minutes debe ser positivo")
        start = to_naive_utc(candidate_start)
        end = end_of(start, candidate_duration_minutes)
        existing = await self.bookings.find_occupying(
            pet_id=pet_id,
            start_before=end,
            end_after=start,
            exclude_id=exclude_booking_id,
        )
        return bool(conflicting(existing, start, candidate_duration_minutes))

    # ---------- Admisión ----------

    async def create_booking(
        self,
        customer_id: str,
        service_id: str,
        pet_id: str,
        requested_start: datetime,
        special_requests: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Booking | AdmissionError:
        service = await self.services.get_active(service_id)
        if not service:
            return AdmissionError.service_unavailable

        pet = await self.pets.get_owned_active(pet_id, customer_id)
        if not pet:
            return AdmissionError.pet_not_found

        start = to_naive_utc(requested_start)
        now = self.clock()
        if start <= now:
            return AdmissionError.invalid_time

        duration = int(service["duration"])
        if await self.has_conflict(pet_id, start, duration):
            return AdmissionError.slot_conflict

        # precio y duración se congelan en el momento de reservar
        doc: Dict[str, Any] = {
            "customer_id": customer_id,
            "service_id": service_id,
            "pet_id": pet_id,
            "start_time": start,
            "duration": duration,
            "total_price": float(service["price"]),
            "status": BookingStatus.pending.value,
            "payment_status": PaymentStatus.pending.value,
            "payment_method": "cash",
            "special_requests": _clean(special_requests),
            "notes": _clean(notes),
            "created_at": now,
            "updated_at": now,
        }
        created = await self.bookings.insert_if_free(doc)
        if created is None:
            # otra reserva concurrente ganó el hueco
            return AdmissionError.slot_conflict
        logger.info("Reserva %s creada para la mascota %s", created.id, pet_id)
        return created

    async def notify_booking_created(self, booking: Booking) -> List[NotificationOutcome]:
        """Avisos al operador y al cliente. Nunca lanza."""
        if not self.notifiers:
            return []
        try:
            context = BookingContext(
                booking=booking,
                customer=await self.customers.get(booking.customer_id) or {},
                pet=await self.pets.get_owned_active(booking.pet_id, booking.customer_id) or {},
                service=await self.services.get_active(booking.service_id) or {},
            )
        except StoreError as e:
            logger.error("No se pudo preparar la notificación de la reserva %s: %s", booking.id, e)
            return [NotificationOutcome(n.channel, False, str(e)) for n in self.notifiers]
        outcomes = await dispatch(self.notifiers, context)
        for o in outcomes:
            if o.delivered:
                logger.info("Notificación %s de la reserva %s procesada", o.channel, booking.id)
        return outcomes

    # ---------- Disponibilidad ----------

    async def slots_for(self, service: Dict[str, Any], day: date) -> List[Slot]:
        opens, closes = self.hours.window(day)
        existing = await self.bookings.find_occupying(
            service_id=service["id"],
            start_before=closes,
            end_after=opens,
        )
        return [
            Slot(start_time=s, end_time=e)
            for s, e in iter_slots(self.hours, day, int(service["duration"]), existing)
        ]

    async def get_available_slots(self, service_id: str, day: date) -> AvailabilityOut | AdmissionError:
        service = await self.services.get_active(service_id)
        if not service:
            return AdmissionError.service_unavailable
        return AvailabilityOut(
            service=ServiceSummary(id=service["id"], name=service.get("name", ""), duration=service["duration"]),
            date=day.isoformat(),
            available_slots=await self.slots_for(service, day),
        )

    # ---------- Cancelación ----------

    def can_cancel(self, booking: Booking, now: Optional[datetime] = None) -> bool:
        return can_cancel(booking, now or self.clock(), self.cancellation_notice)

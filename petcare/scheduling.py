# petcare/scheduling.py
"""
Lógica pura de agenda: solapamiento de intervalos semiabiertos, generación
de huecos dentro del horario de negocio y elegibilidad de cancelación.

Nada aquí toca la base de datos; todo opera sobre objetos con
``start_time``, ``duration`` (minutos) y ``status``.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Iterator, Protocol
from zoneinfo import ZoneInfo

from .schemas.booking import BookingStatus

# Estados que reservan el tiempo de la mascota / del servicio
OCCUPYING_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.pending,
    BookingStatus.confirmed,
    BookingStatus.in_progress,
})

NON_CANCELLABLE_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.completed,
    BookingStatus.cancelled,
})


class Scheduled(Protocol):
    start_time: datetime
    duration: int
    status: BookingStatus


def end_of(start: datetime, duration_minutes: int) -> datetime:
    return start + timedelta(minutes=duration_minutes)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """[a_start, a_end) y [b_start, b_end) comparten algún instante."""
    return (a_start < b_end) and (a_end > b_start)


def is_occupying(booking: Scheduled) -> bool:
    return BookingStatus(booking.status) in OCCUPYING_STATUSES


def conflicting(
    bookings: Iterable[Scheduled],
    start: datetime,
    duration_minutes: int,
) -> list[Scheduled]:
    """Reservas ocupantes que se solapan con [start, start + duration)."""
    if duration_minutes <= 0:
        raise ValueError("duration_minutes debe ser positivo")
    end = end_of(start, duration_minutes)
    return [
        b for b in bookings
        if is_occupying(b) and overlaps(b.start_time, end_of(b.start_time, b.duration), start, end)
    ]


@dataclass(frozen=True)
class BusinessHours:
    open_at: time = time(9, 0)
    close_at: time = time(18, 0)
    step_minutes: int = 30
    tz: str = "UTC"

    def window(self, day: date) -> tuple[datetime, datetime]:
        """Apertura y cierre del día dado, en UTC naive."""
        zone = ZoneInfo(self.tz)
        opens = datetime.combine(day, self.open_at, tzinfo=zone)
        closes = datetime.combine(day, self.close_at, tzinfo=zone)
        return (
            opens.astimezone(timezone.utc).replace(tzinfo=None),
            closes.astimezone(timezone.utc).replace(tzinfo=None),
        )


def iter_slots(
    hours: BusinessHours,
    day: date,
    duration_minutes: int,
    bookings: Iterable[Scheduled] = (),
) -> Iterator[tuple[datetime, datetime]]:
    """
    Genera (inicio, fin) cada ``hours.step_minutes`` desde la apertura.
    Se detiene en el primer hueco que terminaría después del cierre y omite
    los que se solapan con alguna reserva ocupante.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes debe ser positivo")
    opens, closes = hours.window(day)
    busy = [
        (b.start_time, end_of(b.start_time, b.duration))
        for b in bookings
        if is_occupying(b)
    ]
    step = timedelta(minutes=hours.step_minutes)
    slot_start = opens
    while True:
        slot_end = end_of(slot_start, duration_minutes)
        if slot_end > closes:
            return
        if not any(overlaps(slot_start, slot_end, s, e) for s, e in busy):
            yield slot_start, slot_end
        slot_start += step


def can_cancel(booking: Scheduled, now: datetime, notice: timedelta = timedelta(hours=2)) -> bool:
    return (
        booking.start_time - now > notice
        and BookingStatus(booking.status) not in NON_CANCELLABLE_STATUSES
    )


# Transiciones de estado permitidas (solo hacia delante, salvo cancelación)
ALLOWED: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.pending: {BookingStatus.confirmed, BookingStatus.cancelled},
    BookingStatus.confirmed: {BookingStatus.in_progress, BookingStatus.cancelled, BookingStatus.no_show},
    BookingStatus.in_progress: {BookingStatus.completed},
    BookingStatus.completed: set(),
    BookingStatus.cancelled: set(),
    BookingStatus.no_show: set(),
}

# petcare/routers/bookings.py
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status, Path, Query, Request
from typing import Literal, Optional
from datetime import date
import math

from ..booking_engine import BookingEngine
from ..deps import get_booking_engine
from ..errors import AdmissionError
from ..schemas.booking import (
    AvailabilityOut,
    Booking,
    BookingCreate,
    BookingPage,
    BookingStatus,
    BookingUpdate,
    Pagination,
    StatusPatch,
)
from ..scheduling import ALLOWED, NON_CANCELLABLE_STATUSES
from ..security import get_current_user, require_staff
from ..middleware.rate_limit import apply_rate_limit
from ..utils import utcnow
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------- Endpoints ----------

@router.get("", response_model=BookingPage)
async def list_my_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: Literal["start_time", "created_at", "total_price"] = "start_time",
    sort_order: Literal["asc", "desc"] = "desc",
    engine: BookingEngine = Depends(get_booking_engine),
    current=Depends(get_current_user),
):
    items, total = await engine.bookings.list_for_customer(
        current["id"],
        status_filter.value if status_filter else None,
        skip=(page - 1) * limit,
        limit=limit,
        sort_by=sort_by,
        descending=sort_order == "desc",
    )
    return BookingPage(
        data=items,
        pagination=Pagination(
            current_page=page,
            total_pages=math.ceil(total / limit),
            total_bookings=total,
            has_next_page=page * limit < total,
            has_prev_page=page > 1,
        ),
    )

@router.get("/availability/slots", response_model=AvailabilityOut)
async def get_available_slots(
    service_id: str = Query(...),
    day: date = Query(..., alias="date"),
    engine: BookingEngine = Depends(get_booking_engine),
    current=Depends(get_current_user),
):
    result = await engine.get_available_slots(service_id, day)
    if isinstance(result, AdmissionError):
        raise result.to_http()
    return result

@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: str = Path(..., pattern=r"^[0-9a-fA-F]{24}$"),
    engine: BookingEngine = Depends(get_booking_engine),
    current=Depends(get_current_user),
):
    b = await engine.bookings.get(booking_id, customer_id=current["id"])
    if not b:
        raise HTTPException(404, "Reserva no encontrada")
    return b

@router.post("", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: Request,
    payload: BookingCreate,
    background: BackgroundTasks,
    engine: BookingEngine = Depends(get_booking_engine),
    current=Depends(get_current_user),
):
    # Rate limiting: máximo 15 reservas por minuto por IP
    apply_rate_limit(request, "15/minute")

    result = await engine.create_booking(
        customer_id=current["id"],
        service_id=payload.service_id,
        pet_id=payload.pet_id,
        requested_start=payload.start_time,
        special_requests=payload.special_requests,
        notes=payload.notes,
    )
    if isinstance(result, AdmissionError):
        raise result.to_http()

    # avisos después de responder; su fallo no afecta a la reserva
    background.add_task(engine.notify_booking_created, result)
    return result

@router.put("/{booking_id}", response_model=Booking)
async def update_booking(
    payload: BookingUpdate,
    booking_id: str = Path(..., pattern=r"^[0-9a-fA-F]{24}$"),
    engine: BookingEngine = Depends(get_booking_engine),
    current=Depends(get_current_user),
):
    # null explícito no borra campos
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    for k in ("special_requests", "notes"):
        if k in updates:
            updates[k] = updates[k].strip() or None

    if not updates:
        b = await engine.bookings.get(booking_id, customer_id=current["id"])
    else:
        b = await engine.bookings.update(booking_id, updates, customer_id=current["id"])
    if not b:
        raise HTTPException(404, "Reserva no encontrada")
    return b

@router.post("/{booking_id}/cancel", response_model=Booking)
async def cancel_booking(
    booking_id: str = Path(..., pattern=r"^[0-9a-fA-F]{24}$"),
    engine: BookingEngine = Depends(get_booking_engine),
    current=Depends(get_current_user),
):
    b = await engine.bookings.get(booking_id, customer_id=current["id"])
    if not b:
        raise HTTPException(404, "Reserva no encontrada")
    if not engine.can_cancel(b):
        raise HTTPException(400, "La reserva no se puede cancelar en este momento")

    # el estado puede haber cambiado desde la lectura
    updated = await engine.bookings.update(
        b.id,
        {"status": BookingStatus.cancelled.value},
        status_in=[s for s in BookingStatus if s not in NON_CANCELLABLE_STATUSES],
    )
    if not updated:
        raise HTTPException(400, "La reserva no se puede cancelar en este momento")
    logger.info("Reserva %s cancelada por el cliente %s", b.id, current["id"])
    return updated

@router.patch("/{booking_id}/status", response_model=Booking)
async def patch_status(
    body: StatusPatch,
    booking_id: str = Path(..., pattern=r"^[0-9a-fA-F]{24}$"),
    engine: BookingEngine = Depends(get_booking_engine),
    staff=Depends(require_staff),
):
    b = await engine.bookings.get(booking_id)
    if not b:
        raise HTTPException(404, "Reserva no encontrada")

    old, new = b.status, body.status
    if new == old:
        return b

    if new not in ALLOWED.get(old, set()):
        raise HTTPException(
            status_code=400,
            detail=f"Transición no permitida: {old.value} → {new.value}",
        )
    if new == BookingStatus.cancelled and not engine.can_cancel(b):
        raise HTTPException(400, "La reserva no se puede cancelar en este momento")

    fields = {"status": new.value}
    if new == BookingStatus.completed:
        fields["completed_at"] = utcnow()
    updated = await engine.bookings.update(b.id, fields, status_in=[old])
    if not updated:
        raise HTTPException(409, "La reserva cambió de estado; vuelve a intentarlo")
    logger.info("Reserva %s: %s → %s (por %s)", b.id, old.value, new.value, staff["id"])
    return updated

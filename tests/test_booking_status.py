import pytest
from datetime import timedelta

from petcare.utils import utcnow
from conftest import STAFF_ID, at

@pytest.mark.asyncio
async def test_booking_status_flow(client, store, current_user, day):
    current_user.update(id=STAFF_ID, is_staff=True)
    booking = store.add(start_time=at(day, 10), status="pending")
    booking_id = booking.id

    # Confirmar
    r = await client.patch(f"/bookings/{booking_id}/status", json={"status": "confirmed"})
    assert r.status_code == 200 and r.json()["status"] == "confirmed"

    # Empezar
    r = await client.patch(f"/bookings/{booking_id}/status", json={"status": "in-progress"})
    assert r.status_code == 200 and r.json()["status"] == "in-progress"

    # Completar
    r = await client.patch(f"/bookings/{booking_id}/status", json={"status": "completed"})
    assert r.status_code == 200 and r.json()["status"] == "completed"
    assert r.json()["completed_at"] is not None

    # No se puede volver atrás
    r = await client.patch(f"/bookings/{booking_id}/status", json={"status": "pending"})
    assert r.status_code == 400

@pytest.mark.asyncio
async def test_status_skip_is_rejected(client, store, current_user, day):
    current_user.update(is_staff=True)
    booking = store.add(start_time=at(day, 10), status="pending")
    r = await client.patch(f"/bookings/{booking.id}/status", json={"status": "completed"})
    assert r.status_code == 400

@pytest.mark.asyncio
async def test_staff_cancel_respects_notice(client, store, current_user):
    current_user.update(is_staff=True)
    booking = store.add(start_time=utcnow() + timedelta(minutes=90), status="confirmed")
    r = await client.patch(f"/bookings/{booking.id}/status", json={"status": "cancelled"})
    assert r.status_code == 400

@pytest.mark.asyncio
async def test_status_requires_staff(client, store, day):
    booking = store.add(start_time=at(day, 10), status="pending")
    r = await client.patch(f"/bookings/{booking.id}/status", json={"status": "confirmed"})
    assert r.status_code == 403

@pytest.mark.asyncio
async def test_status_change_on_stale_read_conflicts(client, store, current_user, day, monkeypatch):
    current_user.update(is_staff=True)
    booking = store.add(start_time=at(day, 10), status="pending")
    stale = await store.get(booking.id)
    store.docs[booking.id]["status"] = "cancelled"

    async def stale_get(booking_id, customer_id=None):
        return stale
    monkeypatch.setattr(store, "get", stale_get)

    r = await client.patch(f"/bookings/{booking.id}/status", json={"status": "confirmed"})
    assert r.status_code == 409
    assert store.docs[booking.id]["status"] == "cancelled"

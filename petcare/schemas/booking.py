from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime
from typing import Optional, Literal

class BookingStatus(str, Enum):
    pending     = "pending"
    confirmed   = "confirmed"
    in_progress = "in-progress"
    completed   = "completed"
    cancelled   = "cancelled"
    no_show     = "no-show"

class PaymentStatus(str, Enum):
    pending  = "pending"
    paid     = "paid"
    refunded = "refunded"
    failed   = "failed"

PaymentMethod = Literal["cash", "card", "online", "bank-transfer"]

class Booking(BaseModel):
    id: str
    customer_id: str
    service_id: str
    pet_id: str
    start_time: datetime
    duration: int = Field(..., gt=0, description="Minutos")
    total_price: float = Field(..., ge=0)
    status: BookingStatus = BookingStatus.pending
    payment_status: PaymentStatus = PaymentStatus.pending
    payment_method: PaymentMethod = "cash"
    special_requests: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class BookingCreate(BaseModel):
    service_id: str
    pet_id: str
    start_time: datetime
    special_requests: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)

class BookingUpdate(BaseModel):
    special_requests: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)
    payment_method: Optional[PaymentMethod] = None

class StatusPatch(BaseModel):
    status: BookingStatus

class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_bookings: int
    has_next_page: bool
    has_prev_page: bool

class BookingPage(BaseModel):
    data: list[Booking]
    pagination: Pagination

class Slot(BaseModel):
    start_time: datetime
    end_time: datetime
    available: bool = True

class ServiceSummary(BaseModel):
    id: str
    name: str
    duration: int

class AvailabilityOut(BaseModel):
    service: ServiceSummary
    date: str
    available_slots: list[Slot]

# slotbook/app/schemas/bookings.py

import re
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from ..services.booking_status import BookingStatus

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
DOORSTEP = "Doorstep"


class BookingCreate(BaseModel):
    customer_name: str = Field(min_length=1)
    customer_email: str
    country_code: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    service_type: str = Field(min_length=1)
    service_id: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=1)

    # Doorstep address
    flat_house_no: Optional[str] = None
    landmark: Optional[str] = None
    pincode: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

    date_time: datetime = Field(description="Slot start, ISO-8601 instant")
    payment_method: Optional[Literal["online", "later"]] = None

    @field_validator("customer_email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email address")
        return v

    @field_validator("customer_phone")
    @classmethod
    def normalize_phone(cls, v: str) -> str:
        digits = re.sub(r"\D", "", v)
        if not digits:
            raise ValueError("Phone number must contain digits")
        return digits

    @model_validator(mode="after")
    def require_doorstep_address(self):
        if self.service_type == DOORSTEP:
            missing = [
                name for name in ("flat_house_no", "pincode", "city", "state", "country")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"Doorstep bookings need an address: missing {', '.join(missing)}")
        return self

    @property
    def initial_status(self) -> str:
        """Online payments wait as Pending; everything else is booked outright."""
        if self.payment_method == "online":
            return BookingStatus.PENDING.value
        return BookingStatus.UPCOMING.value

    def booking_details(self) -> dict:
        """Columns stored on the booking row."""
        address = None
        if self.service_type == DOORSTEP:
            landmark = f"{self.landmark}, " if self.landmark else ""
            address = (
                f"{self.flat_house_no}, {landmark}{self.city}, "
                f"{self.state} - {self.pincode}, {self.country}"
            )
        return {
            "customer_name": self.customer_name.strip(),
            "customer_email": self.customer_email,
            "customer_phone": f"{self.country_code}{self.customer_phone}",
            "service_type": self.service_type,
            "service_id": self.service_id,
            "quantity": self.quantity,
            "address": address,
        }


class BookingReschedule(BaseModel):
    date_time: datetime


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingRead(BaseModel):
    id: int
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    service_type: Optional[str] = None
    service_id: Optional[str] = None
    quantity: Optional[int] = None
    address: Optional[str] = None

    date_time_utc: str
    status: str

    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}

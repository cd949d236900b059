# slotbook/app/schemas/providers.py

import json
import re
from typing import Optional
from pydantic import BaseModel, Field, field_validator

USERNAME_RE = re.compile(r"^[a-z0-9][a-z0-9._-]{1,62}$")


class WorkingWindow(BaseModel):
    start: str = Field(description="Local time HH:MM")
    end: str = Field(description="Local time HH:MM")


class ScheduleUpdate(BaseModel):
    timezone: str = "UTC"
    working_hours: dict[str, Optional[WorkingWindow]] = Field(
        default_factory=dict,
        description="Weekday name → window, null for a day off",
    )
    slot_duration: int = Field(30, ge=1)
    break_time: int = Field(0, ge=0)
    booking_delay: float = Field(0, ge=0, description="Hours; applies to today only")
    multiple_bookings_per_slot: bool = False
    bookings_per_slot: int = Field(1, ge=1)

    model_config = {"from_attributes": True}


class ProviderCreate(ScheduleUpdate):
    name: str = Field(min_length=1)
    email: str
    username: Optional[str] = Field(None, description="Derived from email when omitted")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or v.startswith("@"):
            raise ValueError("Invalid email address")
        return v

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().lower()
        if not USERNAME_RE.match(v):
            raise ValueError("Username may contain a-z, 0-9, '.', '_' and '-'")
        return v


class ProviderRead(BaseModel):
    id: int
    username: str
    name: str
    email: Optional[str] = None
    timezone: str
    working_hours: dict[str, Optional[WorkingWindow]]
    slot_duration: int
    break_time: int
    booking_delay: float
    multiple_bookings_per_slot: bool
    bookings_per_slot: int
    blocked_dates: list[str]
    blocked_slots: list[str]

    model_config = {"from_attributes": True}

    @field_validator("working_hours", "blocked_dates", "blocked_slots", mode="before")
    @classmethod
    def parse_json_text(cls, v):
        if isinstance(v, str):
            return json.loads(v) if v else None
        return v

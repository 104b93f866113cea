"""
Guide booking model and its status state machine
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, model_validator

PaymentMethod = Literal["esewa", "khalti", "cash"]
CancelledBy = Literal["user", "guide"]


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCEL_REQUESTED = "cancel-requested"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Every status change goes through this table; cancelled and completed are terminal.
ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.CANCEL_REQUESTED, BookingStatus.CANCELLED, BookingStatus.COMPLETED}
    ),
    BookingStatus.CANCEL_REQUESTED: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class Booking(BaseModel):
    """
    A reservation of a guide by a user for an inclusive date range.
    Dates are stored as UTC midnight datetimes (BSON has no date type).
    """

    user_id: str = Field(..., description="Booking user ID")
    guide_id: str = Field(..., description="Booked tourist guide ID")
    start_date: datetime = Field(..., description="First day of the tour")
    end_date: datetime = Field(..., description="Last day of the tour (inclusive)")
    group_size: int = Field(..., ge=1)
    total_price: float = Field(..., ge=0)
    payment_method: PaymentMethod
    special_requests: str | None = None
    status: BookingStatus = Field(default=BookingStatus.CONFIRMED)
    cancellation_reason: str | None = None
    cancelled_by: CancelledBy | None = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="after")
    def check_date_order(self) -> "Booking":
        if self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self

    def to_document(self) -> dict:
        doc = self.model_dump()
        doc["status"] = self.status.value
        return doc

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "6650c0f1a3b2c4d5e6f70812",
                "guide_id": "6650c1a2b3c4d5e6f7081234",
                "start_date": "2024-06-01T00:00:00",
                "end_date": "2024-06-10T00:00:00",
                "group_size": 3,
                "total_price": 105000,
                "payment_method": "khalti",
                "special_requests": "Vegetarian meals",
                "status": "confirmed",
            }
        }

"""
Tourist guide model for MongoDB storage
"""

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LICENSE_NUMBER_PATTERN = re.compile(r"^TCB/TG\([A-Z/_]+\)-\d{2}/\d{4,5}$")

GuideCategory = Literal[
    "Adventure",
    "Cultural",
    "Historical",
    "Wildlife",
    "Religious",
    "Eco-tourism",
    "Trekking",
    "Local Experience",
]


def is_valid_license_number(value: str | None) -> bool:
    return bool(value) and LICENSE_NUMBER_PATTERN.fullmatch(value) is not None


class TouristGuide(BaseModel):
    """
    Guide profile, one per user.
    `is_available` is flipped by the booking protocol and by profile edits.
    """

    user_id: str = Field(..., description="Owning user ID (unique)")
    name: str = Field(..., min_length=1, description="Display name")
    email: str = Field(..., description="Contact email (unique)")
    img: str | None = Field(None, description="Profile picture URL")
    location: str = Field(..., min_length=1, description="Where the guide operates")
    language: str = Field(..., min_length=1, description="Spoken language")
    experience: int = Field(..., ge=0, description="Years of experience")
    contact_number: str = Field(..., min_length=1)
    license_number: str = Field(..., description="TCB/TG(<AREA>)-NN/NNNN(N)")
    category: list[GuideCategory] = Field(..., min_length=1)
    price_per_day: float = Field(..., ge=0)
    max_group_size: int = Field(default=5, ge=1)
    is_available: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("license_number")
    @classmethod
    def validate_license_number(cls, value: str) -> str:
        if not is_valid_license_number(value):
            raise ValueError("Invalid license number format.")
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "6650c0f1a3b2c4d5e6f70812",
                "name": "Ram Gurung",
                "email": "ram@example.com",
                "location": "Pokhara",
                "language": "Nepali, English",
                "experience": 6,
                "contact_number": "9800000000",
                "license_number": "TCB/TG(KASKI)-12/3456",
                "category": ["Trekking", "Adventure"],
                "price_per_day": 3500,
                "max_group_size": 8,
                "is_available": True,
            }
        }

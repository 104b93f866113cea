"""
Database Models for MongoDB Collections
"""

from datetime import datetime

from pydantic import BaseModel, Field

TOURIST_GUIDE_ROLE = "tourist guide"


class User(BaseModel):
    """
    User account as stored by the accounts service.
    This API only reads users and flips their role on guide registration.
    """

    username: str = Field(..., description="Display name")
    email: str = Field(..., description="User email address (unique)")
    role: str = Field(default="user", description="user, tourist guide, ...")
    img: str | None = Field(None, description="URL to user profile picture")
    city: str | None = Field(None, description="Home city")
    country: str | None = Field(None, description="Home country")
    contact_number: str | None = Field(None, description="Phone number")
    is_admin: bool = Field(default=False, description="Administrator flag")

    # Timestamps
    created_at: datetime = Field(
        default_factory=datetime.utcnow, description="Account creation timestamp"
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow, description="Last update timestamp"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "username": "sita",
                "email": "sita@example.com",
                "role": "user",
                "city": "Pokhara",
                "country": "Nepal",
                "contact_number": "9800000000",
                "is_admin": False,
                "created_at": "2024-01-01T00:00:00",
                "updated_at": "2024-01-01T00:00:00",
            }
        }


class CurrentUser(BaseModel):
    """Identity extracted from a verified access token"""

    id: str
    is_admin: bool = False

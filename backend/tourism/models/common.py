"""
Common API models
"""

from typing import Any

from bson import ObjectId
from pydantic import BaseModel, Field


class APIResponse(BaseModel):
    """
    Unified success envelope. Errors are returned as {"detail": ...}.
    """

    code: int = Field(default=0, description="0 means success; non-zero means error")
    msg: str = Field(default="ok", description="Human-readable message")
    data: Any | None = Field(default=None, description="Payload data")

    class Config:
        json_schema_extra = {
            "example": {"code": 0, "msg": "Guide booked successfully.", "data": {"id": "6650c0..."}}
        }


def serialize_document(doc: dict | None) -> dict | None:
    """
    Turn a MongoDB document into a JSON-safe dict: `_id` becomes `id`,
    ObjectIds become strings and internal bookkeeping fields are dropped.
    """
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if key == "booking_lock":
            continue
        if key == "_id":
            out["id"] = str(value)
        elif isinstance(value, ObjectId):
            out[key] = str(value)
        elif isinstance(value, dict):
            out[key] = serialize_document(value)
        else:
            out[key] = value
    return out

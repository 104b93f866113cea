"""
User store lookups used by guide registration and the booking protocol
"""

from datetime import datetime

from bson import ObjectId

from tourism.db.database import get_users_collection


def to_object_id(value: str | None) -> ObjectId | None:
    """Parse a hex id, returning None when it is not a valid ObjectId."""
    if not value or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


async def find_user_by_id(user_id: str) -> dict | None:
    oid = to_object_id(user_id)
    if oid is None:
        return None
    return await get_users_collection().find_one({"_id": oid})


async def find_user_by_email(email: str) -> dict | None:
    return await get_users_collection().find_one({"email": email})


async def set_user_role(user: dict, role: str) -> None:
    """Persist a role change; no write happens when the role is already set."""
    if user.get("role") == role:
        return
    await get_users_collection().update_one(
        {"_id": user["_id"]},
        {"$set": {"role": role, "updated_at": datetime.utcnow()}},
    )
    user["role"] = role
    print(f"[users] Role of {user['_id']} set to '{role}'")

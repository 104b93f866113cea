"""
Tourist guide registration and profile management
"""

from datetime import datetime

from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from tourism.db.database import get_guides_collection, get_users_collection
from tourism.models.common import serialize_document
from tourism.models.touristguide import TouristGuide, is_valid_license_number
from tourism.models.user import TOURIST_GUIDE_ROLE, CurrentUser
from tourism.services.errors import (
    ForbiddenError,
    GuideBookingError,
    NotFoundError,
    describe_validation_errors,
)
from tourism.services.guide_booking import guide_lease
from tourism.services.users import find_user_by_email, find_user_by_id, set_user_role, to_object_id

REQUIRED_GUIDE_FIELDS = (
    "language",
    "experience",
    "contact_number",
    "license_number",
    "category",
    "price_per_day",
)

# Owner and contact email are fixed at registration
IMMUTABLE_GUIDE_FIELDS = ("user_id", "email")


def _is_blank(value) -> bool:
    return value is None or value == "" or value == []


async def _attach_owner(guides: list[dict]) -> list[dict]:
    """Join each guide with the owning user's username and role."""
    ids = {oid for oid in (to_object_id(g.get("user_id")) for g in guides) if oid is not None}
    cursor = get_users_collection().find({"_id": {"$in": list(ids)}}, {"username": 1, "role": 1})
    owners = {str(u["_id"]): serialize_document(u) for u in await cursor.to_list(length=None)}
    out = []
    for guide in guides:
        doc = serialize_document(guide)
        doc["user"] = owners.get(guide.get("user_id"))
        out.append(doc)
    return out


async def register_guide(data: dict, current_user: CurrentUser | None) -> dict:
    """
    Register the user as a tourist guide.

    The user is looked up by `email` when the payload carries one, otherwise
    the authenticated user is used.
    """
    email = data.get("email")
    if email:
        user = await find_user_by_email(email)
        if user is None:
            raise NotFoundError("User with this email not found.")
    else:
        user = await find_user_by_id(current_user.id) if current_user else None
        if user is None:
            raise NotFoundError("User not found.")

    missing = [f for f in REQUIRED_GUIDE_FIELDS if _is_blank(data.get(f))]
    if missing:
        raise GuideBookingError(f"Missing fields: {', '.join(missing)}")
    if not is_valid_license_number(data["license_number"]):
        raise GuideBookingError("Invalid license number format.")

    user_id = str(user["_id"])
    guides = get_guides_collection()
    existing = await guides.find_one(
        {"$or": [{"user_id": user_id}, {"license_number": data["license_number"]}]}
    )
    if existing is not None:
        if existing.get("user_id") == user_id:
            raise GuideBookingError("User is already registered as a tourist guide.")
        raise GuideBookingError("License number is already registered to another guide.")

    try:
        guide = TouristGuide(
            user_id=user_id,
            name=data.get("name") or user.get("username") or "",
            email=user["email"],
            img=data.get("img") or user.get("img") or "",
            location=data.get("location") or user.get("city") or user.get("country") or "",
            language=data["language"],
            experience=data["experience"],
            contact_number=data["contact_number"],
            license_number=data["license_number"],
            category=data["category"],
            price_per_day=data["price_per_day"],
            max_group_size=data["max_group_size"] if data.get("max_group_size") is not None else 5,
        )
    except ValidationError as e:
        raise GuideBookingError(describe_validation_errors(e.errors())) from e

    doc = guide.model_dump()
    try:
        result = await guides.insert_one(doc)
    except DuplicateKeyError as e:
        print(f"[guides] Duplicate key on registration for user {user_id}: {e.details}")
        raise GuideBookingError("Duplicate entry detected.") from e
    doc["_id"] = result.inserted_id

    await set_user_role(user, TOURIST_GUIDE_ROLE)
    print(f"[guides] Registered guide {result.inserted_id} for user {user_id}")
    return serialize_document(doc)


async def _load_owned_guide(guide_id: str, current_user: CurrentUser) -> dict:
    guide_oid = to_object_id(guide_id)
    if guide_oid is None:
        raise GuideBookingError("Invalid guide ID")
    guide = await get_guides_collection().find_one({"_id": guide_oid})
    if guide is None:
        raise NotFoundError("Guide not found.")
    if not (current_user.is_admin or guide.get("user_id") == current_user.id):
        raise ForbiddenError("You can only modify your own guide profile.")
    return guide


async def update_guide(guide_id: str, changes: dict, current_user: CurrentUser) -> dict:
    """
    Apply a partial profile update. Runs under the guide lease so a manual
    availability change cannot interleave with a booking.
    """
    changes = {k: v for k, v in changes.items() if k not in IMMUTABLE_GUIDE_FIELDS}
    if to_object_id(guide_id) is None:
        raise GuideBookingError("Invalid guide ID")
    if changes.get("license_number") is not None and not is_valid_license_number(
        changes["license_number"]
    ):
        raise GuideBookingError("Invalid license number format.")

    guide = await _load_owned_guide(guide_id, current_user)
    if not changes:
        return serialize_document(guide)

    guides = get_guides_collection()
    async with guide_lease(guide["_id"]) as lease:
        try:
            TouristGuide(**{**lease.guide, **changes})
        except ValidationError as e:
            raise GuideBookingError(describe_validation_errors(e.errors())) from e

        try:
            await guides.update_one(
                {"_id": guide["_id"]},
                {"$set": {**changes, "updated_at": datetime.utcnow()}},
            )
        except DuplicateKeyError as e:
            raise GuideBookingError("Duplicate entry detected.") from e

    updated = await guides.find_one({"_id": guide["_id"]})
    print(f"[guides] Updated guide {guide_id}: {sorted(changes)}")
    return serialize_document(updated)


async def delete_guide(guide_id: str, current_user: CurrentUser) -> None:
    guide = await _load_owned_guide(guide_id, current_user)
    async with guide_lease(guide["_id"]):
        result = await get_guides_collection().delete_one({"_id": guide["_id"]})
    if result.deleted_count == 0:
        raise NotFoundError("Guide not found.")
    print(f"[guides] Deleted guide {guide_id}")


async def get_guide(guide_id: str) -> dict:
    guide_oid = to_object_id(guide_id)
    if guide_oid is None:
        raise GuideBookingError("Invalid guide ID")
    guide = await get_guides_collection().find_one({"_id": guide_oid})
    if guide is None:
        raise NotFoundError("Guide not found.")
    return (await _attach_owner([guide]))[0]


async def list_guides(
    location: str | None = None,
    category: str | None = None,
    available: bool | None = None,
) -> list[dict]:
    query: dict = {}
    if location:
        query["location"] = location
    if category:
        query["category"] = category
    if available is not None:
        query["is_available"] = available

    cursor = get_guides_collection().find(query)
    guides = await cursor.to_list(length=None)
    if not guides:
        raise NotFoundError("No tourist guides found.")
    return await _attach_owner(guides)


async def list_unavailable_guides() -> list[dict]:
    cursor = get_guides_collection().find({"is_available": False})
    guides = await cursor.to_list(length=None)
    if not guides:
        raise NotFoundError("No unavailable tourist guides found.")
    return await _attach_owner(guides)

"""
Guide Booking Service
Keeps a guide's `is_available` flag consistent with its confirmed bookings.

Every check-then-write sequence for one guide (overlap check, booking insert,
availability recompute) runs while holding a lease stored on the guide
document, so concurrent requests for the same guide are serialized.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta

from bson import ObjectId
from pydantic import ValidationError
from pymongo import ReturnDocument

from tourism.core.config import BOOKING_LOCK_TTL_SECONDS, BOOKING_LOCK_WAIT_SECONDS
from tourism.db.database import (
    get_bookings_collection,
    get_guides_collection,
    get_users_collection,
)
from tourism.models.booking import ALLOWED_TRANSITIONS, Booking, BookingStatus, can_transition
from tourism.models.common import serialize_document
from tourism.models.user import CurrentUser
from tourism.services.errors import (
    ForbiddenError,
    GuideBookingError,
    GuideBusyError,
    NotFoundError,
    describe_validation_errors,
)
from tourism.services.users import find_user_by_id, to_object_id

_LEASE_POLL_SECONDS = 0.05

DEFAULT_CANCELLATION_REASON = "No reason provided"

# A booking with a pending cancellation request still holds its dates
HOLDING_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.CANCEL_REQUESTED.value)


def utc_today() -> datetime:
    """Midnight of the current UTC day, the cut-off for "active" bookings."""
    now = datetime.utcnow()
    return datetime(now.year, now.month, now.day)


def as_midnight(value: date | datetime) -> datetime:
    return datetime(value.year, value.month, value.day)


def count_days(start: date | datetime, end: date | datetime) -> int:
    """Inclusive day count, the same way the client prices a tour."""
    return (as_midnight(end) - as_midnight(start)).days + 1


class GuideLease:
    """
    Handle on a held guide lease.
    Set `is_available` to have the flag written in the releasing update.
    """

    def __init__(self, guide: dict, token: ObjectId):
        self.guide = guide
        self.token = token
        self.is_available: bool | None = None


@asynccontextmanager
async def guide_lease(guide_oid: ObjectId, missing_ok: bool = False):
    """
    Hold the per-guide lease for the duration of the block.

    Acquisition is a single find_one_and_update on the guide, so only one
    holder can win. A lease past its expiry is taken over. When the guide
    does not exist, NotFoundError is raised, or None is yielded with
    `missing_ok`.
    """
    guides = get_guides_collection()
    token = ObjectId()
    deadline = time.monotonic() + BOOKING_LOCK_WAIT_SECONDS

    while True:
        now = datetime.utcnow()
        guide = await guides.find_one_and_update(
            {
                "_id": guide_oid,
                "$or": [{"booking_lock": None}, {"booking_lock.expires_at": {"$lt": now}}],
            },
            {
                "$set": {
                    "booking_lock": {
                        "token": token,
                        "expires_at": now + timedelta(seconds=BOOKING_LOCK_TTL_SECONDS),
                    }
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if guide is not None:
            break

        if await guides.find_one({"_id": guide_oid}, {"_id": 1}) is None:
            if missing_ok:
                yield None
                return
            raise NotFoundError("Guide not found.")

        if time.monotonic() >= deadline:
            print(f"[guide_booking] Lease wait timed out for guide {guide_oid}")
            raise GuideBusyError("Guide is busy, try again.")
        await asyncio.sleep(_LEASE_POLL_SECONDS)

    lease = GuideLease(guide, token)
    try:
        yield lease
    finally:
        update: dict = {"$unset": {"booking_lock": ""}}
        if lease.is_available is not None:
            update["$set"] = {"is_available": lease.is_available, "updated_at": datetime.utcnow()}
        await guides.update_one({"_id": guide_oid, "booking_lock.token": token}, update)


async def count_active_bookings(guide_id: str) -> int:
    """Date-holding bookings of the guide ending today or later."""
    return await get_bookings_collection().count_documents(
        {
            "guide_id": guide_id,
            "status": {"$in": list(HOLDING_STATUSES)},
            "end_date": {"$gte": utc_today()},
        }
    )


async def find_overlapping_booking(
    guide_id: str, start: datetime, end: datetime, exclude_id: ObjectId | None = None
) -> dict | None:
    """First date-holding booking of the guide intersecting [start, end], bounds inclusive."""
    query: dict = {
        "guide_id": guide_id,
        "status": {"$in": list(HOLDING_STATUSES)},
        "start_date": {"$lte": end},
        "end_date": {"$gte": start},
    }
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    return await get_bookings_collection().find_one(query)


async def quote_booking(guide_id: str, start_date: date, end_date: date, group_size: int) -> dict:
    guide_oid = to_object_id(guide_id)
    if guide_oid is None:
        raise GuideBookingError("Invalid guide ID")

    guide = await get_guides_collection().find_one({"_id": guide_oid})
    if guide is None:
        raise NotFoundError("Guide not found.")

    if as_midnight(start_date) < utc_today():
        raise GuideBookingError("Start date cannot be in the past")
    days = count_days(start_date, end_date)
    if days < 1:
        raise GuideBookingError("End date cannot be before start date")
    if group_size > guide.get("max_group_size", 5):
        raise GuideBookingError(f"Group size exceeds max allowed: {guide.get('max_group_size', 5)}")

    price_per_day = guide["price_per_day"]
    return {
        "guide_id": guide_id,
        "days": days,
        "price_per_day": price_per_day,
        "group_size": group_size,
        "total_price": price_per_day * days * group_size,
    }


async def book_guide(
    guide_id: str,
    *,
    user_id: str,
    start_date: date,
    end_date: date,
    group_size: int,
    payment_method: str,
    special_requests: str | None = None,
    total_price: float | None = None,
) -> dict:
    """
    Create a confirmed booking for the guide.

    Rejected when the guide is unavailable, the group is too large, the
    dates are invalid or another confirmed booking overlaps. On success the
    guide is marked unavailable while it has active bookings.
    """
    guide_oid = to_object_id(guide_id)
    if guide_oid is None or to_object_id(user_id) is None:
        raise GuideBookingError("Invalid IDs")

    bookings = get_bookings_collection()

    async with guide_lease(guide_oid) as lease:
        guide = lease.guide

        if await find_user_by_id(user_id) is None:
            raise NotFoundError("User not found.")
        if not guide.get("is_available", True):
            raise GuideBookingError("Guide is currently unavailable.")
        max_group_size = guide.get("max_group_size", 5)
        if group_size > max_group_size:
            raise GuideBookingError(f"Group size exceeds max allowed: {max_group_size}")

        start = as_midnight(start_date)
        end = as_midnight(end_date)
        if start < utc_today():
            raise GuideBookingError("Start date cannot be in the past")
        if end < start:
            raise GuideBookingError("End date cannot be before start date")

        if total_price is None:
            total_price = guide["price_per_day"] * count_days(start, end) * group_size

        try:
            booking = Booking(
                user_id=user_id,
                guide_id=guide_id,
                start_date=start,
                end_date=end,
                group_size=group_size,
                total_price=total_price,
                payment_method=payment_method,
                special_requests=special_requests,
                status=BookingStatus.CONFIRMED,
            )
        except ValidationError as e:
            raise GuideBookingError(describe_validation_errors(e.errors())) from e

        if await find_overlapping_booking(guide_id, start, end) is not None:
            raise GuideBookingError("Guide is already booked for the selected dates.")

        doc = booking.to_document()
        result = await bookings.insert_one(doc)
        doc["_id"] = result.inserted_id

        if await count_active_bookings(guide_id) > 0:
            lease.is_available = False

    print(
        f"[guide_booking] Booked guide {guide_id} for user {user_id}: "
        f"{start.date()}..{end.date()} x{group_size}"
    )
    return serialize_document(doc)


async def _load_booking(booking_id: str) -> dict:
    booking_oid = to_object_id(booking_id)
    if booking_oid is None:
        raise GuideBookingError("Invalid booking ID")
    booking = await get_bookings_collection().find_one({"_id": booking_oid})
    if booking is None:
        raise NotFoundError("Booking not found.")
    return booking


async def _booked_guide(booking: dict) -> dict | None:
    guide_oid = to_object_id(booking.get("guide_id"))
    if guide_oid is None:
        return None
    return await get_guides_collection().find_one({"_id": guide_oid})


def _owns_guide(guide: dict | None, current_user: CurrentUser) -> bool:
    return guide is not None and guide.get("user_id") == current_user.id


async def _apply_transition(
    booking: dict, target: BookingStatus, lease: GuideLease | None, fields: dict
) -> dict:
    """
    Move one booking to `target`, guarding against concurrent status changes,
    then recompute the guide's availability when the lease is held.
    """
    current = BookingStatus(booking["status"])

    if target == BookingStatus.CONFIRMED:
        conflict = await find_overlapping_booking(
            booking["guide_id"], booking["start_date"], booking["end_date"], exclude_id=booking["_id"]
        )
        if conflict is not None:
            raise GuideBookingError("Guide is already booked for the selected dates.")

    updated = await get_bookings_collection().find_one_and_update(
        {"_id": booking["_id"], "status": current.value},
        {"$set": {"status": target.value, "updated_at": datetime.utcnow(), **fields}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise GuideBookingError("Booking was modified by another request, try again.")

    if lease is not None:
        active = await count_active_bookings(booking["guide_id"])
        if target == BookingStatus.CONFIRMED and active > 0:
            lease.is_available = False
        elif current.value in HOLDING_STATUSES and target.value not in HOLDING_STATUSES:
            if active == 0:
                lease.is_available = True

    print(f"[guide_booking] Booking {booking['_id']}: {current.value} -> {target.value}")
    return updated


async def cancel_booking(booking_id: str, reason: str | None, current_user: CurrentUser) -> dict:
    """
    Cancel a confirmed booking. The guide becomes available again once it has
    no active confirmed bookings left.
    """
    booking = await _load_booking(booking_id)
    guide = await _booked_guide(booking)

    is_guide = _owns_guide(guide, current_user)
    if not (current_user.is_admin or is_guide or booking.get("user_id") == current_user.id):
        raise ForbiddenError("You are not authorized to cancel this booking.")

    async with guide_lease(ObjectId(booking["guide_id"]), missing_ok=True) as lease:
        booking = await _load_booking(booking_id)
        if booking["status"] != BookingStatus.CONFIRMED.value:
            raise GuideBookingError("Only confirmed bookings can be cancelled.")

        updated = await _apply_transition(
            booking,
            BookingStatus.CANCELLED,
            lease,
            {
                "cancelled_by": "guide" if is_guide else "user",
                "cancellation_reason": reason or DEFAULT_CANCELLATION_REASON,
            },
        )

    return serialize_document(updated)


async def change_booking_status(
    booking_id: str,
    status: BookingStatus,
    current_user: CurrentUser,
    reason: str | None = None,
) -> dict:
    """
    Move a booking along the status state machine.
    The booked guide's owner and admins may make any allowed move; the booking
    user may only ask for or make a cancellation.
    """
    status = BookingStatus(status)
    booking = await _load_booking(booking_id)
    guide = await _booked_guide(booking)

    is_guide = _owns_guide(guide, current_user)
    is_booker = booking.get("user_id") == current_user.id
    user_moves = {BookingStatus.CANCEL_REQUESTED, BookingStatus.CANCELLED}
    if not (current_user.is_admin or is_guide or (is_booker and status in user_moves)):
        raise ForbiddenError("You are not authorized to change this booking.")

    async with guide_lease(ObjectId(booking["guide_id"]), missing_ok=True) as lease:
        booking = await _load_booking(booking_id)
        current = BookingStatus(booking["status"])
        if not can_transition(current, status):
            allowed = sorted(s.value for s in ALLOWED_TRANSITIONS[current])
            if not allowed:
                raise GuideBookingError(f"Booking is already {current.value} and cannot change.")
            raise GuideBookingError(
                f"Cannot change booking from '{current.value}' to '{status.value}'. "
                f"Allowed: {', '.join(allowed)}"
            )

        fields: dict = {}
        if status == BookingStatus.CANCELLED:
            fields["cancelled_by"] = "guide" if is_guide else "user"
            fields["cancellation_reason"] = reason or DEFAULT_CANCELLATION_REASON
        elif status == BookingStatus.CANCEL_REQUESTED and reason:
            fields["cancellation_reason"] = reason

        updated = await _apply_transition(booking, status, lease, fields)

    return serialize_document(updated)


async def _attach_guides(bookings: list[dict]) -> None:
    ids = {ObjectId(b["guide_id"]) for b in bookings if to_object_id(b.get("guide_id"))}
    cursor = get_guides_collection().find(
        {"_id": {"$in": list(ids)}},
        {"name": 1, "location": 1, "price_per_day": 1, "is_available": 1},
    )
    guides = {str(g["_id"]): serialize_document(g) for g in await cursor.to_list(length=None)}
    for b in bookings:
        b["guide"] = guides.get(b.get("guide_id"))


async def _attach_users(bookings: list[dict]) -> None:
    ids = {ObjectId(b["user_id"]) for b in bookings if to_object_id(b.get("user_id"))}
    cursor = get_users_collection().find(
        {"_id": {"$in": list(ids)}},
        {"username": 1, "email": 1, "contact_number": 1},
    )
    users = {str(u["_id"]): serialize_document(u) for u in await cursor.to_list(length=None)}
    for b in bookings:
        b["user"] = users.get(b.get("user_id"))


async def list_user_bookings(user_id: str, current_user: CurrentUser) -> list[dict]:
    """A user's bookings, newest first, with the booked guide joined in."""
    if to_object_id(user_id) is None:
        raise GuideBookingError("Invalid user ID")
    if not (current_user.is_admin or current_user.id == user_id):
        raise ForbiddenError("You can only view your own bookings.")

    cursor = get_bookings_collection().find({"user_id": user_id}).sort("created_at", -1)
    bookings = [serialize_document(b) for b in await cursor.to_list(length=None)]
    await _attach_guides(bookings)
    return bookings


async def list_guide_bookings(guide_id: str) -> list[dict]:
    """A guide's bookings, newest first, with the booking user and guide joined in."""
    if to_object_id(guide_id) is None:
        raise GuideBookingError("Invalid guide ID")

    cursor = get_bookings_collection().find({"guide_id": guide_id}).sort("created_at", -1)
    bookings = [serialize_document(b) for b in await cursor.to_list(length=None)]
    await _attach_users(bookings)
    await _attach_guides(bookings)
    return bookings

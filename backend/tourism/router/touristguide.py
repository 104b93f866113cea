"""
Tourist Guide Router
Guide registration and profiles, plus the guide booking lifecycle
"""

from datetime import date

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field

from tourism.models.booking import BookingStatus, PaymentMethod
from tourism.models.common import APIResponse
from tourism.models.touristguide import GuideCategory
from tourism.models.user import CurrentUser
from tourism.router.auth import get_current_user
from tourism.services import guide_booking, guides

router = APIRouter(prefix="/api/touristguide", tags=["Tourist Guides"])


class GuideRegistrationRequest(BaseModel):
    """Required fields are checked by the service so they can be reported together."""

    email: str | None = Field(None, description="Register the user with this email instead of the caller")
    name: str | None = None
    img: str | None = None
    location: str | None = None
    language: str | None = None
    experience: int | None = Field(None, ge=0)
    contact_number: str | None = None
    license_number: str | None = Field(None, description="TCB/TG(<AREA>)-NN/NNNN(N)")
    category: list[GuideCategory] | None = None
    price_per_day: float | None = Field(None, ge=0)
    max_group_size: int | None = Field(None, ge=1)


class GuideUpdateRequest(BaseModel):
    name: str | None = None
    img: str | None = None
    location: str | None = None
    language: str | None = None
    experience: int | None = Field(None, ge=0)
    contact_number: str | None = None
    license_number: str | None = None
    category: list[GuideCategory] | None = None
    price_per_day: float | None = Field(None, ge=0)
    max_group_size: int | None = Field(None, ge=1)
    is_available: bool | None = None


class BookGuideRequest(BaseModel):
    user_id: str = Field(..., description="Booking user ID")
    start_date: date
    end_date: date
    group_size: int = Field(..., ge=1)
    payment_method: PaymentMethod
    special_requests: str | None = None
    total_price: float | None = Field(
        None, ge=0, description="Computed from price_per_day x days x group_size when omitted"
    )


class CancelBookingRequest(BaseModel):
    reason: str | None = None


class BookingStatusRequest(BaseModel):
    status: BookingStatus
    reason: str | None = None


@router.post("", status_code=201, response_model=APIResponse)
async def create_tourist_guide(
    body: GuideRegistrationRequest,
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Register a user as a tourist guide and flip their role.
    """
    guide = await guides.register_guide(body.model_dump(), current_user)
    return APIResponse(code=0, msg="Tourist guide registered successfully.", data=guide)


@router.put("/{guide_id}", response_model=APIResponse)
async def update_tourist_guide(
    guide_id: str,
    body: GuideUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
):
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    guide = await guides.update_guide(guide_id, changes, current_user)
    return APIResponse(code=0, msg="Tourist guide updated successfully.", data=guide)


@router.delete("/{guide_id}", response_model=APIResponse)
async def delete_tourist_guide(
    guide_id: str,
    current_user: CurrentUser = Depends(get_current_user),
):
    await guides.delete_guide(guide_id, current_user)
    return APIResponse(code=0, msg="Tourist guide deleted successfully.", data={"id": guide_id})


@router.get("/unavailable/all", response_model=APIResponse)
async def get_unavailable_guides():
    return APIResponse(code=0, msg="ok", data=await guides.list_unavailable_guides())


@router.get("/{guide_id}", response_model=APIResponse)
async def get_tourist_guide(guide_id: str):
    return APIResponse(code=0, msg="ok", data=await guides.get_guide(guide_id))


@router.get("", response_model=APIResponse)
async def get_all_tourist_guides(
    location: str | None = Query(None, description="Exact location match"),
    category: GuideCategory | None = Query(None, description="Guides offering this category"),
    available: bool | None = Query(None, description="Filter on is_available"),
):
    data = await guides.list_guides(location=location, category=category, available=available)
    return APIResponse(code=0, msg="ok", data=data)


@router.get("/{guide_id}/quote", response_model=APIResponse)
async def quote_tourist_guide(
    guide_id: str,
    start_date: date = Query(...),
    end_date: date = Query(...),
    group_size: int = Query(1, ge=1),
):
    """
    Price a tour: price_per_day x inclusive days x group size.
    """
    quote = await guide_booking.quote_booking(guide_id, start_date, end_date, group_size)
    return APIResponse(code=0, msg="ok", data=quote)


@router.post("/book/{guide_id}", status_code=201, response_model=APIResponse)
async def book_tourist_guide(guide_id: str, body: BookGuideRequest):
    """
    Book a guide. The booking is confirmed immediately and the guide is marked
    unavailable while it has active bookings.
    """
    booking = await guide_booking.book_guide(
        guide_id,
        user_id=body.user_id,
        start_date=body.start_date,
        end_date=body.end_date,
        group_size=body.group_size,
        payment_method=body.payment_method,
        special_requests=body.special_requests,
        total_price=body.total_price,
    )
    return APIResponse(code=0, msg="Guide booked successfully.", data=booking)


@router.put("/cancel/{booking_id}", response_model=APIResponse)
async def cancel_booking(
    booking_id: str,
    body: CancelBookingRequest | None = Body(None),
    current_user: CurrentUser = Depends(get_current_user),
):
    reason = body.reason if body else None
    booking = await guide_booking.cancel_booking(booking_id, reason, current_user)
    return APIResponse(code=0, msg="Booking cancelled successfully.", data=booking)


@router.put("/bookings/{booking_id}", response_model=APIResponse)
async def update_booking_status(
    booking_id: str,
    body: BookingStatusRequest,
    current_user: CurrentUser = Depends(get_current_user),
):
    booking = await guide_booking.change_booking_status(
        booking_id, body.status, current_user, reason=body.reason
    )
    return APIResponse(code=0, msg="Booking status updated successfully.", data=booking)


@router.get("/bookings/user/{user_id}", response_model=APIResponse)
async def get_user_bookings(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
):
    data = await guide_booking.list_user_bookings(user_id, current_user)
    return APIResponse(code=0, msg="ok", data=data)


@router.get("/bookings/guide/{guide_id}", response_model=APIResponse)
async def get_guide_bookings(
    guide_id: str,
    current_user: CurrentUser = Depends(get_current_user),
):
    data = await guide_booking.list_guide_bookings(guide_id)
    return APIResponse(code=0, msg="ok", data=data)

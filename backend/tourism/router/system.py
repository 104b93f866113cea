from fastapi import APIRouter

from tourism.core.config import APP_VERSION
from tourism.models.common import APIResponse

router = APIRouter(tags=["System"])


@router.get("/", response_model=APIResponse)
def root():
    return APIResponse(
        code=0, msg="ok", data={"msg": "Tourism Booking API. See /docs for the endpoints."}
    )


@router.get("/api/health", response_model=APIResponse)
def health_check():
    return APIResponse(
        code=0,
        msg="ok",
        data={"status": "healthy", "service": "tourism-booking-server", "version": APP_VERSION},
    )

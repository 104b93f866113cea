from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from tourism.core.config import JWT_ALGORITHM, JWT_SECRET
from tourism.models.common import APIResponse
from tourism.models.user import CurrentUser

router = APIRouter(prefix="/api/auth", tags=["authentication"])
security = HTTPBearer(auto_error=False)

# Cookie set by the accounts service on login
ACCESS_TOKEN_COOKIE = "access_token"


def decode_access_token(token: str) -> CurrentUser:
    """
    Verify a JWT and extract the caller's identity.
    Accepts either an `id` or a `sub` claim for the user ID.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise HTTPException(status_code=403, detail=f"Token is not valid! {str(e)}")

    user_id = payload.get("id") or payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=403, detail="Token is not valid! Missing user ID")

    return CurrentUser(id=str(user_id), is_admin=bool(payload.get("isAdmin") or payload.get("is_admin")))


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    """
    FastAPI dependency returning the authenticated user.
    Reads a Bearer token first, then falls back to the access_token cookie.
    """
    token = credentials.credentials if credentials else request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        raise HTTPException(status_code=401, detail="You are not authenticated!")
    return decode_access_token(token)


@router.get("/me", response_model=APIResponse)
async def get_me(current_user: CurrentUser = Depends(get_current_user)):
    """
    Return the identity carried by the caller's token.
    Frontends call this on load to check whether the user is signed in.
    """
    return APIResponse(code=0, msg="ok", data=current_user.model_dump())

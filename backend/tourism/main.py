import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tourism.core.config import (
    APP_NAME,
    APP_VERSION,
    CORS_ORIGINS,
    IS_PRODUCTION,
    SERVER_HOST,
    SERVER_PORT,
)
from tourism.db.database import close_database_connection, init_indexes, test_connection
from tourism.router.auth import router as auth_router
from tourism.router.system import router as system_router
from tourism.router.touristguide import router as touristguide_router
from tourism.services.errors import GuideBookingError, describe_validation_errors


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Test database connection
    print("🚀 Starting up Tourism Booking API...")
    await test_connection()
    await init_indexes()
    yield
    # Shutdown: Close database connection
    print("🛑 Shutting down Tourism Booking API...")
    await close_database_connection()


app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GuideBookingError)
async def guide_booking_error_handler(request: Request, exc: GuideBookingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Request validation failures answer 400 instead of 422
    return JSONResponse(status_code=400, content={"detail": describe_validation_errors(exc.errors())})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    print(f"[main] Unhandled error on {request.method} {request.url.path}: {exc!r}")
    content = {"detail": str(exc) or "Something went wrong!"}
    if not IS_PRODUCTION:
        content["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=content)


# Mount routers
app.include_router(system_router)
app.include_router(auth_router)
app.include_router(touristguide_router)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)

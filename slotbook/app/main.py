import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from redis import RedisError

from .config import settings
from .redis_client import redis_client
from .routers import bookings, providers, slots
from .services.errors import BookingStateError, ConfigurationError, NotFound, SlotUnavailable
from .services.pending_expiry import pending_expiry_loop

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = None
    if settings.pending_expiry_enabled:
        task = asyncio.create_task(pending_expiry_loop())
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)


app = FastAPI(title="Slotbook Booking API", lifespan=lifespan)

app.include_router(providers.router)
app.include_router(slots.router)
app.include_router(bookings.router)


# ===== Booking engine errors =====

@app.exception_handler(SlotUnavailable)
async def slot_unavailable_handler(request: Request, exc: SlotUnavailable):
    # Retryable: the client re-queries availability and picks again
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "detail": "Selected slot is no longer available",
            "reason": exc.reason,
            "date_time_utc": exc.instant.isoformat(),
        },
    )


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.warning(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})


@app.exception_handler(BookingStateError)
async def booking_state_handler(request: Request, exc: BookingStateError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.get("/health")
def health():
    try:
        redis_ok = bool(redis_client.ping())
    except RedisError:
        redis_ok = False
    return {"redis": redis_ok}

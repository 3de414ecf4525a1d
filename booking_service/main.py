import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from booking_service import models  # noqa: F401  registers tables on Base.metadata
from booking_service.config import LOG_LEVEL
from booking_service.database import AsyncSessionLocal, create_tables
from booking_service.routers import bookings, schedules

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    logger.info("Booking service started")
    yield
    logger.info("Booking service stopped")


app = FastAPI(title="Booking Service", lifespan=lifespan)

app.include_router(bookings.router)
app.include_router(schedules.router)


@app.get("/health")
async def health():
    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check failed")
        return JSONResponse({"ok": False, "detail": "Database unreachable"}, status_code=500)
    return {"ok": True}

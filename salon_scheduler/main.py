# salon_scheduler/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from salon_scheduler.config import configure_logging, settings
from salon_scheduler.db import init_db
from salon_scheduler.errors import StorageError
from salon_scheduler.routers import appointments_routes, calendar_routes

configure_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Salon scheduler started (timezone %s)", settings.timezone)
    yield


app = FastAPI(title="Salon Scheduler", lifespan=lifespan)

app.include_router(appointments_routes.router)
app.include_router(calendar_routes.router)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.__cause__)
    return JSONResponse(
        status_code=503,
        content={"detail": {"code": "STORAGE_ERROR", "message": "The appointment store is unavailable"}},
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}

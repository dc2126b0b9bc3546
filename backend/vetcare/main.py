import time

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request, status, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from vetcare.config import get_settings
from vetcare.database import close_db, init_db, ping_db
from vetcare.deps import get_appointment_service, get_reminder_service
from vetcare.errors import AppointmentError
from vetcare.rate_limit import limiter, rate_limit_exceeded_handler
from vetcare.utils.logger import get_logger

logger = get_logger("main")
settings = get_settings()

# Routers
from vetcare.routers import appointments as appointments_router
from vetcare.routers import client as client_router
from vetcare.routers import reception as reception_router
from vetcare.routers import reminders as reminders_router

app = FastAPI(
    title="VetCare Appointments API",
    debug=settings.APP_DEBUG,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(appointments_router.router)
app.include_router(reception_router.router)
app.include_router(client_router.router)
app.include_router(reminders_router.router)


# Error handlers
@app.exception_handler(AppointmentError)
async def appointment_error_handler(request: Request, exc: AppointmentError):
    if exc.status_code >= 500:
        logger.error(f"{exc.kind}: {exc.message} - Path: {request.url.path}")
    else:
        logger.warning(f"{exc.kind}: {exc.message} - Path: {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP {exc.status_code}: {exc.detail} - Path: {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "status_code": exc.status_code},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error: {exc.errors()} - Path: {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "INVALID_REQUEST", "detail": jsonable_errors(exc), "status_code": 422},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "status_code": 500},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Time: {process_time:.3f}s"
    )
    return response


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


@app.get("/readyz")
async def readyz():
    if not await ping_db():
        raise HTTPException(status_code=503, detail="Database not ready")
    return {"status": "ok", "database": "up"}


# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


async def send_appointment_reminders() -> None:
    await get_reminder_service().run_sweep()


@app.on_event("startup")
async def on_startup():
    global scheduler

    logger.info("🚀 Starting application...")
    await init_db()
    logger.info("✅ Database initialized")

    if not settings.REMINDER_SWEEP_ENABLED:
        logger.info("ℹ️ Reminder sweep disabled by configuration")
        return
    try:
        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_job(
            send_appointment_reminders,
            trigger="interval",
            minutes=settings.REMINDER_INTERVAL_MINUTES,
            id="appointment_reminders",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        logger.info(
            f"✅ Appointment reminder scheduler started "
            f"(every {settings.REMINDER_INTERVAL_MINUTES} minutes)"
        )
    except Exception as e:
        logger.error(f"❌ Failed to start appointment reminder scheduler: {e}")


@app.on_event("shutdown")
async def on_shutdown():
    global scheduler
    if scheduler:
        try:
            scheduler.shutdown(wait=False)
            logger.info("Appointment reminder scheduler stopped")
        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")
        scheduler = None
    await get_appointment_service().wait_for_notifications()
    close_db()
    logger.info("Shutting down application...")

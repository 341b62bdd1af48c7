# carelink/main.py
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

# .env -> os.environ (the Firebase SDK reads GOOGLE_* variables from there)
load_dotenv()

from carelink.config.settings import settings  # noqa: E402
from carelink.db.store import store  # noqa: E402
from carelink.realtime.hub import hub  # noqa: E402
from carelink.routers import (  # noqa: E402
    appointments,
    auth,
    journals,
    meds,
    notifications,
    patients,
    push,
    realtime,
    sos,
)
from carelink.services.push import dispatcher, init_firebase  # noqa: E402
from carelink.services.reminders import ReminderScanner, build_scheduler  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    - connect Firebase(FCM) if a key is configured (web push only needs the VAPID pair)
    - start the appointment reminder job (every REMINDER_INTERVAL_SECONDS)
    - stop the scheduler on shutdown
    """
    init_firebase(settings.firebase_credentials)

    scheduler = None
    if settings.reminder_enabled:
        scanner = ReminderScanner(
            store,
            hub,
            dispatcher,
            window_ms=settings.reminder_window_ms,
            dedup_window_ms=settings.reminder_dedup_window_ms,
        )
        scheduler = build_scheduler(scanner, settings.reminder_interval_seconds)
        scheduler.start()
        logger.info("[reminders] scheduler started, every %ss", settings.reminder_interval_seconds)

    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)
            logger.info("[reminders] scheduler stopped")


os.makedirs(settings.upload_dir, exist_ok=True)

app = FastAPI(title="carelink", lifespan=lifespan)

app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(patients.router)
app.include_router(meds.router)
app.include_router(journals.router)
app.include_router(appointments.router)
app.include_router(notifications.router)
app.include_router(sos.router)
app.include_router(push.router)
app.include_router(realtime.router)


@app.get("/")
async def root():
    return {"message": "carelink API is running", "version": "1.0.0"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)

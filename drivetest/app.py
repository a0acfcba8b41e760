"""Main FastAPI application."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from drivetest.config import QUESTION_IMAGES_DIR
from drivetest.core.logging_setup import setup_console_logging
from drivetest.database import init_db
from drivetest.routes import (
    auth,
    dashboard,
    history,
    license_types,
    questions,
    templates,
    tests,
    users,
)
from drivetest.services.cleanup_service import schedule_cleanup

setup_console_logging()

app = FastAPI(title="Drivetest API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_events() -> None:
    """Initialize database and schedule cleanup tasks on startup."""
    init_db()
    schedule_cleanup()


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# Question images are optional in development checkouts
if QUESTION_IMAGES_DIR.is_dir():
    app.mount("/images/ticket_images", StaticFiles(directory=QUESTION_IMAGES_DIR), name="ticket_images")

# Include routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(license_types.router)
app.include_router(questions.router)
app.include_router(tests.router)
app.include_router(templates.router)
app.include_router(history.router)
app.include_router(dashboard.router)

from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.db.base import get_db
from app.core.config import settings
from app.core.logging import setup_logging
from app.routers import auth as auth_router
from app.routers import settings as settings_router
from app.routers import tasks as tasks_router
from app.routers import credo as credo_router
from app.routers import reports as reports_router
from app.routers import coach as coach_router
from app.routers import notes as notes_router
from app.core.errors import (
    StudyCoachError,
    study_coach_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Importing the app must not touch the host's logging config.
    setup_logging()
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Study Coach API",
    description=(
        "**Study coaching backend**\n\n"
        "Study tasks with subtasks and a work clock, daily credo habit tracking, "
        "notes, AI chat coaching, daily study plans and weekly AI reports.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(StudyCoachError, study_coach_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(auth_router.router)
app.include_router(settings_router.router)
app.include_router(tasks_router.router)
app.include_router(credo_router.router)
app.include_router(reports_router.router)
app.include_router(coach_router.router)
app.include_router(notes_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status, "env": settings.APP_ENV},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}

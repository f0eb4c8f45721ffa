# backend/traineedb/main.py
from contextlib import asynccontextmanager
import logging
import os
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .apps.accounts.otp import OtpStore
from .apps.accounts.router_admin import router as accounts_admin_router
from .apps.accounts.router_auth import router as auth_router
from .apps.accounts.router_instructor import router as accounts_instructor_router
from .apps.notifications.router import admin_router as email_logs_router
from .apps.notifications.router import router as notifications_router
from .apps.training.router_admin import router as training_admin_router
from .apps.training.router_instructor import router as instructor_router
from .apps.workflow.errors import WorkflowError

logger = logging.getLogger(__name__)


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://localhost:3000",
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.otp_store.clear()


app = FastAPI(title="Trainee Management API", version="1.0.0", lifespan=lifespan)
app.state.otp_store = OtpStore()

cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    logger.info(
        "Workflow request rejected",
        extra={"path": request.url.path, "code": exc.code, "status_code": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.detail},
    )


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Trainee Management backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(accounts_admin_router)
app.include_router(training_admin_router)
app.include_router(email_logs_router)
app.include_router(instructor_router)
app.include_router(accounts_instructor_router)
app.include_router(notifications_router)

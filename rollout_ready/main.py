# rollout_ready/main.py
import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rollout_ready import __version__
from rollout_ready.database import SessionLocal, get_db, init_db
from rollout_ready.exceptions import RolloutReadyError
from rollout_ready.models import Project, Role, Template, User
from rollout_ready.models.user import SystemRole
from rollout_ready.routers import auth, project, role, task, template, user
from rollout_ready.services.file_storage import FileStorageService, file_storage, get_file_storage
from rollout_ready.utils.auth import cleanup_expired_sessions

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables, then sweep expired sessions and orphaned uploads"""
    logger.info("Starting Rollout Ready API...")
    init_db()
    db = SessionLocal()
    try:
        cleanup_expired_sessions(db)
        file_storage.cleanup_orphaned_files(db)
    finally:
        db.close()
    yield
    logger.info("Shutting down Rollout Ready API")


app = FastAPI(title="Rollout Ready API", version=__version__, lifespan=lifespan)

# CORS configuration
origins = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handling
@app.exception_handler(RolloutReadyError)
async def rollout_ready_error_handler(request: Request, exc: RolloutReadyError):
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters are a 400 with the first problem spelled out"""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        error = errors[0]
        msg = str(error.get("msg", message))
        if msg.startswith("Value error, "):
            message = msg[len("Value error, "):]
        else:
            field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            message = f"{field}: {msg}" if field else msg
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# Route registration
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(user.router, prefix="/users", tags=["Users"])
app.include_router(role.router, prefix="/roles", tags=["Roles"])
app.include_router(template.router, prefix="/templates", tags=["Templates"])
app.include_router(project.router, prefix="/projects", tags=["Projects"])
app.include_router(task.router, tags=["Tasks"])


# Root route
@app.get("/")
def read_root():
    return {"message": "Rollout Ready API", "version": __version__}


@app.get("/health")
def health(db: Session = Depends(get_db), storage: FileStorageService = Depends(get_file_storage)):
    """Database connectivity, a few counts and attachment storage; 503 when the database is unreachable"""
    started = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        admin_exists = db.query(User.id).filter(User.system_role == SystemRole.ADMIN).first() is not None
        counts = {
            "users": db.query(User).count(),
            "roles": db.query(Role).count(),
            "templates": db.query(Template).count(),
            "projects": db.query(Project).count(),
        }
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "disconnected", "detail": "Database unavailable"},
        )

    return {
        "status": "healthy",
        "database": "connected",
        "response_time_ms": elapsed_ms,
        "admin_exists": admin_exists,
        "counts": counts,
        "storage": storage.get_storage_stats(),
    }

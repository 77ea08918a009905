import logging
import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from user_api.core.config import settings
from user_api.core.database import SessionLocal, init_db
from user_api.core.errors import AppError, ServerError
from user_api.api.routes import auth, users
from user_api.services.seed_service import seed_sample_users
from user_api.storage.user_store import SQLUserStore, memory_store

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def _seed() -> None:
    if settings.USER_STORE_BACKEND == "memory":
        seed_sample_users(memory_store)
        return
    db = SessionLocal()
    try:
        seed_sample_users(SQLUserStore(db))
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create the users table and optionally seed sample accounts
    """
    if settings.USER_STORE_BACKEND == "sql":
        init_db()
    if settings.SEED_SAMPLE_USERS:
        _seed()
    logger.info(
        f"User Management API started (environment={settings.ENVIRONMENT}, "
        f"store={settings.USER_STORE_BACKEND})"
    )
    yield
    logger.info("User Management API shutting down")


app = FastAPI(
    title="User Management API",
    description="Registration, authentication and profile management",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware - allows the frontend to call the API from the browser
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# All routes are prefixed with /api
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")


if settings.is_development:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms")
        return response


def _error_response(status_code: int, error: str, message: str, **extra) -> JSONResponse:
    body = {"success": False, "error": error, "message": message}
    body.update({key: value for key, value in extra.items() if value is not None})
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return _error_response(exc.status_code, exc.error, exc.message, errors=exc.errors)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Body of the wrong shape or type: report per field, as a 400
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or "body",
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "Validation Error",
        errors[0]["message"] if errors else "Invalid request",
        errors=errors,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return _error_response(404, "Not Found", f"Route {request.url.path} not found")
    return _error_response(exc.status_code, "Error", str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    # Internal detail only leaves the process in development
    if settings.is_development:
        return _error_response(
            ServerError.status_code,
            ServerError.error,
            str(exc) or "Something went wrong",
            stack=traceback.format_exception(type(exc), exc, exc.__traceback__),
        )
    return _error_response(ServerError.status_code, ServerError.error, "Something went wrong")


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {
        "success": True,
        "message": "User Management System API",
        "version": "1.0.0",
        "endpoints": {"auth": "/api/auth", "users": "/api/users"},
    }


@app.get("/health")
async def health():
    """Health check endpoint - used by monitoring/deployment tools"""
    return {
        "success": True,
        "status": "healthy",
        "store": settings.USER_STORE_BACKEND,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

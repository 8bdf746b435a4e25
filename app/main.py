import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.attendance.router import router as attendance_router
from app.api.v1.timetables.router import router as timetables_router
from app.core.config import settings
from app.core.exceptions import ConflictError, ServiceError
from app.core.logging import setup_logging
from app.core.schemas import ErrorResponse

logger = logging.getLogger(__name__)


def _envelope(status_code: int, error: str, conflict_details=None, headers=None) -> JSONResponse:
    body = ErrorResponse(error=error, conflict_details=conflict_details)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def create_app() -> FastAPI:
    setup_logging(environment=settings.environment, log_dir=settings.log_dir)

    app = FastAPI(title="Timetable Engine")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceError)
    async def _service_error(_request: Request, exc: ServiceError):
        details = exc.conflict_details if isinstance(exc, ConflictError) else None
        return _envelope(exc.status_code, exc.message, conflict_details=details)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException):
        return _envelope(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(_request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "Invalid request")
        return _envelope(422, f"{location}: {message}" if location else message)

    @app.exception_handler(SQLAlchemyError)
    async def _sqlalchemy_error(_request: Request, exc: SQLAlchemyError):
        logger.exception("Unhandled database error", exc_info=exc)
        return _envelope(500, "Storage operation failed")

    @app.exception_handler(Exception)
    async def _unhandled_error(_request: Request, exc: Exception):
        logger.exception("Unhandled error", exc_info=exc)
        return _envelope(500, "Internal server error")

    # Routers
    app.include_router(timetables_router)
    app.include_router(attendance_router)

    return app


app = create_app()

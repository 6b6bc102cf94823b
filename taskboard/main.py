import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskboard.auth import router as auth_router
from taskboard.config import get_settings
from taskboard.db import database_status
from taskboard.exceptions import AuthenticationError, ConflictError, InvalidRequestError, NotFoundError
from taskboard.logging_setup import setup_logging
from taskboard.models.common import StatusResponse
from taskboard.routers.tasks import router as tasks_router
from taskboard.routers.users import router as users_router

logger = logging.getLogger(__name__)


# --- FastAPI app ---

api = FastAPI(title="Taskboard", version="0.1.0")
api.include_router(auth_router)
api.include_router(tasks_router)
api.include_router(users_router)


@api.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "API is running..."


@api.get("/api/status")
def api_status() -> StatusResponse:
    backend, ready, message = database_status()
    return StatusResponse(database=backend, ready=ready, message=message)


# --- Exception handlers ---

def _error(status_code: int, error_code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error_code": error_code, "message": message})


@api.exception_handler(AuthenticationError)
async def auth_error_handler(request: Request, exc: AuthenticationError):
    return _error(401, "auth_error", str(exc))


@api.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error(404, "not_found", str(exc))


@api.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return _error(409, "conflict", str(exc))


@api.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError):
    return _error(400, "invalid_request", str(exc))


@api.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        message = message.removeprefix("Value error, ")
        if field:
            message = f"{field}: {message}"
    else:
        message = "Invalid request"
    return _error(422, "validation_error", message)


@api.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return _error(404, "not_found", f"Not Found - {request.url.path}")
    return _error(exc.status_code, "http_error", str(exc.detail))


app = api


def run():
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("Starting Taskboard on %s:%s", settings.host, settings.port)
    uvicorn.run(
        "taskboard.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

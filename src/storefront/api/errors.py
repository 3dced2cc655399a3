"""Exception handlers: every error leaves the API as ``{"message", "code"}``."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.exceptions import StorefrontError, status_code_for
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _first_message(messages) -> str:
    if isinstance(messages, dict):
        for value in messages.values():
            if value:
                return _first_message(value)
    if isinstance(messages, list | tuple) and messages:
        return _first_message(messages[0])
    return str(messages)


def _body(message: str, code: str) -> dict:
    return {"message": message, "code": code}


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, message=exc.message)
    return JSONResponse(status_code=status_code, content=_body(exc.message, exc.code))


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(status_code=400, content=_body(_first_message(exc.messages), "validation_error"))


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(status_code=404, content=_body("Recurso no encontrado.", "not_found"))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: ARG001
    errors = exc.errors()
    detail = errors[0] if errors else {}
    location = ".".join(str(part) for part in detail.get("loc", ()) if part != "body")
    message = detail.get("msg", "Solicitud inválida")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(status_code=400, content=_body(message, "invalid_request"))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("request_crashed", path=request.url.path, error=repr(exc))
    return JSONResponse(status_code=500, content=_body("Error interno del servidor", "internal_error"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

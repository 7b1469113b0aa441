# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

import http
from collections import defaultdict
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from bodyrig.exceptions import BodyRigBaseException

# Error responses must never be served from a cache
_NO_CACHE = {"Cache-Control": "no-cache"}


def _error_response(http_status: int, error_code: str, message: Any) -> JSONResponse:
    return JSONResponse(
        status_code=http_status,
        content=jsonable_encoder({"error_code": error_code, "message": message, "http_status": http_status}),
        headers=_NO_CACHE,
    )


def handle_base_exception(request: Request, exception: Exception) -> JSONResponse:
    """
    Render a domain error with its own code and HTTP status.
    """
    if not isinstance(exception, BodyRigBaseException):
        raise exception

    logger.info(f"{request.method} {request.url.path} -> {exception.error_code}: {exception.message}")
    return _error_response(int(exception.http_status), exception.error_code, exception.message)


async def handle_error(_request: Request, exception: Exception) -> JSONResponse:
    """
    Handler for internal server errors
    """
    logger.exception(f"Internal server error: {exception}")
    return JSONResponse(
        {"internal_server_error": "An internal server error occurred."},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        headers=_NO_CACHE,
    )


async def validation_exception_handler(_request: Request, exception: Exception) -> JSONResponse:
    """
    Report request validation problems per parameter, e.g. ``{"address": ["..."]}``.
    """
    if not isinstance(exception, RequestValidationError):
        raise exception

    problems: dict[str, list[str]] = defaultdict(list)
    for error in exception.errors():
        loc = error["loc"]
        # Drop the "body"/"query"/"path" prefix
        parameter = loc[1:] if loc and loc[0] in ("body", "query", "path") else loc
        problems[".".join(str(part) for part in parameter)].append(error["msg"])

    return _error_response(http.HTTPStatus.BAD_REQUEST.value, "bad_request", problems)


def register_application_exception_handlers(app: FastAPI) -> None:
    """
    Register application exception handlers
    """
    app.add_exception_handler(BodyRigBaseException, handle_base_exception)
    app.add_exception_handler(500, handle_error)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from parley.api.request_id import get_request_id
from parley.domain.common.errors import ConflictError, DomainError, ForbiddenError, NotFoundError


def status_for(exc: DomainError) -> int:
	if isinstance(exc, NotFoundError):
		return status.HTTP_404_NOT_FOUND
	if isinstance(exc, ConflictError):
		return status.HTTP_409_CONFLICT
	if isinstance(exc, ForbiddenError):
		return status.HTTP_403_FORBIDDEN
	return status.HTTP_400_BAD_REQUEST


def map_error(exc: DomainError) -> HTTPException:
	return HTTPException(status_for(exc), detail=exc.reason)


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(DomainError)
	async def domain_exc_handler(request: Request, exc: DomainError):  # type: ignore[override]
		payload = {"detail": exc.reason, "request_id": get_request_id(request)}
		return JSONResponse(status_code=status_for(exc), content=payload)

	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload = {"detail": exc.detail, "request_id": get_request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {
			"detail": "validation_error",
			"errors": jsonable_encoder(exc.errors()),
			"request_id": get_request_id(request),
		}
		return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=payload)

from __future__ import annotations
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

_log = logging.getLogger("diagnostic_hub.errors")


def _message(detail) -> str:
	if isinstance(detail, str):
		return detail
	return str(detail)


def add_error_handlers(app: FastAPI) -> None:
	"""Render every failure as ``{"error": "..."}`` with the matching status."""

	@app.exception_handler(StarletteHTTPException)
	async def http_exception_handler(request: Request, exc: StarletteHTTPException):
		if exc.status_code >= 500:
			_log.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
		return JSONResponse(
			status_code=exc.status_code,
			content={"error": _message(exc.detail)},
			headers=getattr(exc, "headers", None),
		)

	@app.exception_handler(RequestValidationError)
	async def validation_exception_handler(request: Request, exc: RequestValidationError):
		errors = exc.errors()
		first = errors[0] if errors else {}
		field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
		message = f"Invalid request body: {field} {first.get('msg', '')}".strip() if field else "Invalid request body"
		return JSONResponse(status_code=400, content={"error": message})

	@app.exception_handler(Exception)
	async def unhandled_exception_handler(request: Request, exc: Exception):
		_log.exception("Unhandled error on %s %s", request.method, request.url.path)
		return JSONResponse(status_code=500, content={"error": "Internal server error"})

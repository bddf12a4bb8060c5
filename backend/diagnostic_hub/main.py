import logging

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from .db import Base, engine
from .errors import add_error_handlers
from .settings import settings
from .routers import health, auth
from .routers import attempts
from .routers import payments
from .routers import coupons
from .routers import grading
from .routers import certificates
from .routers import results
from .routers import invitations
from .routers import translate
from .routers import preferences

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
for noisy in ("httpx", "httpcore"):
	logging.getLogger(noisy).setLevel(logging.WARNING)


class EmptyPreflightCORSMiddleware(CORSMiddleware):
	"""CORS middleware whose preflight answers carry headers only, no body."""

	def preflight_response(self, request_headers):
		response = super().preflight_response(request_headers)
		headers = {
			key: value
			for key, value in response.headers.items()
			if key not in ("content-length", "content-type")
		}
		return Response(status_code=response.status_code, headers=headers)


app = FastAPI(title="Diagnostic Hub API")
app.add_middleware(
	EmptyPreflightCORSMiddleware,
	allow_origins=["*"],
	allow_credentials=False,
	allow_methods=["*"],
	allow_headers=["*"],
)
add_error_handlers(app)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(attempts.router)
app.include_router(payments.router)
app.include_router(coupons.router)
app.include_router(grading.router)
app.include_router(certificates.router)
app.include_router(results.router)
app.include_router(invitations.router)
app.include_router(translate.router)
app.include_router(preferences.router)


# Plain OPTIONS requests (no CORS preflight headers) still get an empty 200
@app.options("/{path:path}", include_in_schema=False)
async def options_ok(path: str):
	return Response(status_code=200)


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)

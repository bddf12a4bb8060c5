"""FastAPI dependencies for outbound services; tests override these."""
from __future__ import annotations
from fastapi import HTTPException

from .certificates import CertificateStorage
from .gemini_client import GeminiClient
from .mailer import Mailer
from .stripe_client import StripeClient


async def get_stripe_client():
	try:
		client = StripeClient()
	except ValueError as e:
		raise HTTPException(status_code=500, detail=str(e))
	try:
		yield client
	finally:
		await client.aclose()


async def get_mailer():
	mailer = Mailer()
	try:
		yield mailer
	finally:
		await mailer.aclose()


def get_gemini_factory():
	"""Return a client constructor so handlers can skip the model entirely."""
	return GeminiClient


def get_certificate_storage() -> CertificateStorage:
	return CertificateStorage()

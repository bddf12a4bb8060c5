from __future__ import annotations
import httpx
from typing import Any, Dict, Optional
from .settings import settings


class StripeError(RuntimeError):
	pass


def _flatten(prefix: str, value: Any, out: Dict[str, str]) -> None:
	# Stripe's form encoding: line_items[0][price_data][currency]=usd
	if isinstance(value, dict):
		for k, v in value.items():
			_flatten(f"{prefix}[{k}]" if prefix else k, v, out)
	elif isinstance(value, (list, tuple)):
		for i, v in enumerate(value):
			_flatten(f"{prefix}[{i}]", v, out)
	elif isinstance(value, bool):
		out[prefix] = "true" if value else "false"
	elif value is not None:
		out[prefix] = str(value)


def encode_form(params: Dict[str, Any]) -> Dict[str, str]:
	out: Dict[str, str] = {}
	_flatten("", params, out)
	return out


class StripeClient:
	"""Minimal Checkout Sessions client over Stripe's REST API."""

	def __init__(
		self,
		secret_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.secret_key = secret_key or settings.stripe_secret_key
		if not self.secret_key:
			raise ValueError("STRIPE_SECRET_KEY is not configured")
		self.base_url = (base_url or settings.stripe_api_base).rstrip("/")
		self._client = httpx.AsyncClient(timeout=30, auth=(self.secret_key, ""), transport=transport)

	async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
		try:
			r = await self._client.request(method, f"{self.base_url}{path}", **kwargs)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			try:
				message = http_err.response.json()["error"]["message"]
			except Exception:
				message = http_err.response.text
			raise StripeError(f"Stripe error {http_err.response.status_code}: {message}") from http_err
		except httpx.RequestError as net_err:
			raise StripeError(f"Stripe request failed: {net_err}") from net_err
		return r.json()

	async def find_customer_id(self, email: str) -> Optional[str]:
		data = await self._request("GET", "/customers", params={"email": email, "limit": 1})
		customers = data.get("data") or []
		return customers[0]["id"] if customers else None

	async def create_checkout_session(self, params: Dict[str, Any]) -> Dict[str, Any]:
		return await self._request("POST", "/checkout/sessions", data=encode_form(params))

	async def retrieve_checkout_session(self, session_id: str) -> Dict[str, Any]:
		return await self._request("GET", f"/checkout/sessions/{session_id}")

	async def aclose(self) -> None:
		await self._client.aclose()

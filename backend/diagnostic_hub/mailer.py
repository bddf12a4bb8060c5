from __future__ import annotations
import httpx
import logging
from typing import List, Optional, Union
from .settings import settings

_log = logging.getLogger("diagnostic_hub.mailer")


class Mailer:
	"""Sends transactional email through the Resend HTTP API.

	Every send is best-effort: failures are logged and reported as ``False``
	so the calling handler can finish its primary action regardless.
	"""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		sender: Optional[str] = None,
		base_url: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.resend_api_key
		self.sender = sender or settings.email_from
		self.base_url = (base_url or settings.resend_api_base).rstrip("/")
		self._client = httpx.AsyncClient(timeout=30, transport=transport)

	@property
	def configured(self) -> bool:
		return bool(self.api_key)

	async def send(self, to: Union[str, List[str]], subject: str, html: str) -> bool:
		if not self.configured:
			_log.info("Email not sent, RESEND_API_KEY is not configured subject=%s", subject)
			return False
		recipients = [to] if isinstance(to, str) else list(to)
		try:
			r = await self._client.post(
				f"{self.base_url}/emails",
				headers={"Authorization": f"Bearer {self.api_key}"},
				json={"from": self.sender, "to": recipients, "subject": subject, "html": html},
			)
			r.raise_for_status()
		except httpx.HTTPError as err:
			_log.warning("Email send failed (non-blocking) to=%s subject=%s: %s", recipients, subject, err)
			return False
		_log.info("Email sent to=%s subject=%s", recipients, subject)
		return True

	async def aclose(self) -> None:
		await self._client.aclose()

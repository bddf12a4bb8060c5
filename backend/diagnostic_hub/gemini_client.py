from __future__ import annotations
import httpx
from typing import Any, Dict, Optional
from .settings import settings


class GeminiError(RuntimeError):
	def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
		super().__init__(message)
		self.status_code = status_code


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		# Google AI Studio (Generative Language API)
		self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
		self._client = httpx.AsyncClient(timeout=60, transport=transport)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._openrouter_api_key = settings.openrouter_api_key
		self._fallback_enabled = bool(self._openrouter_api_key)
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=60, transport=transport)

	async def generate(self, prompt: str, *, system: Optional[str] = None, temperature: Optional[float] = None) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		if system:
			payload["systemInstruction"] = {"parts": [{"text": system}]}
		if temperature is not None:
			payload["generationConfig"] = {"temperature": temperature}
		try:
			r = await self._client.post(self.base_url, params={"key": self.api_key}, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			status = http_err.response.status_code
			# Quota and billing errors go back to the caller as-is
			if status in (402, 429) or not self._fallback_enabled:
				raise GeminiError(f"Gemini error: {status}", status_code=status) from http_err
			return await self._fallback_generate(prompt, system, temperature, http_err)
		except httpx.RequestError as net_err:
			if not self._fallback_enabled:
				raise GeminiError(f"Gemini request failed: {net_err}") from net_err
			return await self._fallback_generate(prompt, system, temperature, net_err)
		try:
			data = r.json()
			return data["candidates"][0]["content"]["parts"][0]["text"]
		except Exception as err:
			raise GeminiError(f"Unexpected Gemini response: {r.text}") from err

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(
		self,
		prompt: str,
		system: Optional[str],
		temperature: Optional[float],
		primary_error: Exception,
	) -> str:
		messages = []
		if system:
			messages.append({"role": "system", "content": system})
		messages.append({"role": "user", "content": prompt})
		payload: Dict[str, Any] = {"model": settings.openrouter_model, "messages": messages}
		if temperature is not None:
			payload["temperature"] = temperature
		headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}",
			"Content-Type": "application/json",
		}
		try:
			r = await self._fallback_client.post(settings.openrouter_base_url, headers=headers, json=payload)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"]
		except httpx.HTTPStatusError as fallback_err:
			raise GeminiError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed",
				status_code=fallback_err.response.status_code,
			) from fallback_err
		except Exception as fallback_err:
			raise GeminiError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from fallback_err

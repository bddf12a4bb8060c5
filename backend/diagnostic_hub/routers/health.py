from fastapi import APIRouter

from ..settings import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
	return {"ok": True}


@router.get("/info")
def info():
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"stripe_configured": bool(settings.stripe_secret_key),
		"email_configured": bool(settings.resend_api_key),
	}

from __future__ import annotations
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from ..clients import get_gemini_factory
from ..gemini_client import GeminiError
from ..translation import translate_questions as translate


router = APIRouter(tags=["translate"])
_log = logging.getLogger("diagnostic_hub.translate_questions")


class TranslateRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	questions: Optional[Any] = None
	target_language: Optional[str] = Field(default=None, alias="targetLanguage")


def _status_for(err: GeminiError) -> HTTPException:
	if err.status_code == 429:
		return HTTPException(status_code=429, detail="Rate limit exceeded, please try again later")
	if err.status_code == 402:
		return HTTPException(status_code=402, detail="AI credits required")
	return HTTPException(status_code=500, detail=str(err))


@router.post("/translate-questions")
async def translate_questions(req: TranslateRequest, client_factory=Depends(get_gemini_factory)):
	if req.questions is None or not req.target_language:
		raise HTTPException(status_code=400, detail="Missing questions or targetLanguage")
	if req.target_language == "en":
		return {"translatedQuestions": req.questions}

	_log.info("Translating questions to %s", req.target_language)
	try:
		client = client_factory()
	except ValueError as err:
		raise HTTPException(status_code=500, detail=str(err))
	try:
		result = await translate(client, req.questions, req.target_language)
	except GeminiError as err:
		_log.error("Translation gateway error status=%s: %s", err.status_code, err)
		raise _status_for(err)
	except ValueError as err:
		raise HTTPException(status_code=500, detail=str(err))
	finally:
		await client.aclose()

	body = {"translatedQuestions": result.questions}
	if result.parse_error:
		body["parseError"] = True
	_log.info("Translation successful")
	return body

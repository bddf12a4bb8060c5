from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..db import get_db
from ..grading import AttemptNotFound, ResponseNotFound, ResponseUpdateError, grade_response, recompute_attempt_score
from .auth import User, require_staff


router = APIRouter(tags=["grading"])
_log = logging.getLogger("diagnostic_hub.manual_grading")


class GradeManualRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	response_id: Optional[str] = Field(default=None, alias="responseId")
	is_correct: Optional[bool] = Field(default=None, alias="isCorrect")
	attempt_id: Optional[str] = Field(default=None, alias="attemptId")


class RecomputeRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	attempt_id: Optional[str] = Field(default=None, alias="attemptId")


@router.post("/grade-manual-response")
async def grade_manual_response(req: GradeManualRequest, user: User = Depends(require_staff), db: Session = Depends(get_db)):
	if not req.response_id or req.is_correct is None or not req.attempt_id:
		raise HTTPException(status_code=400, detail="responseId, isCorrect, and attemptId are required")
	_log.info("Grading response %s as %s by %s", req.response_id, "correct" if req.is_correct else "incorrect", user.id)
	try:
		summary = grade_response(db, req.response_id, req.attempt_id, req.is_correct)
	except ResponseNotFound:
		raise HTTPException(status_code=400, detail="Response not found for this attempt")
	except AttemptNotFound:
		raise HTTPException(status_code=400, detail="Test attempt not found")
	except ResponseUpdateError:
		_log.exception("Update error response=%s", req.response_id)
		raise HTTPException(status_code=500, detail="Failed to update response")
	except Exception:
		_log.exception("Manual grading failed response=%s attempt=%s", req.response_id, req.attempt_id)
		raise HTTPException(status_code=500, detail="Failed to update attempt score")
	return {"success": True, **summary.as_dict()}


@router.post("/recompute-score")
async def recompute_score(req: RecomputeRequest, user: User = Depends(require_staff), db: Session = Depends(get_db)):
	if not req.attempt_id:
		raise HTTPException(status_code=400, detail="attemptId is required")
	try:
		summary = recompute_attempt_score(db, req.attempt_id)
	except AttemptNotFound:
		raise HTTPException(status_code=404, detail="Test attempt not found")
	except Exception:
		raise HTTPException(status_code=500, detail="Failed to update attempt score")
	return {"success": True, **summary.as_dict()}

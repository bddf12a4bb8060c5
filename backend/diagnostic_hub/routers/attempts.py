from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..db import get_db
from ..grading import submit_attempt
from ..models import PAYMENT_COMPLETED, PAYMENT_PENDING, Test, TestAttempt
from ..questions import count_questions, strip_answer_keys
from .auth import User, get_current_user


router = APIRouter(tags=["attempts"])
_log = logging.getLogger("diagnostic_hub.attempts")


class StartAttemptRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	test_id: Optional[str] = Field(default=None, alias="testId")
	grade_level: Optional[int] = Field(default=None, alias="gradeLevel")


class AttemptRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	attempt_id: Optional[str] = Field(default=None, alias="attemptId")


class SubmitTestRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	attempt_id: Optional[str] = Field(default=None, alias="attemptId")
	answers: Optional[Dict[str, Any]] = None


def load_owned_attempt(db: Session, attempt_id: str, user: User, *, allow_staff: bool = False) -> TestAttempt:
	attempt = db.get(TestAttempt, attempt_id)
	if attempt is None:
		raise HTTPException(status_code=404, detail="Test attempt not found")
	if attempt.user_id != user.id and not (allow_staff and user.is_staff):
		_log.warning("User %s tried to access attempt owned by %s", user.id, attempt.user_id)
		raise HTTPException(status_code=403, detail="Unauthorized access to test attempt")
	return attempt


@router.post("/start-attempt")
async def start_attempt(req: StartAttemptRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if not req.test_id:
		raise HTTPException(status_code=400, detail="Test ID required")
	test = db.get(Test, req.test_id)
	if test is None:
		raise HTTPException(status_code=404, detail="Test not found")
	attempt = TestAttempt(
		user_id=user.id,
		test_id=test.id,
		grade_level=req.grade_level or test.grade_level,
		payment_status=PAYMENT_PENDING if test.is_paid else PAYMENT_COMPLETED,
		amount_paid=None if test.is_paid else 0,
	)
	db.add(attempt)
	db.commit()
	_log.info("Attempt %s started by %s for test %s", attempt.id, user.id, test.id)
	return {"attemptId": attempt.id, "paymentStatus": attempt.payment_status}


@router.post("/get-test-questions")
async def get_test_questions(req: AttemptRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if not req.attempt_id:
		raise HTTPException(status_code=400, detail="Attempt ID required")
	_log.info("Fetching questions for attempt %s by user %s", req.attempt_id, user.id)
	attempt = load_owned_attempt(db, req.attempt_id, user)
	if attempt.completed_at is not None:
		raise HTTPException(status_code=400, detail="Test already completed")
	if attempt.payment_status == PAYMENT_PENDING:
		raise HTTPException(status_code=402, detail="Payment required before accessing test")
	test = db.get(Test, attempt.test_id)
	if test is None:
		raise HTTPException(status_code=404, detail="Test not found")
	questions = strip_answer_keys(test.questions)
	_log.info("Returning %s sanitized questions for test %s", count_questions(questions), test.name)
	return {
		"test": {
			"id": test.id,
			"name": test.name,
			"description": test.description,
			"duration_minutes": test.duration_minutes,
			"is_paid": test.is_paid,
			"test_type": test.test_type,
			"questions": questions,
		}
	}


@router.post("/submit-test")
async def submit_test(req: SubmitTestRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if not req.attempt_id or req.answers is None:
		raise HTTPException(status_code=400, detail="Attempt ID and answers required")
	attempt = load_owned_attempt(db, req.attempt_id, user)
	if attempt.completed_at is not None:
		raise HTTPException(status_code=400, detail="Test already graded")
	# Admins may grade without paying
	if attempt.payment_status == PAYMENT_PENDING and not user.is_admin:
		raise HTTPException(status_code=402, detail="Payment required before grading")
	test = db.get(Test, attempt.test_id)
	if test is None:
		raise HTTPException(status_code=404, detail="Test not found")
	try:
		result = submit_attempt(db, attempt, test.questions, req.answers)
	except Exception:
		_log.exception("Failed to save responses for attempt %s", attempt.id)
		raise HTTPException(status_code=500, detail="Failed to save responses")
	summary = result.summary
	return {
		"success": True,
		"score": summary.score,
		"tier": summary.tier,
		"correctAnswers": summary.correct_count,
		"totalQuestions": summary.total_graded,
		"pendingCount": summary.pending_count,
		"strengths": result.strengths,
		"weaknesses": result.weaknesses,
		"skillStats": result.skill_stats,
		"isPaid": test.is_paid,
	}

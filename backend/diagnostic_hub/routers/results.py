from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..clients import get_mailer
from ..db import get_db
from ..mailer import Mailer
from ..models import AuthUser, Certificate, Test, TestAttempt, TestResponse
from ..templating import render_template
from ..tiers import TIER_INFO, Tier
from .auth import User, get_current_user


router = APIRouter(tags=["results"])
_log = logging.getLogger("diagnostic_hub.send_test_results")


class SendResultsRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	attempt_id: Optional[str] = Field(default=None, alias="attemptId")


def results_email_html(
	db: Session,
	attempt: TestAttempt,
	*,
	student_name: str,
	test_name: str,
	certificate_url: Optional[str] = None,
) -> str:
	tier = Tier.from_label(attempt.tier)
	pending = (
		db.query(TestResponse)
		.filter(TestResponse.attempt_id == attempt.id, TestResponse.is_correct.is_(None))
		.count()
	)
	return render_template("results_email.html", {
		"student_name": student_name,
		"test_name": test_name,
		"palette": TIER_INFO[tier],
		"score": attempt.score,
		"tier_label": tier.label,
		"strengths": attempt.strengths or [],
		"weaknesses": attempt.weaknesses or [],
		"pending_count": pending,
		"certificate_url": certificate_url,
	})


@router.post("/send-test-results")
async def send_test_results(
	req: SendResultsRequest,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	mailer: Mailer = Depends(get_mailer),
):
	if not req.attempt_id:
		raise HTTPException(status_code=400, detail="Attempt ID required")
	attempt = db.get(TestAttempt, req.attempt_id)
	if attempt is None:
		raise HTTPException(status_code=404, detail="Test attempt not found")
	if attempt.user_id != user.id and not user.is_admin:
		raise HTTPException(status_code=403, detail="Unauthorized access to test attempt")
	if attempt.score is None or not attempt.tier:
		raise HTTPException(status_code=400, detail="Test attempt has not been graded")

	owner = db.get(AuthUser, attempt.user_id)
	test = db.get(Test, attempt.test_id)
	student_name = owner.full_name if owner else "Student"
	test_name = test.name if test else "Diagnostic Test"
	certificate = db.query(Certificate).filter(Certificate.attempt_id == attempt.id).first()
	html = results_email_html(
		db, attempt,
		student_name=student_name,
		test_name=test_name,
		certificate_url=certificate.certificate_url if certificate else None,
	)
	recipient = (owner.parent_email or owner.email) if owner else user.email
	sent = await mailer.send(recipient, f"Test results for {student_name}: {test_name}", html)

	attempt.email_status = "sent" if sent else "failed"
	db.add(attempt)
	db.commit()
	_log.info("Results email attempt=%s status=%s", attempt.id, attempt.email_status)
	return {"success": True, "emailSent": sent}

from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..certificates import CertificateStorage, issue_certificate
from ..clients import get_certificate_storage, get_mailer
from ..db import get_db
from ..mailer import Mailer
from ..models import AuthUser, Test, TestAttempt
from .auth import User, get_current_user
from .results import results_email_html


router = APIRouter(tags=["certificates"])
_log = logging.getLogger("diagnostic_hub.generate_certificate")


class CertificateRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	attempt_id: Optional[str] = Field(default=None, alias="attemptId")


@router.post("/generate-certificate")
async def generate_certificate(
	req: CertificateRequest,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	storage: CertificateStorage = Depends(get_certificate_storage),
	mailer: Mailer = Depends(get_mailer),
):
	if not req.attempt_id:
		raise HTTPException(status_code=400, detail="Attempt ID required")
	attempt = db.get(TestAttempt, req.attempt_id)
	if attempt is None:
		raise HTTPException(status_code=500, detail="Test attempt not found")
	if attempt.user_id != user.id and not user.is_admin:
		raise HTTPException(status_code=403, detail="Unauthorized access to test attempt")
	if attempt.score is None or not attempt.tier:
		raise HTTPException(status_code=400, detail="Test attempt has not been graded")

	owner = db.get(AuthUser, attempt.user_id)
	test = db.get(Test, attempt.test_id)
	student_name = owner.full_name if owner else "Student"
	test_name = test.name if test else "Diagnostic Test"
	try:
		url = issue_certificate(db, storage, attempt, student_name=student_name, test_name=test_name)
	except (OSError, ValueError):
		_log.exception("Certificate generation failed attempt=%s", attempt.id)
		raise HTTPException(status_code=500, detail="Failed to generate certificate")

	recipient = (owner.parent_email or owner.email) if owner else None
	if recipient:
		html = results_email_html(db, attempt, student_name=student_name, test_name=test_name, certificate_url=url)
		await mailer.send(recipient, f"Certificate for {student_name}: {test_name}", html)
	return {"success": True, "certificateUrl": url}


@router.get("/view-certificate", response_class=HTMLResponse)
async def view_certificate(
	attempt_id: Optional[str] = Query(default=None, alias="attemptId"),
	storage: CertificateStorage = Depends(get_certificate_storage),
):
	if not attempt_id:
		raise HTTPException(status_code=400, detail="attemptId is required")
	html = storage.load(attempt_id)
	if html is None:
		raise HTTPException(status_code=404, detail="Certificate not found")
	return HTMLResponse(content=html, headers={"Cache-Control": "public, max-age=3600"})

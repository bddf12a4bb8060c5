from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..certificates import format_issue_date
from ..clients import get_mailer
from ..db import get_db
from ..mailer import Mailer
from ..models import STAFF_ROLES, Invitation, utcnow
from ..settings import settings
from ..templating import render_template
from .auth import User, require_admin


router = APIRouter(tags=["invitations"])
_log = logging.getLogger("diagnostic_hub.send_invitation")


class InvitationRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	email: Optional[str] = None
	role: Optional[str] = None
	school_name: Optional[str] = Field(default=None, alias="schoolName")


def register_url(token: str) -> str:
	return f"{settings.frontend_origin.rstrip('/')}/register?invitation={token}"


@router.post("/send-invitation")
async def send_invitation(
	req: InvitationRequest,
	user: User = Depends(require_admin),
	db: Session = Depends(get_db),
	mailer: Mailer = Depends(get_mailer),
):
	email = (req.email or "").strip().lower()
	if not email or "@" not in email:
		raise HTTPException(status_code=400, detail="A valid email is required")
	if req.role not in STAFF_ROLES:
		raise HTTPException(status_code=400, detail="role must be teacher or admin")
	pending = (
		db.query(Invitation)
		.filter(
			Invitation.email == email,
			Invitation.accepted_at.is_(None),
			Invitation.expires_at > utcnow(),
		)
		.first()
	)
	if pending is not None:
		raise HTTPException(status_code=400, detail="An active invitation already exists for this email")

	invitation = Invitation(
		email=email,
		role=req.role,
		invited_by=user.id,
		school_name=(req.school_name or "").strip() or None,
	)
	db.add(invitation)
	db.commit()
	_log.info("Invitation created email=%s role=%s by=%s", email, req.role, user.id)

	url = register_url(invitation.token)
	html = render_template("invitation_email.html", {
		"role_name": invitation.role.capitalize(),
		"school_name": invitation.school_name,
		"register_url": url,
		"expires_on": format_issue_date(invitation.expires_at),
	})
	sent = await mailer.send(email, "You're invited to the Diagnostic Hub", html)
	return {
		"success": True,
		"invitation": {
			"id": invitation.id,
			"email": invitation.email,
			"role": invitation.role,
			"schoolName": invitation.school_name,
			"expiresAt": invitation.expires_at.isoformat(),
			"registerUrl": url,
		},
		"emailSent": sent,
	}

"""Certificate rendering and storage."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from sqlalchemy.orm import Session

from .models import Certificate, TestAttempt, utcnow
from .settings import settings
from .templating import render_template
from .tiers import TIER_INFO, Tier

_log = logging.getLogger("diagnostic_hub.certificates")


def format_issue_date(value: Optional[datetime]) -> str:
	value = value or utcnow()
	return f"{value:%B} {value.day}, {value.year}"


def render_certificate(
	*,
	student_name: str,
	test_name: str,
	score: Optional[float],
	tier: Tier,
	strengths: List[str],
	weaknesses: List[str],
	issued_on: Optional[datetime],
) -> str:
	return render_template("certificate.html", {
		"student_name": student_name,
		"test_name": test_name,
		"score": score,
		"tier_label": tier.label,
		"palette": TIER_INFO[tier],
		"strengths": strengths,
		"weaknesses": weaknesses,
		"issued_on": format_issue_date(issued_on),
	})


class CertificateStorage:
	"""Stores rendered certificates as ``certificate-<attemptId>.html`` files."""

	def __init__(self, root: Optional[str] = None) -> None:
		self.root = Path(root or settings.certificate_dir)

	def _path(self, attempt_id: str) -> Path:
		# attempt ids are uuid hex; reject anything that could escape the directory
		if not attempt_id.isalnum():
			raise ValueError("Invalid attempt id")
		return self.root / f"certificate-{attempt_id}.html"

	def save(self, attempt_id: str, html: str) -> Path:
		self.root.mkdir(parents=True, exist_ok=True)
		path = self._path(attempt_id)
		path.write_text(html, encoding="utf-8")
		return path

	def load(self, attempt_id: str) -> Optional[str]:
		try:
			path = self._path(attempt_id)
		except ValueError:
			return None
		if not path.exists():
			return None
		return path.read_text(encoding="utf-8")


def certificate_url(attempt_id: str) -> str:
	return f"{settings.public_base_url.rstrip('/')}/view-certificate?attemptId={attempt_id}"


def issue_certificate(
	db: Session,
	storage: CertificateStorage,
	attempt: TestAttempt,
	*,
	student_name: str,
	test_name: str,
) -> str:
	"""Render, store and record the certificate for a graded attempt; return its URL."""
	tier = Tier.from_label(attempt.tier)
	html = render_certificate(
		student_name=student_name,
		test_name=test_name,
		score=attempt.score,
		tier=tier,
		strengths=list(attempt.strengths or []),
		weaknesses=list(attempt.weaknesses or []),
		issued_on=attempt.completed_at,
	)
	storage.save(attempt.id, html)
	url = certificate_url(attempt.id)

	record = db.query(Certificate).filter(Certificate.attempt_id == attempt.id).first()
	if record is None:
		record = Certificate(attempt_id=attempt.id)
	record.student_name = student_name
	record.test_name = test_name
	record.tier = tier.label
	record.strengths = list(attempt.strengths or [])
	record.weaknesses = list(attempt.weaknesses or [])
	record.certificate_url = url
	record.issued_at = utcnow()
	db.add(record)
	try:
		db.commit()
	except Exception:
		db.rollback()
		raise
	_log.info("Certificate issued attempt=%s tier=%s", attempt.id, tier.label)
	return url

"""Scoring of test attempts: auto-grading on submission and manual regrades."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from .models import Test, TestAttempt, TestResponse, utcnow
from .questions import MULTIPLE_CHOICE, answer_key, normalize_question_type, question_index, question_topic
from .tiers import classify

_log = logging.getLogger("diagnostic_hub.grading")

# Skill bands used for strengths/weaknesses on the report, not for placement
SKILL_MASTERED = 70
SKILL_NEEDS_SUPPORT = 50


class AttemptNotFound(LookupError):
	pass


class ResponseNotFound(LookupError):
	pass


class ResponseUpdateError(RuntimeError):
	pass


@dataclass
class GradeSummary:
	score: float
	tier: str
	correct_count: int
	total_graded: int
	pending_count: int

	def as_dict(self) -> Dict[str, Any]:
		return {
			"score": self.score,
			"tier": self.tier,
			"correctCount": self.correct_count,
			"totalGraded": self.total_graded,
			"pendingCount": self.pending_count,
		}


@dataclass
class SubmissionResult:
	summary: GradeSummary
	strengths: List[str] = field(default_factory=list)
	weaknesses: List[str] = field(default_factory=list)
	skill_stats: Dict[str, Dict[str, Any]] = field(default_factory=dict)


def round_score(value: float) -> float:
	return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def summarize(outcomes: List[Optional[bool]]) -> GradeSummary:
	"""Score the graded subset of ``outcomes``; ``None`` entries are pending."""
	graded = [o for o in outcomes if o is not None]
	correct = sum(1 for o in graded if o is True)
	total = len(graded)
	score = round_score(correct / total * 100) if total else 0.0
	return GradeSummary(
		score=score,
		tier=classify(score).label,
		correct_count=correct,
		total_graded=total,
		pending_count=len(outcomes) - total,
	)


def recompute_attempt_score(db: Session, attempt_id: str) -> GradeSummary:
	"""Re-read every response of the attempt and rewrite its aggregate fields.

	Once nothing is pending the strengths and weaknesses are rebuilt from
	the stored responses as well. Safe to call repeatedly; the result depends
	only on the stored responses.
	"""
	attempt = db.get(TestAttempt, attempt_id)
	if attempt is None:
		raise AttemptNotFound(attempt_id)
	rows = (
		db.query(TestResponse.question_id, TestResponse.is_correct)
		.filter(TestResponse.attempt_id == attempt_id)
		.all()
	)
	summary = summarize([row.is_correct for row in rows])
	attempt.score = summary.score
	attempt.tier = summary.tier
	attempt.correct_answers = summary.correct_count
	attempt.total_questions = summary.total_graded
	if summary.pending_count == 0:
		test = db.get(Test, attempt.test_id)
		bank = question_index(test.questions) if test else {}
		skill_stats: Dict[str, Dict[str, Any]] = {}
		for row in rows:
			question = bank.get(row.question_id)
			skill = question_topic(question) if question else "General"
			_tally(skill_stats, skill, row.is_correct)
		strengths, weaknesses = _skill_bands(skill_stats)
		attempt.strengths = strengths[:5]
		attempt.weaknesses = weaknesses[:5]
	db.add(attempt)
	try:
		db.commit()
	except Exception:
		db.rollback()
		_log.exception("Attempt score update failed attempt=%s", attempt_id)
		raise
	_log.info(
		"Updated attempt %s: %s/%s = %s%% (%s), %s pending",
		attempt_id, summary.correct_count, summary.total_graded, summary.score, summary.tier, summary.pending_count,
	)
	return summary


def grade_response(db: Session, response_id: str, attempt_id: str, is_correct: bool) -> GradeSummary:
	response = (
		db.query(TestResponse)
		.filter(TestResponse.id == response_id, TestResponse.attempt_id == attempt_id)
		.first()
	)
	if response is None:
		raise ResponseNotFound(response_id)
	response.is_correct = bool(is_correct)
	db.add(response)
	# The response is committed on its own; a failed recompute can be retried
	try:
		db.commit()
	except Exception as err:
		db.rollback()
		raise ResponseUpdateError(response_id) from err
	return recompute_attempt_score(db, attempt_id)


def _tally(skill_stats: Dict[str, Dict[str, Any]], skill: str, is_correct: Optional[bool]) -> None:
	stats = skill_stats.setdefault(skill, {"total": 0, "graded": 0, "correct": 0, "percentage": None})
	stats["total"] += 1
	if is_correct is not None:
		stats["graded"] += 1
		stats["correct"] += int(is_correct)


def _skill_bands(skill_stats: Dict[str, Dict[str, Any]]) -> tuple[List[str], List[str]]:
	mastered: List[str] = []
	needs_support: List[str] = []
	for skill, stats in skill_stats.items():
		graded = stats["graded"]
		if not graded:
			continue
		pct = round(stats["correct"] / graded * 100)
		stats["percentage"] = pct
		if pct >= SKILL_MASTERED:
			mastered.append(skill)
		elif pct < SKILL_NEEDS_SUPPORT:
			needs_support.append(skill)
	return sorted(mastered), sorted(needs_support)


def submit_attempt(db: Session, attempt: TestAttempt, questions: Any, answers: Mapping[str, Any]) -> SubmissionResult:
	"""Store the student's answers, auto-grade multiple choice and score the attempt.

	Questions without an answer key or of an open type stay ungraded (pending
	manual review) and do not count toward the score until a grader marks them.
	"""
	bank = question_index(questions)
	skill_stats: Dict[str, Dict[str, Any]] = {}
	outcomes: List[Optional[bool]] = []
	for question_id, answer in answers.items():
		question = bank.get(str(question_id))
		if question is None:
			_log.warning("Question %s not found in test for attempt %s", question_id, attempt.id)
			continue
		key = answer_key(question)
		is_correct: Optional[bool] = None
		if normalize_question_type(question.get("type")) == MULTIPLE_CHOICE and key is not None:
			is_correct = str(answer).strip() == key.strip()
		_tally(skill_stats, question_topic(question), is_correct)
		outcomes.append(is_correct)
		db.add(TestResponse(
			attempt_id=attempt.id,
			question_id=str(question_id),
			answer="" if answer is None else str(answer),
			is_correct=is_correct,
		))

	summary = summarize(outcomes)
	strengths, weaknesses = _skill_bands(skill_stats)
	attempt.score = summary.score
	attempt.tier = summary.tier
	attempt.correct_answers = summary.correct_count
	attempt.total_questions = summary.total_graded
	attempt.strengths = strengths[:5]
	attempt.weaknesses = weaknesses[:5]
	attempt.completed_at = utcnow()
	db.add(attempt)
	try:
		db.commit()
	except Exception:
		db.rollback()
		raise
	_log.info(
		"Grading complete attempt=%s: %s/%s = %s%% (%s), %s pending",
		attempt.id, summary.correct_count, summary.total_graded, summary.score, summary.tier, summary.pending_count,
	)
	return SubmissionResult(
		summary=summary,
		strengths=strengths[:5],
		weaknesses=weaknesses[:5],
		skill_stats=skill_stats,
	)

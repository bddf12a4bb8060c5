import pytest

from diagnostic_hub.grading import (
	AttemptNotFound,
	ResponseNotFound,
	grade_response,
	recompute_attempt_score,
	round_score,
	submit_attempt,
	summarize,
)
from diagnostic_hub.models import PAYMENT_COMPLETED, TestResponse


def test_summarize_ignores_pending_responses():
	outcomes = [True] * 12 + [None] * 8
	summary = summarize(outcomes)
	assert summary.score == 100.0
	assert summary.tier == "Tier 1"
	assert summary.pending_count == 8
	assert summary.total_graded == 12


def test_summarize_with_nothing_graded_scores_zero():
	summary = summarize([None, None])
	assert summary.score == 0.0
	assert summary.tier == "Tier 3"
	assert summary.pending_count == 2


def test_round_score_rounds_half_up():
	assert round_score(2 / 3 * 100) == 66.67
	assert round_score(0.125) == 0.13


def test_threshold_scores_land_in_the_higher_tier():
	assert summarize([True] * 17 + [False] * 3).tier == "Tier 1"
	assert summarize([True, True, False]).tier == "Tier 2"


def _seed_responses(db, attempt, outcomes):
	rows = []
	for i, outcome in enumerate(outcomes):
		row = TestResponse(attempt_id=attempt.id, question_id=f"q{i}", answer="x", is_correct=outcome)
		db.add(row)
		rows.append(row)
	db.commit()
	return rows


def test_recompute_matches_worked_example(db, make_user, make_test, make_attempt):
	user = make_user()
	attempt = make_attempt(user, make_test(), payment_status=PAYMENT_COMPLETED)
	_seed_responses(db, attempt, [True] * 12 + [None] * 8)
	summary = recompute_attempt_score(db, attempt.id)
	assert summary.as_dict() == {"score": 100.0, "tier": "Tier 1", "correctCount": 12, "totalGraded": 12, "pendingCount": 8}
	db.refresh(attempt)
	assert attempt.score == 100.0
	assert attempt.tier == "Tier 1"
	assert attempt.total_questions == 12


def test_recompute_is_idempotent(db, make_user, make_test, make_attempt):
	user = make_user()
	attempt = make_attempt(user, make_test(), payment_status=PAYMENT_COMPLETED)
	_seed_responses(db, attempt, [True, False, True, None])
	first = recompute_attempt_score(db, attempt.id)
	second = recompute_attempt_score(db, attempt.id)
	assert first == second


def test_recompute_unknown_attempt(db):
	with pytest.raises(AttemptNotFound):
		recompute_attempt_score(db, "missing")


def test_grade_response_updates_response_and_score(db, make_user, make_test, make_attempt):
	user = make_user()
	attempt = make_attempt(user, make_test(), payment_status=PAYMENT_COMPLETED)
	rows = _seed_responses(db, attempt, [True, False, None])
	summary = grade_response(db, rows[2].id, attempt.id, True)
	assert summary.correct_count == 2
	assert summary.total_graded == 3
	assert summary.pending_count == 0
	assert summary.score == 66.67
	assert summary.tier == "Tier 2"


def test_grade_response_must_belong_to_attempt(db, make_user, make_test, make_attempt):
	user = make_user()
	test = make_test()
	attempt = make_attempt(user, test, payment_status=PAYMENT_COMPLETED)
	other = make_attempt(user, test, payment_status=PAYMENT_COMPLETED)
	rows = _seed_responses(db, attempt, [None])
	with pytest.raises(ResponseNotFound):
		grade_response(db, rows[0].id, other.id, True)


def test_submit_attempt_auto_grades_multiple_choice(db, make_user, make_test, make_attempt):
	user = make_user()
	test = make_test()
	attempt = make_attempt(user, test, payment_status=PAYMENT_COMPLETED)
	result = submit_attempt(db, attempt, test.questions, {"q1": "A", "q2": "A", "q3": "A", "q4": "I rounded", "zz": "?"})
	assert result.summary.correct_count == 2
	assert result.summary.total_graded == 3
	assert result.summary.pending_count == 1
	assert result.summary.score == 66.67
	assert "Place Value" in result.strengths
	assert result.skill_stats["Fractions"]["percentage"] == 50
	assert result.skill_stats["Explanation"]["graded"] == 0
	stored = db.query(TestResponse).filter(TestResponse.attempt_id == attempt.id).all()
	assert len(stored) == 4
	assert [r.is_correct for r in stored if r.question_id == "q4"] == [None]
	assert attempt.completed_at is not None


WRITING_QUESTIONS = [
	{"id": "m1", "type": "multiple_choice", "topic": "fractions", "question": "1/2 + 1/2?", "correct_answer": "A"},
	{"id": "w1", "type": "short_answer", "topic": "writing", "question": "Describe a fraction."},
	{"id": "w2", "type": "short_answer", "topic": "writing", "question": "Explain your method."},
]


def _submitted_writing_attempt(db, make_user, make_test, make_attempt):
	user = make_user()
	test = make_test(questions=WRITING_QUESTIONS)
	attempt = make_attempt(user, test, payment_status=PAYMENT_COMPLETED)
	submit_attempt(db, attempt, test.questions, {"m1": "A", "w1": "A part of a whole", "w2": "I drew it"})
	responses = {
		r.question_id: r
		for r in db.query(TestResponse).filter(TestResponse.attempt_id == attempt.id).all()
	}
	return attempt, responses


def test_skill_bands_rebuilt_once_manual_grading_finishes(db, make_user, make_test, make_attempt):
	attempt, responses = _submitted_writing_attempt(db, make_user, make_test, make_attempt)
	assert attempt.strengths == ["Fractions"]

	grade_response(db, responses["w1"].id, attempt.id, True)
	db.refresh(attempt)
	# still one pending, bands untouched
	assert attempt.strengths == ["Fractions"]

	summary = grade_response(db, responses["w2"].id, attempt.id, True)
	db.refresh(attempt)
	assert summary.score == 100.0
	assert summary.tier == "Tier 1"
	assert attempt.strengths == ["Fractions", "Writing"]
	assert attempt.weaknesses == []


def test_manual_grades_can_produce_weaknesses(db, make_user, make_test, make_attempt):
	attempt, responses = _submitted_writing_attempt(db, make_user, make_test, make_attempt)
	grade_response(db, responses["w1"].id, attempt.id, False)
	grade_response(db, responses["w2"].id, attempt.id, False)
	db.refresh(attempt)
	assert attempt.strengths == ["Fractions"]
	assert attempt.weaknesses == ["Writing"]
	assert attempt.tier == "Tier 3"

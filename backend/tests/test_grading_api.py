from diagnostic_hub.models import PAYMENT_COMPLETED, TestResponse


def _attempt_with_responses(db, make_user, make_test, make_attempt, outcomes):
	student = make_user()
	attempt = make_attempt(student, make_test(), payment_status=PAYMENT_COMPLETED)
	rows = [TestResponse(attempt_id=attempt.id, question_id=f"q{i}", answer="x", is_correct=o) for i, o in enumerate(outcomes)]
	db.add_all(rows)
	db.commit()
	return attempt, rows


def test_teacher_grades_pending_response(client, db, make_user, make_test, make_attempt, auth_headers):
	attempt, rows = _attempt_with_responses(db, make_user, make_test, make_attempt, [True, True, False, None])
	teacher = make_user(roles=("teacher",))
	r = client.post(
		"/grade-manual-response",
		json={"responseId": rows[3].id, "isCorrect": True, "attemptId": attempt.id},
		headers=auth_headers(teacher),
	)
	assert r.status_code == 200
	assert r.json() == {"success": True, "score": 75.0, "tier": "Tier 2", "correctCount": 3, "totalGraded": 4, "pendingCount": 0}


def test_isCorrect_false_is_a_valid_grade(client, db, make_user, make_test, make_attempt, auth_headers):
	attempt, rows = _attempt_with_responses(db, make_user, make_test, make_attempt, [True, None])
	admin = make_user(roles=("admin",))
	r = client.post(
		"/grade-manual-response",
		json={"responseId": rows[1].id, "isCorrect": False, "attemptId": attempt.id},
		headers=auth_headers(admin),
	)
	assert r.status_code == 200
	assert r.json()["score"] == 50.0


def test_students_cannot_grade(client, db, make_user, make_test, make_attempt, auth_headers):
	attempt, rows = _attempt_with_responses(db, make_user, make_test, make_attempt, [None])
	r = client.post(
		"/grade-manual-response",
		json={"responseId": rows[0].id, "isCorrect": True, "attemptId": attempt.id},
		headers=auth_headers(make_user()),
	)
	assert r.status_code == 403
	assert r.json() == {"error": "Admin or teacher access required"}


def test_grade_missing_fields(client, make_user, auth_headers):
	r = client.post("/grade-manual-response", json={"responseId": "r"}, headers=auth_headers(make_user(roles=("teacher",))))
	assert r.status_code == 400


def test_grade_unknown_response(client, db, make_user, make_test, make_attempt, auth_headers):
	attempt, _ = _attempt_with_responses(db, make_user, make_test, make_attempt, [None])
	r = client.post(
		"/grade-manual-response",
		json={"responseId": "missing", "isCorrect": True, "attemptId": attempt.id},
		headers=auth_headers(make_user(roles=("teacher",))),
	)
	assert r.status_code == 400


def test_recompute_score_endpoint(client, db, make_user, make_test, make_attempt, auth_headers):
	attempt, _ = _attempt_with_responses(db, make_user, make_test, make_attempt, [True] * 12 + [None] * 8)
	headers = auth_headers(make_user(roles=("teacher",)))
	r = client.post("/recompute-score", json={"attemptId": attempt.id}, headers=headers)
	assert r.json() == {"success": True, "score": 100.0, "tier": "Tier 1", "correctCount": 12, "totalGraded": 12, "pendingCount": 8}
	r = client.post("/recompute-score", json={"attemptId": "missing"}, headers=headers)
	assert r.status_code == 404


def test_regrading_with_same_value_is_idempotent(client, db, make_user, make_test, make_attempt, auth_headers):
	attempt, rows = _attempt_with_responses(db, make_user, make_test, make_attempt, [True, False, None])
	headers = auth_headers(make_user(roles=("teacher",)))
	payload = {"responseId": rows[2].id, "isCorrect": True, "attemptId": attempt.id}
	first = client.post("/grade-manual-response", json=payload, headers=headers)
	second = client.post("/grade-manual-response", json=payload, headers=headers)
	assert first.status_code == 200
	assert second.status_code == 200
	assert first.json() == second.json()
	assert second.json()["score"] == 66.67

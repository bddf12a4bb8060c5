from diagnostic_hub.models import PAYMENT_COMPLETED, PAYMENT_PENDING, utcnow


def test_start_attempt_for_paid_and_free_tests(client, make_user, make_test, auth_headers):
	user = make_user()
	headers = auth_headers(user)
	paid = client.post("/start-attempt", json={"testId": make_test().id}, headers=headers).json()
	free = client.post("/start-attempt", json={"testId": make_test(is_paid=False).id}, headers=headers).json()
	assert paid["paymentStatus"] == PAYMENT_PENDING
	assert free["paymentStatus"] == PAYMENT_COMPLETED


def test_start_attempt_unknown_test(client, make_user, auth_headers):
	r = client.post("/start-attempt", json={"testId": "nope"}, headers=auth_headers(make_user()))
	assert r.status_code == 404


def test_questions_are_sanitised(client, make_user, make_test, make_attempt, auth_headers):
	user = make_user()
	attempt = make_attempt(user, make_test(), payment_status=PAYMENT_COMPLETED)
	r = client.post("/get-test-questions", json={"attemptId": attempt.id}, headers=auth_headers(user))
	assert r.status_code == 200
	body = r.json()["test"]
	assert body["name"] == "Grade 5 Math Diagnostic"
	assert "correct_answer" not in r.text
	assert "correctAnswer" not in r.text
	assert body["questions"][0]["questions"][0]["id"] == "q1"


def test_questions_require_payment(client, make_user, make_test, make_attempt, auth_headers):
	user = make_user()
	attempt = make_attempt(user, make_test())
	r = client.post("/get-test-questions", json={"attemptId": attempt.id}, headers=auth_headers(user))
	assert r.status_code == 402
	assert r.json() == {"error": "Payment required before accessing test"}


def test_questions_for_someone_elses_attempt(client, make_user, make_test, make_attempt, auth_headers):
	owner, other = make_user(), make_user()
	attempt = make_attempt(owner, make_test(), payment_status=PAYMENT_COMPLETED)
	r = client.post("/get-test-questions", json={"attemptId": attempt.id}, headers=auth_headers(other))
	assert r.status_code == 403


def test_questions_after_completion(client, make_user, make_test, make_attempt, auth_headers):
	user = make_user()
	attempt = make_attempt(user, make_test(), payment_status=PAYMENT_COMPLETED, completed_at=utcnow())
	r = client.post("/get-test-questions", json={"attemptId": attempt.id}, headers=auth_headers(user))
	assert r.status_code == 400
	assert r.json() == {"error": "Test already completed"}


def test_questions_missing_attempt_id(client, make_user, auth_headers):
	r = client.post("/get-test-questions", json={}, headers=auth_headers(make_user()))
	assert r.status_code == 400


def test_questions_unknown_attempt(client, make_user, auth_headers):
	r = client.post("/get-test-questions", json={"attemptId": "missing"}, headers=auth_headers(make_user()))
	assert r.status_code == 404


def test_submit_scores_attempt(client, make_user, make_test, make_attempt, auth_headers):
	user = make_user()
	attempt = make_attempt(user, make_test(), payment_status=PAYMENT_COMPLETED)
	r = client.post(
		"/submit-test",
		json={"attemptId": attempt.id, "answers": {"q1": "A", "q2": "B", "q3": "A", "q4": "Rounded both numbers"}},
		headers=auth_headers(user),
	)
	assert r.status_code == 200
	body = r.json()
	assert body["success"] is True
	assert body["score"] == 100.0
	assert body["tier"] == "Tier 1"
	assert body["correctAnswers"] == 3
	assert body["totalQuestions"] == 3
	assert body["pendingCount"] == 1


def test_submit_twice_is_refused(client, make_user, make_test, make_attempt, auth_headers):
	user = make_user()
	headers = auth_headers(user)
	attempt = make_attempt(user, make_test(), payment_status=PAYMENT_COMPLETED)
	client.post("/submit-test", json={"attemptId": attempt.id, "answers": {"q1": "A"}}, headers=headers)
	r = client.post("/submit-test", json={"attemptId": attempt.id, "answers": {"q1": "B"}}, headers=headers)
	assert r.status_code == 400


def test_submit_unpaid_requires_admin(client, make_user, make_test, make_attempt, auth_headers):
	student = make_user()
	admin = make_user(roles=("admin",))
	test = make_test()
	attempt = make_attempt(student, test)
	r = client.post("/submit-test", json={"attemptId": attempt.id, "answers": {"q1": "A"}}, headers=auth_headers(student))
	assert r.status_code == 402
	own = make_attempt(admin, test)
	r = client.post("/submit-test", json={"attemptId": own.id, "answers": {"q1": "A"}}, headers=auth_headers(admin))
	assert r.status_code == 200


def test_submit_requires_answers(client, make_user, make_test, make_attempt, auth_headers):
	user = make_user()
	attempt = make_attempt(user, make_test(), payment_status=PAYMENT_COMPLETED)
	r = client.post("/submit-test", json={"attemptId": attempt.id}, headers=auth_headers(user))
	assert r.status_code == 400


def test_admin_still_pays_before_reading_questions(client, make_user, make_test, make_attempt, auth_headers):
	admin = make_user(roles=("admin",))
	attempt = make_attempt(admin, make_test())
	r = client.post("/get-test-questions", json={"attemptId": attempt.id}, headers=auth_headers(admin))
	assert r.status_code == 402

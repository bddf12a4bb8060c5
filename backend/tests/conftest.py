import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from diagnostic_hub.certificates import CertificateStorage
from diagnostic_hub.clients import get_certificate_storage, get_gemini_factory, get_mailer, get_stripe_client
from diagnostic_hub.db import Base, enable_sqlite_foreign_keys, get_db
from diagnostic_hub.main import app
from diagnostic_hub.models import PAYMENT_PENDING, AuthUser, Test, TestAttempt, UserRole
from diagnostic_hub.routers.auth import open_session


SAMPLE_QUESTIONS = [
	{
		"name": "Number Sense",
		"questions": [
			{"id": "q1", "type": "multiple_choice", "topic": "fractions", "question": "1/2 + 1/4?", "options": ["A. 3/4", "B. 1/6"], "correct_answer": "A"},
			{"id": "q2", "type": "multiple_choice", "topic": "fractions", "question": "2/3 of 9?", "options": ["A. 3", "B. 6"], "correct_answer": "B"},
			{"id": "q3", "type": "multiple_choice", "topic": "place_value", "question": "Tens digit of 472?", "options": ["A. 7", "B. 4"], "correctAnswer": "A"},
		],
	},
	{
		"name": "Writing",
		"questions": [
			{"id": "q4", "type": "short_answer", "topic": "explanation", "question": "Explain how you estimated."},
		],
	},
]


class FakeStripe:
	def __init__(self):
		self.created = []
		self.session = {}
		self.customer_id = None
		self.error = None

	async def find_customer_id(self, email):
		return self.customer_id

	async def create_checkout_session(self, params):
		if self.error:
			raise self.error
		self.created.append(params)
		return {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

	async def retrieve_checkout_session(self, session_id):
		if self.error:
			raise self.error
		return self.session

	async def aclose(self):
		pass


class FakeMailer:
	def __init__(self):
		self.sent = []
		self.result = True

	@property
	def configured(self):
		return True

	async def send(self, to, subject, html):
		self.sent.append({"to": to, "subject": subject, "html": html})
		return self.result

	async def aclose(self):
		pass


class FakeGemini:
	def __init__(self):
		self.prompts = []
		self.reply = "[]"
		self.error = None
		self.closed = False

	async def generate(self, prompt, *, system=None, temperature=None):
		self.prompts.append(prompt)
		if self.error:
			raise self.error
		return self.reply

	async def aclose(self):
		self.closed = True


@pytest.fixture
def db():
	engine = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
		future=True,
	)
	enable_sqlite_foreign_keys(engine)
	Base.metadata.create_all(bind=engine)
	session = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)()
	try:
		yield session
	finally:
		session.close()
		engine.dispose()


@pytest.fixture
def stripe():
	return FakeStripe()


@pytest.fixture
def mailer():
	return FakeMailer()


@pytest.fixture
def gemini():
	return FakeGemini()


@pytest.fixture
def storage(tmp_path):
	return CertificateStorage(str(tmp_path / "certificates"))


@pytest.fixture
def client(db, stripe, mailer, gemini, storage):
	def override_get_db():
		yield db

	app.dependency_overrides[get_db] = override_get_db
	app.dependency_overrides[get_stripe_client] = lambda: stripe
	app.dependency_overrides[get_mailer] = lambda: mailer
	app.dependency_overrides[get_gemini_factory] = lambda: (lambda: gemini)
	app.dependency_overrides[get_certificate_storage] = lambda: storage
	try:
		yield TestClient(app)
	finally:
		app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
	counter = {"n": 0}

	def _make(roles=(), full_name="Ada Student", parent_email=None, username=None):
		counter["n"] += 1
		name = username or f"user{counter['n']}"
		row = AuthUser(
			username=name,
			email=f"{name}@example.com",
			full_name=full_name,
			parent_email=parent_email,
			password_hash="not-a-real-hash",
		)
		db.add(row)
		db.flush()
		for role in roles:
			db.add(UserRole(user_id=row.id, role=role))
		db.commit()
		return row

	return _make


@pytest.fixture
def auth_headers(db):
	def _headers(user):
		return {"Authorization": f"Bearer {open_session(db, user.id)}"}

	return _headers


@pytest.fixture
def make_test(db):
	def _make(questions=None, is_paid=True, grade_level=5, name="Grade 5 Math Diagnostic"):
		row = Test(
			name=name,
			description="Placement diagnostic",
			test_type="math",
			grade_level=grade_level,
			is_paid=is_paid,
			questions=SAMPLE_QUESTIONS if questions is None else questions,
		)
		db.add(row)
		db.commit()
		return row

	return _make


@pytest.fixture
def make_attempt(db):
	def _make(user, test, payment_status=PAYMENT_PENDING, **fields):
		row = TestAttempt(
			user_id=user.id,
			test_id=test.id,
			grade_level=fields.pop("grade_level", test.grade_level),
			payment_status=payment_status,
			**fields,
		)
		db.add(row)
		db.commit()
		return row

	return _make

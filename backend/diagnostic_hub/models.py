from __future__ import annotations
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from sqlalchemy import (
	JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint,
)
from .db import Base


PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"

ROLE_ADMIN = "admin"
ROLE_TEACHER = "teacher"
STAFF_ROLES = (ROLE_ADMIN, ROLE_TEACHER)


def utcnow() -> datetime:
	# Stored naive; every timestamp in the database is UTC
	return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
	return uuid.uuid4().hex


def _invitation_expiry() -> datetime:
	return utcnow() + timedelta(days=7)


class AuthUser(Base):
	__tablename__ = "auth_users"
	id = Column(String(32), primary_key=True, default=_new_id)
	username = Column(String(128), unique=True, index=True, nullable=False)
	email = Column(String(256), nullable=False)
	full_name = Column(String(256), nullable=False, default="Student")
	parent_email = Column(String(256), nullable=True)
	password_hash = Column(String(256), nullable=False)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# JWT jti; deleting the row revokes the token
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(32), ForeignKey("auth_users.id"), index=True, nullable=False)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=utcnow, nullable=False)


class UserRole(Base):
	__tablename__ = "user_roles"
	__table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(32), ForeignKey("auth_users.id"), index=True, nullable=False)
	role = Column(String(16), nullable=False)
	created_at = Column(DateTime, default=utcnow, nullable=False)


class UserPreference(Base):
	__tablename__ = "user_preferences"
	__table_args__ = (UniqueConstraint("user_id", "key", name="uq_user_preferences_user_key"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(32), ForeignKey("auth_users.id"), index=True, nullable=False)
	key = Column(String(64), nullable=False)
	value = Column(Text, nullable=True)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Test(Base):
	__tablename__ = "tests"
	# Not a pytest test class
	__test__ = False
	id = Column(String(32), primary_key=True, default=_new_id)
	name = Column(String(256), nullable=False)
	description = Column(Text, nullable=True)
	test_type = Column(String(16), nullable=False, default="math")  # 'math' | 'ela'
	grade_level = Column(Integer, nullable=True)
	duration_minutes = Column(Integer, nullable=False, default=60)
	is_paid = Column(Boolean, nullable=False, default=True)
	questions = Column(JSON, nullable=False, default=list)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class TestAttempt(Base):
	__tablename__ = "test_attempts"
	__test__ = False
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), ForeignKey("auth_users.id"), index=True, nullable=False)
	test_id = Column(String(32), ForeignKey("tests.id"), index=True, nullable=False)
	grade_level = Column(Integer, nullable=True)
	payment_status = Column(String(16), nullable=False, default=PAYMENT_PENDING)
	amount_paid = Column(Float, nullable=True)
	# score and tier are written together by grading
	score = Column(Float, nullable=True)
	tier = Column(String(16), nullable=True)
	correct_answers = Column(Integer, nullable=True)
	total_questions = Column(Integer, nullable=True)
	strengths = Column(JSON, nullable=True)
	weaknesses = Column(JSON, nullable=True)
	email_status = Column(String(16), nullable=True)
	started_at = Column(DateTime, default=utcnow, nullable=False)
	completed_at = Column(DateTime, nullable=True)


class TestResponse(Base):
	__tablename__ = "test_responses"
	__test__ = False
	id = Column(String(32), primary_key=True, default=_new_id)
	attempt_id = Column(String(32), ForeignKey("test_attempts.id"), index=True, nullable=False)
	question_id = Column(String(128), nullable=False)
	answer = Column(Text, nullable=False, default="")
	# None until graded
	is_correct = Column(Boolean, nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)


class Coupon(Base):
	__tablename__ = "coupons"
	id = Column(String(32), primary_key=True, default=_new_id)
	code = Column(String(64), unique=True, index=True, nullable=False)
	max_uses = Column(Integer, nullable=False, default=1)
	current_uses = Column(Integer, nullable=False, default=0)
	discount_amount = Column(Float, nullable=True)
	expires_at = Column(DateTime, nullable=True)
	is_active = Column(Boolean, nullable=False, default=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)


class CouponRedemption(Base):
	__tablename__ = "coupon_redemptions"
	# One redemption per (coupon, user); concurrent redeemers race on this constraint
	__table_args__ = (UniqueConstraint("coupon_id", "user_id", name="uq_coupon_redemptions_coupon_user"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	coupon_id = Column(String(32), ForeignKey("coupons.id"), index=True, nullable=False)
	user_id = Column(String(32), ForeignKey("auth_users.id"), index=True, nullable=False)
	attempt_id = Column(String(32), ForeignKey("test_attempts.id"), nullable=False)
	redeemed_at = Column(DateTime, default=utcnow, nullable=False)


class Payment(Base):
	__tablename__ = "payments"
	id = Column(Integer, primary_key=True, autoincrement=True)
	attempt_id = Column(String(32), ForeignKey("test_attempts.id"), index=True, nullable=True)
	amount = Column(Float, nullable=False)
	currency = Column(String(8), nullable=False, default="usd")
	status = Column(String(16), nullable=False)
	payment_intent_id = Column(String(128), nullable=True)
	# Set once the single-use coupon of a bundle purchase has been issued
	bundle_coupon_code = Column(String(64), nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)


class Certificate(Base):
	__tablename__ = "certificates"
	id = Column(Integer, primary_key=True, autoincrement=True)
	attempt_id = Column(String(32), ForeignKey("test_attempts.id"), unique=True, nullable=False)
	student_name = Column(String(256), nullable=False)
	test_name = Column(String(256), nullable=False)
	tier = Column(String(16), nullable=False)
	strengths = Column(JSON, nullable=False, default=list)
	weaknesses = Column(JSON, nullable=False, default=list)
	certificate_url = Column(String(512), nullable=True)
	issued_at = Column(DateTime, default=utcnow, nullable=False)


class Invitation(Base):
	__tablename__ = "invitations"
	id = Column(Integer, primary_key=True, autoincrement=True)
	email = Column(String(256), index=True, nullable=False)
	role = Column(String(16), nullable=False)
	token = Column(String(64), unique=True, nullable=False, default=lambda: secrets.token_urlsafe(24))
	invited_by = Column(String(32), ForeignKey("auth_users.id"), nullable=False)
	school_name = Column(String(256), nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	expires_at = Column(DateTime, default=_invitation_expiry, nullable=False)
	accepted_at = Column(DateTime, nullable=True)

"""Coupon redemption: validate a discount code and waive payment for one attempt."""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import PAYMENT_COMPLETED, Coupon, CouponRedemption, Payment, TestAttempt, utcnow

_log = logging.getLogger("diagnostic_hub.coupons")

MSG_INVALID = "Invalid or expired coupon code"
MSG_EXPIRED = "This coupon has expired"
MSG_LIMIT_REACHED = "This coupon has reached its maximum usage limit"
MSG_ALREADY_USED = "You have already used this coupon"
MSG_ALREADY_PAID = "This test has already been paid for"
MSG_SUCCESS = "Coupon applied successfully! Your test is now free."

BUNDLE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


class CouponRejected(Exception):
	"""Expected business-rule rejection; reported to the client as success=false."""

	def __init__(self, message: str) -> None:
		super().__init__(message)
		self.message = message


class InvalidAttempt(Exception):
	pass


@dataclass
class RedemptionPlan:
	coupon_id: str
	attempt_id: str
	user_id: str


def normalize_code(code: str) -> str:
	return (code or "").strip().upper()


def validate_redemption(db: Session, code: str, attempt_id: str, user_id: str) -> RedemptionPlan:
	"""Run the read-only checks in order; raise on the first one that fails."""
	coupon = (
		db.query(Coupon)
		.filter(Coupon.code == normalize_code(code), Coupon.is_active.is_(True))
		.first()
	)
	if coupon is None:
		_log.info("Invalid coupon code=%s", normalize_code(code))
		raise CouponRejected(MSG_INVALID)
	if coupon.expires_at is not None and coupon.expires_at < utcnow():
		_log.info("Coupon expired expires_at=%s", coupon.expires_at)
		raise CouponRejected(MSG_EXPIRED)
	_log.info("Coupon found couponId=%s currentUses=%s maxUses=%s", coupon.id, coupon.current_uses, coupon.max_uses)
	if coupon.current_uses >= coupon.max_uses:
		raise CouponRejected(MSG_LIMIT_REACHED)
	prior = (
		db.query(CouponRedemption.id)
		.filter(CouponRedemption.coupon_id == coupon.id, CouponRedemption.user_id == user_id)
		.first()
	)
	if prior is not None:
		raise CouponRejected(MSG_ALREADY_USED)
	attempt = (
		db.query(TestAttempt)
		.filter(TestAttempt.id == attempt_id, TestAttempt.user_id == user_id)
		.first()
	)
	if attempt is None:
		raise InvalidAttempt("Invalid test attempt")
	if attempt.payment_status == PAYMENT_COMPLETED:
		raise CouponRejected(MSG_ALREADY_PAID)
	return RedemptionPlan(coupon_id=coupon.id, attempt_id=attempt.id, user_id=user_id)


def apply_redemption(db: Session, plan: RedemptionPlan) -> None:
	"""Record the redemption, consume one use and unlock the attempt as one unit.

	Each write re-checks its own precondition in SQL, so a request that passed
	validation on stale data is rolled back here instead of over-consuming.
	"""
	try:
		db.add(CouponRedemption(coupon_id=plan.coupon_id, user_id=plan.user_id, attempt_id=plan.attempt_id))
		try:
			db.flush()
		except IntegrityError:
			raise CouponRejected(MSG_ALREADY_USED)

		claimed = db.execute(
			update(Coupon)
			.where(Coupon.id == plan.coupon_id, Coupon.current_uses < Coupon.max_uses)
			.values(current_uses=Coupon.current_uses + 1)
			.execution_options(synchronize_session=False)
		)
		if claimed.rowcount != 1:
			raise CouponRejected(MSG_LIMIT_REACHED)

		unlocked = db.execute(
			update(TestAttempt)
			.where(
				TestAttempt.id == plan.attempt_id,
				TestAttempt.user_id == plan.user_id,
				TestAttempt.payment_status != PAYMENT_COMPLETED,
			)
			.values(payment_status=PAYMENT_COMPLETED, amount_paid=0)
			.execution_options(synchronize_session=False)
		)
		if unlocked.rowcount != 1:
			raise CouponRejected(MSG_ALREADY_PAID)
		db.commit()
	except Exception:
		db.rollback()
		raise
	# Rows touched by the bulk updates above
	db.expire_all()


def redeem_coupon(db: Session, code: str, attempt_id: str, user_id: str) -> str:
	plan = validate_redemption(db, code, attempt_id, user_id)
	apply_redemption(db, plan)
	_log.info("Coupon redeemed successfully couponId=%s attempt=%s", plan.coupon_id, plan.attempt_id)
	return MSG_SUCCESS


def generate_bundle_code() -> str:
	return "BNDL-" + "".join(secrets.choice(BUNDLE_CODE_ALPHABET) for _ in range(4))


def _add_bundle_coupon(db: Session, code: str, payment: Optional[Payment]) -> None:
	db.add(Coupon(code=code, max_uses=1, current_uses=0, is_active=True))
	if payment is not None:
		payment.bundle_coupon_code = code
		db.add(payment)


def create_bundle_coupon(db: Session, payment: Optional[Payment] = None) -> str:
	"""Issue a single-use coupon for the second test of a bundle purchase.

	When ``payment`` is given the code is recorded on it in the same commit,
	so a later verification of that payment can tell the coupon was issued.
	"""
	code = generate_bundle_code()
	try:
		_add_bundle_coupon(db, code, payment)
		db.commit()
	except IntegrityError:
		db.rollback()
		_log.info("Bundle coupon code collision code=%s, retrying", code)
		code = generate_bundle_code() + str(secrets.randbelow(10))
		_add_bundle_coupon(db, code, payment)
		try:
			db.commit()
		except IntegrityError:
			db.rollback()
			raise
	_log.info("Bundle coupon created code=%s", code)
	return code

from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..clients import get_mailer, get_stripe_client
from ..coupons import create_bundle_coupon
from ..db import get_db
from ..mailer import Mailer
from ..models import PAYMENT_COMPLETED, Payment, Test, TestAttempt
from ..pricing import DEFAULT_GRADE_LEVEL, charge_amount_cents
from ..settings import settings
from ..stripe_client import StripeClient, StripeError
from ..templating import render_template
from .auth import User, get_current_user


router = APIRouter(tags=["payments"])
_log = logging.getLogger("diagnostic_hub.payments")


class CheckoutRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	attempt_id: Optional[str] = Field(default=None, alias="attemptId")
	bundle: bool = False


class VerifyPaymentRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	session_id: Optional[str] = Field(default=None, alias="sessionId")
	attempt_id: Optional[str] = Field(default=None, alias="attemptId")


def _fail(message: str) -> HTTPException:
	_log.error("Payment step failed: %s", message)
	return HTTPException(status_code=500, detail=message)


@router.post("/create-checkout")
async def create_checkout(
	req: CheckoutRequest,
	request: Request,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	stripe: StripeClient = Depends(get_stripe_client),
):
	if not req.attempt_id:
		raise _fail("Attempt ID is required")
	attempt = (
		db.query(TestAttempt)
		.filter(TestAttempt.id == req.attempt_id, TestAttempt.user_id == user.id)
		.first()
	)
	if attempt is None:
		raise _fail("Test attempt not found or access denied")
	if attempt.payment_status == PAYMENT_COMPLETED:
		raise _fail("This test has already been paid for")
	_log.info("Attempt found attempt=%s gradeLevel=%s", attempt.id, attempt.grade_level)

	test = db.get(Test, attempt.test_id)
	test_name = test.name if test else "Diagnostic Test"
	grade_level = attempt.grade_level or DEFAULT_GRADE_LEVEL
	amount = charge_amount_cents(grade_level, bundle=req.bundle, pass_fees=settings.pass_processing_fees)
	if req.bundle:
		product = {"name": "Diagnostic Bundle (Math + ELA)", "description": "Both Math and ELA diagnostic tests"}
	else:
		product = {"name": test_name, "description": f"Grade {grade_level} diagnostic test"}

	origin = request.headers.get("origin") or settings.frontend_origin
	try:
		customer_id = await stripe.find_customer_id(user.email)
		params = {
			"mode": "payment",
			"allow_promotion_codes": True,
			"line_items": [{
				"price_data": {"currency": "usd", "product_data": product, "unit_amount": amount},
				"quantity": 1,
			}],
			"success_url": f"{origin}/verify-payment?session_id={{CHECKOUT_SESSION_ID}}&attempt_id={attempt.id}",
			"cancel_url": f"{origin}/checkout/{attempt.id}" + ("?bundle=true" if req.bundle else ""),
			"metadata": {
				"attempt_id": attempt.id,
				"user_id": user.id,
				"grade_level": str(grade_level),
				"bundle": "true" if req.bundle else "false",
			},
		}
		if customer_id:
			params["customer"] = customer_id
		else:
			params["customer_email"] = user.email
		session = await stripe.create_checkout_session(params)
	except StripeError as e:
		raise _fail(str(e))
	_log.info("Checkout session created session=%s amount=%s bundle=%s", session.get("id"), amount, req.bundle)
	return {"url": session.get("url")}


async def _send_bundle_coupon(mailer: Mailer, user: User, coupon_code: str) -> bool:
	html = render_template("bundle_coupon_email.html", {"student_name": user.full_name, "coupon_code": coupon_code})
	return await mailer.send(user.email, "Your Diagnostic Bundle coupon code", html)


@router.post("/verify-payment")
async def verify_payment(
	req: VerifyPaymentRequest,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	stripe: StripeClient = Depends(get_stripe_client),
	mailer: Mailer = Depends(get_mailer),
):
	if not req.session_id or not req.attempt_id:
		raise _fail("Session ID and Attempt ID are required")
	try:
		session = await stripe.retrieve_checkout_session(req.session_id)
	except StripeError as e:
		raise _fail(str(e))
	metadata = session.get("metadata") or {}
	_log.info("Session retrieved paymentStatus=%s metadata=%s", session.get("payment_status"), metadata)
	if metadata.get("attempt_id") != req.attempt_id:
		raise _fail("Session does not match attempt")
	if metadata.get("user_id") != user.id:
		raise _fail("Session does not belong to this user")
	if session.get("payment_status") != "paid":
		return {"success": False, "message": "Payment not completed"}

	attempt = (
		db.query(TestAttempt)
		.filter(TestAttempt.id == req.attempt_id, TestAttempt.user_id == user.id)
		.first()
	)
	if attempt is None:
		raise _fail("Test attempt not found or access denied")
	amount_paid = (session.get("amount_total") or 0) / 100
	is_bundle = metadata.get("bundle") == "true"
	already_recorded = attempt.payment_status == PAYMENT_COMPLETED
	if not already_recorded:
		attempt.payment_status = PAYMENT_COMPLETED
		attempt.amount_paid = amount_paid
		db.add(attempt)
		db.add(Payment(
			attempt_id=attempt.id,
			amount=amount_paid,
			status=PAYMENT_COMPLETED,
			payment_intent_id=session.get("payment_intent"),
			currency=session.get("currency") or "usd",
		))
		try:
			db.commit()
		except Exception:
			db.rollback()
			raise _fail("Failed to update payment status")
		_log.info("Payment verified attempt=%s amountPaid=%s", attempt.id, amount_paid)

	coupon_code = None
	payment = (
		db.query(Payment)
		.filter(Payment.attempt_id == attempt.id, Payment.status == PAYMENT_COMPLETED)
		.order_by(Payment.id.desc())
		.first()
	)
	# The coupon is keyed to the payment: a replay returns it, or issues it if an earlier try failed
	if is_bundle and payment is not None:
		if payment.bundle_coupon_code:
			coupon_code = payment.bundle_coupon_code
		else:
			try:
				coupon_code = create_bundle_coupon(db, payment)
			except IntegrityError:
				_log.exception("Bundle coupon could not be issued attempt=%s", attempt.id)
			else:
				await _send_bundle_coupon(mailer, user, coupon_code)

	return {
		"success": True,
		"message": "Payment verified and recorded",
		"couponCode": coupon_code,
		"isBundle": is_bundle,
	}

from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..coupons import CouponRejected, InvalidAttempt, normalize_code, redeem_coupon as redeem
from ..db import get_db
from .auth import User, get_current_user


router = APIRouter(tags=["coupons"])
_log = logging.getLogger("diagnostic_hub.redeem_coupon")


class RedeemCouponRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	code: Optional[str] = None
	attempt_id: Optional[str] = Field(default=None, alias="attemptId")


@router.post("/redeem-coupon")
async def redeem_coupon(req: RedeemCouponRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if not req.code or not req.attempt_id:
		raise HTTPException(status_code=500, detail="Coupon code and attempt ID are required")
	_log.info("Redeeming coupon code=%s attempt=%s user=%s", normalize_code(req.code), req.attempt_id, user.id)
	try:
		message = redeem(db, req.code, req.attempt_id, user.id)
	except CouponRejected as rejected:
		_log.info("Coupon rejected: %s", rejected.message)
		return {"success": False, "message": rejected.message}
	except InvalidAttempt as e:
		raise HTTPException(status_code=500, detail=str(e))
	return {"success": True, "message": message}

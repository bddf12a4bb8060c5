from __future__ import annotations
import math
from typing import Optional


DEFAULT_GRADE_LEVEL = 5
ELEMENTARY_MAX_GRADE = 6

ELEMENTARY_PRICE_CENTS = 9900
SECONDARY_PRICE_CENTS = 12000
BUNDLE_PRICE_CENTS = 19900

# Card processing fee passed to the customer when enabled: 2.9% + 30c
FEE_RATE = 0.029
FEE_FIXED_CENTS = 30


def checkout_amount_cents(grade_level: Optional[int]) -> int:
	grade = grade_level or DEFAULT_GRADE_LEVEL
	return ELEMENTARY_PRICE_CENTS if grade <= ELEMENTARY_MAX_GRADE else SECONDARY_PRICE_CENTS


def gross_up(net_cents: int) -> int:
	"""Amount to charge so that ``net_cents`` remains after processor fees."""
	return math.ceil((net_cents + FEE_FIXED_CENTS) / (1 - FEE_RATE))


def charge_amount_cents(grade_level: Optional[int], *, bundle: bool = False, pass_fees: bool = False) -> int:
	net = BUNDLE_PRICE_CENTS if bundle else checkout_amount_cents(grade_level)
	return gross_up(net) if pass_fees else net

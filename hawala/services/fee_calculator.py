"""
Fee calculation — percentage of the converted amount with a floor.

Pure functions only; no I/O. The fee is charged in the target currency
and deducted from the converted amount to give the net payout.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from hawala.config import settings
from hawala.exceptions import ValidationError

CENT = Decimal("0.01")


@dataclass(frozen=True)
class FeePolicy:
    """``fee = max(amount * percentage, minimum_fee)``; percentage is a fraction (0.025 = 2.5%)."""
    percentage: Decimal
    minimum_fee: Decimal = Decimal("0")

    @classmethod
    def default(cls) -> "FeePolicy":
        return cls(
            percentage=settings.DEFAULT_FEE_PERCENTAGE,
            minimum_fee=settings.DEFAULT_MINIMUM_FEE,
        )


def compute_fee(converted_amount: Decimal, policy: FeePolicy) -> Decimal:
    """
    Compute the fee for *converted_amount* under *policy*.

    Raises ValidationError if the amount, percentage or minimum fee is negative.
    The result is rounded half-up to cents.
    """
    if converted_amount < 0:
        raise ValidationError.for_field("converted_amount", "must not be negative")
    if policy.percentage < 0:
        raise ValidationError.for_field("fee_policy.percentage", "must not be negative")
    if policy.minimum_fee < 0:
        raise ValidationError.for_field("fee_policy.minimum_fee", "must not be negative")

    fee = max(converted_amount * policy.percentage, policy.minimum_fee)
    return fee.quantize(CENT, rounding=ROUND_HALF_UP)

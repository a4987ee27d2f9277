# Overview: Store-credit ledger; discount codes with a decreasing balance and partial redemption.

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from ..models import DiscountCode
from ..validation import NotFoundError, ValidationError, to_money
from retailops.time_utils import epoch_millis, utcnow
from .concurrency import lock_for_update

"""
Store Credit Invariants

- A code is minted with a positive balance (amount) and is_used=False.
- Each redemption either lowers the balance or, when at most one cent
  would remain, deletes the code. There is no persisted zero-balance row.
- A redemption larger than the balance is rejected outright; there is no
  partial fill of an over-large request.
- Several open codes for the same customer email are allowed.
"""

logger = logging.getLogger(__name__)

# This much or less left after a redemption means the code is used up
REDEMPTION_EPSILON = Decimal("0.01")

_CODE_ALPHABET = string.ascii_uppercase + string.digits


class InvalidAmountError(ValidationError):
    """Redemption amount is missing, non-numeric or not positive."""


class InsufficientBalanceError(ValueError):
    """Redemption amount exceeds the code's remaining balance."""

    def __init__(self, requested: Decimal, balance: Decimal):
        super().__init__(
            f"Amount used (${requested:.2f}) exceeds available credit (${balance:.2f})"
        )
        self.requested = requested
        self.balance = balance


class RedemptionStatus(str, Enum):
    PARTIALLY_REDEEMED = "partially_redeemed"
    FULLY_REDEEMED = "fully_redeemed"


@dataclass(frozen=True)
class RedemptionResult:
    status: RedemptionStatus
    code: str
    amount_redeemed: Decimal
    balance: Decimal
    discount_code: DiscountCode | None = None

    @property
    def fully_redeemed(self) -> bool:
        return self.status is RedemptionStatus.FULLY_REDEEMED

    def to_dict(self) -> dict:
        return {
            "success": True,
            "code": self.code,
            "status": self.status.value,
            "amount_redeemed": f"{self.amount_redeemed:.2f}",
            "balance": f"{self.balance:.2f}",
            "fully_used": self.fully_redeemed,
            "remaining_credit": self.discount_code.to_dict() if self.discount_code else None,
        }


def _parse_redemption_amount(value) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidAmountError("Amount used must be a positive number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmountError("Amount used must be a positive number")
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError("Amount used must be a positive number")
    return amount


class DiscountCodeService:
    def __init__(self, session):
        self.session = session

    def _generate_code(self) -> str:
        for _ in range(5):
            suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(6))
            code = f"CREDIT-{epoch_millis()}-{suffix}"
            if self.get(code) is None:
                return code
        raise RuntimeError("Could not generate a unique discount code")

    def list_codes(self, customer_email: str | None = None) -> list[DiscountCode]:
        q = self.session.query(DiscountCode)
        if customer_email:
            q = q.filter(DiscountCode.customer_email == customer_email)
        return q.order_by(DiscountCode.created_at.desc(), DiscountCode.id.asc()).all()

    def get(self, code: str) -> DiscountCode | None:
        return self.session.query(DiscountCode).filter(DiscountCode.code == code).first()

    def create(
        self,
        customer_email: str,
        amount,
        expires_at: datetime | None = None,
        *,
        commit: bool = True,
    ) -> DiscountCode:
        """Mint a new store-credit code. No check against open codes for the same email."""
        if not customer_email or not str(customer_email).strip():
            raise ValidationError("customer_email is required")
        balance = to_money(amount, "amount")
        if balance <= 0:
            raise ValidationError("amount must be greater than 0")

        discount = DiscountCode(
            code=self._generate_code(),
            customer_email=str(customer_email).strip(),
            amount=balance,
            is_used=False,
            used_at=None,
            expires_at=expires_at,
            created_at=utcnow(),
        )
        self.session.add(discount)
        if commit:
            self.session.commit()
        else:
            self.session.flush()

        logger.info("Created discount code %s for %s (%s)", discount.code, discount.customer_email, balance)
        return discount

    def redeem(self, code: str, amount) -> RedemptionResult:
        """
        Spend part or all of a code's balance.

        Raises:
            NotFoundError: unknown code
            InvalidAmountError: amount missing, non-numeric or <= 0
            InsufficientBalanceError: amount > balance (code unchanged)
        """
        discount = lock_for_update(
            self.session.query(DiscountCode).filter(DiscountCode.code == code)
        ).first()
        try:
            if discount is None:
                raise NotFoundError("Discount code not found")

            requested = _parse_redemption_amount(amount)
            balance = Decimal(discount.amount)

            if requested > balance:
                raise InsufficientBalanceError(requested, balance)
        except (NotFoundError, InvalidAmountError, InsufficientBalanceError):
            # Release the row lock; the code is left unchanged
            self.session.rollback()
            raise

        remaining = balance - requested

        if remaining <= REDEMPTION_EPSILON:
            self.session.delete(discount)
            self.session.commit()
            logger.info("Discount code %s fully used and deleted", code)
            return RedemptionResult(
                status=RedemptionStatus.FULLY_REDEEMED,
                code=code,
                amount_redeemed=requested,
                balance=Decimal("0.00"),
            )

        discount.amount = to_money(remaining)
        discount.used_at = utcnow()
        self.session.commit()

        logger.info("Discount code %s redeemed %s, remaining %s", code, requested, discount.amount)
        return RedemptionResult(
            status=RedemptionStatus.PARTIALLY_REDEEMED,
            code=code,
            amount_redeemed=requested,
            balance=Decimal(discount.amount),
            discount_code=discount,
        )

    def delete(self, discount_id: str) -> bool:
        """Hard delete by id. Returns whether a row was removed."""
        removed = self.session.query(DiscountCode).filter(DiscountCode.id == discount_id).delete()
        self.session.commit()
        return removed > 0

"""
Fee calculation for Floussly transactions.

All amounts are MAD. Fees are computed on the decimal text of the amount and
rounded half away from zero to 2 decimal places, so the server and any client
using the same schedule get the same fee for the same (type, amount).

Malformed amounts (non-numbers, NaN, infinities, zero or negative) are not
errors: they produce a zero fee so a half-typed draft never breaks a preview.
An unknown transaction type is always an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext, localcontext
from typing import Any

from floussly.utils.fee_schedule import (
    BAND_NONE,
    DEFAULT_FEE_SCHEDULE,
    ZERO,
    FeeSchedule,
    TransactionType,
)

CENT = Decimal("0.01")

FEE_LABELS: dict[TransactionType, str] = {
    TransactionType.WALLET_TO_WALLET: "Transfer fee",
    TransactionType.WALLET_TO_MERCHANT: "Merchant payment fee",
    TransactionType.BANK_TRANSFER: "Bank transfer fee",
    TransactionType.CASH_OUT: "Withdrawal fee",
    TransactionType.MERCHANT_FEE: "Merchant fee",
    TransactionType.TONTINE_FEE: "Tontine fee",
}


@dataclass(frozen=True)
class FeeQuote:
    transaction_type: TransactionType
    amount: Decimal | None
    fee: Decimal
    band: str
    description: str
    label: str
    schedule_version: str

    @property
    def total(self) -> Decimal:
        amount = self.amount or ZERO
        with exact_context(amount, self.fee):
            return amount + self.fee


def exact_context(*values: Decimal):
    """
    A local decimal context wide enough to keep every cent of the given values
    (and of their product with a schedule rate) without rounding or overflow.
    """
    ctx = getcontext().copy()
    for v in values:
        if v.is_finite():
            ctx.prec = max(ctx.prec, len(v.as_tuple().digits) + max(v.adjusted(), 0) + 32)
    return localcontext(ctx)


def to_amount(value: Any) -> Decimal | None:
    """
    Return the amount as a positive finite Decimal, or None when it is malformed.
    Only real numbers are accepted here; parsing user text is the caller's job.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return None
    try:
        amount = Decimal(value) if isinstance(value, int) else Decimal(str(value))
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def round_fee(fee: Decimal) -> Decimal:
    with exact_context(fee):
        return fee.quantize(CENT, rounding=ROUND_HALF_UP)


def quote_fee(
    transaction_type: Any,
    amount: Any,
    schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> FeeQuote:
    """
    Evaluate the single pricing rule for a transaction.

    The fee, the band that produced it and its description all come from the
    same rule evaluation, so the displayed description always matches the fee.
    """
    tx_type = TransactionType.parse(transaction_type)
    value = to_amount(amount)

    if value is None:
        return FeeQuote(
            transaction_type=tx_type,
            amount=None,
            fee=round_fee(ZERO),
            band=BAND_NONE,
            description="No fee applies",
            label=fee_label(tx_type),
            schedule_version=schedule.version,
        )

    with exact_context(value):
        fee, band, description = schedule.rule_for(tx_type).evaluate(value)
    return FeeQuote(
        transaction_type=tx_type,
        amount=value,
        fee=round_fee(fee),
        band=band,
        description=description,
        label=fee_label(tx_type),
        schedule_version=schedule.version,
    )


def calculate_fee(
    transaction_type: Any,
    amount: Any,
    schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> float:
    """
    Return the fee in MAD, rounded to 2 decimal places.

    Raises UnknownTransactionType for a type outside the pricing table.
    """
    return float(quote_fee(transaction_type, amount, schedule).fee)


def calculate_total(amount: float, fee: float) -> float:
    return amount + fee


def describe_fee(
    transaction_type: Any,
    amount: Any,
    schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> str:
    return quote_fee(transaction_type, amount, schedule).description


def calculate_tontine_fee(
    total_amount: Any, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE
) -> float:
    """Service fee for creating a Daret with the given total amount."""
    return calculate_fee(TransactionType.TONTINE_FEE, total_amount, schedule)


def format_fee(fee: Any) -> str:
    return str(round_fee(Decimal(str(fee))))


def format_amount(amount: Decimal) -> str:
    """2-dp text for whole-cent amounts, otherwise every digit that was priced."""
    if amount == round_fee(amount):
        return format_fee(amount)
    return format(amount, "f")


def fee_label(transaction_type: Any) -> str:
    return FEE_LABELS[TransactionType.parse(transaction_type)]
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict

from prometheus_client import Counter

from floussly.utils.errors import FeeMismatch, InvalidAmount
from floussly.utils.fee_schedule import CURRENCY, FeeSchedule
from floussly.utils.fees import FeeQuote, format_amount, format_fee, quote_fee, round_fee

logger = logging.getLogger(__name__)

FEE_QUOTES = Counter(
    "floussly_fee_quotes_total",
    "Fee quotes computed, by transaction type and rule band",
    ["transaction_type", "band"],
)
UNKNOWN_TYPES = Counter(
    "floussly_fee_unknown_type_total",
    "Fee requests rejected because the transaction type is not priced",
)
FEE_MISMATCHES = Counter(
    "floussly_fee_mismatch_total",
    "Settlements rejected because the displayed fee differs from the charged fee",
    ["transaction_type"],
)


def parse_amount(raw: Any) -> Any:
    """
    Turn a request-body amount into something the engine understands.
    Numeric strings become Decimals; anything else is passed through and
    the engine treats it as malformed (zero fee).
    """
    if isinstance(raw, str):
        try:
            return Decimal(raw.strip())
        except InvalidOperation:
            return raw
    return raw


def _quote(transaction_type: Any, amount: Any, schedule: FeeSchedule) -> FeeQuote:
    q = quote_fee(transaction_type, parse_amount(amount), schedule)
    FEE_QUOTES.labels(q.transaction_type.value, q.band).inc()
    logger.debug(
        "fee quote type=%s amount=%s fee=%s band=%s v%s",
        q.transaction_type.value,
        q.amount,
        q.fee,
        q.band,
        q.schedule_version,
    )
    return q


def build_preview(
    transaction_type: Any, amount: Any, schedule: FeeSchedule
) -> Dict[str, Any]:
    """
    Fee preview shown before the user confirms a transaction.
    Money values are strings: 2 dp, or the full priced amount when it has
    sub-cent digits.
    """
    q = _quote(transaction_type, amount, schedule)
    return {
        "transaction_type": q.transaction_type.value,
        "amount": format_amount(q.amount) if q.amount is not None else None,
        "fee": format_fee(q.fee),
        "total": format_amount(q.total),
        "currency": CURRENCY,
        "band": q.band,
        "label": q.label,
        "description": q.description,
        "no_fee": q.fee == 0,
        "schedule_version": q.schedule_version,
    }


def settle(
    transaction_type: Any,
    amount: Any,
    displayed_fee: Any,
    schedule: FeeSchedule,
    displayed_version: str | None = None,
) -> Dict[str, Any]:
    """
    Recompute the fee for a transaction about to be recorded and make sure it
    is the fee the user saw. Returns the record to persist (amount, fee, total).
    """
    q = _quote(transaction_type, amount, schedule)
    if q.amount is None:
        raise InvalidAmount(f"amount must be a positive number, got {amount!r}")
    if q.amount != round_fee(q.amount):
        raise InvalidAmount(f"amount must be in whole cents, got {amount!r}")

    try:
        shown = round_fee(Decimal(str(displayed_fee).strip()))
    except InvalidOperation:
        shown = None

    version_ok = displayed_version is None or str(displayed_version) == q.schedule_version
    if shown != q.fee or not version_ok:
        FEE_MISMATCHES.labels(q.transaction_type.value).inc()
        logger.warning(
            "fee mismatch type=%s amount=%s charged=%s (v%s) displayed=%s (v%s)",
            q.transaction_type.value,
            q.amount,
            q.fee,
            q.schedule_version,
            displayed_fee,
            displayed_version,
        )
        raise FeeMismatch(
            transaction_type=q.transaction_type.value,
            expected_fee=format_fee(q.fee),
            displayed_fee=str(displayed_fee),
            expected_version=q.schedule_version,
            displayed_version=displayed_version,
        )

    return {
        "transaction_type": q.transaction_type.value,
        "amount": format_fee(q.amount),
        "fee": format_fee(q.fee),
        "total": format_fee(q.total),
        "currency": CURRENCY,
        "schedule_version": q.schedule_version,
    }


def record_unknown_type(transaction_type: Any) -> None:
    UNKNOWN_TYPES.inc()
    logger.error("unknown transaction type %r: pricing table out of sync?", transaction_type)

"""
Floussly pricing table.

Default schedule (version 2, amounts in MAD):
  wallet_to_wallet      free
  wallet_to_merchant    free
  bank_transfer         2.75 flat up to 1,000 (inclusive), 13 flat above
  cash_out              1%, minimum 4
  merchant_fee          0.7%, minimum 0.4
  tontine_fee           20 flat up to 2,000 (inclusive),
                        1.5% between 2,000 and 50,000,
                        1.5% capped at 750 above 50,000

Every transaction type maps to exactly one rule. A schedule is immutable;
replacing the pricing means building a new FeeSchedule and swapping it in whole.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Tuple

from floussly.utils.errors import InvalidFeeSchedule, UnknownTransactionType

CURRENCY = "MAD"

BAND_NONE = "none"
BAND_FREE = "free"
BAND_FLAT = "flat"
BAND_MINIMUM = "minimum"
BAND_MAXIMUM = "maximum"
BAND_PERCENTAGE = "percentage"

ZERO = Decimal("0")

# (fee before rounding, band, description)
RuleResult = Tuple[Decimal, str, str]


class TransactionType(str, Enum):
    WALLET_TO_WALLET = "wallet_to_wallet"
    WALLET_TO_MERCHANT = "wallet_to_merchant"
    BANK_TRANSFER = "bank_transfer"
    CASH_OUT = "cash_out"
    MERCHANT_FEE = "merchant_fee"
    TONTINE_FEE = "tontine_fee"

    @classmethod
    def parse(cls, value: Any) -> "TransactionType":
        """
        Accept a member, its wire value ("cash_out") or its name ("CASH_OUT").
        Anything else raises UnknownTransactionType.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip()
            try:
                return cls(key)
            except ValueError:
                pass
            member = cls.__members__.get(key)
            if member is not None:
                return member
        raise UnknownTransactionType(value)


def format_number(value: Decimal) -> str:
    """Plain decimal text without trailing zeros: 13, 2.75, 0.4, 1000."""
    text = format(value.normalize(), "f")
    return "0" if text in ("-0", "") else text


def _to_decimal(value: Any, where: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise InvalidFeeSchedule(f"{where}: expected a number, got {value!r}")
    try:
        d = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidFeeSchedule(f"{where}: expected a number, got {value!r}")
    if not d.is_finite():
        raise InvalidFeeSchedule(f"{where}: must be finite")
    if d < 0:
        raise InvalidFeeSchedule(f"{where}: must be >= 0")
    return d


class Rule(ABC):
    """Shared parameter coercion; subclasses are frozen dataclasses."""

    KIND = ""

    def __post_init__(self):
        for f in fields(self):
            value = _to_decimal(getattr(self, f.name), f"{self.KIND}.{f.name}")
            object.__setattr__(self, f.name, value)

    @abstractmethod
    def evaluate(self, amount: Decimal) -> RuleResult:
        """Return (fee before rounding, band, description) for a valid amount."""

    def to_dict(self) -> dict[str, str]:
        out = {"kind": self.KIND}
        for f in fields(self):
            out[f.name] = format_number(getattr(self, f.name))
        return out


@dataclass(frozen=True)
class Free(Rule):
    KIND = "free"

    def evaluate(self, amount: Decimal) -> RuleResult:
        return ZERO, BAND_FREE, "Free"


@dataclass(frozen=True)
class Flat(Rule):
    amount: Decimal
    KIND = "flat"

    def evaluate(self, amount: Decimal) -> RuleResult:
        return self.amount, BAND_FLAT, f"Flat fee: {format_number(self.amount)} {CURRENCY}"


@dataclass(frozen=True)
class ThresholdFlat(Rule):
    threshold: Decimal
    low_fee: Decimal
    high_fee: Decimal
    KIND = "threshold_flat"

    def evaluate(self, amount: Decimal) -> RuleResult:
        limit = format_number(self.threshold)
        if amount <= self.threshold:
            return (
                self.low_fee,
                BAND_FLAT,
                f"Flat fee: {format_number(self.low_fee)} {CURRENCY} (up to {limit} {CURRENCY})",
            )
        return (
            self.high_fee,
            BAND_FLAT,
            f"Flat fee: {format_number(self.high_fee)} {CURRENCY} (above {limit} {CURRENCY})",
        )


@dataclass(frozen=True)
class PercentageWithFloor(Rule):
    rate: Decimal
    min_fee: Decimal
    KIND = "percentage_with_floor"

    def evaluate(self, amount: Decimal) -> RuleResult:
        fee = amount * self.rate
        minimum = format_number(self.min_fee)
        if fee < self.min_fee:
            return self.min_fee, BAND_MINIMUM, f"Minimum fee: {minimum} {CURRENCY}"
        percent = format_number(self.rate * 100)
        return fee, BAND_PERCENTAGE, f"{percent}% fee (minimum {minimum} {CURRENCY})"


@dataclass(frozen=True)
class PercentageWithFloorAndCap(Rule):
    rate: Decimal
    min_fee: Decimal
    max_fee: Decimal
    small_threshold: Decimal
    large_threshold: Decimal
    KIND = "percentage_with_floor_and_cap"

    def __post_init__(self):
        super().__post_init__()
        if self.small_threshold > self.large_threshold:
            raise InvalidFeeSchedule(
                f"{self.KIND}: small_threshold must not exceed large_threshold"
            )

    def evaluate(self, amount: Decimal) -> RuleResult:
        # at or under the small threshold: flat minimum, percentage ignored
        if amount <= self.small_threshold:
            return (
                self.min_fee,
                BAND_MINIMUM,
                f"Minimum fee: {format_number(self.min_fee)} {CURRENCY}",
            )

        fee = amount * self.rate

        # over the large threshold: cap engages only when the percentage exceeds it
        if amount > self.large_threshold and fee > self.max_fee:
            return (
                self.max_fee,
                BAND_MAXIMUM,
                f"Maximum fee: {format_number(self.max_fee)} {CURRENCY}",
            )

        return fee, BAND_PERCENTAGE, f"{format_number(self.rate * 100)}% fee"


RULE_KINDS: dict[str, type] = {
    cls.KIND: cls
    for cls in (Free, Flat, ThresholdFlat, PercentageWithFloor, PercentageWithFloorAndCap)
}


@dataclass(frozen=True)
class FeeSchedule:
    version: str
    rules: Mapping[TransactionType, Rule]

    def __post_init__(self):
        if not isinstance(self.version, str) or not self.version.strip():
            raise InvalidFeeSchedule("version must be a non-empty string")

        rules: dict[TransactionType, Rule] = {}
        for key, rule in dict(self.rules).items():
            try:
                tx_type = TransactionType.parse(key)
            except UnknownTransactionType:
                raise InvalidFeeSchedule(f"rules: unknown transaction type {key!r}")
            if tx_type in rules:
                raise InvalidFeeSchedule(f"rules: duplicate rule for {tx_type.value}")
            if not isinstance(rule, Rule):
                raise InvalidFeeSchedule(f"rules.{tx_type.value}: not a pricing rule")
            rules[tx_type] = rule

        missing = [t.value for t in TransactionType if t not in rules]
        if missing:
            raise InvalidFeeSchedule(f"rules: missing {', '.join(missing)}")

        object.__setattr__(self, "rules", MappingProxyType(rules))

    def rule_for(self, transaction_type: TransactionType) -> Rule:
        return self.rules[transaction_type]


DEFAULT_FEE_SCHEDULE = FeeSchedule(
    version="2",
    rules={
        TransactionType.WALLET_TO_WALLET: Free(),
        TransactionType.WALLET_TO_MERCHANT: Free(),
        TransactionType.BANK_TRANSFER: ThresholdFlat(
            threshold="1000", low_fee="2.75", high_fee="13"
        ),
        TransactionType.CASH_OUT: PercentageWithFloor(rate="0.01", min_fee="4"),
        TransactionType.MERCHANT_FEE: PercentageWithFloor(rate="0.007", min_fee="0.4"),
        TransactionType.TONTINE_FEE: PercentageWithFloorAndCap(
            rate="0.015",
            min_fee="20",
            max_fee="750",
            small_threshold="2000",
            large_threshold="50000",
        ),
    },
)


def _rule_from_dict(type_key: str, data: Any) -> Rule:
    where = f"rules.{type_key}"
    if not isinstance(data, dict):
        raise InvalidFeeSchedule(f"{where}: expected an object")
    kind = data.get("kind")
    cls = RULE_KINDS.get(kind) if isinstance(kind, str) else None
    if cls is None:
        raise InvalidFeeSchedule(f"{where}.kind: unknown rule kind {kind!r}")

    expected = {f.name for f in fields(cls)}
    given = set(data) - {"kind"}
    if given - expected:
        raise InvalidFeeSchedule(
            f"{where}: unexpected field(s) {', '.join(sorted(given - expected))}"
        )
    if expected - given:
        raise InvalidFeeSchedule(
            f"{where}: missing field(s) {', '.join(sorted(expected - given))}"
        )

    params = {}
    for name in expected:
        params[name] = _to_decimal(data[name], f"{where}.{name}")
    return cls(**params)


def fee_schedule_from_dict(doc: Any) -> FeeSchedule:
    if not isinstance(doc, dict):
        raise InvalidFeeSchedule("schedule must be a JSON object")
    extra = set(doc) - {"version", "currency", "rules"}
    if extra:
        raise InvalidFeeSchedule(f"unexpected key(s) {', '.join(sorted(extra))}")
    if doc.get("currency", CURRENCY) != CURRENCY:
        raise InvalidFeeSchedule(f"currency must be {CURRENCY}")

    version = doc.get("version")
    if isinstance(version, int) and not isinstance(version, bool):
        version = str(version)

    raw_rules = doc.get("rules")
    if not isinstance(raw_rules, dict):
        raise InvalidFeeSchedule("rules must be a JSON object")

    rules: dict[TransactionType, Rule] = {}
    for key, data in raw_rules.items():
        try:
            tx_type = TransactionType.parse(key)
        except UnknownTransactionType:
            raise InvalidFeeSchedule(f"rules: unknown transaction type {key!r}")
        if tx_type in rules:
            raise InvalidFeeSchedule(f"rules: duplicate rule for {tx_type.value}")
        rules[tx_type] = _rule_from_dict(key, data)

    return FeeSchedule(version=version, rules=rules)


def load_fee_schedule(path: str) -> FeeSchedule:
    """
    Read a schedule document from disk. Any problem (unreadable file, bad JSON,
    incomplete rules) raises InvalidFeeSchedule.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            doc = json.load(fh)
    except OSError as e:
        raise InvalidFeeSchedule(f"cannot read {path}: {e}")
    except json.JSONDecodeError as e:
        raise InvalidFeeSchedule(f"{path} is not valid JSON: {e}")
    return fee_schedule_from_dict(doc)


def fee_schedule_to_dict(schedule: FeeSchedule) -> dict[str, Any]:
    return {
        "version": schedule.version,
        "currency": CURRENCY,
        "rules": {t.value: schedule.rule_for(t).to_dict() for t in TransactionType},
    }

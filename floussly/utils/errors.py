class FeeError(Exception):
    """Base class for fee engine errors."""


class UnknownTransactionType(FeeError, ValueError):
    """Raised when a transaction type is not part of the pricing table."""

    def __init__(self, transaction_type):
        self.transaction_type = transaction_type
        super().__init__(f"Unknown transaction type: {transaction_type!r}")


class InvalidFeeSchedule(FeeError):
    """Raised when a fee schedule document is incomplete or malformed."""


class InvalidAmount(FeeError):
    """Raised when an amount cannot be settled (non-positive, NaN, not a number)."""


class FeeMismatch(FeeError):
    """Raised when the fee shown to the user differs from the fee the server charges."""

    def __init__(
        self,
        *,
        transaction_type: str,
        expected_fee: str,
        displayed_fee: str,
        expected_version: str,
        displayed_version: str | None,
    ):
        self.transaction_type = transaction_type
        self.expected_fee = expected_fee
        self.displayed_fee = displayed_fee
        self.expected_version = expected_version
        self.displayed_version = displayed_version
        super().__init__(
            f"fee mismatch for {transaction_type}: "
            f"expected {expected_fee} (v{expected_version}), "
            f"displayed {displayed_fee} (v{displayed_version})"
        )

    def to_dict(self) -> dict:
        return {
            "error": "fee mismatch",
            "transaction_type": self.transaction_type,
            "expected_fee": self.expected_fee,
            "displayed_fee": self.displayed_fee,
            "expected_version": self.expected_version,
            "displayed_version": self.displayed_version,
        }

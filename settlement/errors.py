"""Error taxonomy shared by the settlement components."""

from __future__ import annotations


class SettlementError(Exception):
    """Base class for settlement and reconciliation failures."""


class InvalidTimestampFormat(SettlementError, ValueError):
    """Raised when a persisted instant cannot be resolved to an absolute time."""


class InvalidMoneyValue(SettlementError, ValueError):
    """Raised when a money field cannot be represented in minor units."""


class InvalidRecordError(SettlementError, ValueError):
    """Raised when a raw persisted record does not match its schema."""


class PersistenceError(SettlementError):
    """Raised by storage backends when the underlying driver fails."""


class PersistenceReadFailure(PersistenceError):
    """Reading auctions, bids or listings failed."""


class PersistenceWriteFailure(PersistenceError):
    """Writing an auction correction failed; nothing was applied."""


class CascadeWriteFailure(SettlementError):
    """The listing update failed after the auction correction was applied."""

    def __init__(self, product_id: object, cause: BaseException) -> None:
        super().__init__(f"listing {product_id} status update failed: {cause}")
        self.product_id = product_id
        self.cause = cause

"""Exception taxonomy for the billing core."""

from __future__ import annotations


class BillerError(Exception):
    """Base class for all biller errors."""


class ValidationError(BillerError):
    """Operator input rejected locally; nothing was persisted."""


class TableStateError(BillerError):
    """A table mutation is not legal for the table's current state."""


class InvalidTransitionError(BillerError):
    """A billing action was requested from a state that does not allow it."""


class StoreError(BillerError):
    """A document store read or write failed."""


class DocumentNotFoundError(StoreError):
    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"{collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class PartialWriteError(StoreError):
    """
    A multi-write sequence stopped after its first document was written.

    `document_id` names the record that did land so the operator can find it.
    """

    def __init__(self, message: str, document_id: str) -> None:
        super().__init__(message)
        self.document_id = document_id


class SettlementMismatchError(BillerError):
    """Cash and UPI portions do not add up to the bill total."""


class InvalidBillStateError(BillerError):
    """The bill is not in a state that permits the requested update."""


class SessionSaveError(StoreError):
    """The local table slot could not be written; in-memory table state is unchanged."""

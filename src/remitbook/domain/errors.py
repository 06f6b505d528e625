"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as a record that was already matched.

    Callers must re-read state before retrying.
    """


class StoreError(DomainError):
    """Transient persistence failure.

    The failed write was rolled back as a whole, so retrying is safe.
    """


def account_not_found(account_id: str) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def record_not_found(record_id: int, kind: str) -> str:
    """Return message for missing record."""
    return f"{kind.capitalize()} record {record_id} not found"


def client_not_found(client_id: int) -> str:
    """Return message for missing client."""
    return f"Client {client_id} not found"


def entry_not_found(entry_id: int) -> str:
    """Return message for missing journal entry."""
    return f"Journal entry {entry_id} not found"


def record_already_matched(record_id: int) -> str:
    """Return message when a record already carries a transfer."""
    return f"Record {record_id} is already matched to a client"


def record_wrong_status(record_id: int, status: str, expected: str) -> str:
    """Return message for an invalid record state transition."""
    return f"Record {record_id} is {status}, expected {expected}"

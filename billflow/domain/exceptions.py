"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class StorageError(DomainException):
    """A repository call failed or the store is unreachable"""

    pass


class DeadlineExceededError(StorageError):
    """The caller-supplied time budget ran out before a storage call"""

    pass


class BillFetchError(DomainException):
    """Selecting or bulk-updating the due bill set failed; fatal to the whole batch"""

    pass


class SettlementError(DomainException):
    """A single bill could not be settled"""

    def __init__(self, bill_id, step: str, reason: str):
        super().__init__(f"bill {bill_id} failed at {step}: {reason}")
        self.bill_id = bill_id
        self.step = step
        self.reason = reason


class ValidationError(DomainException):
    """Caller supplied data that violates a domain invariant"""

    pass


class InvalidTransferError(ValidationError):
    """Transfer legs are missing or point at the same account"""

    pass


class TransactionValidationError(ValidationError):
    """Transaction is malformed for its type"""

    pass


class InvalidAutopayConfigError(ValidationError):
    """Autopay source and funding instrument do not agree"""

    pass


class InvalidTransitionError(ValidationError):
    """Bill status change not allowed by the lifecycle"""

    pass


class NotFoundError(DomainException):
    """Requested entity does not exist"""

    pass


class AccountNotFoundError(NotFoundError):
    pass


class BillNotFoundError(NotFoundError):
    pass

"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidObligationError(DomainException):
    """Recurring obligation violates its invariants (amount, date range)"""

    pass


class InvalidCadenceError(DomainException):
    """Obligation cadence is not one of the supported recurrence rules"""

    def __init__(self, obligation_id: str, cadence: str):
        self.obligation_id = obligation_id
        self.cadence = cadence
        super().__init__(f"Unsupported cadence {cadence!r} on obligation {obligation_id}")


class NotFoundError(DomainException):
    """Referenced record does not exist"""

    pass


class ObligationNotFoundError(NotFoundError):
    """No recurring obligation with the given id"""

    def __init__(self, obligation_id: str):
        self.obligation_id = obligation_id
        super().__init__(f"Recurring obligation {obligation_id} not found")


class HistoryEntryNotFoundError(NotFoundError):
    """No bill history entry with the given id"""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Bill history entry {entry_id} not found")


class RecordsAPIError(DomainException):
    """Records service returned an error or is unavailable"""

    pass

class VisitorDeskError(Exception):
    """Base exception for visitor desk failures.

    `notice_key` names the localized notice shown to the user; callers may
    pass a more specific one than the class default.
    """

    notice_key = "generic_error"

    def __init__(self, message: str, notice_key: str = None):
        super().__init__(message)
        if notice_key:
            self.notice_key = notice_key


class NotFound(VisitorDeskError):
    """Raised when a record id does not exist."""

    notice_key = "not_found"


class AlreadyCheckedOut(VisitorDeskError):
    """Raised when checking out a visitor whose visit already ended."""

    notice_key = "already_checked_out"


class RecordValidationError(VisitorDeskError):
    """Raised when input or a stored row does not match its schema."""

    notice_key = "invalid_record"


class StoreError(VisitorDeskError):
    """Raised when the record store reports a failed operation."""

    notice_key = "store_error"


class MalformedRecord(RecordValidationError):
    """Raised when a row read from the store does not match its schema."""

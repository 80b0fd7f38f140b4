"""Exceptions raised by the import pipeline and the portal store."""


class PortalError(Exception):
    """Base class for errors surfaced to the operator as a blocking message."""


# ── Whole-flow import errors (flow returns to Upload) ────────────────────────

class UnsupportedFileType(PortalError):
    def __init__(self, mime_type: str, file_name: str = ""):
        self.mime_type = mime_type
        self.file_name = file_name
        label = file_name or mime_type or "unknown"
        super().__init__(f"Unsupported file type: {label}. Please upload a supported document.")


class EmptyDocument(PortalError):
    def __init__(self, message: str = "The uploaded file appears to be empty or could not be read."):
        super().__init__(message)


class ExtractionFailed(PortalError):
    def __init__(self, message: str, cause: str = ""):
        self.cause = cause
        super().__init__(f"{message}: {cause}" if cause else message)


class NoRecordsFound(PortalError):
    def __init__(self, message: str = "The AI could not find any valid records in the uploaded file. "
                                      "Please check the file content and try again."):
        super().__init__(message)


class InvalidTransition(PortalError):
    """An import session was driven out of order (e.g. confirm before review)."""


class NoAssignments(PortalError):
    def __init__(self, kind: str = "students"):
        super().__init__(f"You must be assigned to a section and year to import {kind}.")


# ── Canonical store errors ───────────────────────────────────────────────────

class DuplicateRollNumberError(PortalError):
    def __init__(self, roll_number: str):
        self.roll_number = roll_number
        super().__init__(f"Roll number {roll_number} already exists.")


class InvalidRollNumberError(PortalError):
    pass


class RoleChangeError(PortalError):
    """A profile edit tried to move a user to a different role."""


class UnknownUserError(PortalError):
    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"No user with id {user_id}")


class IntegrityError(PortalError):
    """A commit batch would break roll-number uniqueness; nothing was applied."""

from enum import Enum


class FailureReason(str, Enum):
    SIGNER_REJECTED = "signer_rejected"
    REVERTED = "reverted"
    DROPPED = "dropped"
    NETWORK_ERROR = "network_error"


class NotesSyncError(Exception):
    code = "notes_sync_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(NotesSyncError, ValueError):
    """Raised client-side before anything is sent to the ledger."""

    code = "validation_error"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.field is not None:
            payload["field"] = self.field
        return payload


class SubmissionRejected(NotesSyncError):
    code = "submission_rejected"
    reason = FailureReason.SIGNER_REJECTED


class NetworkError(NotesSyncError):
    code = "network_error"
    reason = FailureReason.NETWORK_ERROR


class RevertedError(NotesSyncError):
    code = "reverted"
    reason = FailureReason.REVERTED

    def __init__(self, message: str, revert_reason: str = "") -> None:
        super().__init__(message)
        self.revert_reason = revert_reason


class DroppedError(NotesSyncError):
    code = "dropped"
    reason = FailureReason.DROPPED


class IdentityUnavailable(NotesSyncError):
    code = "identity_unavailable"


class InvalidTransition(NotesSyncError, ValueError):
    code = "invalid_transition"

"""Error taxonomy for reconstruction, patching and pending-action resolution.

Every error carries an HTTP status and a machine code so the API layer can
render it without knowing the concrete type.
"""

from typing import Any


class TripSyncError(Exception):
    """Base error for all tripsync failures."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    public_message: str = "Internal server error."

    def __init__(self, message: str | None = None, *, details: Any = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        """Render the error envelope returned to HTTP clients."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


# Oracle failures (service-unavailable class)


class OracleError(TripSyncError):
    """The external oracle could not produce usable output."""

    status_code = 502
    code = "ORACLE_ERROR"
    public_message = "The AI service failed. Please try again."

    def __init__(
        self,
        message: str | None = None,
        *,
        details: Any = None,
        stage: str = "unknown",
        attempts: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.stage = stage
        self.attempts = attempts or []


class OracleUnavailable(OracleError):
    """Oracle call failed at the transport level or timed out."""

    code = "ORACLE_UNAVAILABLE"
    public_message = "The AI service is unavailable. Please try again."


class InvalidModelOutput(OracleError):
    """Oracle text could not be parsed as JSON."""

    code = "INVALID_MODEL_JSON"
    public_message = "The AI response could not be parsed. Please try again."


class SchemaValidationFailed(OracleError):
    """Oracle JSON did not match the schema after the single repair attempt."""

    code = "SCHEMA_VALIDATION_FAILED"
    public_message = "The AI output couldn't be validated. Please try again."

    def __init__(
        self,
        message: str | None = None,
        *,
        issues: list[dict[str, Any]],
        stage: str = "repair_validate",
        attempts: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message, details={"issues": issues}, stage=stage, attempts=attempts)
        self.issues = issues


# Client-input failures


class TripNotFound(TripSyncError):
    """Trip does not exist or is not owned by the caller."""

    status_code = 404
    code = "TRIP_NOT_FOUND"
    public_message = "Trip not found."


class TargetNotFound(TripSyncError):
    """A resolved target item vanished between resolution and apply."""

    status_code = 404
    code = "TARGET_NOT_FOUND"
    public_message = "Target item not found."


class PendingActionNotFound(TripSyncError):
    """Pending action id is unknown."""

    status_code = 404
    code = "PENDING_ACTION_NOT_FOUND"
    public_message = "Pending action not found."


class OperationDataMissing(TripSyncError):
    """An operation lacks the payload its type requires."""

    status_code = 400
    code = "OPERATION_DATA_MISSING"
    public_message = "Operation is missing required data."


class InvalidSelection(TripSyncError):
    """Selected item is not one of the stored candidates."""

    status_code = 400
    code = "INVALID_SELECTION"
    public_message = "Selected item is not a valid candidate."


class EmptyUpdateText(TripSyncError):
    """Update text is blank after trimming."""

    status_code = 400
    code = "EMPTY_UPDATE_TEXT"
    public_message = "Update text is required."


class RawTextTooLong(TripSyncError):
    """Pasted text exceeds the configured size limit."""

    status_code = 413
    code = "RAW_TEXT_TOO_LONG"
    public_message = "Text is too long."


# Store conflicts


class DuplicateItem(TripSyncError):
    """An update would give an item the identity of another item in the trip."""

    status_code = 422
    code = "DUPLICATE_ITEM"
    public_message = "The update would duplicate an existing item."


class ConcurrentUpdateConflict(TripSyncError):
    """Unique fingerprint constraint tripped by a concurrent writer; safe to retry."""

    status_code = 409
    code = "CONCURRENT_UPDATE_CONFLICT"
    public_message = "The trip was modified concurrently. Please retry."

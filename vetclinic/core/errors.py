"""
Error taxonomy for the clinic functions.

Every failure a function can report is one of these exceptions. Each
carries a machine-checkable `kind`, the HTTP status it maps to, and an
optional `details` dict that is merged into the JSON error body:

    {"error": "<message>", "kind": "<kind>", ...details}

The FastAPI exception handlers in vetclinic.main do the rendering.
"""

from typing import Any, Dict, Optional


class ClinicFunctionError(Exception):
    """Base exception for all errors surfaced to callers."""

    kind: str = "InternalError"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_body(self) -> Dict[str, Any]:
        """Render the JSON response body."""
        body: Dict[str, Any] = {"error": self.message, "kind": self.kind}
        body.update(self.details)
        return body


class InvalidRequest(ClinicFunctionError):
    """Bad or missing input. Not retryable until the caller fixes it."""
    kind = "InvalidRequest"
    status_code = 400


class Unauthorized(ClinicFunctionError):
    """Caller credentials are missing or invalid."""
    kind = "Unauthorized"
    status_code = 401


class Misconfigured(ClinicFunctionError):
    """Required deployment configuration is absent."""
    kind = "Misconfigured"
    status_code = 500


class UpstreamAuthFailure(ClinicFunctionError):
    """Token exchange with the identity provider failed. Safe to retry."""
    kind = "UpstreamAuthFailure"
    status_code = 502


class UpstreamEventCreationFailure(ClinicFunctionError):
    """The calendar API rejected the event. Safe to retry, no event exists."""
    kind = "UpstreamEventCreationFailure"
    status_code = 502


class UpstreamResponseShape(ClinicFunctionError):
    """The event was created but no conference link could be extracted."""
    kind = "UpstreamResponseShape"
    status_code = 502


class PartialFailure(ClinicFunctionError):
    """The event exists but the appointment update failed. Resume, don't redo."""
    kind = "PartialFailure"
    status_code = 500


class ReconciliationRequired(ClinicFunctionError):
    """A previous attempt left an event that needs manual cleanup."""
    kind = "ReconciliationRequired"
    status_code = 409


class ProvisioningInProgress(ClinicFunctionError):
    """Another invocation currently holds the appointment."""
    kind = "ProvisioningInProgress"
    status_code = 409


class InternalError(ClinicFunctionError):
    """Unexpected failure caught at the boundary."""
    kind = "InternalError"
    status_code = 500

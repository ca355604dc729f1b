"""
PushGate - Exception Hierarchy

Structured exceptions for consistent error handling across the system.
All exceptions include error codes for API responses.
"""

from typing import Optional


class PushGateError(Exception):
    """Base exception for all PushGate errors."""

    code: str = "UNKNOWN_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# =============================================================================
# Decision Errors
# =============================================================================

class DecisionError(PushGateError):
    """Error while deciding call availability."""
    code = "DECISION_ERROR"
    status_code = 500


class EventClassificationError(DecisionError):
    """Event is not a call event and cannot be decided on."""
    code = "EVENT_NOT_A_CALL"
    status_code = 400


class RegistrarError(DecisionError):
    """SIP endpoint registration raised instead of answering."""
    code = "REGISTRAR_ERROR"
    status_code = 502


class RegistrarTimeoutError(RegistrarError):
    """SIP endpoint registration did not answer in time."""
    code = "REGISTRAR_TIMEOUT"
    status_code = 504


# =============================================================================
# Reporting Errors
# =============================================================================

class ReportingError(PushGateError):
    """Error in the response reporting path."""
    code = "REPORTING_ERROR"
    status_code = 500


class DuplicateReportError(ReportingError):
    """A decision for this event has already been reported."""
    code = "DUPLICATE_REPORT"
    status_code = 409


class TimerAlreadyConsumedError(ReportingError):
    """Decision timer was read twice."""
    code = "TIMER_ALREADY_CONSUMED"


# =============================================================================
# Middleware Errors
# =============================================================================

class DeliveryError(PushGateError):
    """The middleware rejected or never received a request."""
    code = "DELIVERY_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str,
        operation: str = "unknown",
        status: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.operation = operation
        self.status = status


# =============================================================================
# Credential Errors
# =============================================================================

class CredentialStoreError(PushGateError):
    """Error in the credential store."""
    code = "CREDENTIAL_STORE_ERROR"
    status_code = 500


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationError(PushGateError):
    """Input validation error."""
    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidPayloadError(ValidationError):
    """Push payload is not a JSON object."""
    code = "INVALID_PAYLOAD"


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(PushGateError):
    """Configuration error."""
    code = "CONFIGURATION_ERROR"
    status_code = 500

"""
Freight Gateway Exception Hierarchy

Structured exception classes for the carrier gateway. All exceptions include
code, message, details and the HTTP status the REST layer should answer with.

Exception Hierarchy:
    GatewayError
    ├── ValidationError        (400) caller input or carrier precondition
    ├── AuthenticationError    (401) missing bearer token, rejected credentials
    ├── NotFoundError          (404) unknown carrier, operation or order
    ├── ConflictError          (409) unique-key violation or locked status
    ├── CarrierError           (carrier status, else 500/503)
    └── ConfigurationError     (500) invalid endpoint catalogue at load time
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """
    Base exception for all gateway errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging
        status_code: HTTP status returned to REST callers
    """

    default_code: str = "GATEWAY_ERROR"
    default_status: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.status_code = status_code or self.default_status
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(GatewayError):
    """Caller input malformed or a carrier-specific precondition unmet."""
    default_code = "VALIDATION_FAILED"
    default_status = 400

    def __init__(self, message: str, fields: Optional[list] = None, **kwargs):
        details = kwargs.pop("details", {})
        if fields:
            details["fields"] = list(fields)
        super().__init__(message, details=details, **kwargs)


class AuthenticationError(GatewayError):
    """Missing/invalid bearer token or carrier rejected credentials."""
    default_code = "AUTH_FAILED"
    default_status = 401


class NotFoundError(GatewayError):
    """Unknown carrier, operation, or order."""
    default_code = "NOT_FOUND"
    default_status = 404


class ConflictError(GatewayError):
    """Unique-key violation, or a change to a row that may no longer change."""
    default_code = "CONFLICT"
    default_status = 409


class CarrierError(GatewayError):
    """
    Non-2xx carrier response, network failure, or unreadable carrier body.

    status_code preserves the carrier's status where meaningful.
    """
    default_code = "CARRIER_ERROR"
    default_status = 500

    def __init__(
        self,
        message: str,
        carrier: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "carrier": carrier,
            "operation": operation,
        })
        super().__init__(message, details=details, **kwargs)


class ConfigurationError(GatewayError):
    """Endpoint catalogue or body template failed load-time validation."""
    default_code = "CONFIGURATION_INVALID"
    default_status = 500


# =============================================================================
# USER-FACING MESSAGES
# =============================================================================

class ErrorMessages:
    """Message builders shared by services and routes."""

    # Validation
    @staticmethod
    def REQUIRED_FIELD(field_name: str) -> str:
        return f'Please provide the "{field_name}" field. This field is required to process your request.'

    @staticmethod
    def MISSING_FIELDS(operation: str, fields) -> str:
        return f"Missing or invalid fields for {operation}: {', '.join(fields)}"

    INVALID_DATE_RANGE = "startDate must be before or equal to endDate"
    MISSING_QUERY_PARAMS = "At least one query parameter is required."

    # Authentication
    MISSING_TOKEN = (
        "Authentication required. Please include a Bearer token in the Authorization header "
        "(e.g., Authorization: Bearer your_token_here)."
    )
    AUTH_FAILED = "Authentication failed. Please check your credentials and try again."
    NO_TOKEN_IN_RESPONSE = "The carrier accepted the credentials but returned no token."

    # Carriers
    @staticmethod
    def COMPANY_NOT_FOUND(carrier: str) -> str:
        return (
            f'The shipping company "{carrier}" is not available or not configured. '
            "Please check the company name and try again."
        )

    @staticmethod
    def ENDPOINT_NOT_FOUND(operation: str) -> str:
        return f'The requested endpoint "{operation}" is not available. Please check the endpoint name.'

    @staticmethod
    def CONFIG_MISSING(carrier: str) -> str:
        return f'The configuration for shipping company "{carrier}" is missing. Please contact support.'

    @staticmethod
    def API_ERROR(status: int) -> str:
        return f"API error {status}"

    NETWORK_ERROR = "Unable to reach the carrier. Please try again later."
    TIMEOUT_ERROR = "The carrier did not respond in time. Please try again."
    INVALID_CARRIER_RESPONSE = "The carrier returned a response that could not be read."

    # Orders
    @staticmethod
    def ORDER_NOT_FOUND(order_id) -> str:
        return f"Logistics shipped order with ID {order_id} not found"

    DUPLICATE_DATA = "This data already exists. Please use different values."

    @staticmethod
    def STATUS_LOCKED(order_id, status) -> str:
        return f"Logistics shipped order {order_id} is {status}; its status can no longer change"

    # 3PL FedEx records
    FEDEX_RECORD_NOT_FOUND = "3PL Giga FedEx record not found"

    @staticmethod
    def DUPLICATE_TRACKING_NO(tracking_nos) -> str:
        return f"Tracking number(s) already exist: {', '.join(tracking_nos)}. Tracking numbers must be unique."

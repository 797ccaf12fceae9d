"""
Unified error type for the payments app.

Every failure that leaves the payments layer as an exception is a
PaymentException. Callers branch on ``kind`` (what went wrong) and
``error_code`` (the machine-readable code, provider-native when available)
instead of matching on messages.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Categories of payment failures."""
    VALIDATION = "validation"
    CAPABILITY_GAP = "capability_gap"
    PROVIDER = "provider"
    TRANSPORT = "transport"
    CONFIGURATION = "configuration"


INVALID_REQUEST = 'INVALID_REQUEST'
OPERATION_NOT_SUPPORTED = 'OPERATION_NOT_SUPPORTED'
UNEXPECTED_ERROR = 'UNEXPECTED_ERROR'
TIMEOUT = 'TIMEOUT'
GATEWAY_CONFIG_MISSING = 'GATEWAY_CONFIG_MISSING'
UNSUPPORTED_GATEWAY = 'UNSUPPORTED_GATEWAY'


class PaymentException(Exception):
    """
    Exception raised for any payment operation failure.

    Attributes:
        message: Human-readable error message
        error_code: Short machine-readable code (provider code when available)
        kind: ErrorKind describing the failure category
        gateway_response: Raw provider payload, kept for debugging
        errors: Field errors for validation failures
    """

    def __init__(
        self,
        message: str,
        error_code: str = UNEXPECTED_ERROR,
        kind: ErrorKind = ErrorKind.TRANSPORT,
        gateway_response: Optional[Dict[str, Any]] = None,
        errors: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.kind = kind
        self.gateway_response = gateway_response
        self.errors = errors or {}
        super().__init__(self.message)

    def __repr__(self):
        return f"PaymentException(kind={self.kind.value!r}, error_code={self.error_code!r}, message={self.message!r})"

    @property
    def is_capability_gap(self) -> bool:
        return self.kind == ErrorKind.CAPABILITY_GAP

    @classmethod
    def invalid_request(cls, errors: Dict[str, Any]) -> 'PaymentException':
        return cls(
            message="Invalid payment request",
            error_code=INVALID_REQUEST,
            kind=ErrorKind.VALIDATION,
            errors=errors
        )

    @classmethod
    def not_supported(cls, provider: str, operation: str) -> 'PaymentException':
        return cls(
            message=f"{operation} is not supported by the {provider} gateway",
            error_code=OPERATION_NOT_SUPPORTED,
            kind=ErrorKind.CAPABILITY_GAP
        )

    @classmethod
    def configuration(cls, message: str, error_code: str = GATEWAY_CONFIG_MISSING) -> 'PaymentException':
        return cls(
            message=message,
            error_code=error_code,
            kind=ErrorKind.CONFIGURATION
        )

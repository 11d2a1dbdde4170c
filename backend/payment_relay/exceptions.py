"""
Payment Relay Exception Hierarchy

Error taxonomy shared by the gateway client, callback translator
and webhook verifier.
"""
from typing import Optional, Dict, Any


class RelayError(Exception):
    """
    Base exception for all relay errors.

    Carries a stable error code, a short client-facing message and
    server-side details that are logged but not always returned.
    """

    status_code = 400

    def __init__(
        self,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to API error response format."""
        return {
            "error": self.error_code,
            "details": self.message
        }


class UpstreamError(RelayError):
    """
    Payment processor rejected the request or could not be reached.

    Examples:
    - Processor answered with a non-2xx status
    - Connection refused or timed out
    - Success response missing required fields
    """

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.upstream_status = upstream_status
        super().__init__("upstream_error", message, details)


class SignatureMismatchError(RelayError):
    """
    Webhook signature did not match the computed digest.

    Terminal: the notification is rejected and never processed.
    """

    def __init__(self, message: str = "Invalid signature", details: Optional[Dict[str, Any]] = None):
        super().__init__("signature_mismatch", message, details)


class MalformedRequestError(RelayError):
    """
    Required fields missing or invalid.

    Examples:
    - Callback without payment_reference
    - Webhook body that is not a JSON object
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("malformed_request", message, details)

"""
Checkout error taxonomy.

Every failure the checkout core raises is a StorefrontError. Client-facing
errors (4xx) carry a message that is safe to show verbatim; server-side
errors (5xx) show a generic "try again" message and keep the detail for logs
and the ``details`` field of the response.
"""

from typing import Optional

GENERIC_FAILURE_MESSAGE = "Checkout is temporarily unavailable. Please try again."


class StorefrontError(Exception):
    status_code = 500
    user_facing = False

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response_body(self) -> dict:
        if self.user_facing:
            return {"error": self.message}
        return {"error": GENERIC_FAILURE_MESSAGE, "details": self.details or self.message}


class AuthenticationError(StorefrontError):
    """Missing or invalid caller credential"""

    status_code = 401
    user_facing = True


class ValidationError(StorefrontError):
    """Malformed request, invalid tier dimension or missing required field"""

    status_code = 400
    user_facing = True


class NotFoundError(StorefrontError):
    """Plan absent or inactive"""

    status_code = 404
    user_facing = True


class MembershipStateError(StorefrontError):
    """Illegal membership status transition"""

    status_code = 409
    user_facing = True


class ConfigurationError(StorefrontError):
    """Plan or pricing table lacks a usable price reference"""

    status_code = 500


class ProvisioningError(StorefrontError):
    """Datastore or billing-provider failure during customer setup"""

    status_code = 502


class SessionCreationError(StorefrontError):
    """Billing-provider checkout session request failed"""

    status_code = 502

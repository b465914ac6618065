"""Domain error taxonomy, rendered as ``{"error", "message"}`` JSON by the REST layer."""

from __future__ import annotations


class RelayError(Exception):
    status_code = 500
    error = "Internal Server Error"
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(RelayError):
    status_code = 401
    error = "Unauthorized"
    default_message = "You are not authorized to perform this action"


class NotAMember(RelayError):
    status_code = 403
    error = "Forbidden"
    default_message = "You do not have access to this organization"


class InsufficientRole(RelayError):
    status_code = 403
    error = "Forbidden"
    default_message = "You do not have the required role to perform this action"


class Forbidden(RelayError):
    status_code = 403
    error = "Forbidden"
    default_message = "You are not allowed to perform this action"


class NotFound(RelayError):
    status_code = 404
    error = "Not Found"
    default_message = "Resource not found"


class InvalidInput(RelayError):
    status_code = 400
    error = "Invalid request"
    default_message = "Invalid request data"


class NoOrganization(RelayError):
    status_code = 400
    error = "Bad Request"
    default_message = "No organization selected"


class InsufficientCredits(RelayError):
    status_code = 400
    error = "Insufficient credits"

    def __init__(self, credit_type: str, available: int, required: int) -> None:
        self.credit_type = credit_type
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient {credit_type} credits. Available: {available}, Required: {required}"
        )


class DuplicatePayment(RelayError):
    status_code = 409
    error = "Conflict"

    def __init__(self, payment_ref: str) -> None:
        self.payment_ref = payment_ref
        super().__init__(f"Transaction with paymentRef {payment_ref} already exists")


class LedgerConflict(RelayError):
    status_code = 409
    error = "Conflict"
    default_message = "Credit balance changed concurrently, please retry"


class InvalidSignature(RelayError):
    status_code = 400
    error = "Invalid signature"
    default_message = "Webhook signature verification failed"


class ProviderError(RelayError):
    status_code = 500
    error = "Payment provider error"

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(message)


class NotImplementedByProvider(RelayError):
    status_code = 501
    error = "Not Implemented"

    def __init__(self, provider: str, message: str | None = None) -> None:
        self.provider = provider
        super().__init__(message or f"{provider} integration is not implemented yet.")

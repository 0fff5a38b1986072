"""Domain exceptions.

Every error the core raises on purpose derives from ``CafeteriaError`` so that
callers can tell domain failures apart from programming errors.
"""
from typing import Optional


class CafeteriaError(Exception):
    """Base class for all domain errors."""


class CredentialRejected(CafeteriaError):
    """The identity provider refused the presented credential."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class InvalidCredentials(CredentialRejected):
    """Wrong email/password pair or unknown account."""


class EmailAlreadyInUse(CredentialRejected):
    """Sign-up attempted with an email that already has a credential."""


class InvalidLink(CredentialRejected):
    """Email sign-in link is missing, malformed or expired, or no email is known for it."""


class PopupDismissed(CredentialRejected):
    """The user closed or cancelled the OAuth popup."""


class IdentityProviderError(CafeteriaError):
    """The identity provider could not be reached or answered unexpectedly."""


class BackendUnavailable(CafeteriaError):
    """The persistence backend could not complete the operation."""


class NotFound(CafeteriaError):
    """A record targeted by update/delete does not exist."""

    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection}/{record_id} not found")
        self.collection = collection
        self.record_id = record_id


class InvalidOrderTotal(CafeteriaError):
    """Order items are empty or the declared total does not match them."""


class InvalidStatusTransition(CafeteriaError):
    """Requested order status is not reachable from the current one."""

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move order from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class Unauthorized(CafeteriaError):
    """The session is missing or lacks the role required for the operation."""


class EmptyCart(CafeteriaError):
    """Checkout attempted with no lines in the cart."""


class CheckoutInProgress(CafeteriaError):
    """A checkout of the same cart has not finished yet."""

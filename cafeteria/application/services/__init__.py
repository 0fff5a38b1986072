"""Application services module.

Session resolution and cart checkout, independent of the storage backend.
"""
from cafeteria.application.services.credential_flows import (
    AnonymousSignIn,
    CredentialFlow,
    EmailLinkComplete,
    EmailLinkRequest,
    OAuthPopupSignIn,
    PasswordSignIn,
    PasswordSignUp,
)
from cafeteria.application.services.session_resolver import SessionResolver
from cafeteria.application.services.cart_service import CartLine, ShoppingCart

__all__ = [
    "AnonymousSignIn",
    "CredentialFlow",
    "EmailLinkComplete",
    "EmailLinkRequest",
    "OAuthPopupSignIn",
    "PasswordSignIn",
    "PasswordSignUp",
    "SessionResolver",
    "CartLine",
    "ShoppingCart",
]

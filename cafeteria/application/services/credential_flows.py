"""Credential flows accepted by the session resolver.

Each flow is a small immutable value; ``SessionResolver.sign_in`` dispatches
on its type.
"""
from dataclasses import dataclass
from typing import Optional, Union

from cafeteria.domain.entities.user import DEFAULT_ROLE, Role


@dataclass(frozen=True)
class AnonymousSignIn:
    pass


@dataclass(frozen=True)
class PasswordSignUp:
    email: str
    password: str = ""
    role: Role = DEFAULT_ROLE

    def __post_init__(self):
        if not self.email:
            raise ValueError("email is required")
        object.__setattr__(self, "role", Role.parse(self.role))


@dataclass(frozen=True)
class PasswordSignIn:
    email: str
    password: str = ""

    def __post_init__(self):
        if not self.email:
            raise ValueError("email is required")


@dataclass(frozen=True)
class EmailLinkRequest:
    email: str

    def __post_init__(self):
        if not self.email:
            raise ValueError("email is required")


@dataclass(frozen=True)
class EmailLinkComplete:
    """Second half of the email-link flow; ``email`` falls back to the pending marker."""

    link: str
    email: Optional[str] = None


@dataclass(frozen=True)
class OAuthPopupSignIn:
    """
    Popup sign-in with an OAuth provider such as ``google.com``.

    ``role`` is applied only when given; otherwise an existing user keeps
    their role and a new one gets the default.
    """

    provider_id: str = "google.com"
    role: Optional[Role] = None

    def __post_init__(self):
        if self.role is not None:
            object.__setattr__(self, "role", Role.parse(self.role))


CredentialFlow = Union[
    AnonymousSignIn,
    PasswordSignUp,
    PasswordSignIn,
    EmailLinkRequest,
    EmailLinkComplete,
    OAuthPopupSignIn,
]

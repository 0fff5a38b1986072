"""Interface for identity providers (Strategy Pattern)."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from cafeteria.domain.entities.session import ProviderIdentity


IdentityListener = Callable[[Optional[ProviderIdentity]], Union[None, Awaitable[None]]]
Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class OAuthCredential:
    """Token returned by an OAuth provider popup, to be exchanged for an identity."""

    provider_id: str
    id_token: Optional[str] = None
    access_token: Optional[str] = None

    def __post_init__(self):
        if not self.provider_id:
            raise ValueError("provider_id is required")
        if not (self.id_token or self.access_token):
            raise ValueError("id_token or access_token is required")


# Opens the provider's consent popup and returns its credential.
# Raises PopupDismissed when the user closes it.
PopupHandler = Callable[[str], Awaitable[OAuthCredential]]


class IIdentityProvider(ABC):
    """
    Interface for credential exchange with an identity provider.

    Every successful sign-in and every sign-out is pushed to the listeners
    registered with ``on_identity_change``.
    """

    @abstractmethod
    async def sign_in_anonymously(self) -> ProviderIdentity:
        """Mint an ephemeral anonymous credential."""
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> ProviderIdentity:
        """
        Create an email/password credential.

        Raises:
            EmailAlreadyInUse: If the email already has a credential
        """
        pass

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> ProviderIdentity:
        """
        Authenticate an existing email/password credential.

        Raises:
            InvalidCredentials: If the email or password is wrong
        """
        pass

    @abstractmethod
    async def send_sign_in_link(self, email: str) -> None:
        """Ask the provider to email a one-time sign-in link."""
        pass

    @abstractmethod
    def is_sign_in_link(self, link: str) -> bool:
        """Whether ``link`` looks like a sign-in link issued by this provider."""
        pass

    @abstractmethod
    async def sign_in_with_email_link(self, email: str, link: str) -> ProviderIdentity:
        """
        Authenticate with an emailed sign-in link.

        Raises:
            InvalidLink: If the link is malformed, used or expired
        """
        pass

    @abstractmethod
    async def sign_in_with_credential(self, credential: OAuthCredential) -> ProviderIdentity:
        """Exchange an OAuth provider credential for a verified identity."""
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        """Forget the current identity."""
        pass

    @property
    @abstractmethod
    def current_identity(self) -> Optional[ProviderIdentity]:
        """The identity currently signed in, if any."""
        pass

    @abstractmethod
    def on_identity_change(self, listener: IdentityListener) -> Unsubscribe:
        """
        Register a listener for identity changes.

        Args:
            listener: Called with the new identity, or None after sign-out

        Returns:
            Function that removes the listener
        """
        pass


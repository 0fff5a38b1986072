"""Session resolver: turns identity provider state into a Session."""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from cafeteria.application.services.credential_flows import (
    AnonymousSignIn,
    CredentialFlow,
    EmailLinkComplete,
    EmailLinkRequest,
    OAuthPopupSignIn,
    PasswordSignIn,
    PasswordSignUp,
)
from cafeteria.config.settings import Config
from cafeteria.domain.entities.session import ProviderIdentity, Session
from cafeteria.domain.exceptions import BackendUnavailable, IdentityProviderError, InvalidLink
from cafeteria.domain.interfaces.identity_provider import IIdentityProvider, PopupHandler, Unsubscribe
from cafeteria.domain.interfaces.key_value_storage import IKeyValueStorage
from cafeteria.repositories.user_repository import UserRepository


SessionListener = Callable[[Optional[Session]], Union[None, Awaitable[None]]]

GUEST_NAME = "Guest User"


class SessionResolver:
    """
    Normalizes every credential flow into one Session.

    The resolver listens to the identity provider and re-derives the Session
    on each identity change, reading role and anonymity from the user record.
    When that read fails the Session is still produced, in degraded mode,
    with the customer role and no verified role.

    Identity changes raised while a flow is still writing the user record
    are held back and resolved once the flow has finished.
    """

    def __init__(
        self,
        identity_provider: IIdentityProvider,
        user_repository: UserRepository,
        marker_storage: IKeyValueStorage,
        popup_handler: Optional[PopupHandler] = None,
        marker_key: Optional[str] = None,
    ):
        """
        Initialize the resolver.

        Args:
            identity_provider: Credential exchange backend (Dependency Injection)
            user_repository: Repository holding user records
            marker_storage: Local storage for the pending email-link address
            popup_handler: Opens the OAuth consent popup; required for OAuth sign-in
            marker_key: Storage key of the pending email-link address
        """
        self.identity_provider = identity_provider
        self.user_repository = user_repository
        self.marker_storage = marker_storage
        self.popup_handler = popup_handler
        self.marker_key = marker_key or Config.EMAIL_LINK_MARKER_KEY
        self._logger = logging.getLogger(__name__)

        self._session: Optional[Session] = None
        self._listeners: Dict[int, SessionListener] = {}
        self._next_token = 0
        self._provider_unsubscribe: Optional[Unsubscribe] = None
        self._flows_in_progress = 0
        self._deferred_change = False

        self._handlers: Dict[type, Callable[[Any], Awaitable[Optional[ProviderIdentity]]]] = {
            AnonymousSignIn: self._sign_in_anonymously,
            PasswordSignUp: self._sign_up_with_password,
            PasswordSignIn: self._sign_in_with_password,
            EmailLinkRequest: self._request_email_link,
            EmailLinkComplete: self._complete_email_link,
            OAuthPopupSignIn: self._sign_in_with_popup,
        }

    @property
    def current_session(self) -> Optional[Session]:
        return self._session

    # -------------------------------------------------------------------
    # Subscription lifecycle
    # -------------------------------------------------------------------
    async def start(self) -> Optional[Session]:
        """Subscribe to the identity provider and resolve its current identity."""
        if self._provider_unsubscribe is None:
            self._provider_unsubscribe = self.identity_provider.on_identity_change(self._on_identity_change)
            self._logger.debug("Subscribed to identity provider")
        await self._publish(self.identity_provider.current_identity)
        return self._session

    def close(self) -> None:
        """Unsubscribe from the provider and drop all session listeners."""
        if self._provider_unsubscribe is not None:
            self._provider_unsubscribe()
            self._provider_unsubscribe = None
        self._listeners.clear()
        self._session = None
        self._logger.debug("Session resolver closed")

    def on_session_change(self, listener: SessionListener) -> Unsubscribe:
        """
        Register a listener called with every new Session (None after sign-out).

        Returns:
            Function that removes the listener
        """
        token = self._next_token
        self._next_token += 1
        self._listeners[token] = listener

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    async def _on_identity_change(self, identity: Optional[ProviderIdentity]) -> None:
        if self._flows_in_progress:
            self._deferred_change = True
            return
        await self._publish(identity)

    async def _publish(self, identity: Optional[ProviderIdentity]) -> None:
        session = await self.resolve(identity)
        self._session = session
        for listener in list(self._listeners.values()):
            try:
                result = listener(session)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._logger.error(f"Session listener failed: {e}", exc_info=True)

    # -------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------
    async def resolve(self, identity: Optional[ProviderIdentity]) -> Optional[Session]:
        """
        Derive the Session for a provider identity.

        The user record is created with the default role if it does not
        exist yet. If the record cannot be read or created, a degraded
        customer Session is returned instead of failing.
        """
        if identity is None:
            return None

        try:
            user = await self.user_repository.get(identity.uid)
            if user is None:
                user = await self.user_repository.upsert(
                    identity.uid,
                    {
                        "email": identity.email,
                        "name": identity.display_name or (GUEST_NAME if identity.is_anonymous else None),
                        "image": identity.photo_url,
                        "is_anonymous": identity.is_anonymous,
                    },
                )
        except BackendUnavailable as e:
            self._logger.warning(f"Role refresh failed for {identity.uid}, using degraded session: {e}")
            return Session.degraded_from(identity)

        return Session.from_user(identity, user)

    async def sign_in(self, flow: CredentialFlow) -> Optional[Session]:
        """
        Run a credential flow and return the resulting Session.

        Returns None for ``EmailLinkRequest``, which only sends the link.

        Raises:
            CredentialRejected: If the provider rejects the credential
            BackendUnavailable: If the user record could not be written
            TypeError: If ``flow`` is not a known credential flow
        """
        handler = self._handlers.get(type(flow))
        if handler is None:
            raise TypeError(f"Unsupported credential flow: {type(flow).__name__}")

        identity: Optional[ProviderIdentity] = None
        self._flows_in_progress += 1
        try:
            identity = await handler(flow)
        finally:
            self._flows_in_progress -= 1
            current = self.identity_provider.current_identity
            changed = (
                self._deferred_change
                or identity is not None
                or self._session_uid() != (current.uid if current else None)
            )
            if changed and not self._flows_in_progress:
                self._deferred_change = False
                await self._publish(identity or current)

        if identity is None:
            return None
        return self._session

    def _session_uid(self) -> Optional[str]:
        return self._session.id if self._session is not None else None

    async def sign_out(self) -> None:
        await self.identity_provider.sign_out()
        if self._session is not None and self.identity_provider.current_identity is None:
            await self._publish(None)

    # -------------------------------------------------------------------
    # Flow handlers
    # -------------------------------------------------------------------
    async def _sign_in_anonymously(self, flow: AnonymousSignIn) -> ProviderIdentity:
        identity = await self.identity_provider.sign_in_anonymously()
        await self.user_repository.upsert(identity.uid, {"name": GUEST_NAME, "is_anonymous": True})
        return identity

    async def _sign_up_with_password(self, flow: PasswordSignUp) -> ProviderIdentity:
        identity = await self.identity_provider.sign_up(flow.email, flow.password)
        await self.user_repository.upsert(
            identity.uid,
            {"email": identity.email or flow.email, "role": flow.role, "is_anonymous": False},
        )
        return identity

    async def _sign_in_with_password(self, flow: PasswordSignIn) -> ProviderIdentity:
        # Role lives in the user record; signing in never changes it
        return await self.identity_provider.sign_in_with_password(flow.email, flow.password)

    async def _request_email_link(self, flow: EmailLinkRequest) -> None:
        await asyncio.to_thread(self.marker_storage.set_item, self.marker_key, flow.email)
        try:
            await self.identity_provider.send_sign_in_link(flow.email)
        except Exception:
            await asyncio.to_thread(self.marker_storage.remove_item, self.marker_key)
            raise
        return None

    async def _complete_email_link(self, flow: EmailLinkComplete) -> ProviderIdentity:
        email = flow.email or await asyncio.to_thread(self.marker_storage.get_item, self.marker_key)
        if not email:
            raise InvalidLink("No email address known for this sign-in link")
        if not self.identity_provider.is_sign_in_link(flow.link):
            raise InvalidLink("Sign-in link is missing or malformed")

        identity = await self.identity_provider.sign_in_with_email_link(email, flow.link)
        await asyncio.to_thread(self.marker_storage.remove_item, self.marker_key)
        await self.user_repository.get_or_create(
            identity.uid,
            {"email": identity.email or email, "is_anonymous": False},
        )
        return identity

    async def _sign_in_with_popup(self, flow: OAuthPopupSignIn) -> ProviderIdentity:
        if self.popup_handler is None:
            raise IdentityProviderError("No OAuth popup handler configured")

        credential = await self.popup_handler(flow.provider_id)
        identity = await self.identity_provider.sign_in_with_credential(credential)

        changes: Dict[str, Any] = {
            "email": identity.email,
            "name": identity.display_name,
            "image": identity.photo_url,
            "is_anonymous": False,
        }
        if flow.role is not None:
            changes["role"] = flow.role
        await self.user_repository.upsert(identity.uid, changes)
        return identity

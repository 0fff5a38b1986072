"""Identity provider backed by the Identity Toolkit REST API."""
import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import requests

from cafeteria.config.settings import Config
from cafeteria.domain.entities.session import ProviderIdentity
from cafeteria.domain.exceptions import (
    CredentialRejected,
    EmailAlreadyInUse,
    IdentityProviderError,
    InvalidCredentials,
    InvalidLink,
)
from cafeteria.domain.interfaces.identity_provider import (
    IdentityListener,
    IIdentityProvider,
    OAuthCredential,
    Unsubscribe,
)
from cafeteria.infrastructure.clients.identity_toolkit_client import (
    IdentityToolkitClient,
    IdentityToolkitError,
)


# Provider error code -> rejection raised to the caller
REJECTION_CODES: Dict[str, type] = {
    "EMAIL_EXISTS": EmailAlreadyInUse,
    "EMAIL_NOT_FOUND": InvalidCredentials,
    "INVALID_PASSWORD": InvalidCredentials,
    "INVALID_LOGIN_CREDENTIALS": InvalidCredentials,
    "INVALID_EMAIL": InvalidCredentials,
    "MISSING_PASSWORD": InvalidCredentials,
    "WEAK_PASSWORD": InvalidCredentials,
    "USER_DISABLED": InvalidCredentials,
    "INVALID_IDP_RESPONSE": InvalidCredentials,
    "FEDERATED_USER_ID_ALREADY_LINKED": InvalidCredentials,
    "INVALID_OOB_CODE": InvalidLink,
    "EXPIRED_OOB_CODE": InvalidLink,
}


def extract_oob_code(link: str) -> Optional[str]:
    """
    Return the one-time code of a sign-in link, or None if ``link`` is not one.

    Hosted action links wrap the real link in a ``link`` query parameter.
    """
    if not link:
        return None
    query = parse_qs(urlparse(link).query)
    if "link" in query and "oobCode" not in query:
        query = parse_qs(urlparse(query["link"][0]).query)
    if query.get("mode", [""])[0] != "signIn":
        return None
    codes = query.get("oobCode")
    return codes[0] if codes else None


class RestIdentityProvider(IIdentityProvider):
    """
    Identity provider talking to an Identity Toolkit compatible REST API.

    Blocking HTTP calls run in a worker thread so the event loop stays free.
    Identity changes are pushed to listeners after each successful exchange
    and after sign-out.
    """

    def __init__(
        self,
        client: Optional[IdentityToolkitClient] = None,
        continue_url: Optional[str] = None,
        request_uri: Optional[str] = None,
    ):
        """
        Initialize the provider.

        Args:
            client: REST client (Dependency Injection)
            continue_url: URL the emailed sign-in link points back to
            request_uri: Redirect URI sent with OAuth token exchanges
        """
        self.client = client or IdentityToolkitClient()
        self.continue_url = continue_url or Config.EMAIL_LINK_CONTINUE_URL
        self.request_uri = request_uri or Config.OAUTH_REQUEST_URI
        self._current: Optional[ProviderIdentity] = None
        self._listeners: Dict[int, IdentityListener] = {}
        self._next_token = 0
        self._logger = logging.getLogger(__name__)

    @property
    def current_identity(self) -> Optional[ProviderIdentity]:
        return self._current

    def on_identity_change(self, listener: IdentityListener) -> Unsubscribe:
        token = self._next_token
        self._next_token += 1
        self._listeners[token] = listener

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    async def _notify(self) -> None:
        identity = self._current
        for listener in list(self._listeners.values()):
            try:
                result = listener(identity)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._logger.error(f"Identity listener failed: {e}", exc_info=True)

    async def _call(self, operation: Callable[..., Dict[str, Any]], *args: Any) -> Dict[str, Any]:
        """Run a blocking client call and translate its failures."""
        try:
            return await asyncio.to_thread(operation, *args)
        except IdentityToolkitError as e:
            rejection = REJECTION_CODES.get(e.code)
            if rejection is not None:
                raise rejection(f"Credential rejected: {e.code}", code=e.code) from e
            raise IdentityProviderError(f"Identity provider error: {e.code}") from e
        except requests.RequestException as e:
            self._logger.error(f"Identity provider unreachable: {e}")
            raise IdentityProviderError(f"Identity provider unreachable: {e}") from e

    async def _signed_in(self, response: Dict[str, Any], is_anonymous: bool = False) -> ProviderIdentity:
        identity = ProviderIdentity(
            uid=response["localId"],
            email=response.get("email") or None,
            display_name=response.get("displayName") or response.get("fullName") or None,
            photo_url=response.get("photoUrl") or None,
            is_anonymous=is_anonymous,
            id_token=response.get("idToken"),
            refresh_token=response.get("refreshToken"),
        )
        self._current = identity
        self._logger.info(f"Signed in {identity.uid} (anonymous={identity.is_anonymous})")
        await self._notify()
        return identity

    async def sign_in_anonymously(self) -> ProviderIdentity:
        response = await self._call(self.client.sign_up)
        return await self._signed_in(response, is_anonymous=True)

    async def sign_up(self, email: str, password: str) -> ProviderIdentity:
        response = await self._call(self.client.sign_up, email, password)
        return await self._signed_in(response)

    async def sign_in_with_password(self, email: str, password: str) -> ProviderIdentity:
        response = await self._call(self.client.sign_in_with_password, email, password)
        return await self._signed_in(response)

    async def send_sign_in_link(self, email: str) -> None:
        await self._call(self.client.send_sign_in_link, email, self.continue_url)
        self._logger.info(f"Sign-in link sent to {email}")

    def is_sign_in_link(self, link: str) -> bool:
        return extract_oob_code(link) is not None

    async def sign_in_with_email_link(self, email: str, link: str) -> ProviderIdentity:
        oob_code = extract_oob_code(link)
        if oob_code is None:
            raise InvalidLink("Not a sign-in link", code="INVALID_OOB_CODE")
        response = await self._call(self.client.sign_in_with_email_link, email, oob_code)
        return await self._signed_in(response)

    async def sign_in_with_credential(self, credential: OAuthCredential) -> ProviderIdentity:
        params = {"providerId": credential.provider_id}
        if credential.id_token:
            params["id_token"] = credential.id_token
        if credential.access_token:
            params["access_token"] = credential.access_token
        response = await self._call(self.client.sign_in_with_idp, urlencode(params), self.request_uri)
        if response.get("needConfirmation"):
            # The email already belongs to an account with another sign-in method
            raise CredentialRejected("Account exists with a different sign-in method", code="NEED_CONFIRMATION")
        return await self._signed_in(response)

    async def sign_out(self) -> None:
        if self._current is None:
            return
        self._logger.info(f"Signed out {self._current.uid}")
        self._current = None
        await self._notify()

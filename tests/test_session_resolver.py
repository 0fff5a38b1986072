"""Tests for SessionResolver across every credential flow."""
from unittest.mock import AsyncMock

import pytest

from cafeteria.application.services.credential_flows import (
    AnonymousSignIn,
    EmailLinkComplete,
    EmailLinkRequest,
    OAuthPopupSignIn,
    PasswordSignIn,
    PasswordSignUp,
)
from cafeteria.application.services.session_resolver import SessionResolver
from cafeteria.domain.entities.session import ProviderIdentity
from cafeteria.domain.entities.user import Role
from cafeteria.domain.exceptions import (
    BackendUnavailable,
    EmailAlreadyInUse,
    IdentityProviderError,
    InvalidCredentials,
    InvalidLink,
    PopupDismissed,
    Unauthorized,
)
from cafeteria.domain.interfaces.identity_provider import OAuthCredential
from cafeteria.repositories.user_repository import UserRepository
from tests.conftest import SIGN_IN_LINK


MARKER_KEY = "emailForSignIn"


@pytest.fixture
def popup_handler():
    return AsyncMock(return_value=OAuthCredential(provider_id="google.com", id_token="google-id-token"))


@pytest.fixture
def resolver(identity_provider, user_repository, memory_storage, popup_handler):
    return SessionResolver(
        identity_provider=identity_provider,
        user_repository=user_repository,
        marker_storage=memory_storage,
        popup_handler=popup_handler,
        marker_key=MARKER_KEY,
    )


class FailingUserRepository(UserRepository):
    """User repository whose backend is unreachable."""

    async def get(self, user_id):
        raise BackendUnavailable("store offline")

    async def upsert(self, user_id, changes):
        raise BackendUnavailable("store offline")


class TestCredentialFlows:

    async def test_anonymous_sign_in(self, resolver, user_repository):
        session = await resolver.sign_in(AnonymousSignIn())

        assert session.id == "anon-1"
        assert session.is_anonymous is True
        assert session.role == Role.CUSTOMER
        assert session.verified_role == Role.CUSTOMER
        user = await user_repository.get("anon-1")
        assert user.name == "Guest User"
        assert user.is_anonymous is True

    async def test_password_sign_up_records_requested_role(self, resolver, user_repository):
        session = await resolver.sign_in(
            PasswordSignUp(email="new@example.com", password="hunter22", role="staff")
        )

        assert session.id == "uid-new"
        assert session.role == Role.STAFF
        assert session.has_verified_staff_role
        assert (await user_repository.get("uid-new")).email == "new@example.com"

    async def test_password_sign_in_keeps_stored_role(self, resolver, user_repository):
        await user_repository.upsert("uid-1", {"email": "a@example.com", "role": Role.ADMIN})

        session = await resolver.sign_in(PasswordSignIn(email="a@example.com", password="secret"))

        assert session.role == Role.ADMIN
        assert session.is_anonymous is False

    async def test_first_password_sign_in_creates_default_record(self, resolver, user_repository):
        session = await resolver.sign_in(PasswordSignIn(email="a@example.com", password="secret"))

        assert session.role == Role.CUSTOMER
        assert (await user_repository.get("uid-1")).email == "a@example.com"

    async def test_rejected_credential_leaves_no_session(self, resolver, identity_provider):
        identity_provider.error = InvalidCredentials("Credential rejected", code="INVALID_PASSWORD")

        with pytest.raises(InvalidCredentials):
            await resolver.sign_in(PasswordSignIn(email="a@example.com", password="wrong"))

        assert resolver.current_session is None

    async def test_sign_up_with_taken_email(self, resolver, identity_provider):
        identity_provider.error = EmailAlreadyInUse("Credential rejected", code="EMAIL_EXISTS")

        with pytest.raises(EmailAlreadyInUse):
            await resolver.sign_in(PasswordSignUp(email="taken@example.com", password="x"))

    def test_flows_require_email(self):
        with pytest.raises(ValueError):
            PasswordSignIn(email="")
        with pytest.raises(ValueError):
            PasswordSignUp(email="a@example.com", role="superuser")

    async def test_unknown_flow_type(self, resolver):
        with pytest.raises(TypeError):
            await resolver.sign_in(object())


class TestEmailLinkFlow:

    async def test_request_stores_marker_and_returns_none(self, resolver, identity_provider, memory_storage):
        result = await resolver.sign_in(EmailLinkRequest(email="link@example.com"))

        assert result is None
        assert identity_provider.sent_links == ["link@example.com"]
        assert memory_storage.get_item(MARKER_KEY) == "link@example.com"
        assert resolver.current_session is None

    async def test_failed_request_removes_marker(self, resolver, identity_provider, memory_storage):
        identity_provider.error = IdentityProviderError("unreachable")

        with pytest.raises(IdentityProviderError):
            await resolver.sign_in(EmailLinkRequest(email="link@example.com"))

        assert memory_storage.get_item(MARKER_KEY) is None

    async def test_complete_uses_marker_and_clears_it(self, resolver, memory_storage, user_repository):
        await resolver.sign_in(EmailLinkRequest(email="link@example.com"))

        session = await resolver.sign_in(EmailLinkComplete(link=SIGN_IN_LINK))

        assert session.id == "uid-link"
        assert session.email == "link@example.com"
        assert memory_storage.get_item(MARKER_KEY) is None
        assert (await user_repository.get("uid-link")).is_anonymous is False

    async def test_complete_with_explicit_email(self, resolver):
        session = await resolver.sign_in(EmailLinkComplete(link=SIGN_IN_LINK, email="other@example.com"))
        assert session.email == "other@example.com"

    async def test_complete_without_known_email(self, resolver):
        with pytest.raises(InvalidLink):
            await resolver.sign_in(EmailLinkComplete(link=SIGN_IN_LINK))

    async def test_complete_with_malformed_link(self, resolver, memory_storage):
        memory_storage.set_item(MARKER_KEY, "link@example.com")

        with pytest.raises(InvalidLink):
            await resolver.sign_in(EmailLinkComplete(link="https://cafeteria.example/menu"))

        assert memory_storage.get_item(MARKER_KEY) == "link@example.com"

    async def test_complete_keeps_existing_role(self, resolver, user_repository):
        await user_repository.upsert("uid-link", {"email": "link@example.com", "role": Role.MEMBER})

        session = await resolver.sign_in(EmailLinkComplete(link=SIGN_IN_LINK, email="link@example.com"))

        assert session.role == Role.MEMBER


class TestOAuthFlow:

    async def test_popup_credential_is_exchanged(self, resolver, identity_provider, popup_handler):
        session = await resolver.sign_in(OAuthPopupSignIn())

        popup_handler.assert_awaited_once_with("google.com")
        assert identity_provider.received_credentials[0].id_token == "google-id-token"
        assert session.id == "uid-oauth"
        assert session.display_name == "OAuth User"
        assert session.role == Role.CUSTOMER

    async def test_returning_user_keeps_role_without_request(self, resolver, user_repository):
        await user_repository.upsert("uid-oauth", {"role": Role.STAFF})

        session = await resolver.sign_in(OAuthPopupSignIn())

        assert session.role == Role.STAFF
        assert (await user_repository.get("uid-oauth")).name == "OAuth User"

    async def test_requested_role_is_applied(self, resolver, user_repository):
        await user_repository.upsert("uid-oauth", {"role": Role.CUSTOMER})

        session = await resolver.sign_in(OAuthPopupSignIn(role=Role.MEMBER))

        assert session.role == Role.MEMBER

    async def test_dismissed_popup(self, resolver, popup_handler, identity_provider):
        popup_handler.side_effect = PopupDismissed("Popup closed", code="POPUP_CLOSED")

        with pytest.raises(PopupDismissed):
            await resolver.sign_in(OAuthPopupSignIn())

        assert identity_provider.received_credentials == []
        assert resolver.current_session is None

    async def test_missing_popup_handler(self, identity_provider, user_repository, memory_storage):
        resolver = SessionResolver(identity_provider, user_repository, memory_storage)

        with pytest.raises(IdentityProviderError):
            await resolver.sign_in(OAuthPopupSignIn())


class TestSessionLifecycle:

    async def test_start_resolves_current_identity(self, resolver, identity_provider, user_repository):
        identity_provider.current = ProviderIdentity(uid="uid-1", email="a@example.com")
        await user_repository.upsert("uid-1", {"role": Role.STAFF})

        session = await resolver.start()

        assert session.role == Role.STAFF
        assert resolver.current_session == session

    async def test_listeners_receive_each_session_once_per_flow(self, resolver):
        await resolver.start()
        seen = []
        resolver.on_session_change(seen.append)

        await resolver.sign_in(AnonymousSignIn())
        await resolver.sign_out()

        assert [s.id if s else None for s in seen] == ["anon-1", None]
        assert resolver.current_session is None

    async def test_async_listener_and_unsubscribe(self, resolver):
        await resolver.start()
        listener = AsyncMock()
        unsubscribe = resolver.on_session_change(listener)

        await resolver.sign_in(AnonymousSignIn())
        unsubscribe()
        await resolver.sign_out()

        listener.assert_awaited_once()

    async def test_failing_listener_does_not_break_others(self, resolver):
        await resolver.start()
        seen = []

        def broken(session):
            raise RuntimeError("listener bug")

        resolver.on_session_change(broken)
        resolver.on_session_change(seen.append)

        await resolver.sign_in(AnonymousSignIn())

        assert len(seen) == 1

    async def test_listener_sees_role_written_by_sign_up(self, resolver):
        await resolver.start()
        roles = []
        resolver.on_session_change(lambda session: roles.append(session.role if session else None))

        await resolver.sign_in(PasswordSignUp(email="new@example.com", password="x", role=Role.STAFF))

        # Only the resolved session after the record write is published
        assert roles == [Role.STAFF]

    async def test_close_stops_following_provider(self, resolver, identity_provider):
        await resolver.start()
        resolver.close()

        await identity_provider.sign_in_anonymously()

        assert resolver.current_session is None
        assert identity_provider.listeners == {}


class TestDegradedMode:

    @pytest.fixture
    def degraded_resolver(self, identity_provider, backend, memory_storage):
        return SessionResolver(identity_provider, FailingUserRepository(backend), memory_storage)

    async def test_unreachable_store_yields_degraded_session(self, degraded_resolver, identity_provider):
        identity_provider.current = ProviderIdentity(uid="staff-1", email="staff@example.com")

        session = await degraded_resolver.start()

        assert session.degraded is True
        assert session.role == Role.CUSTOMER
        assert session.verified_role is None
        assert not session.has_verified_staff_role

    async def test_password_sign_in_still_signs_in(self, degraded_resolver):
        session = await degraded_resolver.sign_in(PasswordSignIn(email="a@example.com", password="secret"))

        assert session.id == "uid-1"
        assert session.degraded is True

    async def test_record_write_failure_surfaces_after_publishing(self, degraded_resolver):
        with pytest.raises(BackendUnavailable):
            await degraded_resolver.sign_in(AnonymousSignIn())

        # The provider did sign in, so a degraded session is still published
        assert degraded_resolver.current_session.id == "anon-1"
        assert degraded_resolver.current_session.degraded is True

    async def test_started_resolver_publishes_after_write_failure(self, degraded_resolver):
        assert await degraded_resolver.start() is None
        sessions = []
        degraded_resolver.on_session_change(sessions.append)

        with pytest.raises(BackendUnavailable):
            await degraded_resolver.sign_in(AnonymousSignIn())

        assert [s.id for s in sessions] == ["anon-1"]
        assert degraded_resolver.current_session.degraded is True

    async def test_sign_out_without_start_clears_session(self, degraded_resolver):
        await degraded_resolver.sign_in(PasswordSignIn(email="a@example.com", password="secret"))

        await degraded_resolver.sign_out()

        assert degraded_resolver.current_session is None

    @pytest.mark.parametrize("is_anonymous", [True, False])
    async def test_degraded_session_keeps_provider_anonymity(self, degraded_resolver, identity_provider, is_anonymous):
        identity_provider.current = ProviderIdentity(uid="uid-9", is_anonymous=is_anonymous)

        session = await degraded_resolver.start()

        assert session.degraded is True
        assert session.is_anonymous is is_anonymous


class TestResolvedSessionAuthorization:

    async def test_staff_sign_up_session_can_manage_menu(self, resolver, menu_repository):
        session = await resolver.sign_in(
            PasswordSignUp(email="cook@example.com", password="secret", role=Role.STAFF)
        )

        item = await menu_repository.create(session, "Upma", 30)

        assert (await menu_repository.get(item.id)).name == "Upma"

    async def test_resolved_customer_cannot_manage_menu(self, resolver, menu_repository):
        session = await resolver.sign_in(PasswordSignIn(email="a@example.com", password="secret"))

        with pytest.raises(Unauthorized):
            await menu_repository.create(session, "Upma", 30)

    async def test_degraded_staff_session_is_refused(
        self, identity_provider, backend, memory_storage, user_repository, menu_repository
    ):
        await user_repository.upsert("staff-1", {"email": "staff@example.com", "role": Role.STAFF})
        identity_provider.current = ProviderIdentity(uid="staff-1", email="staff@example.com")
        resolver = SessionResolver(identity_provider, FailingUserRepository(backend), memory_storage)

        session = await resolver.start()

        assert session.id == "staff-1"
        with pytest.raises(Unauthorized):
            await menu_repository.create(session, "Upma", 30)

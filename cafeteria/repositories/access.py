"""Authorization checks shared by the domain repositories."""
from typing import Optional

from cafeteria.domain.entities.session import Session
from cafeteria.domain.exceptions import Unauthorized


def require_session(session: Optional[Session]) -> Session:
    """Reject calls made without a signed-in session."""
    if session is None:
        raise Unauthorized("Sign in required")
    return session


def require_staff(session: Optional[Session], action: str) -> Session:
    """
    Reject callers whose verified role is not staff or admin.

    Only ``verified_role`` counts: a degraded session displays a fallback
    role that was never read from the user record.
    """
    session = require_session(session)
    if not session.has_verified_staff_role:
        raise Unauthorized(f"Staff role required to {action}")
    return session

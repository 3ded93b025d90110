"""Auth session as seen by the ordering core.

Authentication itself happens elsewhere; the core only needs to know who
the current user is and whether the session has finished loading.
"""

from dataclasses import dataclass

from fastapi import Header


@dataclass(frozen=True)
class AuthSession:
    """Current user and loading state supplied by the auth collaborator."""

    user_id: str | None = None
    loading: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id) and not self.loading

    @property
    def can_mutate(self) -> bool:
        """Without a loaded session the core is read-only."""
        return self.is_authenticated

    def owns(self, owner_id: str | None) -> bool:
        return self.is_authenticated and owner_id is not None and str(owner_id) == str(self.user_id)


ANONYMOUS = AuthSession()


def session_from_header(x_user_id: str | None = Header(default=None)) -> AuthSession:
    """FastAPI dependency: build the session from the ``X-User-Id`` header."""
    if not x_user_id:
        return ANONYMOUS
    return AuthSession(user_id=x_user_id)

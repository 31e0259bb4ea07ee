import logging
from typing import Optional

from supabase import Client

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """The bearer token did not resolve to an authenticated user."""


class SupabaseIdentityProvider:
    """
    Opaque source of the current identity. Credentials never pass through
    this service; clients sign in with Supabase Auth and present the JWT.
    """

    def __init__(self, client: Client):
        self.client = client

    def identify(self, token: str) -> str:
        try:
            resp = self.client.auth.get_user(token)
        except Exception as e:
            raise IdentityError(f"Token rejected: {e}") from e

        user = getattr(resp, "user", None)
        email: Optional[str] = getattr(user, "email", None)
        if not email:
            raise IdentityError("Authenticated user has no email")
        return email

    def sign_out(self, token: str):
        try:
            self.client.auth.admin.sign_out(token)
        except Exception as e:
            # The session is dropped locally either way
            logger.warning(f"[Auth] Provider sign-out failed: {e}")

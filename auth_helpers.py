"""
Supabase Authentication Integration
Registration, password login and bearer-token verification are delegated to Supabase Auth
"""
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

from supabase_auth.errors import AuthError

from errors import ProviderError, UnauthorizedError
from supabase_config import get_supabase_client, user_projection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """The authenticated user behind a bearer token"""

    id: str
    email: str
    name: str

    def to_dict(self) -> Dict:
        return {"id": self.id, "email": self.email, "name": self.name}


class IdentityProvider:
    """Interface for the external identity service"""

    def sign_up(self, name: str, email: str, password: str) -> Dict:
        raise NotImplementedError

    def sign_in(self, email: str, password: str) -> Tuple[str, Dict]:
        raise NotImplementedError

    def verify_token(self, token: str) -> Principal:
        raise NotImplementedError

    def ensure_user(self, name: str, email: str, password: str) -> bool:
        raise NotImplementedError


class SupabaseIdentityProvider(IdentityProvider):
    """
    Supabase Auth backed provider

    admin_client uses the service role key (user creation, token checks);
    auth_client uses the anon key (password sign-in).
    """

    def __init__(self, admin_client, auth_client):
        self.admin_client = admin_client
        self.auth_client = auth_client

    @classmethod
    def from_config(cls, config: Mapping) -> "SupabaseIdentityProvider":
        return cls(
            get_supabase_client(config, service_role=True),
            get_supabase_client(config, service_role=False),
        )

    def sign_up(self, name, email, password):
        """
        Create a confirmed user with the display name in user metadata

        Returns:
            Dict with id, email and name of the new user
        """
        try:
            response = self.admin_client.auth.admin.create_user({
                "email": email,
                "password": password,
                "user_metadata": {"name": name},
                # No mail server is configured, so confirm right away
                "email_confirm": True,
            })
        except AuthError as e:
            logger.warning("Signup rejected for %s: %s", email, e.message)
            raise ProviderError(e.message)

        if not response or not response.user:
            raise ProviderError("Failed to create account")

        logger.info("User created: %s", email)
        return user_projection(response.user)

    def sign_in(self, email, password):
        """
        Log in with email and password

        Returns:
            Tuple of (access_token, user dict)
        """
        try:
            response = self.auth_client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except AuthError as e:
            # Never tell the client whether the email exists
            logger.warning("Login failed for %s: %s", email, e.message)
            raise UnauthorizedError("Invalid credentials")

        if not response or not response.session or not response.user:
            raise UnauthorizedError("Invalid credentials")

        logger.info("User logged in: %s", email)
        return response.session.access_token, user_projection(response.user)

    def verify_token(self, token):
        if not token:
            raise UnauthorizedError()
        try:
            response = self.admin_client.auth.get_user(token)
        except AuthError as e:
            logger.warning("Token rejected: %s", e.message)
            raise UnauthorizedError()

        if not response or not response.user:
            raise UnauthorizedError()

        return Principal(**user_projection(response.user))

    def ensure_user(self, name, email, password):
        """Create the user unless an account with this email already exists"""
        users = self.admin_client.auth.admin.list_users()
        if any((u.email or "").lower() == email.lower() for u in users):
            logger.info("User %s already exists", email)
            return False

        self.sign_up(name, email, password)
        return True

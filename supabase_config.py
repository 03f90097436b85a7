"""
Supabase Configuration and Client Setup
"""
import logging
from typing import Mapping, Optional

from supabase import create_client, Client

logger = logging.getLogger(__name__)


def get_supabase_client(config: Mapping, service_role: bool = True) -> Client:
    """
    Create a Supabase client from app configuration

    Args:
        config: Mapping with SUPABASE_URL and the key settings
        service_role: Use the service role key (admin API, token checks, kv table).
            The anon key is used for password sign-in.

    Returns:
        Configured Supabase client
    """
    url = config.get("SUPABASE_URL", "")
    key_name = "SUPABASE_SERVICE_ROLE_KEY" if service_role else "SUPABASE_ANON_KEY"
    key = config.get(key_name, "")

    if not url or not key:
        raise RuntimeError(f"Supabase not configured. Set SUPABASE_URL and {key_name} environment variables.")

    logger.debug("Creating Supabase client for %s (%s)", url, key_name)
    return create_client(url, key)


def user_projection(user) -> Optional[dict]:
    """Minimal public view of a Supabase user: id, email and display name"""
    if user is None:
        return None
    metadata = getattr(user, "user_metadata", None) or {}
    email = getattr(user, "email", None) or ""
    return {
        "id": user.id,
        "email": email,
        "name": metadata.get("name") or email.split("@")[0],
    }

"""Supabase client singleton for backend operations"""
import os
import logging
from functools import lru_cache

from dotenv import load_dotenv
from supabase import create_client, Client
from supabase.client import ClientOptions

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

load_dotenv()


def get_supabase_url() -> str:
    """Return the project URL without a trailing slash."""
    supabase_url = os.getenv('SUPABASE_URL')
    if not supabase_url:
        raise ConfigurationError("SUPABASE_URL must be set in environment variables")
    return supabase_url.rstrip('/')


def get_service_role_key() -> str:
    """Return the service_role key used for storage and counter updates."""
    service_key = os.getenv('SUPABASE_SERVICE_ROLE_KEY')
    if not service_key:
        raise ConfigurationError("SUPABASE_SERVICE_ROLE_KEY must be set for admin operations")
    return service_key


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """
    Get Supabase admin client for privileged operations
    Uses service_role key instead of anon key

    Note: Counter updates go through a SECURITY DEFINER function, and memory
    rows are written on behalf of the user, so the backend always talks to
    Supabase with the service_role key.

    Note: HTTP timeout is raised to 120 seconds for large memory uploads

    Returns:
        Client: Supabase admin client instance
    """
    supabase_url = get_supabase_url()
    supabase_service_key = get_service_role_key()

    logger.debug(f"Initializing Supabase admin client for URL: {supabase_url}")

    options = ClientOptions(
        postgrest_client_timeout=120,
        storage_client_timeout=120
    )
    return create_client(supabase_url, supabase_service_key, options=options)

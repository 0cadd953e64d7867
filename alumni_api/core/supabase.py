from supabase import create_client, Client
from alumni_api.core import config
from typing import Optional

# Global client instance (lazy initialization)
_supabase_service_client: Optional[Client] = None


def get_supabase_service_client() -> Client:
    """Create a Supabase client with the service role key.

    The content service is the only writer to its tables and bucket, so every
    storage call uses the service role; caller authorization is enforced in the
    service layer from the request context.
    """
    settings = config.settings
    if settings is None or not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        raise RuntimeError(
            "Supabase settings not initialized. Set SUPABASE_URL and SUPABASE_SERVICE_KEY."
        )
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)


def ensure_supabase_service_client() -> Client:
    """Lazy initialization helper for the shared service client"""
    global _supabase_service_client
    if _supabase_service_client is None:
        _supabase_service_client = get_supabase_service_client()
    return _supabase_service_client

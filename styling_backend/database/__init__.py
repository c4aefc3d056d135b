"""Supabase access for the credits tables."""

from .supabase_client import get_service_client, reset_service_client

__all__ = [
    "get_service_client",
    "reset_service_client",
]

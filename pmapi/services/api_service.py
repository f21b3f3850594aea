# pmapi/services/api_service.py
from __future__ import annotations

from typing import Any, Optional

from pmapi.client import ApiClient, create_client
from pmapi.config.app_config import load_settings
from pmapi.logging_utils import setup_logging

# Lazy client: created on first access so imports don't touch env or disk
_client: Optional[ApiClient] = None


def _create_client() -> ApiClient:
    """Create and cache the default client on first use."""
    global _client
    if _client is not None:
        return _client

    settings = load_settings()
    setup_logging(settings.log_level)
    _client = create_client(settings)
    return _client


class _ApiProxy:
    """
    Transparent proxy so callers can keep doing:
        from pmapi.services.api_service import api
        await api.from_("tasks").select("*").eq("status", "done")
    The underlying client is initialized on first attribute access.
    """

    def __getattr__(self, name: str) -> Any:
        return getattr(_create_client(), name)


# Public handle used by application code
api = _ApiProxy()


def get_client() -> ApiClient:
    """Return the real client (initializing it if needed)."""
    return _create_client()


def reset_client() -> None:
    """Drop the cached client, e.g. after settings changed."""
    global _client
    _client = None

from __future__ import annotations
"""Shared FastAPI dependencies."""

import httpx
from fastapi import Depends

from storyframe.auth import get_current_user_id
from storyframe.config import Settings, get_settings
from storyframe.services.storage import StorageBackend, build_storage


def get_storage(settings: Settings = Depends(get_settings)) -> StorageBackend:
    """Storage backend built from the request's settings."""
    return build_storage(settings)


def get_http_client() -> httpx.AsyncClient | None:
    """HTTP client handed to provider adapters.

    None means each adapter call opens and closes its own client.
    """
    return None


__all__ = ["get_current_user_id", "get_http_client", "get_settings", "get_storage"]

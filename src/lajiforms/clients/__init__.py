"""Clients of the external collaborators."""

from lajiforms.clients.api_client import ApiClient
from lajiforms.clients.store_client import StoreService

__all__ = ["ApiClient", "StoreService"]

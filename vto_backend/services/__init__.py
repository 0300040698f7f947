"""External services: fal.ai, Supabase history and the proxy client."""

from .fal_client import FalAiService
from .history import HistoryService, create_history_service
from .api_client import TryOnApiClient

__all__ = [
    "FalAiService",
    "HistoryService",
    "create_history_service",
    "TryOnApiClient",
]

"""Supabase-backed try-on history and favorites."""

import logging
from typing import Any

from pydantic import ValidationError
from supabase import Client, create_client

from ..config import SupabaseConfig
from ..exceptions import ConfigurationError
from ..models import GarmentType, TryOnResult

logger = logging.getLogger(__name__)

# Supabase refuses an unfiltered delete; no row has the nil UUID as its id
NIL_UUID = "00000000-0000-0000-0000-000000000000"


class HistoryService:
    """CRUD over the ``tryon_history`` table.

    Database and network errors are logged and turned into a neutral value
    (``None``, ``[]`` or ``False``) so callers only branch on the result.
    """

    def __init__(self, client: Client, table: str = "tryon_history"):
        self.client = client
        self.table = table

    def _rows(self):
        return self.client.table(self.table)

    def save_to_history(
        self,
        person_image_url: str,
        garment_image_url: str,
        result_image_url: str,
        garment_type: GarmentType | None = None,
    ) -> TryOnResult | None:
        """Insert a finished try-on and return the stored record."""
        row: dict[str, Any] = {
            "person_image_url": person_image_url,
            "garment_image_url": garment_image_url,
            "result_image_url": result_image_url,
            "garment_type": garment_type,
            "is_favorite": False,
        }
        try:
            response = self._rows().insert(row).execute()
            data = response.data or []
            return TryOnResult.from_row(data[0]) if data else None
        except Exception as e:
            logger.error("Error saving to history: %s", e)
            return None

    def get_history(self) -> list[TryOnResult]:
        """All records, newest first."""
        try:
            response = (
                self._rows()
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
            rows = response.data or []
        except Exception as e:
            logger.error("Error fetching history: %s", e)
            return []

        return _map_rows(rows)

    def get_favorites(self) -> list[TryOnResult]:
        """Favorited records, newest first."""
        try:
            response = (
                self._rows()
                .select("*")
                .eq("is_favorite", True)
                .order("created_at", desc=True)
                .execute()
            )
            rows = response.data or []
        except Exception as e:
            logger.error("Error fetching favorites: %s", e)
            return []

        return _map_rows(rows)

    def toggle_favorite(self, id: str, is_favorite: bool) -> bool:
        try:
            self._rows().update({"is_favorite": is_favorite}).eq("id", id).execute()
        except Exception as e:
            logger.error("Error toggling favorite: %s", e)
            return False
        return True

    def delete_from_history(self, id: str) -> bool:
        try:
            self._rows().delete().eq("id", id).execute()
        except Exception as e:
            logger.error("Error deleting from history: %s", e)
            return False
        return True

    def clear_all_history(self) -> bool:
        try:
            self._rows().delete().neq("id", NIL_UUID).execute()
        except Exception as e:
            logger.error("Error clearing history: %s", e)
            return False
        return True


def _map_rows(rows: list[dict[str, Any]]) -> list[TryOnResult]:
    """Map rows one at a time, skipping any that can't be read."""
    results = []
    for row in rows:
        try:
            results.append(TryOnResult.from_row(row))
        except (KeyError, TypeError, ValidationError) as e:
            logger.warning("Skipping unreadable history row %s: %s", row.get("id"), e)
    return results


def create_history_service(config: SupabaseConfig) -> HistoryService:
    """Build a HistoryService with a Supabase client from config."""
    if not config.is_configured:
        raise ConfigurationError("SUPABASE_URL and SUPABASE_KEY must be set")

    client = create_client(config.url, config.key)
    return HistoryService(client, table=config.table)

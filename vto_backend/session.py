"""Try-on session: selected images, the in-flight job and cached history.

A session holds the state the app screens share. One try-on request may run
at a time; its result is persisted to the history store and pushed into the
in-memory history list so callers see it without a reload.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Protocol

import anyio

from .exceptions import MissingSelectionError, RequestInFlightError
from .models import (
    FalAIRequest,
    GarmentType,
    ImageSource,
    TryOnResponse,
    TryOnResult,
)
from .services.history import HistoryService

logger = logging.getLogger(__name__)


class TryOnSubmitter(Protocol):
    async def process_try_on(self, request: FalAIRequest) -> TryOnResponse: ...


class TryOnSession:
    """State and operations behind the select → process → result flow."""

    def __init__(
        self,
        submitter: TryOnSubmitter,
        history_service: HistoryService,
        garment_type: GarmentType | None = None,
    ):
        self.submitter = submitter
        self.history_service = history_service
        self.garment_type = garment_type

        self.history: list[TryOnResult] = []
        self.favorites: list[TryOnResult] = []
        self.selected_person_image: ImageSource | None = None
        self.selected_garment_image: ImageSource | None = None
        self.current_result: TryOnResult | None = None
        self.is_loading = False
        self.error: str | None = None
        self.progress = "Initializing..."
        self.cancelled = False

    # Selection

    def select_person_image(self, image: ImageSource | None):
        self.selected_person_image = image

    def select_garment_image(self, image: ImageSource | None):
        self.selected_garment_image = image

    def reset_selection(self):
        self.selected_person_image = None
        self.selected_garment_image = None
        self.error = None

    # Processing

    async def process_try_on(self) -> TryOnResult | None:
        """Run one try-on for the current selection.

        Returns:
            The new result, or None when the job failed or was cancelled.
            On failure ``error`` holds the message to show.

        Raises:
            MissingSelectionError: person or garment image not selected
            RequestInFlightError: another request is still running
        """
        person = self.selected_person_image
        garment = self.selected_garment_image
        if person is None or garment is None:
            raise MissingSelectionError("Select a person and a garment image first")
        if self.is_loading:
            raise RequestInFlightError("A try-on request is already in progress")

        self.is_loading = True
        self.cancelled = False
        self.error = None
        try:
            self.progress = "Preparing images..."
            request = FalAIRequest(
                person_image_url=person.uri,
                garment_image_url=garment.uri,
                garment_type=self.garment_type,
            )

            self.progress = "Sending to AI..."
            response = await self.submitter.process_try_on(request)

            if self.cancelled:
                logger.info("Try-on cancelled, discarding response")
                return None

            if not (response.success and response.result_image_url):
                self.error = response.error or "Failed to process try-on"
                return None

            self.progress = "Finalizing result..."
            result = await self._persist(person.uri, garment.uri, response.result_image_url)

            self.current_result = result
            self.history.insert(0, result)
            self.progress = "Complete!"
            return result

        except Exception as e:
            if self.cancelled:
                return None
            logger.exception("Try-on failed")
            self.error = str(e) or "An unexpected error occurred"
            return None

        finally:
            self.is_loading = False

    async def retry(self) -> TryOnResult | None:
        """Clear the last error and run the same try-on again."""
        self.error = None
        self.cancelled = False
        return await self.process_try_on()

    def cancel(self):
        self.cancelled = True

    async def _persist(
        self,
        person_image_url: str,
        garment_image_url: str,
        result_image_url: str,
    ) -> TryOnResult:
        saved = await anyio.to_thread.run_sync(
            self.history_service.save_to_history,
            person_image_url,
            garment_image_url,
            result_image_url,
            self.garment_type,
        )
        if saved is not None:
            return saved

        # Still show the result when the history store is unreachable
        logger.warning("Result not saved to history, using a temporary record")
        return TryOnResult(
            id=f"temp-{int(time.time() * 1000)}",
            person_image_url=person_image_url,
            garment_image_url=garment_image_url,
            result_image_url=result_image_url,
            is_favorite=False,
            created_at=datetime.now(timezone.utc).isoformat(),
            garment_type=self.garment_type,
        )

    # History and favorites

    async def load_history(self):
        self.history = await anyio.to_thread.run_sync(self.history_service.get_history)

    async def load_favorites(self):
        self.favorites = await anyio.to_thread.run_sync(self.history_service.get_favorites)

    async def toggle_favorite(self, id: str, is_favorite: bool) -> bool:
        success = await anyio.to_thread.run_sync(
            self.history_service.toggle_favorite, id, is_favorite
        )
        if success:
            await self.load_history()
            await self.load_favorites()
            if self.current_result is not None and self.current_result.id == id:
                self.current_result = self.current_result.model_copy(
                    update={"is_favorite": is_favorite}
                )
        return success

    async def delete_from_history(self, id: str) -> bool:
        success = await anyio.to_thread.run_sync(self.history_service.delete_from_history, id)
        if success:
            await self.load_history()
            await self.load_favorites()
        return success

    async def clear_all_history(self) -> bool:
        success = await anyio.to_thread.run_sync(self.history_service.clear_all_history)
        if success:
            self.history = []
            self.favorites = []
        return success

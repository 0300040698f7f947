"""HTTP client for the try-on proxy, as used by the mobile app."""

import logging

import httpx
from pydantic import ValidationError

from ..models import FalAIRequest, TryOnResponse, UploadResponse

logger = logging.getLogger(__name__)


class TryOnApiClient:
    """Talks to the proxy's ``/api`` routes instead of fal.ai directly.

    Exposes the same ``process_try_on`` call as ``FalAiService`` so a session
    can drive either one.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 45.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def health(self) -> bool:
        try:
            response = await self.client.get("/api/health")
            return response.status_code == 200 and response.json().get("status") == "ok"
        except httpx.HTTPError:
            return False

    async def process_try_on(self, request: FalAIRequest) -> TryOnResponse:
        """POST a try-on job to the proxy and wait for its answer."""
        payload = {
            "personImageUrl": request.person_image_url,
            "garmentImageUrl": request.garment_image_url,
        }
        if request.garment_type:
            payload["garmentType"] = request.garment_type
        if request.category:
            payload["category"] = request.category

        try:
            logger.info("Starting virtual try-on via %s", self.base_url)
            response = await self.client.post("/api/try-on", json=payload)
        except httpx.TimeoutException:
            return TryOnResponse(success=False, error="Request timeout")
        except httpx.HTTPError as e:
            logger.error("Try-on request failed: %s", e)
            return TryOnResponse(success=False, error="An unexpected error occurred")

        try:
            result = TryOnResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            logger.error("Response error (%s): %s", response.status_code, response.text[:500])
            return TryOnResponse(
                success=False,
                error=f"Server error: {response.status_code}",
            )

        if not result.success and not result.error:
            result.error = f"Server error: {response.status_code}"
        return result

    async def upload_image(self, data: bytes, content_type: str, filename: str = "image") -> str:
        """Upload raw image bytes and return the data URL the proxy builds."""
        response = await self.client.post(
            "/api/upload",
            files={"image": (filename, data, content_type)},
        )
        response.raise_for_status()
        return UploadResponse.model_validate(response.json()).image_url

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

"""fal.ai API client for virtual try-on image generation."""

import json
import logging

import httpx
from pydantic import ValidationError

from ..config import FalConfig
from ..exceptions import ConfigurationError
from ..models import FalAIRequest, FalAIResponse, TryOnResponse

logger = logging.getLogger(__name__)


class FalAiService:
    """Forwards try-on jobs to the hosted fal.ai model.

    ``process_try_on`` never raises for transport or API failures; they come
    back as a ``TryOnResponse`` with ``success=False`` and an error string.
    """

    def __init__(
        self,
        config: FalConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not config.api_key:
            raise ConfigurationError("FAL_AI_API_KEY is not set")

        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout,
                transport=self._transport,
            )
        return self._client

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Key {self.config.api_key}",
            "Content-Type": "application/json",
        }

    async def check_connection(self) -> bool:
        """Report whether the service can authenticate requests."""
        return bool(self.config.api_key)

    async def process_try_on(self, request: FalAIRequest) -> TryOnResponse:
        """Submit a try-on job and wait for the generated image.

        Args:
            request: Person and garment image URLs plus optional hints

        Returns:
            TryOnResponse carrying the first generated image URL on success
        """
        try:
            logger.info("Sending try-on request to fal.ai")

            response = await self.client.post(
                self.config.api_url,
                json={"input": request.to_input()},
                headers=self.headers,
            )
            response.raise_for_status()

            try:
                body = response.json()
            except ValueError:
                body = response.text

            return self._parse_result(body)

        except Exception as e:
            return self._handle_error(e)

    def _parse_result(self, body: object) -> TryOnResponse:
        try:
            parsed = FalAIResponse.model_validate(body)
        except ValidationError:
            parsed = None

        if parsed is not None and parsed.images and parsed.images[0].url:
            logger.info("Received try-on result from fal.ai")
            return TryOnResponse(
                success=True,
                result_image_url=parsed.images[0].url,
                message="Try-on processed successfully",
            )

        logger.error("Unexpected response format: %s", body)
        return TryOnResponse(
            success=False,
            error="Unexpected response format from AI service",
        )

    def _handle_error(self, error: Exception) -> TryOnResponse:
        if isinstance(error, httpx.TimeoutException):
            logger.error("fal.ai request timed out")
            return TryOnResponse(success=False, error="Request timeout")

        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            detail = _response_detail(error.response)
            logger.error("API Error: %s %s", status, detail)
            return TryOnResponse(
                success=False,
                error=f"API Error: {status} - {detail}",
            )

        if isinstance(error, httpx.TransportError):
            logger.error("No response from fal.ai: %s", error)
            return TryOnResponse(success=False, error="No response from server")

        logger.exception("Unknown error while calling fal.ai")
        return TryOnResponse(success=False, error="An unknown error occurred")

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


def _response_detail(response: httpx.Response) -> str:
    """Render an error body as compact JSON, falling back to raw text."""
    try:
        return json.dumps(response.json(), separators=(",", ":"))
    except ValueError:
        return json.dumps(response.text)

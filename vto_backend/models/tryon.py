"""Request and response models for the try-on proxy."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

GarmentType = Literal["tops", "bottoms", "one-pieces"]


class TryOnRequest(BaseModel):
    """Body of ``POST /api/try-on``, as sent by the mobile client."""

    model_config = ConfigDict(populate_by_name=True)

    person_image_url: str = Field(alias="personImageUrl")
    garment_image_url: str = Field(alias="garmentImageUrl")
    garment_type: GarmentType | None = Field(default=None, alias="garmentType")
    category: str | None = None

    def to_fal_request(self) -> "FalAIRequest":
        """Translate to the snake_case body fal.ai expects."""
        return FalAIRequest(
            person_image_url=self.person_image_url,
            garment_image_url=self.garment_image_url,
            garment_type=self.garment_type,
            category=self.category,
        )


class FalAIRequest(BaseModel):
    """Input object forwarded to the fal.ai try-on model."""
    person_image_url: str
    garment_image_url: str
    garment_type: str | None = None
    category: str | None = None

    def to_input(self) -> dict:
        # Unset optionals are left out rather than sent as null
        return self.model_dump(exclude_none=True)


class FalImage(BaseModel):
    url: str
    content_type: str | None = None
    width: int | None = None
    height: int | None = None
    file_name: str | None = None
    file_size: int | None = None


class FalTimings(BaseModel):
    inference: float | None = None


class FalAIResponse(BaseModel):
    """Subset of the fal.ai response body the proxy reads."""
    images: list[FalImage] = Field(default_factory=list)
    timings: FalTimings | None = None


class TryOnResponse(BaseModel):
    """Outcome of a try-on, returned by the proxy and by the API client."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    result_image_url: str | None = Field(default=None, alias="resultImageUrl")
    message: str | None = None
    error: str | None = None

    def to_body(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class HealthResponse(BaseModel):
    status: Literal["ok", "error"] = "ok"
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    uptime: float = 0.0


class UploadResponse(BaseModel):
    """Result of ``POST /api/upload``: the image re-encoded as a data URL."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    image_url: str = Field(alias="imageUrl")
    message: str = "Image uploaded successfully"

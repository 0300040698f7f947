"""History records and image selection models."""

from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field

from .tryon import GarmentType


class TryOnResult(BaseModel):
    """One row of the try-on history table."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    person_image_url: str = Field(alias="personImageUrl")
    garment_image_url: str = Field(alias="garmentImageUrl")
    result_image_url: str = Field(alias="resultImageUrl")
    is_favorite: bool = Field(default=False, alias="isFavorite")
    created_at: str = Field(alias="createdAt")
    garment_type: GarmentType | None = Field(default=None, alias="garmentType")
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "TryOnResult":
        """Build a result from a snake_case database row."""
        return cls(
            id=str(row["id"]),
            person_image_url=row["person_image_url"],
            garment_image_url=row["garment_image_url"],
            result_image_url=row["result_image_url"],
            is_favorite=bool(row.get("is_favorite", False)),
            created_at=str(row["created_at"]),
            garment_type=_known_garment_type(row.get("garment_type")),
            metadata=row.get("metadata"),
        )

    def to_body(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def _known_garment_type(value: Any) -> GarmentType | None:
    # The column is free text; values outside the known set are dropped
    return value if value in get_args(GarmentType) else None


class SaveHistoryRequest(BaseModel):
    """Body of ``POST /api/history``."""

    model_config = ConfigDict(populate_by_name=True)

    person_image_url: str = Field(alias="personImageUrl")
    garment_image_url: str = Field(alias="garmentImageUrl")
    result_image_url: str = Field(alias="resultImageUrl")
    garment_type: GarmentType | None = Field(default=None, alias="garmentType")


class FavoriteUpdate(BaseModel):
    """Body of ``PATCH /api/history/{id}/favorite``."""

    model_config = ConfigDict(populate_by_name=True)

    is_favorite: bool = Field(alias="isFavorite")


class ImageSource(BaseModel):
    """An image picked by the user."""
    uri: str
    type: Literal["url", "camera", "gallery"] = "url"


class SampleImage(BaseModel):
    id: str
    url: str
    type: Literal["person", "garment"]
    description: str
    thumbnail: str | None = None

"""Data models for the Virtual Try-On backend."""

from .tryon import (
    GarmentType,
    TryOnRequest,
    FalAIRequest,
    FalImage,
    FalAIResponse,
    TryOnResponse,
    HealthResponse,
    UploadResponse,
)
from .history import (
    TryOnResult,
    SaveHistoryRequest,
    FavoriteUpdate,
    ImageSource,
    SampleImage,
)

__all__ = [
    "GarmentType",
    "TryOnRequest",
    "FalAIRequest",
    "FalImage",
    "FalAIResponse",
    "TryOnResponse",
    "HealthResponse",
    "UploadResponse",
    "TryOnResult",
    "SaveHistoryRequest",
    "FavoriteUpdate",
    "ImageSource",
    "SampleImage",
]

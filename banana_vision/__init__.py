"""Generate or edit images with a hosted Gemini image model."""

from __future__ import annotations

from .errors import (
    ImageRequestError,
    NoArtifactError,
    RateLimited,
    RejectedRequest,
    ServiceUnavailable,
    UnknownError,
    ValidationError,
)
from .orchestrator import ImageOrchestrator, RetryPolicy, request_image
from .request import Artifact, SourceImage

__all__ = [
    "Artifact",
    "ImageOrchestrator",
    "ImageRequestError",
    "NoArtifactError",
    "RateLimited",
    "RejectedRequest",
    "RetryPolicy",
    "ServiceUnavailable",
    "SourceImage",
    "UnknownError",
    "ValidationError",
    "request_image",
]

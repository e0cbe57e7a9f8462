"""Request and artifact models for a single code-generation run."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

FPS = 30

ASPECT_RATIO_DIMS: dict[str, tuple[int, int]] = {
    "9:16": (1080, 1920),
    "16:9": (1920, 1080),
    "1:1": (1080, 1080),
}
DEFAULT_ASPECT_RATIO = "9:16"


class Dimensions(BaseModel):
    """Canvas size in pixels."""

    model_config = ConfigDict(frozen=True)

    width: int
    height: int


def dimensions_for(aspect_ratio: str) -> Dimensions:
    """Resolve an aspect ratio to canvas dimensions, defaulting to 9:16."""
    dims = ASPECT_RATIO_DIMS.get(aspect_ratio)
    if dims is None:
        logger.warning("Unknown aspect ratio %r, using %s", aspect_ratio, DEFAULT_ASPECT_RATIO)
        dims = ASPECT_RATIO_DIMS[DEFAULT_ASPECT_RATIO]
    return Dimensions(width=dims[0], height=dims[1])


def seconds_to_frames(seconds: float, fps: int = FPS) -> int:
    """Convert seconds to a whole frame count."""
    return int(round(seconds * fps))


class WordTimestamp(BaseModel):
    """A single voiceover word with its timing."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    word: str
    start: float = Field(ge=0)
    end: float = Field(ge=0)


class AudioDescriptor(BaseModel):
    """Narration track available to the composition."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    audio_url: str = Field(min_length=1)
    duration: float = Field(ge=0, description="Track length in seconds")
    words: list[WordTimestamp] = Field(default_factory=list)


class IterationRequest(BaseModel):
    """Previous code plus the change the creator asked for."""

    previous_code: str = Field(min_length=1)
    feedback: str = Field(min_length=1)


class GenerationRequest(BaseModel):
    """Input for one pipeline invocation. Not persisted."""

    job_id: str = Field(min_length=1)
    script_id: str = Field(min_length=1)
    image_urls: list[str] = Field(default_factory=list)
    audio: AudioDescriptor | None = None
    aspect_ratio: str = Field(default=DEFAULT_ASPECT_RATIO)
    target_duration: float = Field(gt=0, description="Total video length in seconds")
    iteration: IterationRequest | None = None


class GeneratedCodeArtifact(BaseModel):
    """Persisted result of a pipeline run. Never mutated after it is written."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    code: str = Field(min_length=1)
    used_fallback: bool
    version: int = Field(default=1, ge=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

"""Script models — the structured creative brief that drives code generation.

Field names are snake_case; camelCase aliases (``onScreenText``,
``bulletPoints``, ``visualDirection``, ``colorPalette``) are accepted so
scripts written by the script-generation step load unchanged.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_MODEL_CONFIG = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class OnScreenText(BaseModel):
    """Text shown on screen during a scene."""

    model_config = _MODEL_CONFIG

    headline: str = Field(default="", description="Main on-screen text")
    subhead: str = Field(default="", description="Secondary text under the headline")
    bullet_points: list[str] = Field(default_factory=list, description="Optional bullet lines")
    emphasis: list[str] = Field(default_factory=list, description="Words to emphasize/animate")


class Scene(BaseModel):
    """One timed segment of the composition."""

    model_config = _MODEL_CONFIG

    id: str = Field(min_length=1, description="Scene id such as 'hook' or 'cta'")
    duration: float = Field(gt=0, description="Scene length in seconds")
    mood: str = Field(default="educational", description="Mood tag (intrigue, urgency, ...)")
    on_screen_text: OnScreenText = Field(default_factory=OnScreenText)
    visual_direction: str = Field(default="", description="Free-text visual direction")
    voiceover: str | None = Field(default=None, description="Narration line for this scene")


class ColorPalette(BaseModel):
    """Palette chosen for the video."""

    model_config = _MODEL_CONFIG

    primary: str = Field(default="#6366f1")
    secondary: str = Field(default="#7c3aed")
    accent: str = Field(default="#ec4899")
    background: str = Field(default="#0a0a0a")

    def tints(self) -> tuple[str, str, str]:
        """Colors the fallback template rotates through for scene tints."""
        return (self.primary, self.secondary, self.accent)


class Script(BaseModel):
    """Scene-by-scene brief. Immutable once generation starts."""

    model_config = _MODEL_CONFIG

    script_id: str = Field(default="", description="Store-assigned id (empty until saved)")
    scenes: list[Scene] = Field(min_length=1)
    color_palette: ColorPalette = Field(default_factory=ColorPalette)
    voiceover_script: str = Field(default="")
    image_prompts: list[str] = Field(default_factory=list)

    @property
    def total_duration(self) -> float:
        """Sum of scene durations in seconds."""
        return sum(scene.duration for scene in self.scenes)

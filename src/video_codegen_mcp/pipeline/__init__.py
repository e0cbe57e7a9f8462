"""Generation pipeline: retry loop over the model plus the template fallback."""

from ..artifact import HOST_PARAMETERS, CompiledComposition
from .fallback import build_fallback_code, plan_segments
from .generate import (
    Attempt,
    GenerationOutcome,
    LoopPhase,
    LoopState,
    advance,
    generate_composition_code,
)

__all__ = [
    "HOST_PARAMETERS",
    "Attempt",
    "CompiledComposition",
    "GenerationOutcome",
    "LoopPhase",
    "LoopState",
    "advance",
    "build_fallback_code",
    "generate_composition_code",
    "plan_segments",
]

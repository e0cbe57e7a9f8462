"""Composition code pipeline: prompt, generate, validate, retry, fall back.

Entry point: generate_composition_code(). The retry loop is driven by an
explicit LoopState and the pure advance() transition so every decision
can be tested without a model in the loop.

    ATTEMPTING(0) -> ATTEMPTING(1) -> ... -> SUCCEEDED
          |                 |
          +--> SECURITY_ABORTED --+--> EXHAUSTED_FAILING_OVER
                                  |
    ATTEMPTING(MAX-1) ------------+
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from ..client import CodegenClient, require_credential
from ..config import get_config
from ..errors import ScriptNotFoundError
from ..extraction import extract_code
from ..models.generation import (
    FPS,
    GeneratedCodeArtifact,
    GenerationRequest,
    dimensions_for,
    seconds_to_frames,
)
from ..prompts.composition import (
    append_fix_request,
    append_iteration,
    build_system_prompt,
    build_user_prompt,
)
from ..store import JobStore
from ..validation import ValidationResult, validate_all, validate_security
from .fallback import build_fallback_code

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


class LoopPhase(str, Enum):
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    SECURITY_ABORTED = "security_aborted"
    EXHAUSTED_FAILING_OVER = "exhausted_failing_over"


@dataclass(frozen=True)
class LoopState:
    """Where the retry loop is. ``attempt`` is the index about to run.

    ``diagnostics`` holds the previous attempt's failures, which the next
    prompt asks the model to fix.
    """

    phase: LoopPhase
    attempt: int = 0
    diagnostics: tuple[str, ...] = ()


@dataclass
class Attempt:
    """Record of one model call and what became of its output."""

    index: int
    prompt: str
    raw_response: str | None = None
    code: str | None = None
    validation: ValidationResult | None = None
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.validation is not None and self.validation.passed

    @property
    def diagnostics(self) -> list[str]:
        if self.error is not None:
            return [self.error]
        if self.validation is not None:
            return list(self.validation.issues)
        return []


@dataclass
class GenerationOutcome:
    """What a pipeline run produced and how it got there."""

    artifact: GeneratedCodeArtifact
    attempts: list[Attempt] = field(default_factory=list)
    phases: list[LoopPhase] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return self.artifact.used_fallback


def advance(state: LoopState, attempt: Attempt | None = None, max_attempts: int = MAX_ATTEMPTS) -> LoopState:
    """Compute the next loop state.

    Args:
        state: Current state.
        attempt: The attempt just run. Required while ATTEMPTING.
        max_attempts: Total model calls allowed.

    Returns:
        The next state. SECURITY_ABORTED always moves to
        EXHAUSTED_FAILING_OVER.

    Raises:
        ValueError: If called on a terminal state, or while ATTEMPTING
            without an attempt.
    """
    if state.phase is LoopPhase.SECURITY_ABORTED:
        return LoopState(LoopPhase.EXHAUSTED_FAILING_OVER, state.attempt, state.diagnostics)
    if state.phase is not LoopPhase.ATTEMPTING:
        raise ValueError(f"No transition out of terminal phase {state.phase.value}")
    if attempt is None:
        raise ValueError("An attempt is required to advance from ATTEMPTING")

    if attempt.passed:
        return LoopState(LoopPhase.SUCCEEDED, state.attempt)

    diagnostics = tuple(attempt.diagnostics)
    if attempt.code is not None and not validate_security(attempt.code).passed:
        return LoopState(LoopPhase.SECURITY_ABORTED, state.attempt, diagnostics)

    if state.attempt + 1 < max_attempts:
        return LoopState(LoopPhase.ATTEMPTING, state.attempt + 1, diagnostics)
    return LoopState(LoopPhase.EXHAUSTED_FAILING_OVER, state.attempt, diagnostics)


async def _run_attempt(index: int, system_prompt: str, user_prompt: str) -> Attempt:
    """Call the model once, extract and validate. Never raises."""
    attempt = Attempt(index=index, prompt=user_prompt)
    try:
        attempt.raw_response = await CodegenClient.complete(system_prompt, user_prompt)
        attempt.code = extract_code(attempt.raw_response)
        attempt.validation = validate_all(attempt.code)
    except Exception as exc:
        logger.warning("Attempt %d raised: %s", index + 1, exc)
        attempt.error = str(exc) or type(exc).__name__
    return attempt


async def generate_composition_code(
    request: GenerationRequest,
    *,
    store: JobStore,
) -> GenerationOutcome:
    """Generate, validate and persist composition code for one job.

    Always persists a usable artifact once the credential and script
    checks pass: the model's code when an attempt validates, otherwise
    the template fallback.

    Args:
        request: Job id, script id, assets, aspect ratio and duration.
        store: Where the script is read and the code is written.

    Returns:
        GenerationOutcome with the stored artifact, every attempt and the
        visited loop phases.

    Raises:
        MissingCredentialError: No API key for the active provider.
        ScriptNotFoundError: ``request.script_id`` is unknown.
    """
    require_credential()

    script = store.get_script(request.script_id)
    if script is None:
        raise ScriptNotFoundError(f"Script {request.script_id} not found")

    max_attempts = get_config().max_attempts
    dims = dimensions_for(request.aspect_ratio)
    total_frames = seconds_to_frames(request.target_duration, FPS)

    system_prompt = build_system_prompt(dims, FPS)
    base_prompt = build_user_prompt(
        script, request.image_urls, request.audio, total_frames, FPS, dims,
    )
    if request.iteration is not None:
        base_prompt = append_iteration(base_prompt, request.iteration)

    logger.info(
        "Generating code for job %s (script %s, %d scenes, %d frames, %s)",
        request.job_id, script.script_id or request.script_id,
        len(script.scenes), total_frames, request.aspect_ratio,
    )

    attempts: list[Attempt] = []
    state = LoopState(LoopPhase.ATTEMPTING)
    phases = [state.phase]

    while state.phase is LoopPhase.ATTEMPTING:
        prompt = base_prompt
        if state.attempt > 0:
            prompt = append_fix_request(base_prompt, list(state.diagnostics))
        logger.info("Job %s: attempt %d/%d", request.job_id, state.attempt + 1, max_attempts)

        attempt = await _run_attempt(state.attempt, system_prompt, prompt)
        attempts.append(attempt)
        if attempt.validation is not None and not attempt.passed:
            logger.warning(
                "Job %s: attempt %d failed validation: %s",
                request.job_id, state.attempt + 1, "; ".join(attempt.diagnostics),
            )

        state = advance(state, attempt, max_attempts)
        phases.append(state.phase)

    if state.phase is LoopPhase.SECURITY_ABORTED:
        logger.error(
            "Job %s: security violation, skipping remaining attempts: %s",
            request.job_id, "; ".join(state.diagnostics),
        )
        state = advance(state)
        phases.append(state.phase)

    if state.phase is LoopPhase.SUCCEEDED:
        code = attempts[-1].code
        used_fallback = False
        logger.info("Job %s: code validated on attempt %d", request.job_id, len(attempts))
    else:
        logger.warning(
            "Job %s: no valid code after %d attempt(s), using template fallback",
            request.job_id, len(attempts),
        )
        code = build_fallback_code(script, request.image_urls, request.audio, FPS)
        used_fallback = True

    artifact = store.update_job_code(request.job_id, code, used_fallback=used_fallback)
    if artifact is None:
        artifact = GeneratedCodeArtifact(job_id=request.job_id, code=code, used_fallback=used_fallback)

    return GenerationOutcome(artifact=artifact, attempts=attempts, phases=phases)

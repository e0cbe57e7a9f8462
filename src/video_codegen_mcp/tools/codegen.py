"""Code-generation tools — 4 tools on a FastMCP sub-server."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..errors import make_tool_error
from ..models.generation import AudioDescriptor, GenerationRequest, IterationRequest
from ..models.script import Script
from ..pipeline import generate_composition_code
from ..store import get_store
from ..tracing import trace
from ..types import AspectRatio, CompositionCode, JobId, ScriptId, TargetDuration, coerce_json_param
from ..validation import validate_security, validate_structure, validate_syntax

codegen_server = FastMCP("codegen")


@codegen_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    )
)
@trace(name="codegen_generate", span_type="TOOL")
async def codegen_generate(
    job_id: JobId,
    script_id: ScriptId,
    target_duration: TargetDuration,
    aspect_ratio: AspectRatio = "9:16",
    image_urls: Annotated[list[str] | str | None, Field(
        description="Image URLs, exposed to the composition as images[i]",
    )] = None,
    audio: Annotated[dict | str | None, Field(
        description="Narration: {audioUrl, duration, words: [{word, start, end}]}",
    )] = None,
    previous_code: Annotated[str | None, Field(description="Code to modify (iteration mode)")] = None,
    feedback: Annotated[str | None, Field(description="Requested change (iteration mode)")] = None,
) -> dict:
    """Generate Remotion composition code for a stored script and save it on the job.

    Retries with validation feedback, and falls back to a template
    composition when no attempt validates or a security rule is hit.

    Args:
        job_id: Job the code is stored under (a new version per call).
        script_id: Script saved with codegen_save_script.
        target_duration: Total video length in seconds.
        aspect_ratio: "9:16", "16:9" or "1:1".
        image_urls: Optional image URLs.
        audio: Optional narration descriptor with word timings.
        previous_code: Previous code, when iterating on an earlier version.
        feedback: What to change in previous_code.

    Returns:
        Dict with job_id, version, used_fallback, attempts, phases and code.
    """
    try:
        image_urls = coerce_json_param(image_urls, list) or []
        audio = coerce_json_param(audio, dict)
        iteration = None
        if previous_code and feedback:
            iteration = IterationRequest(previous_code=previous_code, feedback=feedback)
        request = GenerationRequest(
            job_id=job_id,
            script_id=script_id,
            image_urls=image_urls,
            audio=AudioDescriptor.model_validate(audio) if audio else None,
            aspect_ratio=aspect_ratio,
            target_duration=target_duration,
            iteration=iteration,
        )
        outcome = await generate_composition_code(request, store=get_store())
    except Exception as exc:
        return make_tool_error(exc)

    return {
        "job_id": outcome.artifact.job_id,
        "version": outcome.artifact.version,
        "used_fallback": outcome.used_fallback,
        "attempts": len(outcome.attempts),
        "phases": [p.value for p in outcome.phases],
        "diagnostics": [a.diagnostics for a in outcome.attempts],
        "code": outcome.artifact.code,
    }


@codegen_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="codegen_validate", span_type="TOOL")
async def codegen_validate(code: CompositionCode) -> dict:
    """Run the syntax, security and structure checks on composition code.

    Args:
        code: Composition function body.

    Returns:
        Dict with overall ``passed`` and per-layer issues.
    """
    layers = {
        "syntax": validate_syntax(code),
        "security": validate_security(code),
        "structure": validate_structure(code),
    }
    return {
        "passed": all(r.passed for r in layers.values()),
        "layers": {name: r.issues for name, r in layers.items()},
    }


@codegen_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="codegen_save_script", span_type="TOOL")
async def codegen_save_script(
    script: Annotated[dict | str, Field(
        description="Script JSON: {scenes: [...], colorPalette: {...}, ...}",
    )],
) -> dict:
    """Store a video script so codegen_generate can reference it by id.

    Args:
        script: Script object (camelCase or snake_case keys). A missing
            ``scriptId`` gets a generated one.

    Returns:
        Dict with script_id, scene count and total duration in seconds.
    """
    try:
        parsed = Script.model_validate(coerce_json_param(script, dict))
        script_id = get_store().save_script(parsed)
    except Exception as exc:
        return make_tool_error(exc)
    return {
        "script_id": script_id,
        "scenes": len(parsed.scenes),
        "total_duration": parsed.total_duration,
    }


@codegen_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="codegen_history", span_type="TOOL")
async def codegen_history(
    job_id: JobId,
    include_code: Annotated[bool, Field(description="Include the code of every version")] = False,
) -> dict:
    """List the stored code versions for a job, oldest first.

    Args:
        job_id: Job to inspect.
        include_code: Return each version's code instead of only the latest.

    Returns:
        Dict with job_id, versions (version, used_fallback, created_at,
        chars) and latest_code.
    """
    try:
        history = get_store().job_history(job_id)
    except Exception as exc:
        return make_tool_error(exc)

    versions = []
    for artifact in history:
        entry = {
            "version": artifact.version,
            "used_fallback": artifact.used_fallback,
            "created_at": artifact.created_at.isoformat(),
            "chars": len(artifact.code),
        }
        if include_code:
            entry["code"] = artifact.code
        versions.append(entry)
    return {
        "job_id": job_id,
        "versions": versions,
        "latest_code": history[-1].code if history else None,
    }

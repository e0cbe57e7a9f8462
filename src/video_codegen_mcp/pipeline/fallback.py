"""Deterministic template composition used when generation cannot be trusted.

Built only from Script data (never from model output), so it needs no
validation pass: the skeleton is fixed, user text is embedded as JSON
string literals, and Sequence offsets are the running totals of the
scene frame counts, so the timeline length is exact by construction.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from ..models.generation import FPS, AudioDescriptor, seconds_to_frames
from ..models.script import Scene, Script

EXIT_WINDOW_FRAMES = 25
HEADLINE_DELAY = 8
SUBHEAD_DELAY = 25
BULLET_BASE_DELAY = 30
BULLET_STAGGER = 15

_PREAMBLE = """const { AbsoluteFill, Sequence, useCurrentFrame, useVideoConfig, spring, interpolate, Img, Audio } = Remotion;
const { CenterScene, Content, CinematicBG, FadeUp, useExit, CTAButton, LogoIcon } = Components;
const { C, F } = Theme;
"""

_HEADLINE_STYLE = 'fontSize: 44, fontWeight: 900, fontFamily: F, lineHeight: 1.15, color: "#ffffff"'
_IMAGE_TEXT_SHADOW = ', textShadow: "0 2px 20px rgba(0,0,0,0.8)"'
_SUBHEAD_STYLE = 'fontSize: 22, color: "#94a3b8", fontFamily: F, fontWeight: 500, marginTop: 16'
_BULLET_STYLE = 'fontSize: 18, color: "#ffffff", fontFamily: F, fontWeight: 500, marginTop: 8'


@dataclass(frozen=True)
class Segment:
    """One scene's slot on the timeline."""

    index: int
    scene: Scene
    start: int
    frames: int
    is_last: bool


def plan_segments(script: Script, fps: int = FPS) -> list[Segment]:
    """Lay scenes end to end, computing each one's frame offset and length.

    Every scene gets at least one frame, however short its duration.
    """
    segments: list[Segment] = []
    offset = 0
    last = len(script.scenes) - 1
    for i, scene in enumerate(script.scenes):
        frames = max(1, seconds_to_frames(scene.duration, fps))
        segments.append(Segment(index=i, scene=scene, start=offset, frames=frames, is_last=i == last))
        offset += frames
    return segments


def _js(text: str) -> str:
    return json.dumps(text)


def _text_nodes(scene: Scene, indent: str, *, over_image: bool) -> list[str]:
    text = scene.on_screen_text
    headline_style = _HEADLINE_STYLE + (_IMAGE_TEXT_SHADOW if over_image else "")
    # The headline node is always present, even with empty text.
    nodes = [
        f"{indent}<FadeUp delay={{{HEADLINE_DELAY}}}>\n"
        f"{indent}  <div style={{{{ {headline_style} }}}}>{{{_js(text.headline)}}}</div>\n"
        f"{indent}</FadeUp>"
    ]
    if text.subhead:
        nodes.append(
            f"{indent}<FadeUp delay={{{SUBHEAD_DELAY}}} style={{{{ {_SUBHEAD_STYLE} }}}}>"
            f"{{{_js(text.subhead)}}}</FadeUp>"
        )
    for k, bullet in enumerate(text.bullet_points):
        delay = BULLET_BASE_DELAY + k * BULLET_STAGGER
        nodes.append(
            f"{indent}<FadeUp delay={{{delay}}} style={{{{ {_BULLET_STYLE} }}}}>"
            f"{{{_js('→ ' + bullet)}}}</FadeUp>"
        )
    return nodes


def _exit_hook(segment: Segment) -> str:
    if segment.is_last:
        return ""
    exit_start = max(0, segment.frames - EXIT_WINDOW_FRAMES)
    return f"  const {{ op, y }} = useExit({exit_start}, {segment.frames});\n"


def _image_scene(segment: Segment) -> str:
    opacity = "1" if segment.is_last else "op"
    offset = "0" if segment.is_last else "y"
    body = "\n".join(_text_nodes(segment.scene, "        ", over_image=True))
    return (
        f"const Scene{segment.index} = () => {{\n"
        f"{_exit_hook(segment)}"
        "  return (\n"
        f'    <AbsoluteFill style={{{{ opacity: {opacity}, transform: "translateY(" + {offset} + "px)" }}}}>\n'
        f"      <CinematicBG src={{images[{segment.index}]}} overlayOpacity={{0.6}} />\n"
        "      <Content>\n"
        f"{body}\n"
        "      </Content>\n"
        "    </AbsoluteFill>\n"
        "  );\n"
        "};\n"
    )


def _text_scene(segment: Segment, tint: str) -> str:
    opacity = "1" if segment.is_last else "op"
    offset = "0" if segment.is_last else "y"
    body = "\n".join(_text_nodes(segment.scene, "      ", over_image=False))
    return (
        f"const Scene{segment.index} = () => {{\n"
        f"{_exit_hook(segment)}"
        "  return (\n"
        f"    <CenterScene opacity={{{opacity}}} translateY={{{offset}}} seed={{{segment.index}}} tint={{{_js(tint)}}}>\n"
        f"{body}\n"
        "    </CenterScene>\n"
        "  );\n"
        "};\n"
    )


def build_fallback_code(
    script: Script,
    image_urls: list[str],
    audio: AudioDescriptor | None,
    fps: int = FPS,
) -> str:
    """Synthesize a complete composition function body from *script*.

    Scene ``i`` is image-backed when ``images[i]`` exists, text-only
    otherwise (tinted by cycling the palette's primary, secondary and
    accent colors). Every scene but the last exits over its final
    25 frames. With *audio*, a full-length Audio sequence comes first.
    """
    segments = plan_segments(script, fps)
    tints = script.color_palette.tints()
    total_frames = sum(s.frames for s in segments)

    scene_defs = [
        _image_scene(seg) if seg.index < len(image_urls) else _text_scene(seg, tints[seg.index % len(tints)])
        for seg in segments
    ]

    sequences: list[str] = []
    if audio is not None:
        sequences.append(
            f"    <Sequence from={{0}} durationInFrames={{{total_frames}}}>\n"
            "      <Audio src={audioUrl} />\n"
            "    </Sequence>"
        )
    sequences.extend(
        f"    <Sequence from={{{seg.start}}} durationInFrames={{{seg.frames}}}>"
        f"<Scene{seg.index} /></Sequence>"
        for seg in segments
    )

    background = _js(script.color_palette.background or "#0a0a0a")
    return (
        f"{_PREAMBLE}\n"
        + "\n".join(scene_defs)
        + "\nconst MyVideo = () => (\n"
        f"  <AbsoluteFill style={{{{ backgroundColor: {background} }}}}>\n"
        + "\n".join(sequences)
        + "\n  </AbsoluteFill>\n"
        ");\n\n"
        "return MyVideo;\n"
    )

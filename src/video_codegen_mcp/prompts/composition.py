"""Prompt templates and builders for Remotion composition generation.

The system prompt is fixed apart from canvas size and frame rate; the
user prompt is rendered from the Script and the job's assets. Worked
examples are kept as raw strings (no ``str.format``) so their JSX braces
need no escaping.
"""

from __future__ import annotations

from ..models.generation import AudioDescriptor, Dimensions, IterationRequest, WordTimestamp
from ..models.script import Script

IMAGE_URL_PREVIEW_CHARS = 80

# ---------------------------------------------------------------------------
# System prompt
# ---------------------------------------------------------------------------

_OUTPUT_CONTRACT = """You are a Remotion video composition code generator for Pause Play Repeat, a music production education platform.

## YOUR OUTPUT FORMAT

Output ONLY a JavaScript function body. No markdown fences, no explanation.

The code is executed as:
```
new Function("React", "Remotion", "Components", "Theme", "images", "audioUrl", code)
```

It receives those parameters and must RETURN a React component:

```
const { AbsoluteFill, Sequence, useCurrentFrame, useVideoConfig, spring, interpolate, Img, Audio } = Remotion;
const { CenterScene, Content, FadeUp, useExit, BG, CinematicBG, GlowOrb, GridPattern, ScanLine,
        FeatureCard, StepRow, ReasonCard, TierCard, StatCounter, StatBlock, StatBig,
        WaveformVisual, GradientText, SectionLabel, CTAButton, LogoIcon, ConnectorLine } = Components;
const { C, F } = Theme;

// ... scene components ...

const MyVideo = () => (
  <AbsoluteFill style={{ backgroundColor: C.bg }}>
    <Sequence from={0} durationInFrames={180}>...</Sequence>
  </AbsoluteFill>
);

return MyVideo;
```
"""

_DESIGN_RULES = """## DESIGN SYSTEM RULES

1. **Layout**: every scene is an AbsoluteFill with flexbox centering
2. **Text hierarchy** (always fontFamily F):
   - Headline: 44-56px, fontWeight 900
   - Subhead: 24-28px, fontWeight 500-600
   - Body: 16-18px, fontWeight 400-500
   - Label: 14-15px, fontWeight 700, letterSpacing 3-4, uppercase
3. **Colors**: the C object has bg, primary, purple, deepPurple, pink, cyan, green, orange, red, gold, warmOrange, white, gray, darkGray
4. **Gradient text**: `background: linear-gradient(135deg, a, b)` with WebkitBackgroundClip "text" and WebkitTextFillColor "transparent"
5. **Animation**:
   - Entrances: `<FadeUp delay={frame}>` springs opacity and translateY
   - Exits: `useExit(exitStart, exitEnd)` returns { op, y }
   - Custom springs: `spring({ fps, frame: frame - delay, config: { damping: 50-70, stiffness: 150-200 } })`
6. **Cards**: background `C.darkGray + "cc"`, border `1px solid` with the accent at 20 alpha, borderRadius 16-20
7. **Transitions**: useExit starts 20-25 frames before the Sequence ends
8. **Canvas**: {width}x{height} at {fps}fps
"""

_COMPONENT_CATALOG = """## COMPONENT LIBRARY

### Layout
- **CenterScene**: main scene wrapper with BG, grid, orbs and scanline. Props: `{ children, opacity?, translateY?, seed?, tint?, orbColors?, padding? }`
- **Content**: overlay wrapper for image-backed scenes (pair with CinematicBG). Props: `{ children, opacity?, translateY? }`

### Background
- **BG**: grid + orbs + scanline. Props: `{ seed?, tint?, orbColors? }` (already inside CenterScene)
- **CinematicBG**: Ken Burns zoom/pan over an image. Props: `{ src, startScale?, endScale?, startX?, endX?, startY?, endY?, overlayOpacity? }`
- **GlowOrb**: floating ambient orb. Props: `{ x, y, size, color, delay }`
- **GridPattern**: subtle grid lines. Props: `{ opacity?, color? }`
- **ScanLine**: animated horizontal line. Props: `{ color?, speed? }`

### Animation
- **FadeUp**: spring fade + translateY entrance. Props: `{ children, delay, style? }`; delay counts frames from the Sequence start
- **useExit(exitStart, exitEnd, exitY?)**: hook returning `{ op, y }`

### Cards
- **FeatureCard**: `{ icon, title, desc, delay }`
- **StepRow**: `{ step: { time, icon, text, color }, delay }`
- **ReasonCard**: `{ item: { icon, title, desc }, delay }`
- **TierCard**: `{ tier: { name, price, color, features: string[] }, delay }`

### Stats
- **StatCounter**: `{ value, label, delay }`
- **StatBlock**: `{ value, label, color, delay }`
- **StatBig**: `{ value, label, color, delay }`

### Typography
- **GradientText**: `{ children, from, to, style? }`
- **SectionLabel**: `{ children, color, style? }`

### Call to action
- **CTAButton**: pulsing gradient button. `{ children, delay, gradientFrom?, gradientTo?, glowColor? }`
- **LogoIcon**: play icon in a gradient box. `{ delay, size?, gradientFrom?, gradientTo?, gradientVia?, glowColor? }`

### Other
- **ConnectorLine**: animated vertical connector. `{ delay, color }`
- **WaveformVisual**: SVG sine wave. `{ delay, distorted? }`
"""

_EXAMPLE_EXPLAINER = """## EXAMPLE 1: Text-only feature explainer

```
const { AbsoluteFill, Sequence, useCurrentFrame, interpolate } = Remotion;
const { CenterScene, FadeUp, useExit, LogoIcon, CTAButton } = Components;
const { C, F } = Theme;

const HookScene = () => {
  const { op, y } = useExit(130, 150);
  return (
    <CenterScene opacity={op} translateY={y}>
      <FadeUp delay={8} style={{ fontSize: 26, color: C.gray, fontFamily: F, fontWeight: 500, marginBottom: 20 }}>
        50,000 Instagram followers.
      </FadeUp>
      <FadeUp delay={25} style={{ fontSize: 26, color: C.gray, fontFamily: F, fontWeight: 500, marginBottom: 36 }}>
        $200 a month in sales.
      </FadeUp>
      <FadeUp delay={50}>
        <div style={{ fontSize: 48, fontWeight: 900, fontFamily: F, lineHeight: 1.15, color: C.white }}>
          Your email list is the{" "}
          <span style={{ background: "linear-gradient(135deg, " + C.green + ", " + C.cyan + ")", WebkitBackgroundClip: "text", WebkitTextFillColor: "transparent" }}>real business.</span>
        </div>
      </FadeUp>
    </CenterScene>
  );
};

const CTAScene = () => {
  const frame = useCurrentFrame();
  const urlOp = interpolate(frame, [75, 90], [0, 1], { extrapolateLeft: "clamp", extrapolateRight: "clamp" });
  return (
    <CenterScene>
      <LogoIcon delay={10} />
      <FadeUp delay={22}>
        <div style={{ fontSize: 40, fontWeight: 900, fontFamily: F, color: C.white }}>Start building today.</div>
      </FadeUp>
      <div style={{ marginTop: 44 }}>
        <CTAButton delay={55}>Get Started</CTAButton>
      </div>
      <div style={{ opacity: urlOp, marginTop: 24, fontSize: 18, color: C.gray, fontFamily: "monospace" }}>academy.pauseplayrepeat.com</div>
    </CenterScene>
  );
};

const MyVideo = () => (
  <AbsoluteFill style={{ backgroundColor: C.bg }}>
    <Sequence from={0} durationInFrames={150}><HookScene /></Sequence>
    <Sequence from={150} durationInFrames={300}><CTAScene /></Sequence>
  </AbsoluteFill>
);

return MyVideo;
```
"""

_EXAMPLE_STATS = """## EXAMPLE 2: Stat-heavy course promo

```
const { AbsoluteFill, Sequence } = Remotion;
const { CenterScene, FadeUp, useExit, StatBlock, WaveformVisual } = Components;
const { C, F } = Theme;

const SAT_ORBS = [C.red, C.warmOrange];

const HookScene = () => {
  const { op, y } = useExit(155, 180);
  return (
    <CenterScene opacity={op} translateY={y} tint={C.orange} orbColors={SAT_ORBS}>
      <FadeUp delay={8} style={{ fontSize: 24, color: C.gray, fontFamily: F, fontWeight: 500, marginBottom: 20 }}>Every hit record uses it.</FadeUp>
      <FadeUp delay={48}>
        <div style={{ fontSize: 50, fontWeight: 900, fontFamily: F, lineHeight: 1.1, color: C.white }}>Saturation &amp; Distortion</div>
      </FadeUp>
      <FadeUp delay={78} style={{ width: "100%" }}>
        <WaveformVisual delay={78} distorted />
      </FadeUp>
    </CenterScene>
  );
};

const StatsScene = () => (
  <CenterScene seed={5}>
    <FadeUp delay={5} style={{ fontSize: 14, color: C.green, fontWeight: 700, letterSpacing: 4, textTransform: "uppercase", fontFamily: F, marginBottom: 10 }}>THE RESULTS</FadeUp>
    <FadeUp delay={10} style={{ fontSize: 36, fontWeight: 800, color: C.white, fontFamily: F, marginBottom: 50 }}>Numbers don't lie.</FadeUp>
    <div style={{ display: "flex", justifyContent: "space-around", width: "100%" }}>
      <StatBlock value="1,200+" label="students" color={C.green} delay={25} />
      <StatBlock value="4.9" label="avg rating" color={C.primary} delay={45} />
    </div>
  </CenterScene>
);

const MyVideo = () => (
  <AbsoluteFill style={{ backgroundColor: C.bg }}>
    <Sequence from={0} durationInFrames={180}><HookScene /></Sequence>
    <Sequence from={180} durationInFrames={240}><StatsScene /></Sequence>
  </AbsoluteFill>
);

return MyVideo;
```
"""

_EXAMPLE_IMAGES = """## EXAMPLE 3: Image-backed product promo

```
const { AbsoluteFill, Sequence, Audio } = Remotion;
const { Content, CinematicBG, FadeUp, useExit, TierCard } = Components;
const { C, F } = Theme;

const ImageScene = () => {
  const { op, y } = useExit(155, 180);
  return (
    <AbsoluteFill style={{ opacity: op, transform: "translateY(" + y + "px)" }}>
      <CinematicBG src={images[0]} overlayOpacity={0.6} />
      <Content>
        <FadeUp delay={8}>
          <div style={{ fontSize: 48, fontWeight: 900, fontFamily: F, color: C.white, textShadow: "0 2px 20px rgba(0,0,0,0.8)" }}>Own your sound.</div>
        </FadeUp>
      </Content>
    </AbsoluteFill>
  );
};

const PricingScene = () => (
  <AbsoluteFill>
    <CinematicBG src={images[1]} overlayOpacity={0.75} />
    <Content>
      <TierCard tier={{ name: "Premium", price: "$49", color: C.gold, features: ["WAV + stems", "Unlimited streams"] }} delay={12} />
    </Content>
  </AbsoluteFill>
);

const MyVideo = () => (
  <AbsoluteFill style={{ backgroundColor: C.bg }}>
    <Sequence from={0} durationInFrames={180}>
      <Audio src={audioUrl} />
      <ImageScene />
    </Sequence>
    <Sequence from={180} durationInFrames={150}><PricingScene /></Sequence>
  </AbsoluteFill>
);

return MyVideo;
```
"""

_STRICT_RULES = """## STRICT RULES

1. Output ONLY the function body: no markdown fences, no explanation text
2. The code must RETURN a React component (the last line is `return MyVideo;`)
3. Destructure from the Remotion, Components and Theme parameters
4. Use the images array by index: `images[0]`, `images[1]`, ...
5. If audioUrl is provided, add `<Audio src={audioUrl} />` in the first Sequence
6. Scene durations MUST match the script timing exactly (scene.duration * {fps} = frames)
7. Use the provided color palette, not arbitrary colors
8. Every scene except the last MUST have an exit transition via useExit
9. All text must be centered (CenterScene handles this)
10. No fetch(), eval(), require(), import(), new Function, process., fs., child_process, window, document or storage APIs
11. Total frames across all Sequences must equal the total specified
"""


def build_system_prompt(dimensions: Dimensions, fps: int) -> str:
    """Assemble the fixed system prompt for a canvas size and frame rate."""
    design_rules = (
        _DESIGN_RULES.replace("{width}", str(dimensions.width))
        .replace("{height}", str(dimensions.height))
        .replace("{fps}", str(fps))
    )
    strict_rules = _STRICT_RULES.replace("{fps}", str(fps))
    return "\n".join([
        _OUTPUT_CONTRACT,
        design_rules,
        _COMPONENT_CATALOG,
        _EXAMPLE_EXPLAINER,
        _EXAMPLE_STATS,
        _EXAMPLE_IMAGES,
        strict_rules,
    ])


# ---------------------------------------------------------------------------
# User prompt
# ---------------------------------------------------------------------------


def _preview_url(url: str) -> str:
    if len(url) <= IMAGE_URL_PREVIEW_CHARS:
        return url
    return url[:IMAGE_URL_PREVIEW_CHARS] + "..."


def format_word_timeline(words: list[WordTimestamp], fps: int) -> str:
    """Format voiceover word timings into a prompt section.

    Long timelines keep the first 20 and last 10 words. Transition words
    and long words are surfaced as key moments with two words of context
    either side, capped at 15.
    """
    entries = [f'  - "{w.word}" at {w.start:.2f}s (frame {int(w.start * fps)})' for w in words]
    if len(entries) > 35:
        timeline = "\n".join(entries[:20])
        timeline += f"\n  ... ({len(entries) - 30} more words) ...\n"
        timeline += "\n".join(entries[-10:])
    else:
        timeline = "\n".join(entries)

    transition_words = {
        "but", "however", "this", "that", "so", "now", "finally",
        "first", "second", "third", "next", "then",
    }
    key_moments: list[str] = []
    for i, w in enumerate(words):
        token = w.word.lower().rstrip(",.!?")
        if token in transition_words or len(token) > 6:
            context = " ".join(words[j].word for j in range(max(0, i - 2), min(len(words), i + 3)))
            key_moments.append(f'  - "{context}" → frame {int(w.start * fps)} ({w.start:.2f}s)')

    moments = "\n".join(key_moments[:15]) or "  - (pick moments from the timeline above)"
    return (
        f"### Word timeline ({len(words)} words)\n{timeline}\n\n"
        f"### Key moments (animation triggers)\n{moments}\n"
        "Start visuals 0-15 frames BEFORE the matching word is spoken.\n"
    )


def build_user_prompt(
    script: Script,
    image_urls: list[str],
    audio: AudioDescriptor | None,
    total_frames: int,
    fps: int,
    dimensions: Dimensions,
) -> str:
    """Render the per-job user prompt from the Script and its assets."""
    palette = script.color_palette
    lines: list[str] = [
        "Generate a Remotion video composition for the following script.",
        "",
        "## VIDEO SPECS",
        f"- Total duration: {total_frames} frames ({total_frames / fps:g}s at {fps}fps)",
        f"- Dimensions: {dimensions.width}x{dimensions.height}",
        "",
        "## COLOR PALETTE",
        f"- Primary: {palette.primary}",
        f"- Secondary: {palette.secondary}",
        f"- Accent: {palette.accent}",
        f"- Background: {palette.background}",
        "Use the C (theme colors) object, and these palette colors where they match the mood.",
        "",
        "## SCENES",
    ]

    offset = 0
    for scene in script.scenes:
        frames = int(round(scene.duration * fps))
        text = scene.on_screen_text
        lines.append(f'### Scene "{scene.id}" ({frames} frames, from={offset}, mood: {scene.mood})')
        if text.headline:
            lines.append(f'  Headline: "{text.headline}"')
        if text.subhead:
            lines.append(f'  Subhead: "{text.subhead}"')
        if text.bullet_points:
            lines.append("  Bullets:")
            lines.extend(f'    - "{bullet}"' for bullet in text.bullet_points)
        if text.emphasis:
            lines.append(f"  Emphasis words: {', '.join(text.emphasis)}")
        lines.append(f"  Visual direction: {scene.visual_direction}")
        if scene.voiceover:
            lines.append(f'  Voiceover: "{scene.voiceover}"')
        lines.append("")
        offset += frames

    lines.append(f"## AVAILABLE IMAGES ({len(image_urls)} total)")
    lines.extend(f"  images[{i}]: {_preview_url(url)}" for i, url in enumerate(image_urls))
    lines.append("Use CinematicBG with images for visually rich scenes, or CenterScene for text-focused scenes.")
    lines.append("")

    lines.append("## AUDIO")
    if audio:
        lines.append("audioUrl is available: add <Audio src={audioUrl} /> in the first Sequence.")
        lines.append(f"Audio duration: {audio.duration:.1f}s")
        if audio.words:
            lines.append(format_word_timeline(audio.words, fps))
    else:
        lines.append("No audio: this is a text-only video.")
    lines.append("")

    lines.extend([
        "## REQUIREMENTS",
        f"- Total frames: {total_frames} (Sequences must add up to this)",
        "- Every scene needs an exit animation (useExit)",
        "- The last scene should NOT have an exit transition (it holds the final frame)",
        "- Use the component library (CenterScene, FadeUp, ...) instead of raw divs where possible",
        "- Make the animations feel cinematic and professional",
        "",
        "Generate the code now.",
    ])
    return "\n".join(lines)


def append_iteration(prompt: str, iteration: IterationRequest) -> str:
    """Extend a user prompt with the previous code and the requested change."""
    return (
        f"{prompt}\n\n## ITERATION: MODIFY PREVIOUS VERSION\n"
        f'The creator wants these changes: "{iteration.feedback}"\n\n'
        "Here is the previous version of the video code. Modify it to apply the "
        "requested changes. Keep everything else the same.\n\n"
        f"```\n{iteration.previous_code}\n```\n\n"
        "Output the FULL modified code (not a diff). Apply ONLY the requested changes."
    )


def append_fix_request(prompt: str, diagnostics: list[str]) -> str:
    """Extend a user prompt with the previous attempt's validation errors."""
    listed = "\n".join(f"- {d}" for d in diagnostics)
    return (
        f"{prompt}\n\n## IMPORTANT: Fix These Issues From Previous Attempt\n"
        f"Your previous code had these validation errors:\n{listed}\n\n"
        "Please fix ALL of these issues and output corrected code."
    )

"""Shared test fixtures for video-codegen-mcp."""

from __future__ import annotations

from typing import Any

import pytest

from video_codegen_mcp.models.script import ColorPalette, OnScreenText, Scene, Script
from video_codegen_mcp.store import SqliteJobStore

# Passes syntax, security and structure checks.
VALID_COMPOSITION = """const { AbsoluteFill, Sequence, useCurrentFrame, interpolate } = Remotion;
const { CenterScene, FadeUp, useExit } = Components;
const { C, F } = Theme;

const Hook = () => {
  const frame = useCurrentFrame();
  const { op, y } = useExit(155, 180);
  const glow = interpolate(frame, [0, 30], [0, 1], { extrapolateRight: "clamp" });
  return (
    <CenterScene opacity={op} translateY={y} seed={0} tint={C.primary}>
      <FadeUp delay={8}>
        <div style={{ fontSize: 44, fontWeight: 900, fontFamily: F, opacity: glow }}>
          Why most habits fail
        </div>
      </FadeUp>
      <FadeUp delay={25} style={{ fontSize: 22, color: C.muted, fontFamily: F }}>
        And the one change that fixes it
      </FadeUp>
    </CenterScene>
  );
};

const MyVideo = () => (
  <AbsoluteFill style={{ backgroundColor: "#0a0a0a" }}>
    <Sequence from={0} durationInFrames={180}>
      <Hook />
    </Sequence>
  </AbsoluteFill>
);

return MyVideo;"""


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function. This helper works with both.
    """
    return getattr(tool, "fn", tool)


def make_script(
    durations: tuple[float, ...] = (6.0,),
    *,
    script_id: str = "",
    palette: ColorPalette | None = None,
) -> Script:
    """Build a Script with one scene per duration."""
    scenes = [
        Scene(
            id=f"scene-{i}",
            duration=d,
            mood="intrigue" if i == 0 else "educational",
            on_screen_text=OnScreenText(
                headline=f"Headline {i}",
                subhead=f"Subhead {i}",
                bullet_points=[f"Point {i}.a", f"Point {i}.b"],
                emphasis=["habits"],
            ),
            visual_direction="Dark background, bold type",
            voiceover=f"Voiceover line {i}",
        )
        for i, d in enumerate(durations)
    ]
    return Script(
        script_id=script_id,
        scenes=scenes,
        color_palette=palette or ColorPalette(),
    )


@pytest.fixture(autouse=True, scope="session")
def _unwrap_fastmcp_tools():
    """Patch tool modules so FunctionTool objects become directly callable.

    FastMCP 2.x wraps @server.tool in FunctionTool (not callable); 3.x
    preserves the function. This fixture unwraps at the module level so
    tests can ``await tool_func(...)`` regardless of FastMCP version.
    """
    import importlib
    import pkgutil

    import video_codegen_mcp.tools as tools_pkg

    modules = [
        importlib.import_module(info.name)
        for info in pkgutil.walk_packages(tools_pkg.__path__, tools_pkg.__name__ + ".")
    ]

    for mod in modules:
        for name in list(vars(mod)):
            obj = getattr(mod, name, None)
            if obj is not None and hasattr(obj, "fn") and not callable(obj):
                setattr(mod, name, obj.fn)


@pytest.fixture(autouse=True)
def _set_dummy_api_key(monkeypatch):
    """Ensure tests never hit a real provider."""
    monkeypatch.setenv("OPENROUTER_API_KEY", "test-key-not-real")
    monkeypatch.delenv("CODEGEN_PROVIDER", raising=False)


@pytest.fixture(autouse=True)
def _disable_tracing(monkeypatch):
    """Disable MLflow tracing in all tests to avoid real tracking-server calls.

    The ``test_tracing.py`` module patches the tracing module directly
    and does not rely on this fixture.
    """
    monkeypatch.setenv("CODEGEN_TRACING_ENABLED", "false")


@pytest.fixture(autouse=True)
def _isolate_dotenv(tmp_path, monkeypatch):
    """Prevent tests from loading the user's real ~/.config/video-codegen-mcp/.env."""
    monkeypatch.setattr(
        "video_codegen_mcp.dotenv.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )


@pytest.fixture(autouse=True)
def clean_config():
    """Reset the config singleton between tests."""
    import video_codegen_mcp.config as cfg_mod

    cfg_mod._config = None
    yield
    cfg_mod._config = None


@pytest.fixture()
def store():
    """Fresh in-memory job store."""
    s = SqliteJobStore()
    yield s
    s.close()


@pytest.fixture()
def global_store(monkeypatch, store):
    """Install ``store`` as the process-wide store used by the tools."""
    monkeypatch.setattr("video_codegen_mcp.store._store", store)
    return store

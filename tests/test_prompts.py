"""Tests for system and user prompt assembly."""

from __future__ import annotations

from tests.conftest import make_script
from video_codegen_mcp.models.generation import (
    AudioDescriptor,
    IterationRequest,
    WordTimestamp,
    dimensions_for,
)
from video_codegen_mcp.prompts.composition import (
    append_fix_request,
    append_iteration,
    build_system_prompt,
    build_user_prompt,
    format_word_timeline,
)


class TestSystemPrompt:
    def test_fills_canvas_and_fps(self):
        prompt = build_system_prompt(dimensions_for("16:9"), 30)
        assert "1920" in prompt
        assert "1080" in prompt
        assert "{width}" not in prompt
        assert "{fps}" not in prompt

    def test_names_host_parameters_and_forbids_network(self):
        prompt = build_system_prompt(dimensions_for("9:16"), 30)
        assert "audioUrl" in prompt
        assert "fetch" in prompt


class TestUserPrompt:
    def test_scene_offsets_accumulate(self):
        """GIVEN scenes of 6s and 4s at 30fps THEN the second starts at frame 180."""
        script = make_script((6.0, 4.0))
        prompt = build_user_prompt(script, [], None, 300, 30, dimensions_for("9:16"))
        assert '### Scene "scene-0" (180 frames, from=0, mood: intrigue)' in prompt
        assert '### Scene "scene-1" (120 frames, from=180, mood: educational)' in prompt
        assert "Total frames: 300" in prompt

    def test_scene_text_fields_rendered(self):
        prompt = build_user_prompt(make_script(), [], None, 180, 30, dimensions_for("9:16"))
        assert 'Headline: "Headline 0"' in prompt
        assert 'Subhead: "Subhead 0"' in prompt
        assert '- "Point 0.a"' in prompt
        assert "Emphasis words: habits" in prompt
        assert 'Voiceover: "Voiceover line 0"' in prompt

    def test_no_audio_section(self):
        prompt = build_user_prompt(make_script(), [], None, 180, 30, dimensions_for("9:16"))
        assert "No audio: this is a text-only video." in prompt

    def test_long_image_urls_are_truncated(self):
        url = "https://cdn.example.com/" + "a" * 200
        prompt = build_user_prompt(make_script(), [url], None, 180, 30, dimensions_for("9:16"))
        assert f"images[0]: {url[:80]}..." in prompt
        assert url not in prompt

    def test_audio_with_words_includes_timeline(self):
        audio = AudioDescriptor(
            audio_url="https://cdn.example.com/vo.mp3",
            duration=6.0,
            words=[WordTimestamp(word="However,", start=1.0, end=1.3)],
        )
        prompt = build_user_prompt(make_script(), [], audio, 180, 30, dimensions_for("9:16"))
        assert "<Audio src={audioUrl} />" in prompt
        assert "Audio duration: 6.0s" in prompt
        assert '"However," at 1.00s (frame 30)' in prompt


class TestWordTimeline:
    def test_long_timelines_are_elided(self):
        words = [WordTimestamp(word=f"w{i}", start=i * 0.5, end=i * 0.5 + 0.4) for i in range(40)]
        section = format_word_timeline(words, 30)
        assert "(10 more words)" in section
        assert '"w0"' in section
        assert '"w39"' in section
        assert '"w25"' not in section

    def test_key_moments_capped(self):
        words = [WordTimestamp(word="however", start=float(i), end=i + 0.5) for i in range(20)]
        section = format_word_timeline(words, 30)
        moments = section.split("### Key moments")[1]
        assert moments.count("→ frame") == 15


class TestAppendSections:
    def test_iteration_embeds_previous_code_and_feedback(self):
        iteration = IterationRequest(previous_code="return Old;", feedback="Make it blue")
        prompt = append_iteration("BASE", iteration)
        assert prompt.startswith("BASE")
        assert "## ITERATION: MODIFY PREVIOUS VERSION" in prompt
        assert '"Make it blue"' in prompt
        assert "```\nreturn Old;\n```" in prompt
        assert "not a diff" in prompt

    def test_fix_request_lists_diagnostics_verbatim(self):
        prompt = append_fix_request("BASE", ["[Structure] No JSX markup found", "boom"])
        assert "## IMPORTANT: Fix These Issues From Previous Attempt" in prompt
        assert "- [Structure] No JSX markup found\n- boom" in prompt

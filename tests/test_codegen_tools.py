"""Tests for the codegen MCP tools."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

import video_codegen_mcp.tools.codegen as codegen_mod
from tests.conftest import VALID_COMPOSITION, make_script, unwrap_tool

codegen_generate = unwrap_tool(codegen_mod.codegen_generate)
codegen_validate = unwrap_tool(codegen_mod.codegen_validate)
codegen_save_script = unwrap_tool(codegen_mod.codegen_save_script)
codegen_history = unwrap_tool(codegen_mod.codegen_history)


@pytest.fixture()
def mock_complete():
    with patch(
        "video_codegen_mcp.client.CodegenClient.complete", new_callable=AsyncMock
    ) as m:
        yield m


class TestCodegenSaveScript:
    async def test_accepts_dict(self, global_store):
        payload = make_script((6.0, 4.0), script_id="s1").model_dump(by_alias=True)

        result = await codegen_save_script(script=payload)

        assert result == {"script_id": "s1", "scenes": 2, "total_duration": 10.0}
        assert global_store.get_script("s1") is not None

    async def test_accepts_json_string(self, global_store):
        payload = json.dumps({"scenes": [{"id": "a", "duration": 3}]})

        result = await codegen_save_script(script=payload)

        assert result["scenes"] == 1
        assert global_store.get_script(result["script_id"]) is not None

    async def test_invalid_script_returns_tool_error(self, global_store):
        result = await codegen_save_script(script={"scenes": []})
        assert "error" in result
        assert result["retryable"] is False


class TestCodegenGenerate:
    async def test_generates_and_stores(self, global_store, mock_complete):
        global_store.save_script(make_script(script_id="s1"))
        mock_complete.return_value = f"```jsx\n{VALID_COMPOSITION}\n```"

        result = await codegen_generate(job_id="job-1", script_id="s1", target_duration=6.0)

        assert result["used_fallback"] is False
        assert result["version"] == 1
        assert result["attempts"] == 1
        assert result["phases"] == ["attempting", "succeeded"]
        assert result["code"] == VALID_COMPOSITION

    async def test_audio_and_images_as_json_strings(self, global_store, mock_complete):
        global_store.save_script(make_script(script_id="s1"))
        mock_complete.return_value = VALID_COMPOSITION
        audio = json.dumps({
            "audioUrl": "https://cdn.example.com/vo.mp3",
            "duration": 6.0,
            "words": [{"word": "Hello", "start": 0.2, "end": 0.5}],
        })

        result = await codegen_generate(
            job_id="job-1",
            script_id="s1",
            target_duration=6.0,
            image_urls='["https://cdn.example.com/a.png"]',
            audio=audio,
        )

        assert "error" not in result
        user_prompt = mock_complete.await_args.args[1]
        assert "images[0]: https://cdn.example.com/a.png" in user_prompt
        assert '"Hello" at 0.20s' in user_prompt

    async def test_iteration_requires_both_fields(self, global_store, mock_complete):
        global_store.save_script(make_script(script_id="s1"))
        mock_complete.return_value = VALID_COMPOSITION

        await codegen_generate(
            job_id="job-1", script_id="s1", target_duration=6.0,
            previous_code="return Old;", feedback="Bigger title",
        )

        assert "## ITERATION" in mock_complete.await_args.args[1]

    async def test_unknown_script_maps_to_tool_error(self, global_store, mock_complete):
        result = await codegen_generate(job_id="job-1", script_id="nope", target_duration=6.0)

        assert result["category"] == "SCRIPT_NOT_FOUND"
        assert result["retryable"] is False
        mock_complete.assert_not_awaited()

    async def test_missing_credential_maps_to_tool_error(self, global_store, mock_complete, monkeypatch):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        global_store.save_script(make_script(script_id="s1"))

        result = await codegen_generate(job_id="job-1", script_id="s1", target_duration=6.0)

        assert result["category"] == "CONFIG_MISSING_CREDENTIAL"
        assert global_store.job_history("job-1") == []


class TestCodegenValidate:
    async def test_valid_code(self):
        result = await codegen_validate(code=VALID_COMPOSITION)
        assert result == {"passed": True, "layers": {"syntax": [], "security": [], "structure": []}}

    async def test_reports_per_layer(self):
        result = await codegen_validate(code="eval(x)")
        assert result["passed"] is False
        assert result["layers"]["security"] == ["Forbidden pattern: eval()"]
        assert result["layers"]["syntax"]
        assert result["layers"]["structure"]


class TestCodegenHistory:
    async def test_lists_versions(self, global_store):
        global_store.update_job_code("job-1", "v1 code")
        global_store.update_job_code("job-1", "v2 code", used_fallback=True)

        result = await codegen_history(job_id="job-1")

        assert [v["version"] for v in result["versions"]] == [1, 2]
        assert result["versions"][1]["used_fallback"] is True
        assert "code" not in result["versions"][0]
        assert result["latest_code"] == "v2 code"

    async def test_include_code(self, global_store):
        global_store.update_job_code("job-1", "v1 code")
        result = await codegen_history(job_id="job-1", include_code=True)
        assert result["versions"][0]["code"] == "v1 code"

    async def test_unknown_job(self, global_store):
        result = await codegen_history(job_id="none")
        assert result == {"job_id": "none", "versions": [], "latest_code": None}

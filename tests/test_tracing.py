"""Tests for the optional MLflow tracing integration."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

import video_codegen_mcp.tracing as mod


def _make_config(**overrides):
    """Build a mock ServerConfig with tracing-enabled defaults."""
    defaults = {
        "tracing_enabled": True,
        "mlflow_tracking_uri": "http://127.0.0.1:5001",
        "mlflow_experiment_name": "video-codegen-mcp",
        "provider": "openrouter",
    }
    defaults.update(overrides)
    cfg = MagicMock()
    for k, v in defaults.items():
        setattr(cfg, k, v)
    return cfg


@pytest.fixture()
def mock_mlflow(monkeypatch):
    """Pretend mlflow is installed and hand back the mock module."""
    mlflow = MagicMock()
    monkeypatch.setattr(mod, "_HAS_MLFLOW", True)
    monkeypatch.setattr(mod, "mlflow", mlflow, raising=False)
    return mlflow


class TestIsEnabled:
    """``tracing.is_enabled()`` respects import availability and config."""

    def test_true_when_installed_and_enabled(self, mock_mlflow):
        with patch("video_codegen_mcp.config.get_config", return_value=_make_config()):
            assert mod.is_enabled() is True

    def test_false_when_not_installed(self, monkeypatch):
        monkeypatch.setattr(mod, "_HAS_MLFLOW", False)
        assert mod.is_enabled() is False

    def test_false_when_config_disabled(self, mock_mlflow):
        cfg = _make_config(tracing_enabled=False)
        with patch("video_codegen_mcp.config.get_config", return_value=cfg):
            assert mod.is_enabled() is False


class TestSetup:
    """``tracing.setup()`` configures MLflow when enabled."""

    def test_openrouter_provider_skips_gemini_autolog(self, mock_mlflow):
        with patch("video_codegen_mcp.config.get_config", return_value=_make_config()):
            mod.setup()

        mock_mlflow.set_tracking_uri.assert_called_once_with("http://127.0.0.1:5001")
        mock_mlflow.set_experiment.assert_called_once_with("video-codegen-mcp")
        mock_mlflow.gemini.autolog.assert_not_called()

    def test_gemini_provider_enables_autolog(self, mock_mlflow):
        cfg = _make_config(provider="gemini")
        with patch("video_codegen_mcp.config.get_config", return_value=cfg):
            mod.setup()

        mock_mlflow.gemini.autolog.assert_called_once()

    def test_setup_failure_is_swallowed(self, mock_mlflow):
        """GIVEN the tracking server is unreachable THEN setup logs and returns."""
        mock_mlflow.set_experiment.side_effect = ConnectionError("refused")
        with patch("video_codegen_mcp.config.get_config", return_value=_make_config()):
            mod.setup()

    def test_noop_when_disabled(self, monkeypatch):
        mlflow = MagicMock()
        monkeypatch.setattr(mod, "_HAS_MLFLOW", False)
        monkeypatch.setattr(mod, "mlflow", mlflow, raising=False)

        mod.setup()
        mod.shutdown()

        mlflow.set_tracking_uri.assert_not_called()
        mlflow.flush_trace_async_logging.assert_not_called()


class TestTraceDecorator:
    def test_identity_when_disabled(self, monkeypatch):
        monkeypatch.setattr(mod, "_HAS_MLFLOW", False)

        def fn():
            return 1

        assert mod.trace(name="x", span_type="TOOL")(fn) is fn
        assert mod.trace(fn) is fn

    def test_delegates_to_mlflow_when_enabled(self, mock_mlflow):
        def fn():
            return 1

        with patch("video_codegen_mcp.config.get_config", return_value=_make_config()):
            mod.trace(fn, name="codegen_generate", span_type="TOOL")

        mock_mlflow.trace.assert_called_once_with(
            fn, name="codegen_generate", span_type="TOOL", attributes=None,
        )


class TestShutdown:
    def test_flushes(self, mock_mlflow):
        with patch("video_codegen_mcp.config.get_config", return_value=_make_config()):
            mod.shutdown()
        mock_mlflow.flush_trace_async_logging.assert_called_once()

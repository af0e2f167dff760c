"""Tests for lightpng.system_tools module."""

from unittest.mock import patch

import pytest

from lightpng.config import EngineConfig
from lightpng.system_tools import ToolInfo, discover_tool, get_available_tools


class TestToolInfo:
    """Tests for ToolInfo class."""

    @pytest.mark.fast
    def test_require_available(self):
        ToolInfo(name="pngquant", available=True, version="3.0.3").require()

    @pytest.mark.fast
    def test_require_unavailable(self):
        info = ToolInfo(name="pngquant", available=False)

        with pytest.raises(RuntimeError, match="Required tool 'pngquant' not found"):
            info.require()


class TestDiscoverTool:
    """Tests for discover_tool function."""

    @pytest.mark.fast
    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown tool: gifsicle"):
            discover_tool("gifsicle")

    @pytest.mark.fast
    @patch("lightpng.system_tools._which")
    def test_configured_path_found(self, mock_which, monkeypatch):
        monkeypatch.delenv("LIGHTPNG_PNGQUANT_PATH", raising=False)
        mock_which.return_value = "/custom/pngquant"
        config = EngineConfig(PNGQUANT_PATH="/custom/pngquant")

        with patch("lightpng.system_tools._run_version_cmd") as mock_version:
            mock_version.return_value = "3.0.3"

            info = discover_tool("pngquant", config)

        assert info == ToolInfo(name="/custom/pngquant", available=True, version="3.0.3")
        mock_which.assert_called_once_with("/custom/pngquant")
        mock_version.assert_called_once_with(
            ["/custom/pngquant", "--version"], r"(\d+\.\d+(?:\.\d+)?)"
        )

    @pytest.mark.fast
    @patch("lightpng.system_tools._which")
    def test_falls_back_to_path(self, mock_which, monkeypatch):
        monkeypatch.delenv("LIGHTPNG_PNGQUANT_PATH", raising=False)
        mock_which.side_effect = lambda cmd: "/usr/bin/pngquant" if cmd == "pngquant" else None
        config = EngineConfig(PNGQUANT_PATH="/missing/pngquant")

        with patch("lightpng.system_tools._run_version_cmd", return_value="2.17.0"):
            info = discover_tool("pngquant", config)

        assert info.name == "pngquant"
        assert info.available
        assert info.version == "2.17.0"

    @pytest.mark.fast
    @patch("lightpng.system_tools._which", return_value=None)
    def test_not_found(self, mock_which):
        info = discover_tool("pngquant")

        assert info == ToolInfo(name="pngquant", available=False, version=None)


class TestVersionParsing:
    """Tests for version extraction."""

    @pytest.mark.fast
    def test_version_from_stdout(self):
        from lightpng.system_tools import _extract_version

        assert _extract_version("3.0.3 (January 2024)\n", r"(\d+\.\d+(?:\.\d+)?)") == "3.0.3"
        assert _extract_version("no digits", r"(\d+\.\d+)") is None

    @pytest.mark.fast
    def test_missing_binary_has_no_version(self):
        from lightpng.system_tools import _run_version_cmd

        assert _run_version_cmd(["/definitely/not/a/binary", "--version"], r"(\d+)") is None


@pytest.mark.fast
@patch("lightpng.system_tools._which", return_value=None)
def test_get_available_tools(mock_which):
    tools = get_available_tools()

    assert set(tools) == {"pngquant"}
    assert not tools["pngquant"].available

"""Tests for external tool invocation."""

import subprocess
from unittest.mock import patch

import pytest

from parlato.errors import ExternalToolError
from parlato.external import run_tool


@patch("parlato.external.subprocess.run")
def test_run_tool_success(mock_run):
    mock_run.return_value = subprocess.CompletedProcess(["ffmpeg"], 0, stdout="ok", stderr="")
    result = run_tool(["ffmpeg", "-version"])
    assert result.stdout == "ok"
    args, kwargs = mock_run.call_args
    assert args[0] == ["ffmpeg", "-version"]
    assert kwargs["capture_output"] is True


@patch("parlato.external.subprocess.run")
def test_run_tool_stringifies_paths(mock_run, tmp_path):
    mock_run.return_value = subprocess.CompletedProcess([], 0, stdout="", stderr="")
    run_tool(["ffmpeg", "-i", tmp_path / "in.wav"])
    assert mock_run.call_args[0][0] == ["ffmpeg", "-i", str(tmp_path / "in.wav")]


@patch("parlato.external.subprocess.run")
def test_non_zero_exit_raises_with_last_stderr_line(mock_run):
    mock_run.return_value = subprocess.CompletedProcess(
        ["ffmpeg"], 1, stdout="", stderr="banner\nin.mp3: No such file or directory\n",
    )
    with pytest.raises(ExternalToolError, match="No such file or directory") as exc:
        run_tool(["ffmpeg", "-i", "in.mp3"])
    assert exc.value.cmd == ["ffmpeg", "-i", "in.mp3"]


@patch("parlato.external.subprocess.run")
def test_non_zero_exit_without_stderr(mock_run):
    mock_run.return_value = subprocess.CompletedProcess(["sh"], 2, stdout="", stderr="")
    with pytest.raises(ExternalToolError, match="exit status 2"):
        run_tool(["sh", "script.sh"])


@patch("parlato.external.subprocess.run", side_effect=FileNotFoundError())
def test_missing_binary(mock_run):
    with pytest.raises(ExternalToolError, match="executable not found: whisper-cli"):
        run_tool(["whisper-cli", "-h"])


@patch("parlato.external.subprocess.run",
       side_effect=subprocess.TimeoutExpired(["ffmpeg"], 5))
def test_timeout(mock_run):
    with pytest.raises(ExternalToolError, match="timed out"):
        run_tool(["ffmpeg"], timeout=5)

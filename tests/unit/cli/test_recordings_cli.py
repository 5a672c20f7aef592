"""Unit tests — CLI recording commands."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
from typer.testing import CliRunner

from ghost_bridge.cli.commands.recordings import app
from ghost_bridge.protocol.models import ParamBag
from ghost_bridge.recording.models import RecordedStep, Recording
from ghost_bridge.recording.store import RecipeStore

runner = CliRunner()


def _save(base_dir: Path) -> str:
    stamp = datetime(2026, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
    recording = Recording(
        name="demo",
        recorded_at=stamp,
        duration=3.0,
        steps=(
            RecordedStep(timestamp=stamp, method="click", params=ParamBag(target="New"), success=True,
                         description="Clicked 'New'"),
            RecordedStep(timestamp=stamp, method="press", params=ParamBag(key="bogus"), success=False,
                         description="Unknown key"),
        ),
    )
    RecipeStore(base_dir).save_recording(recording)
    return recording.file_stem


@pytest.mark.unit
class TestRecordingsList:
    def test_empty(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["list", "--base-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert "No recordings found" in result.output

    def test_lists_names(self, tmp_path: Path) -> None:
        stem = _save(tmp_path)
        result = runner.invoke(app, ["list", "--base-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert stem in result.output


@pytest.mark.unit
class TestRecordingsShow:
    def test_table(self, tmp_path: Path) -> None:
        stem = _save(tmp_path)
        result = runner.invoke(app, ["show", stem, "--base-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert "Steps: 2" in result.output
        assert "click" in result.output
        assert "Unknown key" in result.output

    def test_json(self, tmp_path: Path) -> None:
        stem = _save(tmp_path)
        result = runner.invoke(app, ["show", stem, "--base-dir", str(tmp_path), "--json"])
        assert result.exit_code == 0
        assert '"recordedAt": "2026-05-06T07:08:09Z"' in result.output

    def test_missing(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["show", "nope", "--base-dir", str(tmp_path)])
        assert result.exit_code == 1
        assert "Recording not found" in result.output

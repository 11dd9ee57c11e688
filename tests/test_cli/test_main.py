"""Tests for CLI main module."""

import json

import pytest
from unittest.mock import patch

import typer
from typer.testing import CliRunner

from pvedsc.cli.main import _load, app


runner = CliRunner()


@pytest.fixture
def manifest(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps([
        {"type": "container", "id": 100, "template": "local:vztmpl/a.tar.zst"},
        {"type": "vm", "id": 101, "template": "9000", "storage": "local-lvm:40"},
    ]))
    return path


@patch("pvedsc.cli.main.setup_logging")
def test_load_sets_up_logging(mock_setup, config_file):
    manager = _load(config_file, None)

    mock_setup.assert_called_once_with("DEBUG", None)
    assert manager.config.lock.wait_timeout == 1


@patch("pvedsc.cli.main.console")
def test_load_bad_config_exits(mock_console, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("commands:\n  timeout: -1\n")

    with pytest.raises(typer.Exit) as exc_info:
        _load(path, None)

    assert exc_info.value.exit_code == 1
    mock_console.print.assert_called_once()


@patch("pvedsc.cli.main.setup_logging")
@patch("pvedsc.cli.main.run_reconciliation", return_value=2)
def test_run_passes_options(mock_run, mock_setup, config_file, manifest, tmp_path):
    adopt = tmp_path / "adopt.json"

    result = runner.invoke(app, [
        "run", "--config", str(config_file), "--manifest", str(manifest),
        "--dry-run", "--adopt-file", str(adopt),
    ])

    assert result.exit_code == 2
    config_manager = mock_run.call_args.args[0]
    assert config_manager.manifest_path == manifest
    assert mock_run.call_args.kwargs == {"dry_run": True, "adopt_file": adopt}


@patch("pvedsc.cli.main.setup_logging")
@patch("pvedsc.cli.main.run_gate", return_value=0)
def test_gate_command(mock_gate, mock_setup, config_file):
    result = runner.invoke(app, ["gate", "--config", str(config_file)])

    assert result.exit_code == 0
    mock_gate.assert_called_once()


def test_validate_command(config_file, manifest):
    result = runner.invoke(app, ["validate", "--config", str(config_file), "--manifest", str(manifest)])

    assert result.exit_code == 0
    assert "2 entries valid" in result.output


def test_validate_missing_manifest(config_file, tmp_path):
    result = runner.invoke(app, [
        "validate", "--config", str(config_file), "--manifest", str(tmp_path / "absent.json"),
    ])

    assert result.exit_code == 2

"""CLI integration tests for chunkwatch."""

from __future__ import annotations

import json
import os
from pathlib import Path

import click
import pytest
import yaml
from click.testing import CliRunner

from chunkwatch.cli import cli


def _env_with_home(tmp_path: Path) -> dict[str, str]:
    """Return environment variables pointing HOME to a temp directory.

    Args:
        tmp_path: Temporary directory provided by pytest.

    Returns:
        dict[str, str]: Environment mapping with HOME set.
    """
    env = {key: value for key, value in os.environ.items() if not key.startswith("CHUNKWATCH__")}
    env["HOME"] = str(tmp_path / "home")
    return env


def _dirs(tmp_path: Path) -> tuple[Path, Path]:
    input_dir = tmp_path / "input"
    input_dir.mkdir()
    return input_dir, tmp_path / "output"


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "chunkwatch splits incoming files" in result.output
    for command in ("watch", "split", "verify", "config"):
        assert command in result.output


def test_cli_watch_once_splits_files(tmp_path: Path) -> None:
    input_dir, output_dir = _dirs(tmp_path)
    (input_dir / "memo.txt").write_text("watch me", encoding="utf-8")
    (input_dir / "photo.jpg").write_bytes(b"\xff\xd8\xff" + bytes(64))

    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["watch", "--input", str(input_dir), "--output", str(output_dir), "--once"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    assert (output_dir / "memo-chunk-1.txt").read_text(encoding="utf-8") == "watch me"
    assert (output_dir / "photo-chunk-0.jpg").exists()
    assert (output_dir / "photo-concatenated.jpg").exists()
    assert "processed=2" in result.output


def test_cli_watch_once_json(tmp_path: Path) -> None:
    input_dir, output_dir = _dirs(tmp_path)
    (input_dir / "report.csv").write_text("a,b\n1,2\n", encoding="utf-8")
    (input_dir / "bundle.zip").write_bytes(b"PK")

    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["watch", "--input", str(input_dir), "--output", str(output_dir), "--once", "--json"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["counts"]["processed"] == 1
    assert payload["counts"]["unsupported"] == 1
    files = {entry["name"]: entry for entry in payload["files"]}
    assert files["report.csv"]["mode"] == "text"
    assert files["report.csv"]["verification"]["passed"] is True
    assert files["bundle.zip"]["status"] == "unsupported"


def test_cli_watch_rejects_non_positive_interval(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["watch", "--interval", "0", "--once"], env=_env_with_home(tmp_path))

    assert result.exit_code != 0
    assert "--interval must be greater than zero" in result.output


def test_cli_split_single_file(tmp_path: Path) -> None:
    source = tmp_path / "scan.pdf"
    source.write_bytes(bytes(range(200)))
    output_dir = tmp_path / "chunks"

    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["split", str(source), "--output", str(output_dir), "--chunk-size", "64", "--json"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["verified"] is True
    assert payload["expected_chunks"] == 4
    assert sorted(path.name for path in output_dir.iterdir()) == [
        "scan-chunk-0.pdf",
        "scan-chunk-1.pdf",
        "scan-chunk-2.pdf",
        "scan-chunk-3.pdf",
        "scan-concatenated.pdf",
    ]


def test_cli_split_unsupported_extension_fails(tmp_path: Path) -> None:
    source = tmp_path / "bundle.zip"
    source.write_bytes(b"PK")

    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["split", str(source), "--output", str(tmp_path / "out")],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 1
    assert "Unsupported file type" in result.output


def test_cli_verify_reports_mismatch(tmp_path: Path) -> None:
    first = tmp_path / "a.png"
    second = tmp_path / "b.png"
    first.write_bytes(b"same")
    second.write_bytes(b"diff")

    runner = CliRunner()
    same = runner.invoke(cli, ["verify", str(first), str(first)])
    different = runner.invoke(cli, ["verify", str(first), str(second)])

    assert same.exit_code == 0
    assert "Files are identical" in same.output
    assert different.exit_code == 1
    assert "Files do not match" in different.output


def test_cli_config_set_and_view(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    updated = runner.invoke(
        cli, ["config", "set", "verification.policy", "--value", "gate"], env=env
    )
    assert updated.exit_code == 0
    assert "Updated verification.policy" in updated.output

    viewed = runner.invoke(cli, ["config", "view", "--no-env"], env=env)
    assert viewed.exit_code == 0
    assert "gate" in viewed.output

    rejected = runner.invoke(
        cli, ["config", "set", "verification.policy", "--value", "sometimes"], env=env
    )
    assert rejected.exit_code != 0


def test_cli_verify_text_mode_reports_undecodable_file(tmp_path: Path) -> None:
    undecodable = tmp_path / "a.txt"
    undecodable.write_bytes(b"\xff\xfe\xfa")

    runner = CliRunner()
    result = runner.invoke(cli, ["verify", str(undecodable), str(undecodable), "--mode", "text"])

    assert result.exit_code == 1
    assert not isinstance(result.exception, UnicodeDecodeError)
    assert "for comparison" in result.output


def test_cli_config_set_rejects_unknown_setting(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["config", "set", "chunking.chunk_size", "--value", "4096"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code != 0
    assert "Unknown chunkwatch setting 'chunking.chunk_size'" in result.output
    assert "chunking.chunk_size_bytes" in result.output


def test_cli_config_edit_saves_valid_changes(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Edited settings are validated, saved, and listed.

    Args:
        tmp_path: Temporary directory provided by pytest.
        monkeypatch: Pytest monkeypatch fixture.
    """

    def _edit(text: str, extension: str = ".txt") -> str:
        data = yaml.safe_load(text)
        data["chunking"]["chunk_size_bytes"] = 4096
        return yaml.safe_dump(data, sort_keys=False)

    monkeypatch.setattr(click, "edit", _edit)
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["config", "edit"], env=env)

    assert result.exit_code == 0, result.output
    assert "chunking.chunk_size_bytes: 10485760 -> 4096" in result.output
    assert "1 setting(s) changed" in result.output
    config_file = tmp_path / "home" / ".chunkwatch" / "config.yaml"
    assert yaml.safe_load(config_file.read_text(encoding="utf-8"))["chunking"]["chunk_size_bytes"] == 4096


def test_cli_config_edit_rejects_invalid_content(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    config_file = tmp_path / "home" / ".chunkwatch" / "config.yaml"

    monkeypatch.setattr(click, "edit", lambda text, extension=".txt": "chunking: [unclosed\n")
    broken = runner.invoke(cli, ["config", "edit"], env=env)
    assert broken.exit_code != 0
    assert "not valid YAML; nothing saved" in broken.output
    saved = config_file.read_text(encoding="utf-8")

    monkeypatch.setattr(
        click, "edit", lambda text, extension=".txt": "chunking:\n  text_encoding: utf-16\n"
    )
    rejected = runner.invoke(cli, ["config", "edit"], env=env)
    assert rejected.exit_code != 0
    assert "byte order mark" in rejected.output
    assert config_file.read_text(encoding="utf-8") == saved

    monkeypatch.setattr(click, "edit", lambda text, extension=".txt": None)
    untouched = runner.invoke(cli, ["config", "edit"], env=env)
    assert untouched.exit_code == 0
    assert "Config file left unchanged." in untouched.output

"""CLI integration tests for smartstore commands."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from smartstore.cli import cli
from smartstore.history import HistoryBatch, HistoryStoreError, JsonHistoryStore


def _env_with_home(tmp_path: Path) -> dict[str, str]:
    """Return environment variables pointing HOME to a temp directory.

    Args:
        tmp_path: Temporary directory provided by pytest.

    Returns:
        dict[str, str]: Environment mapping with HOME set.
    """
    env = {key: value for key, value in os.environ.items() if not key.startswith("SMARTSTORE__")}
    env["HOME"] = str(tmp_path / "home")
    return env


def _collection(tmp_path: Path) -> Path:
    root = (tmp_path / "inbox").resolve()
    root.mkdir()
    (root / "report.pdf").write_bytes(b"%PDF")
    (root / "photo.jpg").write_bytes(b"jpeg")
    (root / "notes.txt").write_text("hello", encoding="utf-8")
    return root


def test_cli_help_lists_commands() -> None:
    result = CliRunner().invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("preview", "apply", "undo", "history", "config"):
        assert command in result.output


def test_preview_json_leaves_files_untouched(tmp_path: Path) -> None:
    """Ensure `smartstore preview` reports the plan without moving anything.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    root = _collection(tmp_path)

    result = CliRunner().invoke(
        cli, ["preview", str(root), "--rule", "byType", "--json"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    plan = payload["plan"]
    assert plan["status"] == "preview"
    assert sorted(op["destination"] for op in plan["operations"]) == [
        "Documents/notes.txt",
        "Images/photo.jpg",
        "PDFs/report.pdf",
    ]
    assert plan["stats"]["total_files"] == 3
    assert (root / "report.pdf").exists()
    assert not (root / ".smartstore").exists()


def test_preview_accepts_intent(tmp_path: Path) -> None:
    root = _collection(tmp_path)

    result = CliRunner().invoke(
        cli,
        ["preview", str(root), "--intent", "sort these by extension", "--json"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    folders = json.loads(result.output)["plan"]["new_folders"]
    assert sorted(folders) == ["JPG", "PDF", "TXT"]


def test_preview_rejects_unknown_rule(tmp_path: Path) -> None:
    root = _collection(tmp_path)

    result = CliRunner().invoke(
        cli, ["preview", str(root), "--rule", "byColour", "--json"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 1
    assert json.loads(result.output)["error"]["code"] == "plan_error"


def test_apply_then_undo_round_trip(tmp_path: Path) -> None:
    """Apply a plan, confirm history is written, then undo it.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    root = _collection(tmp_path)
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    applied = runner.invoke(cli, ["apply", str(root), "--rule", "byType", "--json"], env=env)

    assert applied.exit_code == 0, applied.output
    payload = json.loads(applied.output)
    assert payload["plan"]["status"] == "applied"
    assert payload["counts"] == {"applied": 3, "failed": 0}
    assert (root / "PDFs" / "report.pdf").exists()
    assert (root / "Images" / "photo.jpg").exists()
    history_path = root / ".smartstore" / "history.json"
    assert payload["batch_id"] in json.loads(history_path.read_text(encoding="utf-8"))["batches"]

    again = runner.invoke(cli, ["preview", str(root), "--rule", "byType", "--json"], env=env)
    assert json.loads(again.output)["plan"]["operations"] == []

    undone = runner.invoke(cli, ["undo", str(root), "--json"], env=env)

    assert undone.exit_code == 0, undone.output
    undo_payload = json.loads(undone.output)
    assert undo_payload["undone"] is True
    assert undo_payload["batch"]["is_undone"] is True
    assert (root / "report.pdf").exists()
    assert not (root / "PDFs").exists()
    assert not (root / "Images").exists()

    nothing = runner.invoke(cli, ["undo", str(root)], env=env)
    assert nothing.exit_code == 0
    assert "Nothing undone" in nothing.output


def test_apply_reports_partial_failures(tmp_path: Path) -> None:
    root = _collection(tmp_path)
    (root / "PDFs").mkdir()
    (root / "PDFs" / "report.pdf").mkdir()

    result = CliRunner().invoke(
        cli, ["apply", str(root), "--rule", "byType"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0, result.output
    assert "partially" in result.output
    assert "status=partial" in result.output
    assert (root / "report.pdf").exists()
    assert (root / "Images" / "photo.jpg").exists()


def test_undo_warns_about_files_it_could_not_move_back(tmp_path: Path) -> None:
    root = _collection(tmp_path)
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    runner.invoke(cli, ["apply", str(root), "--rule", "byType"], env=env)
    (root / "PDFs" / "report.pdf").rename(tmp_path / "report.pdf")

    result = runner.invoke(cli, ["undo", str(root)], env=env)

    assert result.exit_code == 0, result.output
    assert "could not be moved back" in result.output
    assert "PDFs/report.pdf" in result.output
    assert "restored=2" in result.output
    assert (root / "photo.jpg").exists()
    assert (root / "notes.txt").exists()
    assert not (root / "report.pdf").exists()


def test_undo_json_reports_restore_counts(tmp_path: Path) -> None:
    root = _collection(tmp_path)
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    runner.invoke(cli, ["apply", str(root), "--rule", "byType"], env=env)
    (root / "Images" / "photo.jpg").unlink()

    result = runner.invoke(cli, ["undo", str(root), "--json"], env=env)

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["undone"] is True
    assert payload["counts"] == {"restored": 2, "not_restored": 1}
    assert payload["not_restored"] == ["Images/photo.jpg"]
    assert payload["history_persisted"] is True


def test_undo_reports_unsaved_history(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    root = _collection(tmp_path)
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    applied = runner.invoke(cli, ["apply", str(root), "--rule", "byType", "--json"], env=env)
    batch_id = json.loads(applied.output)["batch_id"]

    def _refuse(self: JsonHistoryStore, batch: HistoryBatch) -> None:
        raise HistoryStoreError("history is read-only")

    monkeypatch.setattr(JsonHistoryStore, "update", _refuse)

    as_text = runner.invoke(cli, ["undo", str(root)], env=env)

    assert as_text.exit_code == 0, as_text.output
    assert "History could not be saved" in as_text.output
    assert (root / "report.pdf").exists()
    stored = json.loads((root / ".smartstore" / "history.json").read_text(encoding="utf-8"))
    assert stored["batches"][batch_id]["is_undone"] is False

    # the stale record lets the same batch be undone again
    as_json = runner.invoke(cli, ["undo", str(root), "--batch", batch_id, "--json"], env=env)

    assert as_json.exit_code == 0, as_json.output
    payload = json.loads(as_json.output)
    assert payload["undone"] is True
    assert payload["history_persisted"] is False
    assert payload["counts"] == {"restored": 0, "not_restored": 3}


def test_history_lists_prunes_and_clears(tmp_path: Path) -> None:
    root = _collection(tmp_path)
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    runner.invoke(cli, ["apply", str(root), "--rule", "byType"], env=env)
    runner.invoke(cli, ["apply", str(root), "--rule", "flatten"], env=env)

    listed = runner.invoke(cli, ["history", str(root), "--json"], env=env)
    assert listed.exit_code == 0, listed.output
    batches = json.loads(listed.output)["batches"]
    assert [batch["name"] for batch in batches] == ["Organize by flatten", "Organize by byType"]

    pruned = runner.invoke(cli, ["history", str(root), "--prune", "1", "--json"], env=env)
    assert json.loads(pruned.output)["counts"]["total"] == 1

    cleared = runner.invoke(cli, ["history", str(root), "--clear"], env=env)
    assert cleared.exit_code == 0
    assert "No history recorded" in cleared.output


def test_summary_mode_prints_only_summary(tmp_path: Path) -> None:
    root = _collection(tmp_path)

    result = CliRunner().invoke(
        cli, ["preview", str(root), "--rule", "bySize", "--summary"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0, result.output
    assert "Preview summary" in result.output
    assert "files=3" in result.output


def test_json_conflicts_with_quiet(tmp_path: Path) -> None:
    root = _collection(tmp_path)

    result = CliRunner().invoke(
        cli, ["preview", str(root), "--json", "--quiet"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 1
    assert json.loads(result.output)["error"]["code"] == "cli_error"


def test_config_set_and_view(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    updated = runner.invoke(
        cli, ["config", "set", "history.keep_count", "--value", "5"], env=env
    )
    assert updated.exit_code == 0, updated.output

    config_path = tmp_path / "home" / ".smartstore" / "config.yaml"
    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    assert data["history"]["keep_count"] == 5

    rejected = runner.invoke(
        cli, ["config", "set", "history.keep_count", "--value", "-1"], env=env
    )
    assert rejected.exit_code != 0
    assert yaml.safe_load(config_path.read_text(encoding="utf-8"))["history"]["keep_count"] == 5

    viewed = runner.invoke(cli, ["config", "view", "--no-env"], env=env)
    assert viewed.exit_code == 0
    assert "keep_count: 5" in viewed.output


def test_history_limit_zero_lists_no_batches(tmp_path: Path) -> None:
    root = _collection(tmp_path)
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    runner.invoke(cli, ["apply", str(root), "--rule", "byType"], env=env)

    result = runner.invoke(cli, ["history", str(root), "--limit", "0", "--json"], env=env)

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["batches"] == []
    assert payload["counts"] == {"total": 1, "undoable": 1}

    rejected = runner.invoke(cli, ["history", str(root), "--limit", "-1"], env=env)
    assert rejected.exit_code != 0

"""CLI tests for preview, rules and templates commands."""

import json
import os
from pathlib import Path
from typing import Any

import yaml
from click.testing import CliRunner

from tidyname.cli import cli
from tidyname.config import ConfigManager


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = {key: value for key, value in os.environ.items() if not key.startswith("TIDYNAME__")}
    env["HOME"] = str(tmp_path)
    return env


def _write_manifest(tmp_path: Path, files: list[dict[str, Any]], **extra: Any) -> Path:
    manifest = tmp_path / "inbox" / "manifest.yaml"
    manifest.parent.mkdir(parents=True, exist_ok=True)
    manifest.write_text(yaml.safe_dump({"files": files, **extra}), encoding="utf-8")
    return manifest


def _save_config(tmp_path: Path, data: dict[str, Any]) -> None:
    manager = ConfigManager(config_path=tmp_path / ".tidyname" / "config.yaml")
    manager.ensure_exists()
    manager.save(data)


def _photo_entry(path: str, **extra: Any) -> dict[str, Any]:
    return {
        "path": path,
        "size": 2048,
        "modified_at": "2024-03-05T12:00:00+00:00",
        "metadata": {"image": {"date_taken": "2026-01-10T08:00:00", "camera_make": "Canon"}},
        **extra,
    }


def test_preview_json_reports_proposals(tmp_path: Path) -> None:
    runner = CliRunner()
    manifest = _write_manifest(tmp_path, [_photo_entry("vacation.jpg")])

    result = runner.invoke(cli, ["preview", str(manifest), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["summary"]["total"] == 1
    assert payload["summary"]["ready"] == 1
    proposal = payload["proposals"][0]
    assert proposal["proposed_name"] == "2026_01_10_vacation.jpg"
    assert proposal["status"] == "ready"
    assert proposal["template_source"] == "default"
    assert proposal["original_path"] == str((tmp_path / "inbox").resolve() / "vacation.jpg")


def test_preview_table_and_summary(tmp_path: Path) -> None:
    runner = CliRunner()
    manifest = _write_manifest(tmp_path, [_photo_entry("vacation.jpg")])

    result = runner.invoke(cli, ["preview", str(manifest)], env=_env_with_home(tmp_path))

    assert result.exit_code == 0, result.output
    assert "Rename preview" in result.output
    assert "Preview summary" in result.output

    summary_only = runner.invoke(
        cli, ["preview", str(manifest), "--summary"], env=_env_with_home(tmp_path)
    )
    assert "Rename preview" not in summary_only.output
    assert "Preview summary" in summary_only.output


def test_preview_conflicts_with_folder_structure(tmp_path: Path) -> None:
    runner = CliRunner()
    _save_config(
        tmp_path,
        {
            "templates": [
                {"id": "keep", "name": "Keep", "pattern": "{original}", "is_default": True}
            ],
            "folder_structures": [{"id": "by-month", "name": "Month", "pattern": "{year}/{month}"}],
            "filename_rules": [
                {
                    "name": "Photos",
                    "template_id": "keep",
                    "pattern": "*.jpg",
                    "folder_structure_id": "by-month",
                }
            ],
        },
    )
    manifest = _write_manifest(
        tmp_path, [_photo_entry("a/photo.jpg"), _photo_entry("b/photo.jpg")]
    )
    library = (tmp_path / "library").resolve()

    result = runner.invoke(
        cli,
        ["preview", str(manifest), "--json", "--base-dir", str(library)],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["summary"]["conflicts"] == 2
    assert {p["proposed_path"] for p in payload["proposals"]} == {
        str(library / "2026" / "01" / "photo.jpg")
    }


def test_preview_uses_fallback_option(tmp_path: Path) -> None:
    runner = CliRunner()
    _save_config(tmp_path, {"preferences": {"default_template_id": "document"}})
    manifest = _write_manifest(tmp_path, [{"path": "scan.pdf"}])

    result = runner.invoke(
        cli,
        ["preview", str(manifest), "--json", "--fallback", "author=Unknown"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    proposal = json.loads(result.output)["proposals"][0]
    assert proposal["proposed_name"] == "scan_Unknown.pdf"


def test_preview_applies_confident_suggestions(tmp_path: Path) -> None:
    runner = CliRunner()
    manifest = _write_manifest(
        tmp_path,
        [
            _photo_entry(
                "IMG_0001.jpg", suggestion={"suggested_name": "Beach Sunset", "confidence": 0.95}
            )
        ],
    )

    result = runner.invoke(cli, ["preview", str(manifest), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["proposals"][0]["proposed_name"] == "Beach_Sunset.jpg"
    assert payload["summary"]["llm_suggested"] == 1


def test_preview_json_error_for_bad_manifest(tmp_path: Path) -> None:
    runner = CliRunner()
    manifest = tmp_path / "manifest.yaml"
    manifest.write_text("files: [{size: 3}]", encoding="utf-8")

    result = runner.invoke(cli, ["preview", str(manifest), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "manifest_error"


def test_preview_json_error_without_default_template(tmp_path: Path) -> None:
    runner = CliRunner()
    manifest = _write_manifest(tmp_path, [_photo_entry("a.jpg")])
    _save_config(tmp_path, {"preferences": {"default_template_id": "missing"}})

    result = runner.invoke(cli, ["preview", str(manifest), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 1
    assert json.loads(result.output)["error"]["code"] == "no_default_template"


def test_preview_rejects_json_with_quiet(tmp_path: Path) -> None:
    runner = CliRunner()
    manifest = _write_manifest(tmp_path, [])

    result = runner.invoke(
        cli, ["preview", str(manifest), "--json", "--quiet"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 1
    assert json.loads(result.output)["error"]["code"] == "cli_error"


def test_rules_list_ties_and_explain(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    _save_config(
        tmp_path,
        {
            "metadata_rules": [
                {
                    "name": "Canon",
                    "template_id": "photo",
                    "priority": 5,
                    "conditions": [
                        {"field": "image.cameraMake", "operator": "equals", "value": "Canon"}
                    ],
                }
            ],
            "filename_rules": [
                {"name": "JPEGs", "template_id": "date-original", "priority": 5, "pattern": "*.jpg"}
            ],
        },
    )
    manifest = _write_manifest(tmp_path, [_photo_entry("vacation.jpg")])

    listed = runner.invoke(cli, ["rules", "list", "--json"], env=env)
    assert listed.exit_code == 0, listed.output
    payload = json.loads(listed.output)
    assert payload["mode"] == "combined"
    assert [rule["name"] for rule in payload["rules"]] == ["Canon", "JPEGs"]

    ties = runner.invoke(cli, ["rules", "ties"], env=env)
    assert ties.exit_code == 0
    assert "Priority 5" in ties.output

    explained = runner.invoke(cli, ["rules", "explain", str(manifest), "vacation.jpg"], env=env)
    assert explained.exit_code == 0, explained.output
    assert "Winner: Canon" in explained.output
    assert "JPEGs" in explained.output


def test_templates_list_and_check(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    listed = runner.invoke(cli, ["templates", "list"], env=env)
    assert listed.exit_code == 0
    assert "date-original" in listed.output

    valid = runner.invoke(cli, ["templates", "check", "{date}_{original}"], env=env)
    assert valid.exit_code == 0
    assert "is valid" in valid.output

    invalid = runner.invoke(cli, ["templates", "check", "{date"], env=env)
    assert invalid.exit_code != 0
    assert "Invalid template" in invalid.output

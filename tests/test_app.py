from __future__ import annotations

import json
from pathlib import Path

import pytest

from tabquips import app


@pytest.fixture(autouse=True)
def _no_banner(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app, "_print_banner", lambda: None)


def _config(tmp_path: Path) -> str:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"logging": {"enabled": False}}), encoding="utf-8")
    return str(path)


def test_deliver_plain_prints_easter_egg(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    context = json.dumps({"tab_count": 42, "current_hour": 12})
    code = app.main(
        ["--config", _config(tmp_path), "deliver", "--trigger", "TabOpened", "--context", context, "--output", "plain"]
    )
    assert code == 0
    assert "Easter Egg!: Don't Panic." in capsys.readouterr().out


def test_validate_reports_violations(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    catalog = tmp_path / "catalog.json"
    catalog.write_text(
        json.dumps({"quips": [{"id": "PA-1", "text": "tiny", "trigger_types": ["TabOpened"], "level": "default"}]}),
        encoding="utf-8",
    )
    code = app.main(["--config", _config(tmp_path), "validate", "--catalog", str(catalog)])
    assert code == 1
    assert "text must be 10-200 characters" in capsys.readouterr().out


def test_validate_bundled_catalog(tmp_path: Path) -> None:
    assert app.main(["--config", _config(tmp_path), "validate"]) == 0


def test_rules_lists_match_order(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert app.main(["--config", _config(tmp_path), "rules"]) == 0
    assert "EE-001" in capsys.readouterr().out


@pytest.mark.parametrize("context", ["{not json", '{"tab_count": -1}', "[1, 2]"])
def test_deliver_rejects_bad_context(tmp_path: Path, capsys: pytest.CaptureFixture[str], context: str) -> None:
    code = app.main(["--config", _config(tmp_path), "deliver", "--trigger", "TabOpened", "--context", context])
    assert code == 1
    assert "Invalid --context" in capsys.readouterr().out

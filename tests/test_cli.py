from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from eventmap.cli import app
from tests.support.fake_engine import bytecode_for

runner = CliRunner()

ENGINE = "tests.support.fake_engine:scripted_story_factory"
CELL_SCRIPT = {
    "start": {"lines": ["You wake in a cell."], "choices": [["Shout", "shout"], ["Wait", "wait"]]},
    "shout": {"lines": ["Nobody answers."], "choices": []},
    "wait": {"lines": ["Hours pass."], "choices": []},
}


def _write_events(tmp_path: Path) -> Path:
    path = tmp_path / "events.json"
    units = [
        {"name": "Cell", "type": 1, "artwork": "cell.png", "text": bytecode_for(CELL_SCRIPT)},
        {"name": "Blank", "type": 1, "text": None},
    ]
    path.write_text(json.dumps(units), encoding="utf-8")
    return path


def _build(tmp_path: Path, *extra: str):
    output = tmp_path / "out" / "trees.json"
    result = runner.invoke(
        app,
        [
            "build",
            "--events",
            str(_write_events(tmp_path)),
            "--output",
            str(output),
            "--engine",
            ENGINE,
            "--skip-lookup",
            *extra,
        ],
    )
    return result, output


def test_build_writes_trees_and_summary(tmp_path: Path) -> None:
    result, output = _build(tmp_path)

    assert result.exit_code == 0, result.output
    assert "trees: 1 (failed 0, no content 1)" in result.output
    assert f"written: {output}" in result.output
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert [tree["name"] for tree in payload] == ["Cell"]
    assert payload[0]["rootNode"]["children"][0]["type"] == "choice"


def test_build_with_log_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "run.log"

    result, _ = _build(tmp_path, "--log-file", str(log_file))

    assert result.exit_code == 0, result.output
    assert "parsed=1 failed=0 no_content=1" in log_file.read_text(encoding="utf-8")


def test_build_fails_cleanly_on_unknown_engine(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["build", "--events", str(_write_events(tmp_path)), "--engine", "no_such_module:factory"],
    )

    assert result.exit_code == 1
    assert "error [STORY_ENGINE_UNAVAILABLE]" in result.output


def test_build_rejects_invalid_alterations(tmp_path: Path) -> None:
    alterations = tmp_path / "alterations.json"
    alterations.write_text(json.dumps([{"name": "Cell", "alterations": [{"find": {}}]}]), encoding="utf-8")

    result, output = _build(tmp_path, "--alterations", str(alterations))

    assert result.exit_code == 1
    assert "error [ALTERATIONS_INVALID]" in result.output
    assert not output.exists()


def test_check_and_stats_on_built_output(tmp_path: Path) -> None:
    _, output = _build(tmp_path)

    checked = runner.invoke(app, ["check", str(output)])
    summary = runner.invoke(app, ["stats", str(output)])

    assert checked.exit_code == 0
    assert "ok: 1 trees, no invalid refs" in checked.output
    assert summary.exit_code == 0
    assert "Cell: nodes=5 depth=2" in summary.output
    assert "total: 1 trees, 5 nodes" in summary.output


def test_check_reports_dangling_refs(tmp_path: Path) -> None:
    path = tmp_path / "trees.json"
    trees = [
        {
            "name": "Broken",
            "type": 1,
            "artwork": "",
            "rootNode": {
                "id": 0,
                "text": "Start.",
                "type": "dialogue",
                "children": [{"id": 1, "text": "Lost.", "type": "dialogue", "ref": 9}],
            },
        }
    ]
    path.write_text(json.dumps(trees), encoding="utf-8")

    result = runner.invoke(app, ["check", str(path)])

    assert result.exit_code == 1
    assert "Broken: node 1 ref -> 9 'Lost.'" in result.output


def test_check_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["check", str(tmp_path / "missing.json")])

    assert result.exit_code == 1
    assert "error [UNIT_INPUT_INVALID]" in result.output

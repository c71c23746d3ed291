from __future__ import annotations

import logging

import pytest

from eventmap.modules.tree.model import EventTree
from eventmap.modules.validation import check_invalid_refs, find_invalid_refs
from tests.support.trees import NodeFactory


def test_find_invalid_refs_reports_dangling_ref_and_ref_children() -> None:
    factory = NodeFactory()
    dangling = factory.node(text="Lost.", label="Wander", ref=99)
    shared = factory.node(text="Shared.")
    shared.ref_children = [0, 42]
    root = factory.node(text="Start.", children=[dangling, shared])

    invalid = find_invalid_refs(root, unit_name="Maze")

    assert [(item.node_id, item.target_id, item.field) for item in invalid] == [
        (dangling.id, 99, "ref"),
        (shared.id, 42, "refChildren"),
    ]
    assert invalid[0].identity == "Wander"
    assert invalid[0].describe() == f"Maze: node {dangling.id} ref -> 99 'Wander'"


def test_check_invalid_refs_is_quiet_about_valid_trees(caplog: pytest.LogCaptureFixture) -> None:
    factory = NodeFactory()
    root = factory.node(text="Start.", children=[factory.end("End.")])
    caplog.set_level(logging.INFO)

    found = check_invalid_refs([EventTree(name="Fine", root=root), EventTree(name="Empty")])

    assert found == []
    assert "no invalid refs found" in caplog.text


def test_check_invalid_refs_collects_across_units(caplog: pytest.LogCaptureFixture) -> None:
    first = NodeFactory()
    second = NodeFactory()
    trees = [
        EventTree(name="A", root=first.node(text="A.", children=[first.node(text="x", ref=7)])),
        EventTree(name="B", root=second.node(text="B.", children=[second.node(text="y", ref=8)])),
    ]
    caplog.set_level(logging.WARNING)

    found = check_invalid_refs(trees)

    assert [item.unit_name for item in found] == ["A", "B"]
    assert "found 2 invalid refs across 2 units: A, B" in caplog.text


def test_check_invalid_refs_logs_every_dangling_ref(caplog: pytest.LogCaptureFixture) -> None:
    factory = NodeFactory()
    lost = [factory.node(text=f"Lost {number}.", ref=100 + number) for number in range(7)]
    root = factory.node(text="Maze.", children=lost)
    caplog.set_level(logging.WARNING)

    found = check_invalid_refs([EventTree(name="Maze", root=root)])

    logged = [record.getMessage() for record in caplog.records if record.getMessage().startswith("invalid ref")]
    assert len(found) == 7
    assert logged == [f"invalid ref {item.describe()}" for item in found]

from __future__ import annotations

from typing import Any

from eventmap.modules.builder import BuildContext, BuildLimits, TreeBuilder
from eventmap.modules.builder.tree_builder import MAX_DEPTH_TEXT
from eventmap.modules.ink.analysis import InkAnalysis
from eventmap.modules.tree.index import count_nodes
from eventmap.modules.tree.model import Node, NodeType
from eventmap.modules.units.schemas import DialogueMenuConfig, PathConvergenceConfig
from tests.support.fake_engine import ScriptedStory, branching_script
from tests.support.trees import find_by_label, find_by_text

CELL_SCRIPT = {
    "start": {"lines": ["You wake in a cell."], "choices": [["Shout", "shout"], ["Wait", "wait"]]},
    "shout": {"lines": ["Nobody answers."], "choices": []},
    "wait": {"lines": ["Hours pass.", ">>>>GOLD:5"], "choices": []},
}


def _build(
    script: dict[str, dict[str, Any]],
    *,
    limits: BuildLimits | None = None,
    **context_fields: Any,
) -> tuple[Node | None, BuildContext, ScriptedStory]:
    story = ScriptedStory(script)
    context = BuildContext(unit_name="Test Unit", limits=limits or BuildLimits(), **context_fields)
    return TreeBuilder(story, context).build(), context, story


def test_builds_one_node_per_segment_with_labels_and_effects() -> None:
    root, context, _ = _build(CELL_SCRIPT)

    assert root is not None
    assert root.id == 0
    assert root.type == NodeType.DIALOGUE
    assert root.text == "You wake in a cell."
    assert root.num_continues == 0
    shout, wait = root.children
    assert (shout.id, shout.type, shout.choice_label, shout.text) == (1, NodeType.END, "Shout", "Nobody answers.")
    assert (wait.type, wait.choice_label, wait.text) == (NodeType.END, "Wait", "Hours pass.")
    assert wait.effects == ["GOLD: 5"]
    assert context.next_id == 3
    assert not context.truncated


def test_revisited_text_becomes_ref_to_ancestor() -> None:
    script = {
        "start": {"lines": ["The corridor splits."], "choices": [["Left", "left"], ["Right", "right"]]},
        "left": {"lines": ["A dead end."], "choices": [["Back", "start"]]},
        "right": {"lines": ["Daylight."], "choices": []},
    }

    root, _, _ = _build(script)

    back = find_by_label(root, "Back")
    assert back.ref == root.id
    assert back.children == []
    assert back.text == "The corridor splits."


def test_runtime_error_ends_only_the_failing_branch() -> None:
    script = {
        "start": {"lines": ["A lever and a door."], "choices": [["Pull", "lever"], ["Leave", "door"]]},
        "lever": {"lines": ["You pull the lever.", "!error"], "choices": []},
        "door": {"lines": ["You walk away."], "choices": []},
    }

    root, _, _ = _build(script)

    pull = find_by_label(root, "Pull")
    assert pull.type == NodeType.END
    assert pull.text == "You pull the lever."
    assert find_by_label(root, "Leave").text == "You walk away."


def test_choice_that_cannot_be_selected_is_dropped() -> None:
    script = {
        "start": {"lines": ["A wall."], "choices": [["Open", "door"], ["Climb", "nowhere"]]},
        "door": {"lines": ["The door opens."], "choices": []},
    }

    root, _, _ = _build(script)

    assert [child.choice_label for child in root.children] == ["Open"]


def test_node_budget_drops_branches_but_keeps_root() -> None:
    root, context, _ = _build(branching_script(3, 6), limits=BuildLimits(sibling_first_node_budget=20))

    assert root is not None
    assert root.children
    assert context.truncated_branches > 0
    assert count_nodes(root) <= 20


def test_max_depth_emits_marker_leaf() -> None:
    root, context, _ = _build(branching_script(1, 10), limits=BuildLimits(max_depth=3))

    marker = find_by_text(root, MAX_DEPTH_TEXT)
    assert marker.type == NodeType.END
    assert marker.choice_label == "Path 0"
    assert context.max_depth_hits == 1
    assert context.truncated


def test_build_is_deterministic() -> None:
    first, _, _ = _build(branching_script(2, 3))
    second, _, _ = _build(branching_script(2, 3))

    assert first.to_dict() == second.to_dict()


def test_engine_is_back_at_start_after_build() -> None:
    _, _, story = _build(CELL_SCRIPT)

    assert story.passage == "start"
    assert [choice["text"] for choice in story.current_choices] == ["Shout", "Wait"]


def test_immediate_hub_children_become_refs_carrying_the_peeked_text() -> None:
    script = {
        "start": {
            "lines": ["What do you ask the sage?"],
            "choices": [["About the war", "war"], ["About the relic", "relic"], ["Goodbye", "bye"]],
        },
        "war": {"lines": ["The war is lost."], "choices": [["Back", "start"]]},
        "relic": {"lines": ["The relic is hidden."], "choices": [["Back", "start"]]},
        "bye": {"lines": ["Farewell."], "choices": []},
    }
    menu = DialogueMenuConfig(menuHubPattern="What do you ask", menuExitPatterns=["Goodbye"])

    root, context, _ = _build(script, dialogue_menu=menu)

    war = find_by_label(root, "About the war")
    assert war.ref == root.id
    assert war.text == "The war is lost."
    assert war.children == []
    bye = find_by_label(root, "Goodbye")
    assert bye.ref is None
    assert bye.text == "Farewell."
    assert context.hub_id == root.id


def test_threshold_hub_folds_nodes_that_reoffer_the_menu() -> None:
    script = {
        "start": {
            "lines": ["The sage waits."],
            "choices": [["Ask about war", "war"], ["Ask about relic", "relic"], ["Leave", "bye"]],
        },
        "war": {
            "lines": ["The war is lost."],
            "choices": [["Ask about war", "war"], ["Ask about relic", "relic"], ["Leave", "bye"]],
        },
        "relic": {"lines": ["The relic is hidden."], "choices": []},
        "bye": {"lines": ["Farewell."], "choices": []},
    }
    menu = DialogueMenuConfig(
        menuHubPattern="The sage waits",
        menuExitPatterns=["Leave"],
        hubChoiceMatchThreshold=60,
    )

    root, context, _ = _build(script, dialogue_menu=menu)

    war = root.children[0]
    assert war.choice_label == "Ask about war"
    assert war.ref == root.id
    assert war.children == []
    assert context.hub_snapshot is not None
    assert context.hub_snapshot.choice_labels == ["Ask about war", "Ask about relic"]


def test_collector_leaf_expands_into_one_result_per_knot() -> None:
    script = {
        "start": {"lines": ["The altar hums."], "choices": [["Offer", "offer"]]},
        "offer": {"lines": [">>>>COLLECTOR"], "choices": []},
    }
    analysis = InkAnalysis(
        knots={
            "ember": ["^Ember shard", "\n", ">>>>GOLD:5", "\n"],
            "frost": ["^Frost shard", "\n"],
        }
    )

    root, _, _ = _build(script, analysis=analysis)

    special = find_by_label(root, "Offer")
    assert special.type == NodeType.SPECIAL
    assert special.text == "COLLECTOR"
    assert [result.requirements for result in special.children] == [["COLLECTOR: ember"], ["COLLECTOR: frost"]]
    assert all(result.type == NodeType.RESULT for result in special.children)
    ember = special.children[0].children[0]
    assert (ember.type, ember.text, ember.effects) == (NodeType.END, "Ember shard", ["GOLD: 5"])


def test_state_seen_on_another_route_becomes_ref() -> None:
    script = {
        "start": {"lines": ["Where to?"], "choices": [["Town", "town"], ["Inn", "inn"]]},
        "town": {"lines": ["The town square."], "choices": [["Shop", "shop"]]},
        "inn": {"lines": ["The inn is warm."], "choices": [["Shop", "shop"]]},
        "shop": {"lines": ["The shop."], "choices": [["Buy", "buy"], ["Leave", "out"]]},
        "buy": {"lines": ["Thanks."], "choices": []},
        "out": {"lines": ["Goodbye."], "choices": []},
    }

    root, context, _ = _build(script)

    town_shop = find_by_label(root, "Town").children[0]
    inn_shop = find_by_label(root, "Inn").children[0]
    assert town_shop.ref is None
    assert inn_shop.ref is None
    assert len(inn_shop.children) == 2
    town_buy, inn_buy = town_shop.children[0], inn_shop.children[0]
    assert town_buy.ref is None
    assert (inn_buy.choice_label, inn_buy.text, inn_buy.ref) == ("Buy", "Thanks.", town_buy.id)
    assert inn_shop.children[1].ref == town_shop.children[1].id
    assert context.state_to_node_id


def _crossroads_script() -> dict[str, dict[str, Any]]:
    return {
        "start": {"lines": ["Two roads."], "choices": [["North", "north"], ["South", "south"]]},
        "north": {"lines": ["The north road."], "choices": [["On", "cross"]]},
        "south": {"lines": ["The south road."], "choices": [["On", "cross"]]},
        "cross": {"lines": ["Crossroads."], "choices": [["A", "a"], ["B", "b"], ["C", "c"]]},
        "a": {"lines": ["Left."], "choices": []},
        "b": {"lines": ["Right."], "choices": []},
        "c": {"lines": ["Ahead."], "choices": []},
    }


def test_path_convergence_refs_identical_node_reached_another_way() -> None:
    root, context, _ = _build(_crossroads_script(), convergence=PathConvergenceConfig())

    north_cross = find_by_label(root, "North").children[0]
    south_cross = find_by_label(root, "South").children[0]
    assert (north_cross.id, north_cross.ref, len(north_cross.children)) == (2, None, 3)
    assert (south_cross.id, south_cross.text, south_cross.ref) == (7, "Crossroads.", 2)
    assert south_cross.children == []
    assert list(context.convergence_states.values()) == [2]


def test_path_convergence_is_off_without_unit_config() -> None:
    root, context, _ = _build(_crossroads_script())

    south_cross = find_by_label(root, "South").children[0]
    assert south_cross.ref is None
    assert len(south_cross.children) == 3
    assert context.convergence_states == {}


def test_node_counter_resets_once_when_switching_to_depth_first() -> None:
    limits = BuildLimits(sibling_first_depth=2, sibling_first_node_budget=100, depth_first_node_budget=4)

    root, context, _ = _build(branching_script(2, 3), limits=limits)

    first_branch, second_branch = root.children
    deep, shallow = first_branch.children
    assert len(deep.children) == 2
    assert shallow.children == []
    assert second_branch.children == []
    assert context.reset_for_depth_first
    assert context.node_total == 5
    assert context.truncated_branches == 4
    assert count_nodes(root) == 7

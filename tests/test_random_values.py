from __future__ import annotations

from eventmap.modules.content.random_values import (
    RANDOM_KEYWORD,
    RANDOM_KEYWORD_CHOICE_LABEL,
    RandomRange,
    clean_up_random_values,
    normalize_add_keyword_random_choice_labels,
    normalize_random_effects,
    normalize_random_effects_in_line,
)
from eventmap.modules.tree.model import NodeType
from tests.support.trees import NodeFactory


def test_line_rewrite_only_touches_values_inside_a_rolled_range() -> None:
    ranges = {"gold": [RandomRange(10, 50)]}

    assert normalize_random_effects_in_line(">>>>GOLD:47", ranges) == ">>>>GOLD:random [10 - 50]"
    assert normalize_random_effects_in_line(">>>>GOLD:75", ranges) == ">>>>GOLD:75"
    assert normalize_random_effects_in_line("GOLD:47 without sentinel", ranges) == "GOLD:47 without sentinel"


def test_effect_rewrite_accepts_capitalized_variable_names() -> None:
    ranges = {"Damage": [RandomRange(3, 6)]}

    assert normalize_random_effects(["DAMAGE: 4", "GOLD: 4", "HEAL"], ranges) == [
        "DAMAGE: random [3 - 6]",
        "GOLD: 4",
        "HEAL",
    ]


def test_clean_up_rewrites_rolled_amounts_in_own_text() -> None:
    factory = NodeFactory()
    root = factory.node(text="You find 30 gold in the mud.", effects=["GOLD: random [10 - 50]"])

    assert clean_up_random_values(root) == 1
    assert root.text == f"You find {RANDOM_KEYWORD} gold in the mud."


def test_clean_up_moves_effect_to_single_dialogue_child_that_shows_the_amount() -> None:
    factory = NodeFactory()
    child = factory.node(text="The trap deals 5 damage.", children=[factory.end("Ouch.")])
    root = factory.node(text="A click.", effects=["DAMAGE: random [3 - 6]"], children=[child])

    clean_up_random_values(root)

    assert child.text == f"The trap deals {RANDOM_KEYWORD} damage."
    assert child.effects == ["DAMAGE: random [3 - 6]"]
    assert root.effects == []


def test_clean_up_leaves_amounts_outside_range() -> None:
    factory = NodeFactory()
    root = factory.node(text="A purse of 90 gold.", effects=["GOLD: random [10 - 50]"])

    assert clean_up_random_values(root) == 0
    assert root.text == "A purse of 90 gold."


def test_random_keyword_choices_are_relabelled() -> None:
    factory = NodeFactory()
    outcome = factory.end("Your blade hums.", effects=["ADDKEYWORD: random [Swift, Heavy]"])
    plain = factory.end("Nothing.", effects=["ADDKEYWORD: Brittle"])
    root = factory.node(
        text="The forge glows.",
        children=[factory.wrapper("Use the forge", outcome), factory.wrapper("Leave", plain)],
    )

    assert normalize_add_keyword_random_choice_labels(root) == 1
    labels = [child.choice_label for child in root.children if child.type == NodeType.CHOICE]
    assert labels == [RANDOM_KEYWORD_CHOICE_LABEL, "Leave"]

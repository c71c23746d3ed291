from __future__ import annotations

import pytest

from eventmap.errors import StoryEngineLoadError
from eventmap.modules.ink.engine import checkout, choice_text, current_location, load_engine_factory
from tests.support.fake_engine import ScriptedStory, scripted_story_factory


def test_load_engine_factory_resolves_module_callable() -> None:
    factory = load_engine_factory("tests.support.fake_engine:scripted_story_factory")

    assert factory is scripted_story_factory


@pytest.mark.parametrize(
    "factory_path",
    [
        "",
        "tests.support.fake_engine",
        "tests.support.missing_module:factory",
        "tests.support.fake_engine:ERROR_LINE",
        "tests.support.fake_engine:no_such_name",
    ],
)
def test_load_engine_factory_rejects_bad_paths(factory_path: str) -> None:
    with pytest.raises(StoryEngineLoadError) as exc_info:
        load_engine_factory(factory_path)

    assert exc_info.value.code == "STORY_ENGINE_UNAVAILABLE"


def test_checkout_restores_state_when_body_raises() -> None:
    story = ScriptedStory(
        {
            "start": {"lines": ["Hi."], "choices": [["Go", "next"]]},
            "next": {"lines": ["There."], "choices": []},
        }
    )

    with pytest.raises(RuntimeError):
        with checkout(story):
            story.continue_step()
            story.choose_choice(0)
            assert current_location(story) == "next"
            raise RuntimeError("boom")

    assert story.passage == "start"
    assert story.line_index == 0
    assert story.restores == 1


def test_choice_text_reads_dicts_and_objects() -> None:
    class Choice:
        text = "Open the door"

    assert choice_text({"text": "Leave"}) == "Leave"
    assert choice_text(Choice()) == "Open the door"
    assert choice_text({}) == ""

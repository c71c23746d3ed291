from __future__ import annotations

import asyncio

import httpx
import pytest

from eventmap.errors import NameLookupError
from eventmap.modules.lookup import build_id_to_name, fetch_id_to_name, replace_card_ids
from tests.support.trees import NodeFactory

CARDS_URL = "https://codex.test/cards"
TALENTS_URL = "https://codex.test/talents"


def _transport(payloads: dict[str, httpx.Response]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return payloads[str(request.url)]

    return httpx.MockTransport(handler)


def _fetch(transport: httpx.MockTransport) -> dict[int, str]:
    return asyncio.run(fetch_id_to_name(cards_url=CARDS_URL, talents_url=TALENTS_URL, transport=transport))


def test_fetch_merges_cards_and_talents() -> None:
    transport = _transport(
        {
            CARDS_URL: httpx.Response(200, json={"cards": [{"id": 12, "name": "Fireball"}, {"id": 13}]}),
            TALENTS_URL: httpx.Response(200, json={"cards": [{"id": "40", "name": "Bloodlust"}]}),
        }
    )

    assert _fetch(transport) == {12: "Fireball", 40: "Bloodlust"}


def test_fetch_fails_on_error_status() -> None:
    transport = _transport(
        {
            CARDS_URL: httpx.Response(200, json={"cards": []}),
            TALENTS_URL: httpx.Response(503, text="down"),
        }
    )

    with pytest.raises(NameLookupError) as exc_info:
        _fetch(transport)

    assert exc_info.value.code == "NAME_LOOKUP_FAILED"
    assert exc_info.value.url == TALENTS_URL


def test_fetch_fails_on_non_object_json() -> None:
    transport = _transport(
        {
            CARDS_URL: httpx.Response(200, json=[1, 2]),
            TALENTS_URL: httpx.Response(200, json={"cards": []}),
        }
    )

    with pytest.raises(NameLookupError):
        _fetch(transport)


def test_fetch_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(NameLookupError):
        _fetch(httpx.MockTransport(handler))


def test_build_id_to_name_skips_malformed_entries() -> None:
    mapping = build_id_to_name({"cards": [{"id": "x", "name": "Bad"}, {"name": "No id"}, {"id": 5, "name": "Ok"}]})

    assert mapping == {5: "Ok"}


def test_replace_card_ids_rewrites_labels_text_and_effects() -> None:
    factory = NodeFactory()
    outcome = factory.end("You learn [cardid=12].", effects=["ADDCARD: 12", "GOLD: 12", "ADDTALENT: 99"])
    root = factory.node(text="A tome.", children=[factory.wrapper("Read about [cardid=12]", outcome)])

    replaced = replace_card_ids(root, {12: "Fireball"})

    assert replaced == 3
    assert root.children[0].choice_label == "Read about [cardid=Fireball]"
    assert outcome.text == "You learn [cardid=Fireball]."
    assert outcome.effects == ["ADDCARD: Fireball", "GOLD: 12", "ADDTALENT: 99"]

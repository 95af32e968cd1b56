from __future__ import annotations

import pytest

from eventfinder.utils.llm_parsing import extract_structured_json


def test_plain_object():
    assert extract_structured_json('{"topic_keywords": ["jazz"]}') == {"topic_keywords": ["jazz"]}


def test_top_level_list_is_wrapped():
    assert extract_structured_json('[{"title": "A"}]') == {"events": [{"title": "A"}]}


def test_fenced_block():
    text = 'Sure, here you go:\n```json\n{"events": []}\n```\nAnything else?'
    assert extract_structured_json(text) == {"events": []}


def test_prose_around_object():
    text = 'Result: {"time_window": "today"} hope that helps'
    assert extract_structured_json(text) == {"time_window": "today"}


@pytest.mark.parametrize("text", ["no json here", "42", '"just a string"'])
def test_unusable_payload_raises(text):
    with pytest.raises(ValueError):
        extract_structured_json(text)

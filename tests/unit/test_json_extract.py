"""Tests for extracting JSON embedded in model prose."""

import pytest

from kanso.utils.json_extract import extract_first_json_value


def test_object_inside_code_fence() -> None:
    text = 'Here you go:\n```json\n{"flight": {"airline": "ANA"}}\n```\nEnjoy!'

    assert extract_first_json_value(text) == {"flight": {"airline": "ANA"}}


def test_braces_inside_strings_do_not_end_span() -> None:
    text = 'Result: {"note": "use } and { freely", "quote": "say \\"hi\\""} trailing }'

    assert extract_first_json_value(text) == {"note": "use } and { freely", "quote": 'say "hi"'}


def test_skips_unparseable_candidate() -> None:
    text = "Options {not json} then {\"ok\": true}"

    assert extract_first_json_value(text) == {"ok": True}


def test_array_extraction() -> None:
    text = 'Places: [{"name": "Cafe"}, {"name": "Park"}] done'

    assert extract_first_json_value(text, "[") == [{"name": "Cafe"}, {"name": "Park"}]


def test_array_opener_ignores_objects() -> None:
    text = '{"places": 1} then ["a", "b"]'

    assert extract_first_json_value(text, "[") == ["a", "b"]


@pytest.mark.parametrize("text", [None, "", "no json here", '{"unterminated": 1'])
def test_returns_none_when_nothing_parses(text) -> None:
    assert extract_first_json_value(text) is None


def test_unsupported_opener() -> None:
    with pytest.raises(ValueError):
        extract_first_json_value("(1)", "(")

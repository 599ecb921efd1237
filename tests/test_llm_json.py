import pytest

from schrijfcoach.llm_json import fix_incomplete_json, parse_llm_json


def test_parses_plain_json():
    assert parse_llm_json('{"title": "Betoog", "sections": []}') == {"title": "Betoog", "sections": []}


def test_parses_json_inside_code_fence():
    text = 'Hier is de analyse:\n```json\n{"title": "Betoog"}\n```\nSucces!'
    assert parse_llm_json(text) == {"title": "Betoog"}


def test_parses_json_surrounded_by_prose():
    assert parse_llm_json('Natuurlijk! {"a": 1, "b": [1, 2]} Veel plezier.') == {"a": 1, "b": [1, 2]}


def test_repairs_truncated_json():
    text = '{"title": "Essay", "sections": [{"id": "intro", "title": "Inleiding"'
    result = parse_llm_json(text)
    assert result["title"] == "Essay"
    assert result["sections"] == [{"id": "intro", "title": "Inleiding"}]


def test_raises_when_no_json_present():
    with pytest.raises(ValueError, match="Kon geen geldige JSON vinden"):
        parse_llm_json("Ik kan deze opdracht niet analyseren.")


def test_raises_on_unrepairable_json():
    with pytest.raises(ValueError, match="Ongeldige JSON"):
        parse_llm_json('{"a": }}}')


def test_fix_incomplete_json_closes_string_and_object():
    assert fix_incomplete_json('{"a": "b') == '{"a": "b"}'


def test_fix_incomplete_json_fills_dangling_key():
    assert fix_incomplete_json('{"a":') == '{"a": null}'


def test_fix_incomplete_json_drops_trailing_comma():
    assert fix_incomplete_json('{"a": [1, 2,') == '{"a": [1, 2]}'

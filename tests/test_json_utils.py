"""Tests for JSON extraction from model responses."""

import pytest

from tools.json_utils import parse_json_list, parse_json_response


class TestParseJsonResponse:
    def test_plain_object(self):
        assert parse_json_response('{"a": 1}') == {"a": 1}

    def test_fenced_block(self):
        text = 'Here you go:\n```json\n{"a": [1, 2]}\n```\nThanks.'
        assert parse_json_response(text) == {"a": [1, 2]}

    def test_embedded_array(self):
        assert parse_json_response('Result: [1, 2, 3] done') == [1, 2, 3]

    def test_raw_newline_inside_string(self):
        assert parse_json_response('{"a": "line1\nline2"}') == {"a": "line1\nline2"}

    def test_unparseable_raises(self):
        with pytest.raises(ValueError):
            parse_json_response("no json here")


class TestParseJsonList:
    def test_bare_array(self):
        assert parse_json_list('[{"title": "x"}]') == [{"title": "x"}]

    def test_wrapped_under_key(self):
        assert parse_json_list('{"references": [1], "note": "n"}', key="references") == [1]

    def test_single_list_field(self):
        assert parse_json_list('{"refs": [1, 2], "count": 2}', key="references") == [1, 2]

    def test_ambiguous_object_raises(self):
        with pytest.raises(ValueError):
            parse_json_list('{"a": [1], "b": [2]}', key="references")

"""
Tests for webgate/providers/webchat/parsing.py
Covers payload line extraction, nested lookups and the two-tier body search
"""

from __future__ import annotations

import json

import pytest

from support.fakes import gemini_body, gemini_stream_text
from webgate.core.exceptions import (
    NoCandidatesError,
    PayloadParseError,
    ResponseBodyNotFoundError,
)
from webgate.providers.webchat.parsing import (
    decode_candidates,
    extract_json_from_response,
    find_body_with_candidates,
    get_nested_value,
    is_candidate_list,
    locate_body,
    parse_model_output,
)


class TestExtractJson:
    """Test extract_json_from_response"""

    def test_skips_prefix_and_scalar_lines(self):
        parsed = extract_json_from_response(gemini_stream_text())
        assert isinstance(parsed, list)
        assert parsed[0][0] == "wrb.fr"

    def test_no_array_line_raises(self):
        with pytest.raises(PayloadParseError):
            extract_json_from_response(")]}'\n\n42\n{\"a\": 1}\nnot json")

    def test_empty_body_raises(self):
        with pytest.raises(PayloadParseError):
            extract_json_from_response("")


class TestGetNestedValue:
    """Test get_nested_value"""

    def test_walks_indices(self):
        assert get_nested_value([0, [1, [2, "x"]]], (1, 1, 1)) == "x"

    def test_out_of_range_returns_fallback(self):
        assert get_nested_value([1, 2], (5,), "fb") == "fb"

    def test_non_list_step_returns_fallback(self):
        assert get_nested_value(["abc"], (0, 0), "fb") == "fb"

    def test_null_leaf_returns_fallback(self):
        assert get_nested_value([None], (0,), "fb") == "fb"

    def test_empty_path_returns_data(self):
        assert get_nested_value([1], ()) == [1]


class TestBodySearch:
    """Test locate_body and the recursive fallback"""

    def test_candidate_list_requires_id_and_text(self):
        assert is_candidate_list([["rc_1", ["hi"]]])
        assert not is_candidate_list([["", ["hi"]]])
        assert not is_candidate_list([])
        assert not is_candidate_list("rc_1")

    def test_embedded_json_string_is_first_tier(self):
        outer = extract_json_from_response(gemini_stream_text(gemini_body("first tier")))
        body = locate_body(outer)
        assert body[4][0][1][0] == "first tier"

    def test_recursive_fallback_finds_nested_body(self):
        nested = ["wrapper", ["deeper", gemini_body("deep text", rcid="rc_9")]]
        body = locate_body([nested])
        assert body[4][0][0] == "rc_9"

    def test_search_depth_is_bounded(self):
        node: list = gemini_body()
        for _ in range(10):
            node = [node]
        assert find_body_with_candidates(node) is None

    def test_unparseable_embedded_string_falls_through(self):
        outer = [["wrb.fr", None, "{not json"]]
        with pytest.raises(ResponseBodyNotFoundError):
            locate_body(outer)


class TestDecodeCandidates:
    """Test candidate decoding"""

    def test_skips_entries_without_rcid(self):
        candidates = decode_candidates([[None, ["no id"]], ["rc_2", ["kept"]]])
        assert [c.rcid for c in candidates] == ["rc_2"]
        assert candidates[0].text == "kept"

    def test_card_content_uses_alternate_text(self):
        raw = ["rc_1", ["http://googleusercontent.com/card_content/0"]] + [None] * 20
        raw.append(["Card text"])
        candidates = decode_candidates([raw])
        assert candidates[0].text == "Card text"

    def test_thoughts_are_optional(self):
        raw = ["rc_1", ["answer"]] + [None] * 35 + [[["thinking..."]]]
        candidates = decode_candidates([raw, ["rc_2", ["plain"]]])
        assert candidates[0].thoughts == "thinking..."
        assert candidates[1].thoughts is None


class TestParseModelOutput:
    """Test parse_model_output"""

    def test_chooses_first_candidate(self):
        body = gemini_body()
        body[4].append(["rc_2", ["second"]])
        outer = [["wrb.fr", None, json.dumps(body)]]
        output = parse_model_output(outer)

        assert output.text == "Hello world"
        assert output.rcid == "rc_1"
        assert output.metadata == ["c_abc", "r_def"]
        assert len(output.candidates) == 2

    def test_missing_metadata_becomes_empty_list(self):
        body = [None, "not-a-list", None, None, [["rc_1", ["hi"]]]]
        output = parse_model_output([body])
        assert output.metadata == []

    def test_candidates_without_text_are_not_a_body(self):
        body = [None, [], None, None, [[None, ["x"]], ["rc_1", [None]]]]
        with pytest.raises(ResponseBodyNotFoundError):
            parse_model_output([body])

    def test_no_candidates_error_is_upstream_failure(self):
        assert NoCandidatesError().status_code == 502

"""Tests for core.extractor: normalization, strategy order and truncation repair."""

import json

import pytest

from core.errors import ExtractionError, ExtractionFailure
from core.extractor import (
    FILES_SCHEMA,
    extract_files,
    extract_payload,
    find_balanced_object,
    iter_fenced_blocks,
    looks_truncated,
    normalize,
    repair_truncated,
)

SIMPLE = '{"files":[{"path":"a.txt","content":"hi"}]}'


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------

def test_plain_json_uses_direct_strategy():
    result = extract_files(SIMPLE)
    assert result.strategy == "direct"
    assert not result.truncated
    assert [(f.path, f.content) for f in result.files] == [("a.txt", "hi")]


def test_json_inside_prose_and_fence():
    text = 'Here you go:\n```json\n' + SIMPLE + '\n```\nEnjoy!'
    result = extract_files(text)
    # bracket matching sees the payload before the fence strategy runs
    assert result.strategy == "bracket"
    assert result.files == extract_files(SIMPLE).files


def test_fence_used_when_first_opening_in_prose_is_broken():
    text = (
        'The shape is {"files": [oops]} as usual.\n'
        '```json\n' + SIMPLE + '\n```'
    )
    result = extract_files(text)
    assert result.strategy == "fence"
    assert result.files[0].path == "a.txt"


def test_raw_newline_in_content_is_repaired():
    text = '{"files":[{"path":"a.txt","content":"line one\nline two"}]}'
    with pytest.raises(json.JSONDecodeError):
        json.loads(text)
    result = extract_files(text)
    assert result.strategy == "direct"
    assert result.files[0].content == "line one\nline two"


def test_truncated_response_keeps_complete_entries():
    text = '{"files":[{"path":"a.txt","content":"hi"},{"path":"b.txt","content":"wo'
    result = extract_files(text)
    assert result.strategy == "truncation"
    assert result.truncated
    assert [f.path for f in result.files] == ["a.txt"]


def test_truncation_ignores_entry_boundaries_inside_strings():
    text = (
        '{"files":[{"path":"a.ts","content":"const x = [{a: 1},{b: 2}];"},'
        '{"path":"b.ts","content":"export const y = {},'
    )
    result = extract_files(text)
    assert [f.path for f in result.files] == ["a.ts"]
    assert result.files[0].content == "const x = [{a: 1},{b: 2}];"


def test_no_json_found():
    with pytest.raises(ExtractionError) as exc:
        extract_files("I cannot help with that.")
    assert exc.value.kind == ExtractionFailure.NO_JSON_FOUND


def test_truncated_before_first_entry_is_unrecoverable():
    with pytest.raises(ExtractionError) as exc:
        extract_files('{"files":[{"path":"a.txt","content":"unfinish')
    assert exc.value.kind == ExtractionFailure.TRUNCATED_UNRECOVERABLE


def test_parse_error_carries_bounded_preview():
    text = "{" + "x" * 2000 + "}"
    with pytest.raises(ExtractionError) as exc:
        extract_files(text)
    assert exc.value.kind == ExtractionFailure.PARSE_ERROR
    assert len(exc.value.preview) < 600
    assert "more chars" in exc.value.preview


def test_direct_wins_over_bracket():
    # Both the whole text and the inner "files" object are valid payloads.
    text = '{"files":[{"path":"outer.txt","content":"x"}],"meta":{"files":[]}}'
    payload, strategy = extract_payload(text, FILES_SCHEMA)
    assert strategy == "direct"
    assert payload["files"][0]["path"] == "outer.txt"


def test_non_string_fields_become_empty():
    result = extract_files('{"files":[{"path":"a.txt","content":42}]}')
    assert result.files[0].content == ""


def test_language_guessed_from_extension():
    result = extract_files('{"files":[{"path":"app/page.tsx","content":"x"}]}')
    assert result.files[0].language == "typescript"


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("text", [
    SIMPLE,
    '{"a": [1, 2, {"b": null}], "c": "quote \\" and slash \\\\"}',
    '{"unicode": "\\u00e9"}',
])
def test_normalize_leaves_valid_json_unchanged(text):
    assert normalize(text) == text


@pytest.mark.parametrize("text", [
    '{"a": "x\ny",}',
    "{'files': [{'path': 'a.txt', 'content': 'it\\'s'}]}",
    '{"a": "C:\\path\\file"}',
    '{"a": "say "hi" now"}',
    '{"a": [1, 2,],}',
])
def test_normalize_is_idempotent(text):
    once = normalize(text)
    assert normalize(once) == once


def test_normalize_single_quotes():
    text = "{'files': [{'path': 'a.txt', 'content': 'it\\'s'}]}"
    assert json.loads(normalize(text)) == {"files": [{"path": "a.txt", "content": "it's"}]}


def test_normalize_trailing_commas():
    assert json.loads(normalize('{"a": [1, 2,], "b": 3,}')) == {"a": [1, 2], "b": 3}


def test_normalize_invalid_escape_and_inner_quotes():
    assert json.loads(normalize('{"a": "C:\\dir"}')) == {"a": "C:\\dir"}
    assert json.loads(normalize('{"a": "say "hi" now"}')) == {"a": 'say "hi" now'}


def test_normalize_leaves_commas_inside_strings():
    text = '{"a": "x,]"}'
    assert normalize(text) == text


# ---------------------------------------------------------------------------
# Scanning helpers
# ---------------------------------------------------------------------------

def test_find_balanced_object_honours_strings():
    text = '{"a": "}{", "b": {"c": 1}} trailing'
    end = find_balanced_object(text)
    assert text[:end] == '{"a": "}{", "b": {"c": 1}}'


def test_find_balanced_object_unclosed():
    assert find_balanced_object('{"a": {') is None


def test_iter_fenced_blocks_in_order():
    text = "```\nfirst\n```\nmid\n```json\nsecond\n```"
    assert list(iter_fenced_blocks(text)) == ["first", "second"]


def test_looks_truncated():
    assert looks_truncated('{"files":[{"path":"a')
    assert not looks_truncated(SIMPLE)
    assert not looks_truncated("no braces")


def test_repair_truncated_drops_only_last_entry():
    text = '{"files":[{"path":"a","content":"1"},{"path":"b","content":"2"},{"path":"c"'
    repaired = repair_truncated(text)
    assert json.loads(repaired) == {"files": [
        {"path": "a", "content": "1"},
        {"path": "b", "content": "2"},
    ]}


def test_repair_truncated_returns_none_for_complete_text():
    assert repair_truncated(SIMPLE) is None

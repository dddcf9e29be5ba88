import pytest

from app.utils.validation import (
    sanitize_metadata,
    validate_id,
    validate_required,
    validate_search_query,
    validate_string,
)


@pytest.mark.parametrize("raw, expected", [("123", 123), ("007", 7), ("1", 1)])
def test_validate_id_accepts_digit_strings(raw, expected):
    assert validate_id(raw) == expected


@pytest.mark.parametrize("raw", ["0", "-5", "1.5", "12abc", " 12", "12 ", "123\n", "\n123", "", None, 12, "١٢"])
def test_validate_id_rejects_everything_else(raw):
    assert validate_id(raw) is None


def test_validate_string_trims_and_truncates():
    assert validate_string("  hello  ") == "hello"
    assert validate_string("a" * 300) == "a" * 255
    assert validate_string("abcdef", max_length=3) == "abc"


@pytest.mark.parametrize("raw", [None, "", "   ", 42, ["x"]])
def test_validate_string_rejects_blank_and_non_strings(raw):
    assert validate_string(raw) is None


def test_validate_search_query_strips_unsafe_characters():
    assert validate_search_query("Bird's Nest <script>") == "Bird's Nest script"
    assert validate_search_query("rosa; DROP TABLE") == "rosa DROP TABLE"
    assert validate_search_query("aloe-vera") == "aloe-vera"


def test_validate_search_query_caps_length_and_handles_bad_input():
    assert len(validate_search_query("x" * 500)) == 100
    assert validate_search_query(None) == ""
    assert validate_search_query(123) == ""


def test_sanitize_metadata_rejects_arrays_and_scalars():
    assert sanitize_metadata([1, 2, 3]) is None
    assert sanitize_metadata("text") is None
    assert sanitize_metadata(None) is None


def test_sanitize_metadata_accepts_empty_object():
    assert sanitize_metadata({}) == {}


def test_sanitize_metadata_returns_a_deep_copy():
    original = {"care": {"water": "weekly"}, "tags": ["a"]}
    cleaned = sanitize_metadata(original)

    assert cleaned == original
    cleaned["care"]["water"] = "daily"
    assert original["care"]["water"] == "weekly"


def test_sanitize_metadata_is_idempotent():
    doc = {"patent": "PP12345", "breeder": {"name": "Ruiz", "year": 2001}}
    once = sanitize_metadata(doc)
    assert sanitize_metadata(once) == once


def test_sanitize_metadata_enforces_size_cap():
    assert sanitize_metadata({"blob": "x" * 20_000}) is None
    assert sanitize_metadata({"blob": "x" * 50}, max_bytes=20) is None
    assert sanitize_metadata({"blob": "x" * 50}, max_bytes=1000) == {"blob": "x" * 50}


def test_sanitize_metadata_measures_compact_json():
    # 930 entries of "kNNN":"v" are 10231 bytes compact, 12090 with spaced separators
    doc = {f"k{i:03d}": "v" for i in range(930)}
    assert sanitize_metadata(doc) == doc
    assert sanitize_metadata({"a": 1, "b": 2}, max_bytes=13) == {"a": 1, "b": 2}
    assert sanitize_metadata({"a": 1, "b": 2}, max_bytes=12) is None


def test_sanitize_metadata_rejects_non_json_values():
    assert sanitize_metadata({"when": object()}) is None
    assert sanitize_metadata({"ratio": float("nan")}) is None


def test_validate_required_reports_missing_fields():
    result = validate_required({"a": "x", "b": "", "c": None}, ["a", "b", "c", "d"])
    assert result.valid is False
    assert result.missing == ["b", "c", "d"]


def test_validate_required_treats_zero_and_false_as_present():
    result = validate_required({"count": 0, "flag": False}, ["count", "flag"])
    assert result.valid is True
    assert result.missing == []

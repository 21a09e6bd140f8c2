"""
Tests for parameter normalization and summaries.
"""

import json

import pytest

from api_cache.errors import InvalidIdentifierError
from api_cache.utils.params import (
    MAX_DEPTH,
    canonical_json,
    normalize_params,
    summarize_params,
    validate_identifier,
)


def test_key_order_does_not_matter():
    """Test that reordered mappings serialize identically."""
    assert canonical_json({"q": "shoes", "page": 1}) == canonical_json({"page": 1, "q": "shoes"})


def test_nested_keys_are_sorted():
    """Test that nested mappings are sorted recursively."""
    normalized = normalize_params({"b": {"z": 1, "a": 2}, "a": 0})
    assert list(normalized) == ["a", "b"]
    assert list(normalized["b"]) == ["a", "z"]


@pytest.mark.parametrize(
    "value, expected",
    [
        (True, 1),
        (False, 0),
        ("true", 1),
        ("FALSE", 0),
        ("1", 1),
        ("1.5", 1.5),
        ("2.0", 2),
        (3.0, 3),
        ("007", "007"),
        ("shoes", "shoes"),
    ],
)
def test_scalar_representations_are_canonical(value, expected):
    """Test that equivalent scalars collapse to one form."""
    assert normalize_params({"v": value}) == {"v": expected}


def test_boolean_and_string_one_collide():
    """Test that True and "1" produce the same serialization."""
    assert canonical_json({"flag": True}) == canonical_json({"flag": "1"})


def test_none_values_are_dropped():
    """Test that keys with None values are removed."""
    assert normalize_params({"a": None, "b": 1}) == {"b": 1}


def test_none_params_is_empty_mapping():
    """Test that None parameters normalize like {}."""
    assert normalize_params(None) == {}
    assert canonical_json(None) == canonical_json({}) == "{}"


def test_scalar_lists_are_sorted():
    """Test that collections of scalars are order-independent."""
    assert canonical_json({"ids": [3, 1, 2]}) == canonical_json({"ids": [1, 2, 3]})
    assert normalize_params({"tags": ("b", "a")}) == {"tags": ["a", "b"]}


def test_lists_of_mappings_keep_order():
    """Test that task arrays keep their order."""
    normalized = normalize_params({"tasks": [{"k": "b"}, {"k": "a"}]})
    assert normalized["tasks"] == [{"k": "b"}, {"k": "a"}]


def test_normalize_is_idempotent():
    """Test that normalizing twice changes nothing."""
    params = {"q": "shoes", "flags": [True, "0", 2.0], "nested": {"x": "1.50", "y": None}}
    once = normalize_params(params)
    assert normalize_params(once) == once


def test_unsupported_types_are_rejected():
    """Test that arbitrary objects cannot be hashed."""
    with pytest.raises(ValueError):
        normalize_params({"obj": object()})


def test_excessive_nesting_is_rejected():
    """Test the nesting limit."""
    params: dict = {}
    current = params
    for _ in range(MAX_DEPTH + 1):
        current["n"] = {}
        current = current["n"]

    with pytest.raises(ValueError):
        normalize_params(params)


def test_non_ascii_is_kept():
    """Test that non-ASCII text is serialized as-is."""
    assert canonical_json({"q": "café"}) == '{"q":"café"}'


def test_summarize_params_truncates_long_values():
    """Test that long values are cut to the character limit."""
    summary = json.loads(summarize_params({"q": "x" * 150, "page": 1}, character_limit=10))
    assert summary["q"] == "x" * 10 + "..."
    assert summary["page"] == 1


def test_summarize_params_serializes_nested_values():
    """Test that nested values become JSON strings."""
    summary = json.loads(summarize_params({"filters": {"a": 1}}))
    assert summary["filters"] == '{"a":1}'


def test_summarize_empty_params():
    """Test the summary of empty parameters."""
    assert summarize_params({}) == "[]"


@pytest.mark.parametrize("name", ["demo", "data-for_seo", "A1"])
def test_valid_identifiers(name):
    """Test accepted client names."""
    validate_identifier(name)


@pytest.mark.parametrize("name", ["", "demo.client", "demo client", "x/y", "ü"])
def test_invalid_identifiers(name):
    """Test rejected client names."""
    with pytest.raises(InvalidIdentifierError):
        validate_identifier(name)

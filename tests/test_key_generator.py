"""
Tests for cache key generation.
"""

import hashlib

import pytest

from api_cache.errors import InvalidIdentifierError
from api_cache.services import generate_cache_key


def test_key_format():
    """Test the client.method.endpoint.hash layout."""
    key = generate_cache_key("demo", "/search", {"q": "shoes"}, "POST")
    expected_hash = hashlib.sha1(b'{"q":"shoes"}').hexdigest()
    assert key == f"demo.post.search.{expected_hash}"


def test_version_is_appended():
    """Test that a version becomes the last key component."""
    key = generate_cache_key("demo", "search", {"q": "shoes"}, "GET", "v3")
    assert key.endswith(".v3")
    assert key != generate_cache_key("demo", "search", {"q": "shoes"}, "GET")


def test_reordered_params_collide():
    """Test that parameter order does not change the key."""
    first = generate_cache_key("demo", "search", {"q": "shoes", "page": 1})
    second = generate_cache_key("demo", "search", {"page": 1, "q": "shoes"})
    assert first == second


def test_scalar_representation_does_not_matter():
    """Test that "1" and 1 and True give the same key."""
    keys = {
        generate_cache_key("demo", "search", {"page": 1, "safe": True}),
        generate_cache_key("demo", "search", {"page": "1", "safe": "true"}),
        generate_cache_key("demo", "search", {"page": 1.0, "safe": 1}),
    }
    assert len(keys) == 1


def test_empty_params_are_deterministic():
    """Test that endpoints without parameters still get a stable key."""
    assert generate_cache_key("demo", "status") == generate_cache_key("demo", "status", {})
    assert generate_cache_key("demo", "status", None) == generate_cache_key("demo", "status", {})


@pytest.mark.parametrize(
    "other",
    [
        ("other", "search", {"q": "shoes"}, "GET"),
        ("demo", "lookup", {"q": "shoes"}, "GET"),
        ("demo", "search", {"q": "boots"}, "GET"),
        ("demo", "search", {"q": "shoes"}, "POST"),
    ],
)
def test_every_component_changes_the_key(other):
    """Test that each input is part of the key."""
    assert generate_cache_key(*other) != generate_cache_key("demo", "search", {"q": "shoes"}, "GET")


def test_method_is_case_insensitive():
    """Test that the method is lowercased."""
    assert generate_cache_key("demo", "search", {}, "get") == generate_cache_key("demo", "search", {}, "GET")


def test_invalid_client_is_rejected():
    """Test that unsafe client names are refused."""
    with pytest.raises(InvalidIdentifierError):
        generate_cache_key("demo.client", "search")

"""
Tests for reelgen.services.infrastructure.cache.keys
"""

from reelgen.models import Coordinates
from reelgen.services.infrastructure.cache import content_hash, derive_cache_key


class TestDeriveCacheKey:

    def test_key_is_prefixed_with_stage(self):
        key = derive_cache_key("clip", ["uploads/a.jpg"])

        assert key.startswith("clip_")
        assert len(key) == len("clip_") + 32

    def test_same_inputs_same_key(self):
        params = {"model": "gen3a_turbo", "duration": 5}

        assert derive_cache_key("clip", ["a"], params) == derive_cache_key("clip", ["a"], dict(params))

    def test_param_order_does_not_matter(self):
        first = derive_cache_key("clip", ["a"], {"model": "m", "ratio": "768:1280"})
        second = derive_cache_key("clip", ["a"], {"ratio": "768:1280", "model": "m"})

        assert first == second

    def test_input_order_matters(self):
        assert derive_cache_key("template", ["a", "b"]) != derive_cache_key("template", ["b", "a"])

    def test_stage_is_part_of_the_key(self):
        assert derive_cache_key("clip", ["a"]) != derive_cache_key("template", ["a"])

    def test_param_values_change_the_key(self):
        assert derive_cache_key("clip", ["a"], {"duration": 5}) != derive_cache_key("clip", ["a"], {"duration": 10})

    def test_integral_floats_hash_like_ints(self):
        assert derive_cache_key("clip", ["a"], {"duration": 5.0}) == derive_cache_key("clip", ["a"], {"duration": 5})

    def test_coordinates_are_rounded_to_six_places(self):
        near = derive_cache_key("flyover", [], {"coordinates": Coordinates(40.7127761, -74.0059741)})
        also_near = derive_cache_key("flyover", [], {"coordinates": Coordinates(40.7127764, -74.0059744)})
        far = derive_cache_key("flyover", [], {"coordinates": Coordinates(40.712777, -74.005974)})

        assert near == also_near
        assert near != far


class TestContentHash:

    def test_md5_hex(self):
        assert content_hash(b"") == "d41d8cd98f00b204e9800998ecf8427e"

    def test_different_content(self):
        assert content_hash(b"a") != content_hash(b"b")

"""
Serialization performance benchmarks comparing smartserialize against
standard encoders.

Compares encoding speed across different value shapes:
- Standard library json
- orjson (Rust-optimized)
- ujson (ultra-fast JSON)
- smartserialize, unlimited and with depth/size limits
"""

import functools
import json
from collections.abc import Callable
from typing import Any

import orjson
import pytest
import ujson  # type: ignore[import-untyped]

import smartserialize
from benchmarks.data_generators import generate_broad_tree
from benchmarks.data_generators import generate_test_value

_COMPACT_JSON = functools.partial(json.dumps, separators=(",", ":"))

ENCODERS = [
    ("stdlib_json", _COMPACT_JSON),
    ("orjson", orjson.dumps),
    ("ujson", ujson.dumps),
    ("smartserialize", smartserialize.serialize),
]


class TestSerializeBenchmarks:
    """Benchmarks for encoding performance across different libraries."""

    @pytest.mark.benchmark(group="small_objects")
    @pytest.mark.parametrize("encoder,encode_func", ENCODERS)
    def test_small_object_encoding(
        self,
        benchmark: Any,
        encoder: str,
        encode_func: Callable[[Any], Any],
    ) -> None:
        """Benchmarks encoding of small objects (< 1KB)."""
        result = benchmark(encode_func, generate_test_value("small_object"))
        assert result

    @pytest.mark.benchmark(group="large_objects")
    @pytest.mark.parametrize("encoder,encode_func", ENCODERS)
    def test_large_object_encoding(
        self,
        benchmark: Any,
        encoder: str,
        encode_func: Callable[[Any], Any],
    ) -> None:
        """Benchmarks encoding of large objects (> 10KB)."""
        result = benchmark(encode_func, generate_test_value("large_object"))
        assert result

    @pytest.mark.benchmark(group="arrays")
    @pytest.mark.parametrize("encoder,encode_func", ENCODERS)
    def test_array_encoding(
        self,
        benchmark: Any,
        encoder: str,
        encode_func: Callable[[Any], Any],
    ) -> None:
        """Benchmarks encoding of large arrays with mixed value types."""
        result = benchmark(encode_func, generate_test_value("mixed_array"))
        assert result

    @pytest.mark.benchmark(group="nested_structures")
    @pytest.mark.parametrize("encoder,encode_func", ENCODERS)
    def test_nested_structure_encoding(
        self,
        benchmark: Any,
        encoder: str,
        encode_func: Callable[[Any], Any],
    ) -> None:
        """Benchmarks encoding of deeply nested structures."""
        value = generate_test_value("nested_structure")
        result = benchmark(encode_func, value)
        assert result

    @pytest.mark.benchmark(group="string_heavy")
    @pytest.mark.parametrize("encoder,encode_func", ENCODERS)
    def test_string_heavy_encoding(
        self,
        benchmark: Any,
        encoder: str,
        encode_func: Callable[[Any], Any],
    ) -> None:
        """Benchmarks encoding of strings that need escaping."""
        result = benchmark(encode_func, generate_test_value("string_heavy"))
        assert result


class TestLimitBenchmarks:
    """Benchmarks showing how limits bound the work on broad inputs."""

    @pytest.fixture(scope="class")
    def broad_tree(self) -> dict[str, Any]:
        return generate_broad_tree(6, 6)

    @pytest.mark.benchmark(group="broad_tree")
    def test_stdlib_json_whole(
        self, benchmark: Any, broad_tree: dict[str, Any]
    ) -> None:
        assert benchmark(_COMPACT_JSON, broad_tree)

    @pytest.mark.benchmark(group="broad_tree")
    def test_smartserialize_whole(
        self, benchmark: Any, broad_tree: dict[str, Any]
    ) -> None:
        assert benchmark(smartserialize.serialize, broad_tree)

    @pytest.mark.benchmark(group="broad_tree")
    def test_smartserialize_depth_3(
        self, benchmark: Any, broad_tree: dict[str, Any]
    ) -> None:
        assert benchmark(smartserialize.serialize, broad_tree, 3)

    @pytest.mark.benchmark(group="broad_tree")
    def test_smartserialize_size_1024(
        self, benchmark: Any, broad_tree: dict[str, Any]
    ) -> None:
        output = benchmark(
            smartserialize.serialize, broad_tree, float("inf"), 1024
        )
        assert len(output) < len(_COMPACT_JSON(broad_tree))

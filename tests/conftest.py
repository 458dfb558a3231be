"""
Pytest configuration and shared fixtures for smartserialize tests.

Provides immutable test case fixtures for values, limits and expected output.
"""

import math
from dataclasses import dataclass
from typing import Any

import pytest


@dataclass(frozen=True)
class SerializeTestCase:
    """
    Immutable container for serialization test case data.

    Holds an input value, the limits to apply and the exact expected text.
    """

    description: str
    input_data: Any
    expected_output: str
    max_depth: float = math.inf
    max_size: float = math.inf


@pytest.fixture
def mixed_limits_input() -> list[Any]:
    """
    Provides a list mixing strings, numbers and nested mappings.

    Small enough to reason about every size limit by hand, deep enough to
    exercise depth truncation.
    """
    return [
        "0123456789",
        {"a": 1, "b": 2},
        {"n": {"n": {"n": {"n": {"n": {"n": {"n": {}}}}}}}},
        12.345,
        {"longLongLongKey": 0},
    ]


@pytest.fixture
def basic_cases() -> list[SerializeTestCase]:
    """
    Provides plain JSON-compatible values with their compact rendering.
    """
    return [
        SerializeTestCase("string", "a", '"a"'),
        SerializeTestCase("null", None, "null"),
        SerializeTestCase("true", True, "true"),
        SerializeTestCase("false", False, "false"),
        SerializeTestCase("integer", 42, "42"),
        SerializeTestCase("negative float", -2.5, "-2.5"),
        SerializeTestCase(
            "simple object", {"foo": 1, "bar": "baz"}, '{"foo":1,"bar":"baz"}'
        ),
        SerializeTestCase(
            "nested object", {"foo": {"bar": "baz"}}, '{"foo":{"bar":"baz"}}'
        ),
        SerializeTestCase(
            "nested array", {"foo": ["bar", "baz"]}, '{"foo":["bar","baz"]}'
        ),
        SerializeTestCase(
            "arrays",
            {"foo": [1, 2, 3], "bar": ["a", "b", "c"]},
            '{"foo":[1,2,3],"bar":["a","b","c"]}',
        ),
        SerializeTestCase("number value", {"foo": 42}, '{"foo":42}'),
        SerializeTestCase("boolean value", {"foo": True}, '{"foo":true}'),
        SerializeTestCase("null value", {"foo": None}, '{"foo":null}'),
        SerializeTestCase("empty array", [], "[]"),
        SerializeTestCase("nested empty array", [[]], "[[]]"),
        SerializeTestCase("bracket string", ["["], '["["]'),
    ]


@pytest.fixture
def size_limit_cases(
    mixed_limits_input: list[Any],
) -> list[SerializeTestCase]:
    """
    Provides outputs of the mixed list fixture at increasing size limits.

    Depth is capped at 4 throughout, so the deep chain never shows more than
    three keys.
    """
    expected = {
        0: "[]",
        10: "[]",
        20: '["0123456789",{},{},12.345,{}]',
        40: '["0123456789",{},{},12.345,{}]',
        50: '["0123456789",{},{"n":{}},12.345,{"longLongLongKey":0}]',
        60: '["0123456789",{},{"n":{"n":{}}},12.345,{"longLongLongKey":0}]',
        70: (
            '["0123456789",{},{"n":{"n":{"n":{}}}},12.345,'
            '{"longLongLongKey":0}]'
        ),
        80: (
            '["0123456789",{"a":1,"b":2},{"n":{"n":{"n":{}}}},12.345,'
            '{"longLongLongKey":0}]'
        ),
    }
    return [
        SerializeTestCase(
            f"size limit {limit}",
            mixed_limits_input,
            output,
            max_depth=4,
            max_size=limit,
        )
        for limit, output in expected.items()
    ]

"""Walk through how size and depth limits reshape the output of one value."""

import datetime
import json
import re
from typing import Any

import smartserialize


def show_size_limits() -> None:
    """Print the output of a small mixed list at every size limit."""
    value = [
        "0123456789",
        {"a": 1, "b": 2},
        {"n": {"n": {"n": {"n": {"n": {"n": {"n": {}}}}}}}},
        12.345,
        {"longLongLongKey": 0},
    ]
    full_length = len(json.dumps(value, separators=(",", ":")))

    print("Limit | Length | Output")
    print("-" * 60)
    for limit in range(full_length + 1):
        output = smartserialize.serialize(value, 4, limit)
        print(f"{limit:>5} | {len(output):>6} | {output}")


def show_odd_nodes() -> None:
    """Print values that have no JSON form of their own."""

    def foo() -> bool:
        return True

    odd_nodes: list[Any] = [
        datetime.datetime.now(tz=datetime.timezone.utc),
        ValueError('"hello"'),
        lambda: True,
        foo,
        re.compile("[a-z]+", re.IGNORECASE),
    ]
    odd_nodes.append(odd_nodes)
    odd_nodes.append("line1\nline2")
    odd_nodes.append("\t")
    odd_nodes.append("[")

    output = smartserialize.serialize(odd_nodes)
    print(output)
    print(json.loads(output))


if __name__ == "__main__":
    show_size_limits()
    print()
    show_odd_nodes()

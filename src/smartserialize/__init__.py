"""
Bounded, always-terminating JSON-like serialization for any object graph.

Walks a value graph with an explicit work stack instead of recursion, guards
against revisiting containers by identity, and keeps an approximate running
size estimate so output is truncated by depth and by size without ever
raising on the shape of the input itself.
"""

import asyncio
import dataclasses
import datetime
import decimal
import logging
import math
import os
import re
import time
from collections.abc import Callable
from collections.abc import Mapping
from collections.abc import Sequence
from collections.abc import Set
from dataclasses import dataclass
from enum import Enum
from typing import IO
from typing import Any
from typing import Final
from typing import TypeAlias

from smartserialize._escape import escape
from smartserialize._escape import quote

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

Depth: TypeAlias = int
Limit: TypeAlias = int | float

CompletionHandler = Callable[[str], Any]

# Profiling infrastructure - zero-cost when disabled
PROFILE_HOT_PATHS = __debug__ and "SMARTSERIALIZE_PROFILE" in os.environ

_FALLBACK_BATCH_SIZE = 10_000


def _batch_size_from_env() -> int:
    """Reads the default batch size, ignoring unusable values."""
    raw = os.environ.get("SMARTSERIALIZE_BATCH_SIZE")
    if raw is None:
        return _FALLBACK_BATCH_SIZE
    try:
        size = int(raw)
    except ValueError:
        size = 0
    if size < 1:
        logger.warning(
            "Ignoring SMARTSERIALIZE_BATCH_SIZE=%r, using %d",
            raw,
            _FALLBACK_BATCH_SIZE,
        )
        return _FALLBACK_BATCH_SIZE
    return size


DEFAULT_BATCH_SIZE = _batch_size_from_env()

CIRCULAR_REFERENCE = "[circular reference]"
ANONYMOUS_FUNCTION = "(anonymous)"

# Size estimates, in output characters
_NULL_SIZE = 4
_TRUE_SIZE = 4
_FALSE_SIZE = 5
_QUOTES_SIZE = 2
_DATE_SIZE = 26  # ISO timestamp plus quotes
_FUNCTION_OVERHEAD = 13  # "[function ]"
_CIRCULAR_REFERENCE_SIZE = 20
_ENCLOSURE_SIZE = 2
_KEY_OVERHEAD = 3  # "":
_COMMA_SIZE = 1


@dataclass
class HotPathStats:
    """Statistics for profiling hot paths during serialization."""

    function_name: str
    call_count: int = 0
    total_time_ns: int = 0

    def record_call(self, duration_ns: int) -> None:
        """Records a function call with its timing."""
        self.call_count += 1
        self.total_time_ns += duration_ns


if PROFILE_HOT_PATHS:
    _hot_path_stats: dict[str, HotPathStats] = {}

    class ProfileContext:
        """Context manager for profiling hot paths."""

        def __init__(self, func_name: str) -> None:
            self.func_name = func_name
            self.start_time = 0

        def __enter__(self) -> "ProfileContext":
            self.start_time = time.perf_counter_ns()
            return self

        def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            duration = time.perf_counter_ns() - self.start_time
            if self.func_name not in _hot_path_stats:
                _hot_path_stats[self.func_name] = HotPathStats(self.func_name)
            _hot_path_stats[self.func_name].record_call(duration)

    def get_hot_path_stats() -> dict[str, HotPathStats]:
        """Returns current profiling statistics."""
        return _hot_path_stats.copy()

    def clear_hot_path_stats() -> None:
        """Clears profiling statistics."""
        _hot_path_stats.clear()

else:

    class ProfileContext:  # type: ignore[no-redef]
        def __init__(self, func_name: str) -> None:
            pass

        def __enter__(self) -> "ProfileContext":
            return self

        def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            pass

    def get_hot_path_stats() -> dict[str, HotPathStats]:
        return {}

    def clear_hot_path_stats() -> None:
        pass


class ValueKind(Enum):
    """
    Variants a serialized value can take.

    SEQUENCE and MAPPING are containers: only they are expanded, truncated
    by depth and tracked for repeated visits. CIRCULAR marks a container that
    was already visited during the current call.
    """

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    DATE = "date"
    ERROR = "error"
    PATTERN = "pattern"
    FUNCTION = "function"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    CIRCULAR = "circular"
    OTHER = "other"


class Enclosure(Enum):
    """
    Bracket sentinels placed on the work stack around container children.

    Being enum members rather than strings, they never collide with a
    genuine string value such as "[".
    """

    OPEN_ARRAY = "["
    CLOSE_ARRAY = "]"
    EMPTY_ARRAY = "[]"
    OPEN_OBJECT = "{"
    CLOSE_OBJECT = "}"
    EMPTY_OBJECT = "{}"


class DriverState(Enum):
    """Traversal states of a serializer."""

    PENDING = "pending"
    DONE = "done"


@dataclass(frozen=True)
class Frame:
    """
    A unit of pending work on the traversal stack.

    A truthy index means the frame is not the first child of its parent and
    renders with a leading comma.
    """

    key: str | None
    payload: Any
    index: int | None
    depth: Depth


def _validate_limit(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"{name} must be a number")
    if math.isnan(value) or value < 0:
        raise ValueError(f"{name} must be a non-negative number")


@dataclass(frozen=True)
class SerializeConfig:
    """
    Configures serialization limits with immutable settings.

    Both limits default to unbounded. The batch size only matters for the
    cooperative modes, where it sets how many frames run between yields.
    """

    max_depth: Limit = math.inf
    max_size: Limit = math.inf
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self) -> None:
        _validate_limit("max_depth", self.max_depth)
        _validate_limit("max_size", self.max_size)
        if isinstance(self.batch_size, bool) or not isinstance(
            self.batch_size, int
        ):
            raise TypeError("batch_size must be an integer")
        if self.batch_size < 1:
            raise ValueError("batch_size must be a positive integer")


class IdentityGuard:
    """
    Insert-only set of visited containers, compared by identity.

    Visited values are kept referenced so their ids stay unique for the
    lifetime of the guard.
    """

    def __init__(self) -> None:
        self._seen: dict[int, object] = {}

    def has(self, value: object) -> bool:
        return id(value) in self._seen

    def add(self, value: object) -> None:
        self._seen[id(value)] = value

    def __len__(self) -> int:
        return len(self._seen)


class SizeBudget:
    """
    Running estimate of output size with a sticky exceeded flag.

    Once the estimate passes the limit the flag stays set for the rest of
    the call.
    """

    def __init__(self, limit: Limit) -> None:
        self.limit = limit
        self.consumed = 0
        self.exceeded = False

    def add(self, amount: int) -> None:
        """Charges an estimated number of characters."""
        self.consumed += amount
        if not self.exceeded and self.consumed > self.limit:
            self.exceeded = True
            logger.debug(
                "Size budget exceeded: %d > %s", self.consumed, self.limit
            )


def _is_dataclass_instance(value: object) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _container_kind(value: object) -> ValueKind | None:
    if isinstance(value, str | bytes | bytearray):
        return None
    if isinstance(value, Sequence | Set):
        return ValueKind.SEQUENCE
    if isinstance(value, Mapping) or _is_dataclass_instance(value):
        return ValueKind.MAPPING
    return None


def classify(  # noqa: PLR0911
    value: Any, guard: IdentityGuard | None = None
) -> ValueKind:
    """
    Determines the variant of a value.

    Callables win over everything except null and booleans, and a container
    the guard has already seen is CIRCULAR regardless of its type.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if callable(value):
        return ValueKind.FUNCTION

    container_kind = _container_kind(value)
    if container_kind is not None and guard is not None and guard.has(value):
        return ValueKind.CIRCULAR

    if isinstance(value, datetime.date | datetime.time):
        return ValueKind.DATE
    if isinstance(value, BaseException):
        return ValueKind.ERROR
    if isinstance(value, re.Pattern):
        return ValueKind.PATTERN
    if container_kind is not None:
        return container_kind
    if isinstance(value, int | float | decimal.Decimal):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    return ValueKind.OTHER


def _number_text(value: int | float | decimal.Decimal) -> str:
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return float.__repr__(value)
    if isinstance(value, int):
        try:
            return int.__repr__(value)
        except ValueError:
            # Past sys.get_int_max_str_digits(); Decimal has no such cap.
            return str(decimal.Decimal(int(value)))
    return str(value)


def _error_text(value: BaseException) -> str:
    message = str(value)
    name = type(value).__name__
    return f"{name}: {message}" if message else name


_PATTERN_FLAG_LETTERS: Final = (
    (re.ASCII, "a"),
    (re.IGNORECASE, "i"),
    (re.LOCALE, "L"),
    (re.MULTILINE, "m"),
    (re.DOTALL, "s"),
    (re.VERBOSE, "x"),
)


def _pattern_text(value: re.Pattern[Any]) -> str:
    """Renders a compiled pattern as ``/source/flags``.

    Only flags set explicitly are listed; the implicit UNICODE flag of str
    patterns is left out.
    """
    pattern = value.pattern
    source = pattern if isinstance(pattern, str) else repr(pattern)
    flags = "".join(
        letter
        for flag, letter in _PATTERN_FLAG_LETTERS
        if value.flags & flag
    )
    return f"/{source}/{flags}"


def _function_name(value: Any) -> str:
    """Returns the callable's name, or "" for lambdas and nameless ones."""
    name = getattr(value, "__name__", None)
    if not isinstance(name, str) or name == "<lambda>":
        return ""
    return name


def _key_text(key: Any) -> str:
    if isinstance(key, str):
        return key
    if key is True:
        return "true"
    if key is False:
        return "false"
    if key is None:
        return "null"
    return str(key)


def _mapping_items(value: Any) -> list[tuple[str, Any]]:
    if isinstance(value, Mapping):
        return [(_key_text(key), item) for key, item in value.items()]
    return [
        (field.name, getattr(value, field.name))
        for field in dataclasses.fields(value)
    ]


def estimate_size(  # noqa: PLR0911
    value: Any, kind: ValueKind | None = None
) -> int:
    """
    Estimates the rendered size of a leaf value.

    Containers estimate to zero here; their brackets and keys are charged
    when they are expanded. Escaping is not accounted for.
    """
    if kind is None:
        kind = classify(value)

    if kind is ValueKind.NULL:
        return _NULL_SIZE
    if kind is ValueKind.BOOLEAN:
        return _TRUE_SIZE if value else _FALSE_SIZE
    if kind is ValueKind.STRING:
        return len(value) + _QUOTES_SIZE
    if kind is ValueKind.NUMBER:
        return len(_number_text(value))
    if kind is ValueKind.DATE:
        return _DATE_SIZE
    if kind is ValueKind.ERROR:
        return len(_error_text(value))
    if kind is ValueKind.PATTERN:
        return len(_pattern_text(value))
    if kind is ValueKind.FUNCTION:
        return _FUNCTION_OVERHEAD + len(_function_name(value))
    if kind is ValueKind.OTHER:
        return len(str(value)) + _QUOTES_SIZE
    return 0


def render_leaf(value: Any, kind: ValueKind) -> str:  # noqa: PLR0911
    """Renders a non-container value as an output token."""
    if kind is ValueKind.NULL:
        return "null"
    if kind is ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind is ValueKind.NUMBER:
        return _number_text(value)
    if kind is ValueKind.STRING:
        return quote(value)
    if kind is ValueKind.DATE:
        return quote(value.isoformat())
    if kind is ValueKind.ERROR:
        return quote(_error_text(value))
    if kind is ValueKind.PATTERN:
        return quote(_pattern_text(value))
    if kind is ValueKind.FUNCTION:
        name = _function_name(value) or ANONYMOUS_FUNCTION
        return quote(f"[function {name}]")
    return quote(str(value))


class SmartSerializer:
    """
    Iterative serializer for one value graph.

    Holds the work stack, the identity guard and the size budget for a
    single serialization, so work can be paused between steps and resumed
    without losing state. Frames are popped in reverse document order;
    rendered fragments are joined back to front when output is read.
    """

    def __init__(
        self, value: Any, config: SerializeConfig | None = None
    ) -> None:
        self.config = config or SerializeConfig()
        self.guard = IdentityGuard()
        self.budget = SizeBudget(self.config.max_size)
        self.stack: list[Frame] = [Frame(None, value, None, 0)]
        self.frames_processed = 0
        self._fragments: list[str] = []

    @property
    def state(self) -> DriverState:
        return DriverState.PENDING if self.stack else DriverState.DONE

    @property
    def output(self) -> str:
        """Text rendered so far, in document order."""
        return "".join(reversed(self._fragments))

    def step(self) -> None:
        """Pops and processes one frame."""
        frame = self.stack.pop()
        self.frames_processed += 1
        payload = frame.payload

        if isinstance(payload, Enclosure):
            self._render(frame, payload.value)
            self._charge_comma(frame)
            return

        kind = classify(payload, self.guard)
        if kind is ValueKind.CIRCULAR:
            self.budget.add(_CIRCULAR_REFERENCE_SIZE)
            if not self.budget.exceeded:
                self._render(frame, quote(CIRCULAR_REFERENCE))
        elif kind is ValueKind.SEQUENCE:
            self.guard.add(payload)
            self._expand_sequence(frame)
        elif kind is ValueKind.MAPPING:
            self.guard.add(payload)
            self._expand_mapping(frame)
        else:
            self._render(frame, render_leaf(payload, kind))
            self._charge_comma(frame)

    def run_batch(self, limit: int | None = None) -> bool:
        """
        Processes up to ``limit`` frames (default: the configured batch size).

        Returns:
            True once the stack is empty
        """
        if limit is None:
            limit = self.config.batch_size
        with ProfileContext("run_batch"):
            processed = 0
            while self.stack and processed < limit:
                self.step()
                processed += 1
        return not self.stack

    def run(self) -> str:
        """Processes every remaining frame and returns the output."""
        while self.stack:
            self.step()
        return self.output

    def _render(self, frame: Frame, token: str) -> None:
        prefix = "," if frame.index else ""
        if frame.key is not None:
            prefix += quote(frame.key) + ":"
        self._fragments.append(prefix + token)

    def _charge_comma(self, frame: Frame) -> None:
        if frame.index:
            self.budget.add(_COMMA_SIZE)

    def _can_expand(self, frame: Frame) -> bool:
        return (
            not self.budget.exceeded and frame.depth < self.config.max_depth
        )

    def _expand_sequence(self, frame: Frame) -> None:
        with ProfileContext("expand_sequence"):
            budget = self.budget
            budget.add(_ENCLOSURE_SIZE)
            if not self._can_expand(frame):
                self._render(frame, Enclosure.EMPTY_ARRAY.value)
                return

            push = self.stack.append
            child_depth = frame.depth + 1
            push(
                Frame(
                    frame.key, Enclosure.OPEN_ARRAY, frame.index, frame.depth
                )
            )
            for index, item in enumerate(frame.payload):
                budget.add(estimate_size(item))
                if budget.exceeded:
                    break
                push(Frame(None, item, index, child_depth))
            push(Frame(None, Enclosure.CLOSE_ARRAY, None, frame.depth))

    def _expand_mapping(self, frame: Frame) -> None:
        with ProfileContext("expand_mapping"):
            items = _mapping_items(frame.payload)
            # Empty mappings render nothing, not even their key
            if not items:
                return

            budget = self.budget
            budget.add(_ENCLOSURE_SIZE)
            if not self._can_expand(frame):
                self._render(frame, Enclosure.EMPTY_OBJECT.value)
                return

            push = self.stack.append
            child_depth = frame.depth + 1
            push(
                Frame(
                    frame.key, Enclosure.OPEN_OBJECT, frame.index, frame.depth
                )
            )
            for index, (key, item) in enumerate(items):
                budget.add(len(key) + _KEY_OVERHEAD)
                if not budget.exceeded:
                    budget.add(estimate_size(item))
                if budget.exceeded:
                    break
                push(Frame(key, item, index, child_depth))
            push(Frame(None, Enclosure.CLOSE_OBJECT, None, frame.depth))


def _schedule_batches(
    serializer: SmartSerializer,
    on_complete: CompletionHandler,
    loop: asyncio.AbstractEventLoop,
) -> None:
    """Runs the serializer one batch per event loop iteration."""
    slices = 0

    def run_slice() -> None:
        nonlocal slices
        slices += 1
        try:
            done = serializer.run_batch()
        except Exception:
            logger.exception(
                "Batched serialization failed after %d slices", slices
            )
            raise
        if not done:
            loop.call_soon(run_slice)
            return
        logger.debug(
            "Batched serialization finished: %d frames in %d slices",
            serializer.frames_processed,
            slices,
        )
        on_complete(serializer.output)

    loop.call_soon(run_slice)


def serialize(
    value: Any,
    max_depth: Limit = math.inf,
    max_size: Limit = math.inf,
    on_complete: CompletionHandler | None = None,
    *,
    loop: asyncio.AbstractEventLoop | None = None,
    **kwargs: Any,
) -> str | None:
    """
    Serializes any Python value to JSON-like text within depth and size limits.

    Containers at or below ``max_depth`` collapse to ``[]``/``{}``; once the
    estimated size passes ``max_size`` nothing further is expanded. Repeated
    containers render as ``"[circular reference]"``.

    With ``on_complete`` the work is split into batches scheduled on
    ``loop`` (default: the running event loop), the call returns None and
    the text is passed to ``on_complete`` when done. If a value's own string
    conversion raises inside a batch, the error is logged and handed to the
    loop's exception handler, and ``on_complete`` is never called.
    """
    config = SerializeConfig(max_depth=max_depth, max_size=max_size, **kwargs)
    serializer = SmartSerializer(value, config)

    if on_complete is None:
        return serializer.run()

    if loop is None:
        loop = asyncio.get_running_loop()
    _schedule_batches(serializer, on_complete, loop)
    return None


async def serialize_async(
    value: Any,
    max_depth: Limit = math.inf,
    max_size: Limit = math.inf,
    **kwargs: Any,
) -> str:
    """
    Serializes like ``serialize``, yielding to the event loop between batches.
    """
    config = SerializeConfig(max_depth=max_depth, max_size=max_size, **kwargs)
    serializer = SmartSerializer(value, config)
    while not serializer.run_batch():
        await asyncio.sleep(0)
    return serializer.output


def dump(
    value: Any,
    fp: IO[str],
    max_depth: Limit = math.inf,
    max_size: Limit = math.inf,
    **kwargs: Any,
) -> None:
    """
    Serializes a value to a file-like object.

    Only configuration options are accepted; there is no batched mode.
    """
    if not hasattr(fp, "write"):
        raise TypeError("fp must have a write() method")

    config = SerializeConfig(max_depth=max_depth, max_size=max_size, **kwargs)
    fp.write(SmartSerializer(value, config).run())


__all__ = [
    "ANONYMOUS_FUNCTION",
    "CIRCULAR_REFERENCE",
    "DEFAULT_BATCH_SIZE",
    "DriverState",
    "Enclosure",
    "Frame",
    "HotPathStats",
    "IdentityGuard",
    "SerializeConfig",
    "SizeBudget",
    "SmartSerializer",
    "ValueKind",
    "classify",
    "clear_hot_path_stats",
    "dump",
    "escape",
    "estimate_size",
    "get_hot_path_stats",
    "render_leaf",
    "serialize",
    "serialize_async",
]

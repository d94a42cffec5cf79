"""
Typed access to loosely typed maps.

Station state and event payloads are schema-less. Rules read the fields
they care about through read_field, which reports a missing field or a
field of the wrong type instead of raising.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class FieldProblem(Enum):
    MISSING = "missing"
    WRONG_TYPE = "wrong_type"


@dataclass(frozen=True)
class FieldResult:
    """Outcome of reading one field."""

    key: str
    value: Any = None
    problem: FieldProblem | None = None

    @property
    def ok(self) -> bool:
        return self.problem is None

    def describe(self) -> str:
        if self.problem is FieldProblem.MISSING:
            return f"{self.key} is missing"
        if self.problem is FieldProblem.WRONG_TYPE:
            return f"{self.key} has unexpected type {type(self.value).__name__}"
        return f"{self.key}={self.value!r}"


def read_field(data: Any, key: str, expected: type | tuple[type, ...]) -> FieldResult:
    """
    Read a field and check its type.

    bool is never accepted where a number is expected.
    """
    if not isinstance(data, Mapping) or key not in data:
        return FieldResult(key, problem=FieldProblem.MISSING)

    value = data[key]
    expected_types = expected if isinstance(expected, tuple) else (expected,)
    if isinstance(value, bool) and bool not in expected_types:
        return FieldResult(key, value, FieldProblem.WRONG_TYPE)
    if not isinstance(value, expected_types):
        return FieldResult(key, value, FieldProblem.WRONG_TYPE)
    return FieldResult(key, value)


def read_flag(data: Any, key: str) -> FieldResult:
    return read_field(data, key, bool)


def read_number(data: Any, key: str) -> FieldResult:
    return read_field(data, key, (int, float))


def read_id(data: Any, key: str) -> FieldResult:
    """Read an identifier, accepting strings and integers, normalized to str."""
    result = read_field(data, key, (str, int))
    if result.ok:
        return FieldResult(key, str(result.value))
    return result

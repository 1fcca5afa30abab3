"""Structural schema nodes.

A structural schema is a small closed set of frozen node types describing
the expected shape of a document. It is used for two things only:
validating a candidate document (with a readable explanation of what is
wrong) and synthesising default values (see ``tools.schema_paths``).
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Optional, Union


@dataclass(frozen=True)
class SchemaIssue:
    pointer: str
    message: str

    def __str__(self) -> str:
        return f"{self.pointer or '/'}: {self.message}"


def type_of_instance(x: Any) -> str:
    if x is None:
        return "null"
    if isinstance(x, bool):
        return "boolean"
    if isinstance(x, list):
        return "array"
    if isinstance(x, dict):
        return "object"
    if isinstance(x, int):
        return "integer"
    if isinstance(x, float):
        # A float with no fractional part is also an integer
        if not (math.isinf(x) or math.isnan(x)) and x == int(x):
            return "integer"
        return "number"
    if isinstance(x, str):
        return "string"
    return type(x).__name__


def deep_equal(a: Any, b: Any) -> bool:
    """JSON equality: ``1 == 1.0`` holds, ``True == 1`` does not."""
    if a is b:
        return True
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    if type(a) is not type(b):
        return False
    if isinstance(a, list):
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict):
        if set(a.keys()) != set(b.keys()):
            return False
        return all(deep_equal(a[k], b[k]) for k in a)
    return a == b


def explain(issues: list[SchemaIssue], limit: int = 5) -> str:
    """Join issues into one message, capped at *limit* entries."""
    msgs = " | ".join(str(i) for i in issues[:limit])
    if len(issues) > limit:
        msgs += " | ..."
    return msgs


class SchemaNode:
    """Base of every structural schema node."""

    def validate(self, value: Any, at_pointer: str = "") -> list[SchemaIssue]:
        raise NotImplementedError

    def _type_issue(self, expected: str, value: Any, at_pointer: str) -> list[SchemaIssue]:
        return [
            SchemaIssue(
                at_pointer,
                f"invalid type: expected {expected}, received {type_of_instance(value)}",
            )
        ]


def _child_pointer(at_pointer: str, token: Union[str, int]) -> str:
    return f"{at_pointer}/{str(token).replace('~', '~0').replace('/', '~1')}"


@dataclass(frozen=True)
class MappingSchema(SchemaNode):
    fields: dict[str, SchemaNode] = field(default_factory=dict)
    # Reject keys that are not declared in ``fields``.
    closed: bool = False

    def validate(self, value: Any, at_pointer: str = "") -> list[SchemaIssue]:
        if not isinstance(value, dict):
            return self._type_issue("object", value, at_pointer)
        issues: list[SchemaIssue] = []
        for name, sub in self.fields.items():
            if name not in value:
                if not isinstance(sub, OptionalSchema):
                    issues.append(
                        SchemaIssue(at_pointer, f"required field missing: {name}")
                    )
                continue
            issues.extend(sub.validate(value[name], _child_pointer(at_pointer, name)))
        if self.closed:
            for k in value:
                if k not in self.fields:
                    issues.append(
                        SchemaIssue(
                            _child_pointer(at_pointer, k),
                            f"property not allowed: {k}",
                        )
                    )
        return issues


@dataclass(frozen=True)
class SequenceSchema(SchemaNode):
    element: Optional[SchemaNode] = None

    def validate(self, value: Any, at_pointer: str = "") -> list[SchemaIssue]:
        if not isinstance(value, list):
            return self._type_issue("array", value, at_pointer)
        if self.element is None:
            return []
        issues: list[SchemaIssue] = []
        for i, item in enumerate(value):
            issues.extend(self.element.validate(item, _child_pointer(at_pointer, i)))
        return issues


@dataclass(frozen=True)
class StringSchema(SchemaNode):
    def validate(self, value: Any, at_pointer: str = "") -> list[SchemaIssue]:
        if not isinstance(value, str):
            return self._type_issue("string", value, at_pointer)
        return []


@dataclass(frozen=True)
class NumberSchema(SchemaNode):
    integer: bool = False

    def validate(self, value: Any, at_pointer: str = "") -> list[SchemaIssue]:
        inst_type = type_of_instance(value)
        if self.integer:
            if inst_type != "integer":
                return self._type_issue("integer", value, at_pointer)
        elif inst_type not in ("integer", "number"):
            return self._type_issue("number", value, at_pointer)
        return []


@dataclass(frozen=True)
class BooleanSchema(SchemaNode):
    def validate(self, value: Any, at_pointer: str = "") -> list[SchemaIssue]:
        if not isinstance(value, bool):
            return self._type_issue("boolean", value, at_pointer)
        return []


@dataclass(frozen=True)
class OptionalSchema(SchemaNode):
    """Field may be absent from its parent mapping."""

    inner: SchemaNode

    def validate(self, value: Any, at_pointer: str = "") -> list[SchemaIssue]:
        return self.inner.validate(value, at_pointer)


@dataclass(frozen=True)
class NullableSchema(SchemaNode):
    inner: SchemaNode

    def validate(self, value: Any, at_pointer: str = "") -> list[SchemaIssue]:
        if value is None:
            return []
        return self.inner.validate(value, at_pointer)


@dataclass(frozen=True)
class EnumSchema(SchemaNode):
    values: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))

    def validate(self, value: Any, at_pointer: str = "") -> list[SchemaIssue]:
        if any(deep_equal(v, value) for v in self.values):
            return []
        try:
            shown = json.dumps(value)
        except (TypeError, ValueError):
            shown = repr(value)
        return [SchemaIssue(at_pointer, f"value is not in enum: {shown}")]

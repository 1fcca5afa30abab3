from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from json_preview.errors import ErrorKind, OperationError, PatchError
from json_preview.schema.nodes import deep_equal, explain
from json_preview.settings import get_settings
from json_preview.tools.json_pointer import (
    NOT_FOUND,
    get_at,
    is_ancestor,
    parse_array_index,
    parse_json_pointer,
)

logger = logging.getLogger(__name__)

OPERATIONS = ("add", "remove", "replace", "move", "copy", "test")
_NEEDS_VALUE = ("add", "replace", "test")
_NEEDS_FROM = ("move", "copy")


class Operation(BaseModel):
    """Typed form of one patch operation; dumps to the plain dict shape."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    op: Literal["add", "remove", "replace", "move", "copy", "test"]
    path: str = Field(description="JSON Pointer of the target location.")
    value: Any = Field(default=None, description="Value for add, replace and test.")
    from_: Optional[str] = Field(
        default=None,
        alias="from",
        description="Source JSON Pointer for move and copy.",
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


PatchInput = Union[dict[str, Any], Operation, list[Union[dict[str, Any], Operation]]]


@dataclass(frozen=True)
class PatchResult:
    ok: bool
    document: Any = None
    error: Optional[PatchError] = None

    @property
    def message(self) -> str:
        return self.error.describe() if self.error else ""


def normalize_patch(patch_input: Any) -> list[Any]:
    """Turn a single operation or a sequence of operations into a list of dicts.

    Items that are not operations are kept as-is so shape validation can
    report them.
    """
    if isinstance(patch_input, (list, tuple)):
        items = list(patch_input)
    else:
        items = [patch_input]
    return [item.to_dict() if isinstance(item, Operation) else item for item in items]


def validate_patch_shape(patch_ops: list[Any]) -> list[PatchError]:
    errors: list[PatchError] = []

    def add_err(op_index: int, op: Any, message: str) -> None:
        errors.append(PatchError(ErrorKind.INVALID_PATCH_SHAPE, message, op_index, op))

    for i, op in enumerate(patch_ops):
        if not isinstance(op, dict):
            add_err(i, op, "invalid operation (not an object)")
            continue
        op_name = op.get("op")
        if op_name not in OPERATIONS:
            add_err(i, op, f"invalid operation (unknown op: {op_name!r})")
            continue
        path = op.get("path")
        if not isinstance(path, str) or not path:
            add_err(i, op, "invalid operation (missing path)")
            continue
        if not path.startswith("/"):
            add_err(i, op, f'invalid operation (path must start with "/"): {path}')
            continue
        if op_name in _NEEDS_VALUE and "value" not in op:
            add_err(i, op, f'operation "{op_name}" requires field "value"')
            continue
        if op_name in _NEEDS_FROM:
            src = op.get("from")
            if not isinstance(src, str):
                add_err(i, op, f'operation "{op_name}" requires field "from"')
                continue
            if src and not src.startswith("/"):
                add_err(i, op, f'invalid operation (from must start with "/"): {src}')
                continue
    return errors


def ensure_json_value(value: Any, where: str = "document") -> None:
    """Raise ``TypeError`` when *value* is not made of JSON types only."""
    stack = [value]
    while stack:
        cur = stack.pop()
        if cur is None or isinstance(cur, (bool, int, float, str)):
            continue
        if isinstance(cur, list):
            stack.extend(cur)
            continue
        if isinstance(cur, dict):
            for k, v in cur.items():
                if not isinstance(k, str):
                    raise TypeError(f"{where} has a non-string object key: {k!r}")
                stack.append(v)
            continue
        raise TypeError(f"{where} contains a non-JSON value of type {type(cur).__name__}")


def trace_json(value: Any) -> str:
    """Compact JSON rendering for debug logs, capped by settings."""
    limit = get_settings().TRACE_DOCUMENT_LIMIT
    text = json.dumps(value, ensure_ascii=False, default=repr)
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class PatchEngine:
    """All-or-nothing application of JSON Patch operations on a deep copy."""

    @staticmethod
    def _clone(obj: Any) -> Any:
        return copy.deepcopy(obj)

    @classmethod
    def _add(cls, current: Any, tokens: list[str], value: Any, op_path: str) -> Any:
        if not tokens:
            return value
        parent = get_at(current, tokens[:-1])
        key = tokens[-1]
        if parent is NOT_FOUND:
            raise OperationError(f"add failed: parent of {op_path} does not exist")
        if isinstance(parent, list):
            idx = len(parent) if key == "-" else parse_array_index(key)
            if idx is None or idx > len(parent):
                raise OperationError(f"add in array: invalid index: {key}")
            parent.insert(idx, value)
            return current
        if isinstance(parent, dict):
            parent[key] = value
            return current
        raise OperationError(f"add failed: parent of {op_path} is not an object or array")

    @classmethod
    def _replace(cls, current: Any, tokens: list[str], value: Any, op_path: str) -> Any:
        if not tokens:
            return value
        parent = get_at(current, tokens[:-1])
        key = tokens[-1]
        if isinstance(parent, list):
            idx = parse_array_index(key)
            if idx is None or idx >= len(parent):
                raise OperationError(f"replace failed: {op_path} does not exist")
            parent[idx] = value
            return current
        if isinstance(parent, dict) and key in parent:
            parent[key] = value
            return current
        raise OperationError(f"replace failed: {op_path} does not exist")

    @classmethod
    def _remove(cls, current: Any, tokens: list[str], op_path: str) -> tuple[Any, Any]:
        if not tokens:
            raise OperationError("remove failed: cannot remove the document root")
        parent = get_at(current, tokens[:-1])
        key = tokens[-1]
        if isinstance(parent, list):
            idx = parse_array_index(key)
            if idx is None or idx >= len(parent):
                raise OperationError(f"remove failed: {op_path} does not exist")
            return current, parent.pop(idx)
        if isinstance(parent, dict) and key in parent:
            return current, parent.pop(key)
        raise OperationError(f"remove failed: {op_path} does not exist")

    @classmethod
    def _apply_operation(cls, current: Any, op: dict[str, Any]) -> Any:
        op_name = op["op"]
        op_path = op["path"]
        try:
            tokens = parse_json_pointer(op_path)
        except ValueError as e:
            raise OperationError(str(e)) from e

        if op_name == "add":
            return cls._add(current, tokens, cls._clone(op["value"]), op_path)
        if op_name == "replace":
            return cls._replace(current, tokens, cls._clone(op["value"]), op_path)
        if op_name == "remove":
            current, _ = cls._remove(current, tokens, op_path)
            return current
        if op_name == "test":
            found = get_at(current, tokens)
            if found is NOT_FOUND:
                raise OperationError(f"test failed: {op_path} does not exist")
            if not deep_equal(found, op["value"]):
                raise OperationError(f"test failed: value differs at {op_path}")
            return current

        from_path = op["from"]
        try:
            from_tokens = parse_json_pointer(from_path)
        except ValueError as e:
            raise OperationError(str(e)) from e
        src = get_at(current, from_tokens)
        if src is NOT_FOUND:
            raise OperationError(f"{op_name} failed: from={from_path} does not exist")

        if op_name == "copy":
            return cls._add(current, tokens, cls._clone(src), op_path)

        # move
        if from_tokens == tokens:
            return current
        if is_ancestor(from_tokens, tokens):
            raise OperationError(
                f"move failed: cannot move {from_path} into its own child {op_path}"
            )
        current, moved = cls._remove(current, from_tokens, from_path)
        return cls._add(current, tokens, moved, op_path)

    @classmethod
    def apply(
        cls,
        document: Any,
        patch_ops: list[Any],
        schema: Any = None,
    ) -> PatchResult:
        ensure_json_value(document)
        shape_errors = validate_patch_shape(patch_ops)
        if shape_errors:
            return PatchResult(ok=False, error=shape_errors[0])
        for i, op in enumerate(patch_ops):
            if "value" in op:
                ensure_json_value(op["value"], f"operation {i} value")

        settings = get_settings()
        if settings.TRACE_DOCUMENTS:
            logger.debug("Applying %d operation(s) to %s", len(patch_ops), trace_json(document))

        current = cls._clone(document)
        for i, op in enumerate(patch_ops):
            try:
                current = cls._apply_operation(current, op)
            except OperationError as e:
                logger.debug("Operation %d (%s %s) failed: %s", i, op["op"], op["path"], e)
                return PatchResult(
                    ok=False,
                    error=PatchError(ErrorKind.OPERATION_FAILED, str(e), i, op),
                )

        if schema is not None:
            issues = schema.validate(current)
            if issues:
                msgs = explain(list(issues), settings.MAX_REPORTED_ISSUES)
                logger.debug("Patched document rejected by schema: %s", msgs)
                return PatchResult(
                    ok=False,
                    error=PatchError(
                        ErrorKind.SCHEMA_VALIDATION_FAILED,
                        f"Validation failed: {msgs}",
                    ),
                )

        if settings.TRACE_DOCUMENTS:
            logger.debug("Patched document: %s", trace_json(current))
        return PatchResult(ok=True, document=current)


def apply_patch(
    document: Any,
    patch: PatchInput,
    schema: Any = None,
) -> PatchResult:
    """
    Apply JSON Patch operations to a copy of the document.

    The input document is never mutated. The first failing operation, or a
    schema rejection of the fully patched copy, aborts the whole patch.

    Args:
        document: The current JSON document.
        patch: One operation or a list of operations (RFC 6902 shape).
        schema: Optional structural schema the result must satisfy.

    Returns:
        PatchResult with ok, the new document on success, the error otherwise.

    Raises:
        TypeError: if the document or an operation value is not JSON.
    """
    return PatchEngine.apply(document, normalize_patch(patch), schema)

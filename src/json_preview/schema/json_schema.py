"""Build structural schemas from JSON Schema dicts and pydantic models."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel

from json_preview.schema.nodes import (
    BooleanSchema,
    EnumSchema,
    MappingSchema,
    NullableSchema,
    NumberSchema,
    OptionalSchema,
    SchemaNode,
    SequenceSchema,
    StringSchema,
)


def _resolve_ref(ref: str, root_schema: Any) -> Any:
    """Resolve a local ``#/...`` reference against *root_schema*."""
    if not ref.startswith("#/"):
        raise ValueError(f"unsupported $ref (only local references): {ref}")
    resolved = root_schema
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if not isinstance(resolved, dict) or part not in resolved:
            raise ValueError(f"unresolvable $ref: {ref}")
        resolved = resolved[part]
    return resolved


def _normalize_type(type_val: Any) -> Optional[list[str]]:
    if not type_val:
        return None
    if isinstance(type_val, list):
        return list(type_val)
    return [type_val]


def _is_null_schema(schema: Any) -> bool:
    return isinstance(schema, dict) and _normalize_type(schema.get("type")) == ["null"]


def from_json_schema(
    schema: dict[str, Any],
    root_schema: Optional[dict[str, Any]] = None,
    _seen: frozenset = frozenset(),
) -> SchemaNode:
    """Convert a JSON Schema dict into structural schema nodes.

    Supports the subset the structural schema can express: object, array,
    string, number, integer and boolean types, ``enum``/``const``,
    ``required``, ``additionalProperties: false``, nullable types (either a
    ``["x", "null"]`` type list or an ``anyOf`` with a null branch) and
    local ``$ref``. Anything else raises ``ValueError``.
    """
    if root_schema is None:
        root_schema = schema
    if not isinstance(schema, dict):
        raise ValueError(f"unsupported schema node: {schema!r}")

    if "$ref" in schema:
        ref = schema["$ref"]
        if ref in _seen:
            raise ValueError(f"recursive $ref is not supported: {ref}")
        return from_json_schema(_resolve_ref(ref, root_schema), root_schema, _seen | {ref})

    if "enum" in schema:
        return EnumSchema(tuple(schema["enum"]))
    if "const" in schema:
        return EnumSchema((schema["const"],))

    for key in ("anyOf", "oneOf"):
        if key in schema:
            branches = schema[key]
            non_null = [b for b in branches if not _is_null_schema(b)]
            if len(non_null) == 1 and len(non_null) < len(branches):
                return NullableSchema(from_json_schema(non_null[0], root_schema, _seen))
            raise ValueError(f"unsupported {key}: only a single non-null branch is allowed")

    types = _normalize_type(schema.get("type"))
    if types is None:
        if "properties" in schema:
            types = ["object"]
        elif "items" in schema:
            types = ["array"]
        else:
            raise ValueError(f"unsupported schema node (no type): {schema!r}")

    nullable = "null" in types
    types = [t for t in types if t != "null"]
    if len(types) != 1:
        raise ValueError(f"unsupported type union: {schema.get('type')!r}")
    kind = types[0]

    node: SchemaNode
    if kind == "object":
        required = set(schema.get("required", []))
        fields: dict[str, SchemaNode] = {}
        for name, sub in schema.get("properties", {}).items():
            child = from_json_schema(sub, root_schema, _seen)
            fields[name] = child if name in required else OptionalSchema(child)
        node = MappingSchema(fields, closed=schema.get("additionalProperties") is False)
    elif kind == "array":
        items = schema.get("items")
        element = from_json_schema(items, root_schema, _seen) if items else None
        node = SequenceSchema(element)
    elif kind == "string":
        node = StringSchema()
    elif kind == "number":
        node = NumberSchema()
    elif kind == "integer":
        node = NumberSchema(integer=True)
    elif kind == "boolean":
        node = BooleanSchema()
    else:
        raise ValueError(f"unsupported type: {kind}")

    return NullableSchema(node) if nullable else node


def from_model(model_cls: type[BaseModel]) -> SchemaNode:
    """Structural schema for a pydantic model class."""
    return from_json_schema(model_cls.model_json_schema())

from __future__ import annotations

from typing import Any, Iterable, Optional

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


def get_schema_for_path(
    schema: Optional[SchemaNode], path_segments: Iterable[Any]
) -> Optional[SchemaNode]:
    """
    Find the sub-schema describing the value at *path_segments*.

    Array segments are not inspected: every element of a sequence shares
    the sequence's element schema. Optional and nullable wrappers are
    looked through while walking.

    Args:
        schema: Root structural schema (may be None).
        path_segments: Keys and indices from the root, e.g. ["items", "0", "id"].

    Returns:
        The sub-schema, or None when the path leaves the schema.
    """
    current = schema
    for segment in path_segments:
        while isinstance(current, (OptionalSchema, NullableSchema)):
            current = current.inner
        if current is None:
            return None
        if isinstance(current, MappingSchema):
            current = current.fields.get(str(segment))
        elif isinstance(current, SequenceSchema):
            current = current.element
        else:
            # Path goes deeper than the schema definition
            return None
    return current


def generate_default_from_schema(schema: Optional[SchemaNode]) -> Any:
    """Zero value conforming to *schema*, used to scaffold new entries."""
    if schema is None:
        return None
    if isinstance(schema, MappingSchema):
        return {
            name: generate_default_from_schema(sub)
            for name, sub in schema.fields.items()
        }
    if isinstance(schema, SequenceSchema):
        return []
    if isinstance(schema, StringSchema):
        return ""
    if isinstance(schema, NumberSchema):
        return 0
    if isinstance(schema, BooleanSchema):
        return False
    if isinstance(schema, (OptionalSchema, NullableSchema)):
        return generate_default_from_schema(schema.inner)
    if isinstance(schema, EnumSchema):
        return schema.values[0] if schema.values else None
    return None

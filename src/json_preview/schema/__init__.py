from json_preview.schema.nodes import (
    BooleanSchema,
    EnumSchema,
    MappingSchema,
    NullableSchema,
    NumberSchema,
    OptionalSchema,
    SchemaIssue,
    SchemaNode,
    SequenceSchema,
    StringSchema,
    explain,
)
from json_preview.schema.json_schema import from_json_schema, from_model

__all__ = [
    "BooleanSchema",
    "EnumSchema",
    "MappingSchema",
    "NullableSchema",
    "NumberSchema",
    "OptionalSchema",
    "SchemaIssue",
    "SchemaNode",
    "SequenceSchema",
    "StringSchema",
    "explain",
    "from_json_schema",
    "from_model",
]

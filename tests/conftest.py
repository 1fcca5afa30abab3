"""Shared fixtures for the test suite."""

from __future__ import annotations

import pytest

from json_preview.schema import (
    BooleanSchema,
    EnumSchema,
    MappingSchema,
    NullableSchema,
    NumberSchema,
    OptionalSchema,
    SequenceSchema,
    StringSchema,
)
from json_preview.settings import reset_settings_cache
from json_preview.store import DocumentStore, PreviewManager


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def simple_schema():
    """Mapping with required and optional leaves."""
    return MappingSchema(
        {
            "name": StringSchema(),
            "age": OptionalSchema(NumberSchema(integer=True)),
            "active": OptionalSchema(BooleanSchema()),
        }
    )


@pytest.fixture
def array_schema():
    """Mapping holding a sequence of objects."""
    return MappingSchema(
        {
            "items": SequenceSchema(
                MappingSchema(
                    {
                        "id": NumberSchema(integer=True),
                        "value": OptionalSchema(StringSchema()),
                        "status": EnumSchema(("draft", "published")),
                        "note": NullableSchema(StringSchema()),
                    }
                )
            )
        }
    )


@pytest.fixture
def nested_json_schema():
    """Deeply nested JSON Schema with $ref."""
    return {
        "type": "object",
        "definitions": {
            "Address": {
                "type": "object",
                "properties": {
                    "street": {"type": "string"},
                    "city": {"type": "string"},
                },
                "required": ["street", "city"],
            }
        },
        "properties": {
            "name": {"type": "string"},
            "address": {"$ref": "#/definitions/Address"},
        },
        "required": ["name"],
    }


@pytest.fixture
def empty_doc():
    """Empty JSON document."""
    return {}


@pytest.fixture
def populated_doc():
    """A pre-populated document for testing patches."""
    return {
        "metadata": {"title": "Test", "author": "Bot"},
        "sections": [
            {
                "section_name": "Overview",
                "fields": [
                    {"label": "Revenue", "value": 1000},
                    {"label": "Profit", "value": 200},
                ],
            }
        ],
    }


@pytest.fixture
def title_doc():
    return {"title": "T", "content": "C"}


@pytest.fixture
def store(title_doc):
    s = DocumentStore()
    s.set_document(title_doc)
    return s


@pytest.fixture
def manager(store):
    return PreviewManager(store)


@pytest.fixture
def recorder(manager):
    """Subscribes to every notification of ``manager`` and records it."""
    events: list = []
    manager.subscribe(events.append)
    return events

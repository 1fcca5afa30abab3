"""In-memory JSON document store with atomic patches and reversible previews."""

from json_preview.errors import ErrorKind, PatchError
from json_preview.store import (
    Changed,
    DocumentStore,
    PreviewAccepted,
    PreviewManager,
    PreviewRejected,
    PreviewStarted,
    PreviewStatus,
)
from json_preview.tools import (
    NOT_FOUND,
    Operation,
    PatchResult,
    apply_patch,
    generate_default_from_schema,
    get_schema_for_path,
    resolve,
)

__all__ = [
    "NOT_FOUND",
    "Changed",
    "DocumentStore",
    "ErrorKind",
    "Operation",
    "PatchError",
    "PatchResult",
    "PreviewAccepted",
    "PreviewManager",
    "PreviewRejected",
    "PreviewStarted",
    "PreviewStatus",
    "apply_patch",
    "generate_default_from_schema",
    "get_schema_for_path",
    "resolve",
]

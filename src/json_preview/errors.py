"""Error kinds reported by the patch engine, the store and the preview manager."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    NO_DOCUMENT_LOADED = "no_document_loaded"
    INVALID_PATCH_SHAPE = "invalid_patch_shape"
    OPERATION_FAILED = "operation_failed"
    SCHEMA_VALIDATION_FAILED = "schema_validation_failed"
    PREVIEW_IN_PROGRESS = "preview_in_progress"


class OperationError(ValueError):
    """Raised inside the patch engine when a single operation cannot be applied.

    Never crosses the engine boundary: ``apply_patch`` turns it into a
    ``PatchError`` on a failed ``PatchResult``.
    """


@dataclass(frozen=True)
class PatchError:
    kind: ErrorKind
    message: str
    op_index: Optional[int] = None
    op: Any = None

    def describe(self) -> str:
        """Human-readable one-liner, suitable for an error log."""
        if self.op_index is None:
            return self.message
        try:
            op_text = json.dumps(self.op, sort_keys=True, default=repr)
        except (TypeError, ValueError):
            op_text = repr(self.op)
        return f"operation {self.op_index} {op_text}: {self.message}"

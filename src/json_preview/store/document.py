from __future__ import annotations

import copy
import itertools
import logging
from typing import Any, Optional

from jsonpath_ng import parse as parse_json_path
from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError
from jsonpath_ng.jsonpath import Fields, Index

from json_preview.errors import ErrorKind, PatchError
from json_preview.schema.nodes import explain
from json_preview.settings import get_settings
from json_preview.tools.apply_patches import PatchInput, apply_patch, ensure_json_value
from json_preview.tools.json_pointer import NOT_FOUND, join_json_pointer, resolve

logger = logging.getLogger(__name__)

_PREVIEW_TOKENS = itertools.count(1)


def _match_tokens(match: Any) -> list[str]:
    """Pointer tokens of a jsonpath match, rebuilt from its context chain."""
    tokens: list[str] = []
    while match is not None:
        path = match.path
        if isinstance(path, Fields) and len(path.fields) == 1:
            tokens.append(path.fields[0])
        elif isinstance(path, Index):
            indices = getattr(path, "indices", None) or (path.index,)
            idx = indices[0]
            if idx < 0 and match.context is not None:
                idx += len(match.context.value)
            tokens.append(str(idx))
        match = match.context
    tokens.reverse()
    return tokens


class DocumentStore:
    """Owns one committed JSON document and its optional structural schema.

    ``apply_patch`` is the only way to change the committed document. Failures
    never raise: they are appended to ``errors`` as readable messages and the
    document is left untouched. Every read hands out a deep copy.

    While a preview is open the visible document (``document``,
    ``get_node_by_pointer``) is the speculative one installed through
    ``begin_preview``; ``committed_document`` still returns the committed value.
    At most one preview is open per store.
    """

    def __init__(self, schema: Any = None) -> None:
        self._committed: Any = None
        self._visible: Any = None
        self._schema = schema
        self._errors: list[str] = []
        self._last_error: Optional[PatchError] = None
        self._preview_token: Optional[int] = None

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def set_document(self, document: Any) -> None:
        """Load *document* (a copy is stored); ``None`` unloads it.

        An open preview is discarded.
        """
        if document is not None:
            ensure_json_value(document)
        if self._preview_token is not None:
            logger.warning("DocumentStore: open preview discarded by set_document")
        self._committed = copy.deepcopy(document)
        self._visible = self._committed
        self._preview_token = None
        self._errors = []
        self._last_error = None
        logger.info("Document %s", "unloaded" if document is None else "loaded")

    def set_document_schema(self, schema: Any) -> None:
        self._schema = schema

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def has_document(self) -> bool:
        return self._committed is not None

    @property
    def document(self) -> Any:
        return copy.deepcopy(self._visible)

    @property
    def committed_document(self) -> Any:
        return copy.deepcopy(self._committed)

    @property
    def schema(self) -> Any:
        return self._schema

    @property
    def errors(self) -> list[str]:
        return list(self._errors)

    @property
    def last_error(self) -> Optional[PatchError]:
        return self._last_error

    @property
    def is_previewing(self) -> bool:
        return self._preview_token is not None

    @property
    def preview_token(self) -> Optional[int]:
        """Identifies the open preview; None when there is none."""
        return self._preview_token

    def get_node_by_pointer(self, pointer: str) -> Any:
        if not self.has_document:
            return None
        value = resolve(self._visible, pointer)
        if value is NOT_FOUND:
            return None
        return copy.deepcopy(value)

    def get_nodes_by_json_path(self, expression: str) -> list[tuple[str, Any]]:
        """Query the visible document with a JSONPath expression.

        Returns ``(pointer, value)`` pairs, values deep-copied. An empty list
        is returned when no document is loaded or the expression is invalid.
        """
        if not self.has_document:
            return []
        try:
            compiled = parse_json_path(expression)
        except (JsonPathLexerError, JsonPathParserError) as e:
            logger.warning("DocumentStore: invalid JSONPath %r: %s", expression, e)
            return []
        return [
            (join_json_pointer(_match_tokens(m)), copy.deepcopy(m.value))
            for m in compiled.find(self._visible)
        ]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def record_error(self, error: PatchError, message: str) -> bool:
        """Append *message* to the error log; always returns False."""
        self._last_error = error
        self._errors.append(message)
        logger.warning("DocumentStore: %s", message)
        return False

    def apply_patch(self, patch: PatchInput) -> bool:
        """Apply one operation or a list of them; False means check ``errors``."""
        if not self.has_document:
            return self.record_error(
                PatchError(ErrorKind.NO_DOCUMENT_LOADED, "No document loaded"),
                "No document loaded",
            )
        if self.is_previewing:
            return self.record_error(
                PatchError(ErrorKind.PREVIEW_IN_PROGRESS, "Update ignored (in preview mode)"),
                "Update ignored (in preview mode)",
            )

        result = apply_patch(self._committed, patch, self._schema)
        if not result.ok:
            if result.error.kind is ErrorKind.SCHEMA_VALIDATION_FAILED:
                return self.record_error(result.error, result.error.describe())
            return self.record_error(
                result.error, f"Patch application failed: {result.error.describe()}"
            )

        self._commit(result.document)
        self._errors = []
        self._last_error = None
        logger.info("DocumentStore: patch applied")
        return True

    def validate_document(self) -> bool:
        """Check the committed document against the schema; no schema passes."""
        if not self.has_document:
            return self.record_error(
                PatchError(ErrorKind.NO_DOCUMENT_LOADED, "No document loaded"),
                "No document loaded",
            )
        if self._schema is None:
            return True
        issues = list(self._schema.validate(self._committed))
        if not issues:
            return True
        msg = f"Validation failed: {explain(issues, get_settings().MAX_REPORTED_ISSUES)}"
        return self.record_error(PatchError(ErrorKind.SCHEMA_VALIDATION_FAILED, msg), msg)

    def clear_errors(self) -> None:
        self._errors = []
        self._last_error = None

    # ------------------------------------------------------------------
    # Preview seam
    # ------------------------------------------------------------------

    def begin_preview(self, document: Any) -> int:
        """Show *document* instead of the committed one; returns the preview token."""
        if self._preview_token is not None:
            raise RuntimeError("DocumentStore: a preview is already open")
        self._preview_token = next(_PREVIEW_TOKENS)
        self._visible = document
        return self._preview_token

    def end_preview(self, token: int, restore: bool = True) -> bool:
        """Close preview *token*.

        With *restore* the committed document is shown again; otherwise the
        speculative one stays visible. A stale token changes nothing.
        """
        if token != self._preview_token:
            return False
        if restore:
            self._visible = self._committed
        self._preview_token = None
        return True

    def commit_preview(self, token: int, document: Any) -> bool:
        """Close preview *token* by committing *document*."""
        if token != self._preview_token:
            return False
        self._commit(document)
        return True

    def _commit(self, document: Any) -> None:
        self._committed = document
        self._visible = document
        self._preview_token = None

"""
Preview transactions on top of a DocumentStore.

A preview stages a patch against a snapshot of the committed document and
shows the speculative result as the store's visible document. The
transaction is then either accepted (the patch is committed) or rejected
(the snapshot is shown again, exactly as it was).

Nothing here raises for a bad or stale patch: failures are recorded in
``diagnostics`` and logged, and the manager stays in, or returns to, IDLE.
"""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Iterator, Optional

from json_preview.errors import ErrorKind, PatchError
from json_preview.settings import get_settings
from json_preview.store.document import DocumentStore
from json_preview.store.events import (
    Changed,
    EventEmitter,
    PreviewAccepted,
    PreviewRejected,
    PreviewStarted,
)
from json_preview.tools.apply_patches import (
    PatchInput,
    apply_patch,
    normalize_patch,
    validate_patch_shape,
)

logger = logging.getLogger(__name__)


class PreviewStatus(str, Enum):
    IDLE = "idle"
    PREVIEWING = "previewing"


def compute_highlighted_paths(patch_ops: list[Any]) -> tuple[str, ...]:
    """Distinct operation paths, in order of first occurrence."""
    seen: dict[str, None] = {}
    for op in patch_ops:
        path = op.get("path") if isinstance(op, dict) else None
        if isinstance(path, str) and path:
            seen.setdefault(path, None)
    return tuple(seen)


class PreviewManager:
    """IDLE/PREVIEWING state machine for one DocumentStore."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        readonly: bool = False,
        rollback_on_accept_failure: Optional[bool] = None,
    ) -> None:
        if rollback_on_accept_failure is None:
            rollback_on_accept_failure = get_settings().ROLLBACK_ON_ACCEPT_FAILURE
        self._store = store
        self.readonly = readonly
        self.rollback_on_accept_failure = rollback_on_accept_failure
        self._events = EventEmitter()
        self._status = PreviewStatus.IDLE
        self._token: Optional[int] = None
        self._snapshot: Any = None
        self._active_patch: Any = None
        self._active_ops: list[dict[str, Any]] = []
        self._highlighted: tuple[str, ...] = ()
        self._diagnostics: list[str] = []
        self._busy = False

    # ------------------------------------------------------------------
    # Observables
    # ------------------------------------------------------------------

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def status(self) -> PreviewStatus:
        self._sync_with_store()
        return self._status

    @property
    def is_previewing(self) -> bool:
        self._sync_with_store()
        return self._status is PreviewStatus.PREVIEWING

    @property
    def highlighted_paths(self) -> tuple[str, ...]:
        self._sync_with_store()
        return self._highlighted

    @property
    def active_patch(self) -> Any:
        self._sync_with_store()
        return copy.deepcopy(self._active_patch)

    @property
    def original_snapshot(self) -> Any:
        self._sync_with_store()
        return copy.deepcopy(self._snapshot)

    @property
    def diagnostics(self) -> list[str]:
        return list(self._diagnostics)

    def clear_diagnostics(self) -> None:
        self._diagnostics = []

    def is_highlighted(self, pointer: str) -> bool:
        return pointer in self.highlighted_paths

    def subscribe(
        self, callback: Callable[[Any], None], event_type: Optional[type] = None
    ) -> Callable[[], None]:
        """Register an observer for PreviewStarted/Accepted/Rejected and Changed."""
        return self._events.subscribe(callback, event_type)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _transition(self, name: str) -> Iterator[None]:
        # Observers run inside the transition; calling back in is refused.
        if self._busy:
            raise RuntimeError(f"PreviewManager.{name} called re-entrantly from an observer")
        self._sync_with_store()
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    def _sync_with_store(self) -> None:
        # The store drops the preview token on set_document. Inside a
        # transition the manager's own state is authoritative.
        if self._busy or self._status is not PreviewStatus.PREVIEWING:
            return
        if self._store.preview_token != self._token:
            logger.warning("Preview discarded: the document was replaced while previewing")
            self._clear()

    def _diagnose(self, message: str) -> None:
        self._diagnostics.append(message)
        logger.warning("PreviewManager: %s", message)

    def _clear(self) -> None:
        self._status = PreviewStatus.IDLE
        self._token = None
        self._snapshot = None
        self._active_patch = None
        self._active_ops = []
        self._highlighted = ()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def preview_changes(self, patch_input: PatchInput) -> bool:
        """Stage *patch_input* (one operation or a list) as a preview.

        Returns True when the manager entered PREVIEWING.
        """
        with self._transition("preview_changes"):
            if self.is_previewing:
                self._diagnose("Preview already in progress; accept or reject it first")
                return False
            if self._store.is_previewing:
                self._diagnose("Another preview is already open on this document store")
                return False

            patch_ops = normalize_patch(patch_input)
            shape_errors = validate_patch_shape(patch_ops)
            if not patch_ops or shape_errors:
                reasons = "; ".join(e.describe() for e in shape_errors) or "empty patch"
                self._diagnose(f"Invalid patch format provided to preview_changes: {reasons}")
                return False

            if not self._store.has_document:
                self._diagnose("No document loaded")
                return False

            snapshot = self._store.committed_document
            try:
                result = apply_patch(snapshot, patch_ops, self._store.schema)
            except TypeError as e:
                self._diagnose(f"Patch validation failed: {e}")
                return False
            if not result.ok:
                self._diagnose(f"Patch validation failed: {result.message}")
                return False

            self._snapshot = snapshot
            self._active_patch = copy.deepcopy(patch_input)
            self._active_ops = patch_ops
            self._highlighted = compute_highlighted_paths(patch_ops)
            self._token = self._store.begin_preview(result.document)
            self._status = PreviewStatus.PREVIEWING
            logger.info("Preview started for %s", ", ".join(self._highlighted))

            self._events.emit(
                PreviewStarted(
                    patch=copy.deepcopy(self._active_patch),
                    highlighted_paths=self._highlighted,
                )
            )
            return True

    def accept_changes(self) -> bool:
        """Commit the previewed patch. No-op (returns False) when IDLE."""
        with self._transition("accept_changes"):
            if not self.is_previewing:
                return False

            # Re-run against the snapshot so a schema changed since the
            # preview is enforced at commit time.
            result = apply_patch(self._snapshot, self._active_ops, self._store.schema)
            if not result.ok:
                message = f"Accept failed: {result.message}"
                self._diagnose(message)
                self._store.record_error(result.error, message)
                self._store.end_preview(self._token, restore=self.rollback_on_accept_failure)
                self._clear()
                return False

            self._store.commit_preview(self._token, result.document)
            self._store.clear_errors()
            logger.info("Preview accepted")

            self._events.emit(PreviewAccepted(patch=copy.deepcopy(self._active_patch)))
            self._events.emit(Changed(document=self._store.document))
            self._clear()
            return True

    def reject_changes(self) -> bool:
        """Restore the pre-preview document. No-op (returns False) when IDLE."""
        with self._transition("reject_changes"):
            if not self.is_previewing:
                return False

            self._store.end_preview(self._token, restore=True)
            self._clear()
            logger.info("Preview rejected")
            self._events.emit(PreviewRejected())
            return True

    def edit(self, patch_input: PatchInput) -> bool:
        """Regular, non-preview edit; ignored while a preview is open."""
        with self._transition("edit"):
            if self.is_previewing:
                self._diagnose("Update ignored (in preview mode)")
                return False
            if self.readonly:
                self._diagnose("Update ignored (read-only)")
                return False
            try:
                ok = self._store.apply_patch(patch_input)
            except TypeError as e:
                self._store.record_error(
                    PatchError(ErrorKind.INVALID_PATCH_SHAPE, str(e)),
                    f"Patch application failed: {e}",
                )
                return False
            if ok:
                self._events.emit(Changed(document=self._store.document))
            return ok

from json_preview.store.document import DocumentStore
from json_preview.store.events import (
    Changed,
    EventEmitter,
    PreviewAccepted,
    PreviewRejected,
    PreviewStarted,
)
from json_preview.store.preview import PreviewManager, PreviewStatus, compute_highlighted_paths

__all__ = [
    "Changed",
    "DocumentStore",
    "EventEmitter",
    "PreviewAccepted",
    "PreviewManager",
    "PreviewRejected",
    "PreviewStarted",
    "PreviewStatus",
    "compute_highlighted_paths",
]

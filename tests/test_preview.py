"""Tests for store/preview.py — preview / accept / reject transactions."""

from __future__ import annotations

import logging

import pytest

from json_preview.schema import MappingSchema, NumberSchema, StringSchema
from json_preview.store import (
    Changed,
    DocumentStore,
    PreviewAccepted,
    PreviewManager,
    PreviewRejected,
    PreviewStarted,
    PreviewStatus,
    compute_highlighted_paths,
)
from json_preview.tools import Operation, apply_patch


@pytest.fixture
def rich_doc():
    return {
        "title": "Original Title",
        "content": "Original content",
        "nested": {"field": "Nested value"},
        "items": ["item1", "item2"],
    }


@pytest.fixture
def rich_manager(rich_doc):
    s = DocumentStore()
    s.set_document(rich_doc)
    return PreviewManager(s)


# ======================================================================
# Entering preview
# ======================================================================
class TestPreviewChanges:

    def test_title_scenario(self, manager, recorder):
        patch = [{"op": "replace", "path": "/title", "value": "T2"}]
        assert manager.preview_changes(patch) is True
        assert manager.is_previewing is True
        assert manager.status is PreviewStatus.PREVIEWING
        assert manager.store.document == {"title": "T2", "content": "C"}
        assert manager.highlighted_paths == ("/title",)
        assert recorder == [PreviewStarted(patch=patch, highlighted_paths=("/title",))]

    def test_committed_document_untouched_during_preview(self, manager):
        manager.preview_changes([{"op": "replace", "path": "/title", "value": "T2"}])
        assert manager.store.committed_document == {"title": "T", "content": "C"}
        assert manager.original_snapshot == {"title": "T", "content": "C"}

    def test_single_operation_kept_as_given(self, manager, recorder):
        op = {"op": "replace", "path": "/title", "value": "Single Patch"}
        manager.preview_changes(op)
        assert recorder[0].patch == op
        assert manager.active_patch == op
        assert recorder[0].highlighted_paths == ("/title",)

    def test_operation_models(self, manager):
        assert manager.preview_changes(Operation(op="replace", path="/title", value="M")) is True
        assert manager.store.get_node_by_pointer("/title") == "M"

    def test_nested_and_array_changes(self, rich_manager):
        rich_manager.preview_changes([
            {"op": "replace", "path": "/nested/field", "value": "New nested value"},
            {"op": "replace", "path": "/items/0", "value": "modified item1"},
            {"op": "add", "path": "/items/-", "value": "new item"},
        ])
        store = rich_manager.store
        assert store.get_node_by_pointer("/nested/field") == "New nested value"
        assert store.get_node_by_pointer("/items") == ["modified item1", "item2", "new item"]
        assert rich_manager.original_snapshot["items"] == ["item1", "item2"]
        assert rich_manager.original_snapshot["nested"]["field"] == "Nested value"

    def test_nonexistent_path_fails(self, manager, recorder):
        ok = manager.preview_changes([{"op": "replace", "path": "/nonexistent/path", "value": "x"}])
        assert ok is False
        assert manager.is_previewing is False
        assert manager.store.document == {"title": "T", "content": "C"}
        assert manager.diagnostics[-1].startswith("Patch validation failed:")
        assert recorder == []

    def test_missing_value_is_rejected_at_shape(self, manager, recorder, caplog):
        with caplog.at_level(logging.WARNING, logger="json_preview.store.preview"):
            ok = manager.preview_changes({"op": "replace", "path": "/title"})
        assert ok is False
        assert manager.status is PreviewStatus.IDLE
        assert "Invalid patch format provided to preview_changes" in caplog.text
        assert 'requires field "value"' in manager.diagnostics[-1]
        assert recorder == []

    @pytest.mark.parametrize(
        "bad",
        [
            [{"op": "invalid", "path": "/title"}],
            [{"op": "replace", "value": "no path"}],
            [],
            "not a patch",
            None,
        ],
    )
    def test_malformed_inputs_stay_idle(self, manager, bad):
        assert manager.preview_changes(bad) is False
        assert manager.is_previewing is False
        assert manager.highlighted_paths == ()

    def test_failed_test_operation(self, manager):
        assert manager.preview_changes([{"op": "test", "path": "/title", "value": "nope"}]) is False
        assert manager.is_previewing is False

    def test_schema_rejection(self, manager):
        manager.store.set_document_schema(MappingSchema({"title": StringSchema()}))
        assert manager.preview_changes([{"op": "replace", "path": "/title", "value": 3}]) is False
        assert "Validation failed" in manager.diagnostics[-1]

    def test_no_document(self):
        m = PreviewManager(DocumentStore())
        assert m.preview_changes([{"op": "add", "path": "/a", "value": 1}]) is False
        assert m.diagnostics == ["No document loaded"]

    def test_non_json_value_does_not_escape(self, manager):
        assert manager.preview_changes([{"op": "add", "path": "/a", "value": object()}]) is False
        assert manager.is_previewing is False

    def test_second_preview_refused_while_open(self, manager, recorder):
        manager.preview_changes([{"op": "replace", "path": "/title", "value": "A"}])
        assert manager.preview_changes([{"op": "replace", "path": "/content", "value": "B"}]) is False
        assert manager.highlighted_paths == ("/title",)
        assert manager.store.document == {"title": "A", "content": "C"}
        assert len(recorder) == 1

    def test_highlighted_paths_recomputed_per_preview(self, manager):
        manager.preview_changes([{"op": "replace", "path": "/title", "value": "A"}])
        manager.reject_changes()
        manager.preview_changes([{"op": "replace", "path": "/content", "value": "B"}])
        assert manager.highlighted_paths == ("/content",)


class TestHighlightedPaths:

    def test_first_occurrence_order(self):
        patch = [
            {"op": "replace", "path": "/a", "value": 1},
            {"op": "replace", "path": "/b", "value": 2},
            {"op": "replace", "path": "/a", "value": 3},
        ]
        assert compute_highlighted_paths(patch) == ("/a", "/b")

    def test_operations_without_path_skipped(self):
        assert compute_highlighted_paths([{"op": "remove"}, "junk", {"op": "add", "path": "/x"}]) == ("/x",)

    def test_is_highlighted(self, rich_manager):
        rich_manager.preview_changes([
            {"op": "replace", "path": "/title", "value": "x"},
            {"op": "replace", "path": "/nested/field", "value": "y"},
        ])
        assert rich_manager.is_highlighted("/nested/field") is True
        assert rich_manager.is_highlighted("/content") is False
        rich_manager.accept_changes()
        assert rich_manager.is_highlighted("/title") is False


# ======================================================================
# Accept
# ======================================================================
class TestAcceptChanges:

    def test_accept_scenario(self, manager, recorder):
        patch = [{"op": "replace", "path": "/title", "value": "T2"}]
        manager.preview_changes(patch)
        assert manager.accept_changes() is True
        assert manager.store.committed_document == {"title": "T2", "content": "C"}
        assert recorder[1:] == [
            PreviewAccepted(patch=patch),
            Changed(document={"title": "T2", "content": "C"}),
        ]
        assert manager.is_previewing is False
        assert manager.highlighted_paths == ()
        assert manager.active_patch is None

    def test_accept_agrees_with_engine(self, rich_manager, rich_doc):
        patch = [
            {"op": "move", "from": "/items/0", "path": "/items/-"},
            {"op": "copy", "from": "/nested", "path": "/nested2"},
            {"op": "remove", "path": "/content"},
        ]
        rich_manager.preview_changes(patch)
        rich_manager.accept_changes()
        assert rich_manager.store.committed_document == apply_patch(rich_doc, patch).document

    def test_state_visible_to_observers_during_accept(self, manager):
        seen = []
        manager.subscribe(lambda e: seen.append(manager.is_previewing), PreviewAccepted)
        manager.preview_changes([{"op": "replace", "path": "/title", "value": "T2"}])
        manager.accept_changes()
        assert seen == [True]

    def test_accept_when_idle_is_silent(self, manager, recorder):
        assert manager.accept_changes() is False
        assert recorder == []
        assert manager.store.document == {"title": "T", "content": "C"}

    def test_schema_regression_leaves_speculative_visible(self, manager, recorder):
        manager.preview_changes([{"op": "replace", "path": "/title", "value": "T2"}])
        manager.store.set_document_schema(MappingSchema({"title": NumberSchema()}))
        assert manager.accept_changes() is False
        assert manager.is_previewing is False
        assert manager.store.document == {"title": "T2", "content": "C"}
        assert manager.store.committed_document == {"title": "T", "content": "C"}
        assert manager.diagnostics[-1].startswith("Accept failed: Validation failed")
        assert manager.store.errors[-1].startswith("Accept failed")
        assert [type(e) for e in recorder] == [PreviewStarted]

    def test_schema_regression_with_rollback(self, store):
        m = PreviewManager(store, rollback_on_accept_failure=True)
        m.preview_changes([{"op": "replace", "path": "/title", "value": "T2"}])
        store.set_document_schema(MappingSchema({"title": NumberSchema()}))
        assert m.accept_changes() is False
        assert store.document == {"title": "T", "content": "C"}

    def test_rollback_default_from_settings(self, store, monkeypatch):
        monkeypatch.setenv("JSON_PREVIEW_ROLLBACK_ON_ACCEPT_FAILURE", "1")
        assert PreviewManager(store).rollback_on_accept_failure is True

    def test_edits_allowed_after_accept(self, manager):
        manager.preview_changes([{"op": "replace", "path": "/title", "value": "T2"}])
        manager.accept_changes()
        assert manager.edit({"op": "replace", "path": "/content", "value": "C2"}) is True
        assert manager.store.document == {"title": "T2", "content": "C2"}


# ======================================================================
# Reject
# ======================================================================
class TestRejectChanges:

    def test_reject_scenario(self, manager, recorder):
        manager.preview_changes([{"op": "replace", "path": "/title", "value": "T2"}])
        assert manager.reject_changes() is True
        assert manager.store.document == {"title": "T", "content": "C"}
        assert recorder[1:] == [PreviewRejected()]
        assert not any(isinstance(e, Changed) for e in recorder)
        assert manager.highlighted_paths == ()

    def test_round_trip_restores_everything(self, rich_manager, rich_doc):
        rich_manager.preview_changes([
            {"op": "replace", "path": "/title", "value": "Changed Title"},
            {"op": "replace", "path": "/nested/field", "value": "Changed nested"},
            {"op": "replace", "path": "/items/1", "value": "changed item2"},
            {"op": "remove", "path": "/content"},
        ])
        rich_manager.reject_changes()
        assert rich_manager.store.document == rich_doc

    def test_reject_when_idle_is_silent(self, manager, recorder):
        assert manager.reject_changes() is False
        assert recorder == []


# ======================================================================
# Regular edits
# ======================================================================
class TestEdits:

    def test_edit_when_idle_commits_and_notifies(self, manager, recorder):
        assert manager.edit({"op": "replace", "path": "/content", "value": "C2"}) is True
        assert recorder == [Changed(document={"title": "T", "content": "C2"})]

    def test_failed_edit_emits_nothing(self, manager, recorder):
        assert manager.edit({"op": "remove", "path": "/nope"}) is False
        assert recorder == []
        assert manager.store.errors

    def test_edit_ignored_while_previewing(self, manager, caplog):
        manager.preview_changes([{"op": "replace", "path": "/title", "value": "Preview Title"}])
        with caplog.at_level(logging.WARNING, logger="json_preview.store.preview"):
            ok = manager.edit({"op": "replace", "path": "/content", "value": "Should be ignored"})
        assert ok is False
        assert "Update ignored (in preview mode)" in caplog.text
        assert manager.store.get_node_by_pointer("/content") == "C"
        assert manager.store.committed_document["content"] == "C"

    def test_direct_store_patch_ignored_while_previewing(self, manager):
        manager.preview_changes([{"op": "replace", "path": "/title", "value": "P"}])
        assert manager.store.apply_patch({"op": "replace", "path": "/content", "value": "X"}) is False
        assert manager.store.errors == ["Update ignored (in preview mode)"]
        manager.reject_changes()
        assert manager.store.document == {"title": "T", "content": "C"}

    def test_readonly_ignores_edits_but_allows_preview(self, store):
        m = PreviewManager(store, readonly=True)
        assert m.edit({"op": "replace", "path": "/title", "value": "x"}) is False
        assert m.diagnostics == ["Update ignored (read-only)"]
        assert m.preview_changes({"op": "replace", "path": "/title", "value": "x"}) is True

    def test_non_json_edit_does_not_escape(self, manager):
        assert manager.edit({"op": "add", "path": "/a", "value": {1}}) is False
        assert manager.store.errors


# ======================================================================
# Interaction with the store and observers
# ======================================================================
class TestLifecycle:

    def test_set_document_discards_open_preview(self, manager, recorder):
        manager.preview_changes([{"op": "replace", "path": "/title", "value": "P"}])
        manager.store.set_document({"fresh": True})
        assert manager.reject_changes() is False
        assert manager.is_previewing is False
        assert manager.store.document == {"fresh": True}

    def test_set_document_is_reflected_before_next_call(self, manager):
        manager.preview_changes([{"op": "replace", "path": "/title", "value": "P"}])
        manager.store.set_document({"fresh": True})
        assert manager.is_previewing is False
        assert manager.status is PreviewStatus.IDLE
        assert manager.highlighted_paths == ()
        assert manager.is_highlighted("/title") is False
        assert manager.active_patch is None
        assert manager.original_snapshot is None
        assert manager.store.document == {"fresh": True}

    def test_new_preview_after_set_document(self, manager):
        manager.preview_changes([{"op": "replace", "path": "/title", "value": "P"}])
        manager.store.set_document({"title": "N"})
        assert manager.preview_changes([{"op": "replace", "path": "/title", "value": "Q"}]) is True
        assert manager.accept_changes() is True
        assert manager.store.committed_document == {"title": "Q"}

    def test_one_preview_per_store(self, store):
        first, second = PreviewManager(store), PreviewManager(store)
        store.set_document({"a": 1, "b": 1})
        assert first.preview_changes({"op": "replace", "path": "/a", "value": 2}) is True
        assert second.preview_changes({"op": "replace", "path": "/b", "value": 2}) is False
        assert second.diagnostics == ["Another preview is already open on this document store"]
        assert second.is_previewing is False
        assert store.document == {"a": 2, "b": 1}
        assert first.accept_changes() is True
        assert store.committed_document == {"a": 2, "b": 1}
        assert second.preview_changes({"op": "replace", "path": "/b", "value": 2}) is True

    def test_other_manager_edit_blocked_during_preview(self, store):
        first, second = PreviewManager(store), PreviewManager(store)
        first.preview_changes({"op": "replace", "path": "/title", "value": "P"})
        assert second.edit({"op": "replace", "path": "/content", "value": "X"}) is False
        assert store.errors == ["Update ignored (in preview mode)"]
        first.reject_changes()
        assert store.document == {"title": "T", "content": "C"}

    def test_reentrant_call_is_refused(self, manager, caplog):
        attempts = []

        def reenter(event):
            try:
                manager.accept_changes()
            except RuntimeError as e:
                attempts.append(str(e))
                raise

        manager.subscribe(reenter, PreviewStarted)
        with caplog.at_level(logging.ERROR, logger="json_preview.store.events"):
            assert manager.preview_changes([{"op": "replace", "path": "/title", "value": "P"}]) is True
        assert attempts and "re-entrantly" in attempts[0]
        assert manager.is_previewing is True
        assert "Subscriber" in caplog.text

    def test_notification_payloads_are_copies(self, manager):
        received = []
        manager.subscribe(received.append, Changed)
        manager.edit({"op": "replace", "path": "/title", "value": "T2"})
        received[0].document["title"] = "tampered"
        assert manager.store.get_node_by_pointer("/title") == "T2"

    def test_managers_are_independent(self, title_doc):
        a_store, b_store = DocumentStore(), DocumentStore()
        a_store.set_document(title_doc)
        b_store.set_document(title_doc)
        a, b = PreviewManager(a_store), PreviewManager(b_store)
        a.preview_changes({"op": "replace", "path": "/title", "value": "A"})
        assert b.is_previewing is False
        assert b_store.document == title_doc

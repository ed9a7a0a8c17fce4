"""Tests for the reconciliation policy."""

from vaultsync.sync.policy import (
    SyncAction,
    content_type_for,
    decide,
    decide_removal,
    decide_upload,
)


class TestDecide:
    def test_identical_content_is_noop(self):
        assert decide(b"same", b"same") is SyncAction.NOOP

    def test_different_content_downloads(self):
        assert decide(b"local", b"remote") is SyncAction.DOWNLOAD

    def test_missing_local_creates_local(self):
        assert decide(None, b"remote") is SyncAction.CREATE_LOCAL

    def test_missing_remote_skips(self):
        assert decide(b"local", None) is SyncAction.SKIP
        assert decide(None, None) is SyncAction.SKIP

    def test_empty_remote_is_still_content(self):
        assert decide(None, b"") is SyncAction.CREATE_LOCAL
        assert decide(b"x", b"") is SyncAction.DOWNLOAD

    def test_is_pure(self):
        inputs = [(b"a", b"b"), (None, b"b"), (b"a", b"a"), (b"a", None)]
        first = [decide(local, remote) for local, remote in inputs]
        second = [decide(local, remote) for local, remote in inputs]
        assert first == second


class TestDecideUpload:
    def test_force_always_uploads(self):
        assert decide_upload("a.md", {"a.md"}, force=True) is SyncAction.UPLOAD

    def test_unknown_remote_state_uploads(self):
        assert decide_upload("a.md", None) is SyncAction.UPLOAD

    def test_missing_key_uploads(self):
        assert decide_upload("a.md", {"b.md"}) is SyncAction.UPLOAD

    def test_present_key_is_noop(self):
        assert decide_upload("a.md", {"a.md"}) is SyncAction.NOOP


def test_decide_removal_respects_allow_list():
    assert decide_removal("md") is SyncAction.DELETE_REMOTE
    assert decide_removal("PDF") is SyncAction.DELETE_REMOTE
    assert decide_removal("docx") is SyncAction.SKIP
    assert decide_removal("") is SyncAction.SKIP


def test_content_types():
    assert content_type_for("md") == "text/markdown"
    assert content_type_for("txt") == "text/plain"
    assert content_type_for("JPG") == "image/jpeg"
    assert content_type_for("jpeg") == "image/jpeg"
    assert content_type_for("svg") == "image/svg+xml"
    assert content_type_for("webp") == "image/webp"
    assert content_type_for("pdf") == "application/pdf"
    assert content_type_for("zip") == "application/octet-stream"

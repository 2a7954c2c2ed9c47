"""
Tests for LocalDocumentStore.

Covers:
- Write / read / exists / delete
- Staging and promotion
- Refusal of paths escaping the root
"""

import pytest

from timesheet_kernel.exceptions import DocumentStorageError
from timesheet_services.document_store import DocumentStore, LocalDocumentStore


@pytest.fixture
def store(tmp_path):
    return LocalDocumentStore(tmp_path / "docs")


class TestBasicOperations:
    def test_satisfies_protocol(self, store):
        assert isinstance(store, DocumentStore)

    def test_write_then_read(self, store):
        store.write("2024/5/a.pdf", b"%PDF-1.4")

        assert store.exists("2024/5/a.pdf")
        assert store.read("2024/5/a.pdf") == b"%PDF-1.4"
        assert (store.root / "2024" / "5" / "a.pdf").is_file()

    def test_write_replaces(self, store):
        store.write("a.pdf", b"one")
        store.write("a.pdf", b"two")

        assert store.read("a.pdf") == b"two"

    def test_no_temp_files_left(self, store):
        store.write("a.pdf", b"x")

        assert [p.name for p in store.root.iterdir()] == ["a.pdf"]

    def test_delete(self, store):
        store.write("a.pdf", b"x")

        assert store.delete("a.pdf") is True
        assert store.delete("a.pdf") is False
        assert not store.exists("a.pdf")

    def test_read_missing_raises(self, store):
        with pytest.raises(DocumentStorageError) as exc_info:
            store.read("missing.pdf")

        assert exc_info.value.path == "missing.pdf"


class TestStaging:
    def test_stage_then_promote(self, store):
        staged = store.stage(b"report", ".pdf")

        assert staged.startswith(".staging/")
        assert staged.endswith(".pdf")
        assert store.exists(staged)

        store.promote(staged, "anna_2024-05.pdf")

        assert not store.exists(staged)
        assert store.read("anna_2024-05.pdf") == b"report"

    def test_each_stage_gets_fresh_name(self, store):
        assert store.stage(b"a") != store.stage(b"a")


class TestRootConfinement:
    @pytest.mark.parametrize("path", ["../outside.pdf", "a/../../outside.pdf", "/etc/passwd"])
    def test_escaping_paths_are_refused(self, store, path):
        with pytest.raises(DocumentStorageError):
            store.write(path, b"x")

    def test_escape_on_promote_is_refused(self, store):
        staged = store.stage(b"x")

        with pytest.raises(DocumentStorageError):
            store.promote(staged, "../outside.pdf")
        assert store.exists(staged)

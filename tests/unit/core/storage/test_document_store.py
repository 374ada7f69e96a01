"""Tests for DocumentStore: CRUD, queries and write batches on in-memory SQLite."""

from __future__ import annotations

import pytest

from lifelog.core.storage.store import DocumentStore, StoreError


class TestSingleDocuments:
    def test_create_and_get(self, store):
        doc_id = store.create("notes", {"userId": "u1", "text": "hi"})
        assert len(doc_id) == 36  # UUID format
        doc = store.get("notes", doc_id)
        assert doc == {"id": doc_id, "userId": "u1", "text": "hi"}

    def test_get_missing_returns_none(self, store):
        assert store.get("notes", "nope") is None

    def test_create_duplicate_id_raises(self, store):
        store.create("notes", {"a": 1}, doc_id="n1")
        with pytest.raises(StoreError, match="already exists"):
            store.create("notes", {"a": 2}, doc_id="n1")

    def test_id_field_not_stored(self, store):
        store.set("notes", "n1", {"id": "ignored", "a": 1})
        assert store.get("notes", "n1")["id"] == "n1"

    def test_set_reports_creation(self, store):
        assert store.set("notes", "n1", {"a": 1}) is True
        assert store.set("notes", "n1", {"a": 2}) is False
        assert store.get("notes", "n1")["a"] == 2

    def test_set_replaces_without_merge(self, store):
        store.set("notes", "n1", {"a": 1, "b": 2})
        store.set("notes", "n1", {"a": 3})
        assert store.get("notes", "n1") == {"id": "n1", "a": 3}

    def test_set_merge(self, store):
        store.set("notes", "n1", {"a": 1, "b": 2})
        store.set("notes", "n1", {"a": 3}, merge=True)
        assert store.get("notes", "n1") == {"id": "n1", "a": 3, "b": 2}

    def test_update(self, store):
        store.set("notes", "n1", {"a": 1})
        store.update("notes", "n1", {"b": 2})
        assert store.get("notes", "n1") == {"id": "n1", "a": 1, "b": 2}

    def test_update_missing_raises(self, store):
        with pytest.raises(StoreError, match="not found"):
            store.update("notes", "nope", {"a": 1})

    def test_delete(self, store):
        store.set("notes", "n1", {"a": 1})
        assert store.delete("notes", "n1") is True
        assert store.delete("notes", "n1") is False
        assert not store.exists("notes", "n1")

    def test_collections_are_separate(self, store):
        store.set("a", "x", {"v": 1})
        assert store.get("b", "x") is None

    def test_increment_creates_and_adds(self, store):
        assert store.increment("counters", "c1", "hits") == 1
        assert store.increment("counters", "c1", "hits", 4) == 5
        assert store.get("counters", "c1")["hits"] == 5


class TestQueries:
    @pytest.fixture
    def seeded(self, store):
        for i, day in enumerate(["2026-03-01", "2026-03-02", "2026-03-03", "2026-03-04"]):
            store.set("mirror", f"u1_{day}", {"userId": "u1", "date": day, "mood": 40 + i * 10})
        store.set("mirror", "u2_2026-03-02", {"userId": "u2", "date": "2026-03-02", "mood": 90})
        return store

    def test_equality_and_range(self, seeded):
        docs = seeded.query(
            "mirror",
            where=[("userId", "==", "u1"), ("date", ">=", "2026-03-02"), ("date", "<=", "2026-03-03")],
            order_by="date",
        )
        assert [d["date"] for d in docs] == ["2026-03-02", "2026-03-03"]

    def test_order_desc_and_limit(self, seeded):
        docs = seeded.query(
            "mirror", where=[("userId", "==", "u1")], order_by="date", descending=True, limit=2
        )
        assert [d["date"] for d in docs] == ["2026-03-04", "2026-03-03"]

    def test_numeric_comparison(self, seeded):
        docs = seeded.query("mirror", where=[("mood", ">", 55)])
        assert {d["mood"] for d in docs} == {60, 70, 90}

    def test_in_and_not_equal(self, seeded):
        docs = seeded.query("mirror", where=[("userId", "in", ["u2"])])
        assert len(docs) == 1
        docs = seeded.query("mirror", where=[("userId", "!=", "u2")])
        assert len(docs) == 4

    def test_empty_in_matches_nothing(self, seeded):
        assert seeded.query("mirror", where=[("userId", "in", [])]) == []

    def test_none_equality(self, store):
        store.set("t", "a", {"x": None})
        store.set("t", "b", {"x": 1})
        assert [d["id"] for d in store.query("t", where=[("x", "==", None)])] == ["a"]

    def test_boolean_equality(self, store):
        store.set("tokens", "t1", {"active": True})
        store.set("tokens", "t2", {"active": False})
        assert [d["id"] for d in store.query("tokens", where=[("active", "==", True)])] == ["t1"]

    def test_dotted_field(self, store):
        store.set("users", "u1", {"settings": {"passiveInsightsEnabled": True}})
        store.set("users", "u2", {"settings": {"passiveInsightsEnabled": False}})
        store.set("users", "u3", {})
        docs = store.query("users", where=[("settings.passiveInsightsEnabled", "==", True)])
        assert [d["id"] for d in docs] == ["u1"]

    def test_unknown_operator_raises(self, store):
        with pytest.raises(StoreError, match="Unsupported operator"):
            store.query("t", where=[("x", "~", 1)])

    def test_invalid_field_raises(self, store):
        with pytest.raises(StoreError, match="Invalid field path"):
            store.query("t", where=[("x') OR 1=1 --", "==", 1)])

    def test_cursor_requires_id_order(self, store):
        with pytest.raises(StoreError):
            store.query("t", order_by="date", start_after_id="a")

    def test_count(self, seeded):
        assert seeded.count("mirror") == 5
        assert seeded.count("mirror", where=[("userId", "==", "u1")]) == 4

    def test_iter_pages(self, store):
        for i in range(5):
            store.set("users", f"u{i}", {"n": i})
        pages = list(store.iter_pages("users", page_size=2))
        assert [len(p) for p in pages] == [2, 2, 1]
        assert [d["id"] for p in pages for d in p] == ["u0", "u1", "u2", "u3", "u4"]

    def test_iter_pages_exact_multiple(self, store):
        for i in range(4):
            store.set("users", f"u{i}", {})
        assert [len(p) for p in store.iter_pages("users", page_size=2)] == [2, 2]


class TestEncryptedFields:
    def test_transcript_encrypted_at_rest(self, document_db, field_encryptor):
        store = DocumentStore(
            document_db, field_encryptor, {"signalEvents": ["payload.transcript"]}
        )
        doc_id = store.create("signalEvents", {"payload": {"transcript": "private words"}})

        raw = document_db.connection.execute(
            "SELECT data FROM documents WHERE id = ?", (doc_id,)
        ).fetchone()["data"]
        assert "private words" not in raw
        assert store.get("signalEvents", doc_id)["payload"]["transcript"] == "private words"

    def test_other_collections_untouched(self, document_db, field_encryptor):
        store = DocumentStore(
            document_db, field_encryptor, {"signalEvents": ["payload.transcript"]}
        )
        store.set("notes", "n1", {"payload": {"transcript": "plain"}})
        raw = document_db.connection.execute(
            "SELECT data FROM documents WHERE id = 'n1'"
        ).fetchone()["data"]
        assert "plain" in raw


class TestWriteBatch:
    def test_commit_applies_all(self, store):
        store.set("t", "old", {"v": 0})
        batch = store.batch()
        batch.set("t", "a", {"v": 1}).set("t", "b", {"v": 2}).delete("t", "old")
        assert len(batch) == 3
        assert batch.commit() == 3
        assert len(batch) == 0
        assert {d["id"] for d in store.query("t")} == {"a", "b"}

    def test_chunks_committed_before_failure_stay(self, document_db):
        store = DocumentStore(document_db, batch_size=2)
        batch = store.batch()
        batch.set("t", "a", {"v": 1})
        batch.set("t", "b", {"v": 2})
        batch.set("t", "c", {"v": 3})
        batch.update("t", "missing", {"v": 4})

        with pytest.raises(StoreError, match="after 2 committed writes"):
            batch.commit()

        # First chunk committed, second chunk rolled back
        assert store.exists("t", "a")
        assert store.exists("t", "b")
        assert not store.exists("t", "c")

    def test_empty_batch(self, store):
        assert store.batch().commit() == 0

"""Tests for the persistence, serialization and file collaborators."""

import json

import pytest

from portal_kernel.domain.entities import FileMeta
from portal_kernel.exceptions import PersistenceError
from portal_kernel.store import serialization as codec
from portal_kernel.store.files import InMemoryFileStore, LocalFileStore
from portal_kernel.store.persistence import InMemoryPersistence, JsonDirectoryPersistence


class TestInMemoryPersistence:
    def test_saved_data_is_copied(self):
        persistence = InMemoryPersistence()
        data = [{"id": "u1"}]
        persistence.save_collection(codec.USERS, data)
        data[0]["id"] = "changed"
        assert persistence.load_collection(codec.USERS) == [{"id": "u1"}]

    def test_loaded_data_is_copied(self):
        persistence = InMemoryPersistence({codec.USERS: [{"id": "u1"}]})
        persistence.load_collection(codec.USERS)[0]["id"] = "changed"
        assert persistence.stored(codec.USERS) == [{"id": "u1"}]

    def test_none_clears(self):
        persistence = InMemoryPersistence({codec.SESSION: {"user_id": "u1"}})
        persistence.save_collection(codec.SESSION, None)
        assert persistence.load_collection(codec.SESSION) is None


class TestJsonDirectoryPersistence:
    def test_absent_collection_loads_none(self, tmp_path):
        assert JsonDirectoryPersistence(tmp_path).load_collection(codec.USERS) is None

    def test_save_and_load(self, tmp_path):
        persistence = JsonDirectoryPersistence(tmp_path / "data")
        payload = [{"id": "u1", "name": "Acme Lda", "email": "c@acme.pt"}]
        persistence.save_collection(codec.USERS, payload)

        assert (tmp_path / "data" / "users.json").exists()
        assert not (tmp_path / "data" / "users.json.tmp").exists()
        assert persistence.load_collection(codec.USERS) == payload

    def test_non_ascii_is_kept_readable(self, tmp_path):
        persistence = JsonDirectoryPersistence(tmp_path)
        persistence.save_collection(codec.OBLIGATIONS, [{"name": "TSU - Segurança Social"}])
        assert "Segurança" in (tmp_path / "obligations.json").read_text(encoding="utf-8")

    def test_none_deletes_file(self, tmp_path):
        persistence = JsonDirectoryPersistence(tmp_path)
        persistence.save_collection(codec.SESSION, {"user_id": "u1", "remember_me": True})
        persistence.save_collection(codec.SESSION, None)
        assert not (tmp_path / "session.json").exists()
        # Clearing twice is fine.
        persistence.save_collection(codec.SESSION, None)

    def test_malformed_json_raises_persistence_error(self, tmp_path):
        (tmp_path / "documents.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError) as exc_info:
            JsonDirectoryPersistence(tmp_path).load_collection(codec.DOCUMENTS)
        assert exc_info.value.collection == codec.DOCUMENTS

    def test_unwritable_root_raises_persistence_error(self, tmp_path):
        root = tmp_path / "data"
        root.write_text("a file, not a directory", encoding="utf-8")

        with pytest.raises(PersistenceError) as exc_info:
            JsonDirectoryPersistence(root).save_collection(codec.USERS, [])

        assert exc_info.value.operation == "save"
        assert exc_info.value.code == "PERSISTENCE_ERROR"
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_written_file_is_plain_json(self, tmp_path):
        JsonDirectoryPersistence(tmp_path).save_collection(codec.CLIENT_RECORDS, {"a1": []})
        assert json.loads((tmp_path / "client_records.json").read_text()) == {"a1": []}


class TestDecoding:
    def test_bad_status_is_persistence_error(self):
        data = {"a1": [{"id": "c1", "owner_accountant_id": "a1", "company_name": "Acme",
                        "email": "c@acme.pt", "status": "LOST"}]}
        with pytest.raises(PersistenceError):
            codec.decode_client_records(data)

    def test_negative_obligation_amount_is_persistence_error(self):
        data = [{"id": "t1", "owner_user_id": "u1", "name": "IVA",
                 "deadline": "2024-06-20", "amount": "-1", "status": "PENDING"}]
        with pytest.raises(PersistenceError) as exc_info:
            codec.decode_obligations(data)
        assert exc_info.value.collection == codec.OBLIGATIONS

    def test_client_record_optional_fields_default(self):
        data = {"a1": [{"id": "c1", "owner_accountant_id": "a1", "company_name": "Acme",
                        "email": "c@acme.pt", "status": "INVITED"}]}
        record = codec.decode_client_records(data)["a1"]["c1"]
        assert record.tax_id == "N/A"
        assert record.pending_document_count == 0
        assert record.next_deadline is None


class TestFileStores:
    def test_in_memory_reference_dereferences(self):
        files = InMemoryFileStore()
        reference = files.reference_for(FileMeta(title="Fatura", file_name="f.pdf", content=b"%PDF"))
        assert reference == "memory://1/f.pdf"
        assert files.open(reference) == b"%PDF"

    def test_directory_parts_are_dropped(self):
        files = InMemoryFileStore()
        reference = files.reference_for(FileMeta(title="x", file_name="../../etc/passwd", content=b""))
        assert reference.endswith("/passwd")
        assert ".." not in reference

    def test_local_store_writes_bytes(self, tmp_path):
        files = LocalFileStore(tmp_path / "uploads")
        reference = files.reference_for(FileMeta(title="Extrato", file_name="extrato.csv", content=b"a;b"))
        assert reference.startswith("file://")
        written = list((tmp_path / "uploads").iterdir())
        assert len(written) == 1
        assert written[0].name.endswith("-extrato.csv")
        assert written[0].read_bytes() == b"a;b"

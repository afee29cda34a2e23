"""Tests for the snapshot Database interface."""

import pytest

from bizledger.database.models import Snapshot


class TestDatabaseInterface:
    def test_missing_document_returns_none(self, temp_db):
        assert temp_db.load_document("default") is None

    def test_save_and_load_document(self, temp_db):
        document = {"accounts": [{"id": "a1", "name": "Bank", "kind": "BANK"}], "theme": "dark"}

        temp_db.save_document("default", document)

        assert temp_db.load_document("default") == document

    def test_save_overwrites_existing_document(self, temp_db):
        temp_db.save_document("default", {"accounts": []})
        temp_db.save_document("default", {"accounts": [], "movements": []})

        assert temp_db.load_document("default") == {"accounts": [], "movements": []}
        assert temp_db.list_documents() == ["default"]

    def test_list_documents_sorted(self, temp_db):
        temp_db.save_document("sandbox", {})
        temp_db.save_document("default", {})

        assert temp_db.list_documents() == ["default", "sandbox"]

    def test_saved_at_is_stamped(self, temp_db):
        temp_db.save_document("default", {})

        snapshot = temp_db._get_session().query(Snapshot).one()
        assert snapshot.saved_at is not None

    def test_non_ascii_text_survives(self, temp_db):
        temp_db.save_document("default", {"categories": [{"id": "c1", "name": "Manutenção"}]})

        assert temp_db.load_document("default")["categories"][0]["name"] == "Manutenção"

    @pytest.mark.parametrize("text", ["{not json", "[1, 2, 3]"])
    def test_unreadable_document_raises(self, temp_db, text):
        session = temp_db._get_session()
        session.add(Snapshot(name="broken", document=text))
        session.commit()

        with pytest.raises(ValueError):
            temp_db.load_document("broken")

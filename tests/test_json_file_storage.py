"""Tests for the JSON file key-value storage."""
import json

import pytest

from cafeteria.domain.exceptions import BackendUnavailable
from cafeteria.infrastructure.persistence.json_file_storage import JsonFileStorage


class TestJsonFileStorage:

    def test_missing_file_reads_as_empty(self, file_storage):
        assert file_storage.get_item("emailForSignIn") is None

    def test_set_creates_file_and_parent_directory(self, file_storage):
        file_storage.set_item("emailForSignIn", "user@example.com")

        assert file_storage.path.exists()
        assert json.loads(file_storage.path.read_text()) == {"emailForSignIn": "user@example.com"}
        assert file_storage.get_item("emailForSignIn") == "user@example.com"

    def test_keys_are_independent(self, file_storage):
        file_storage.set_item("a", "1")
        file_storage.set_item("b", "2")

        file_storage.remove_item("a")

        assert file_storage.get_item("a") is None
        assert file_storage.get_item("b") == "2"

    def test_remove_missing_key_is_noop(self, file_storage):
        file_storage.remove_item("nothing")
        assert not file_storage.path.exists()

    def test_invalid_json_is_treated_as_empty(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{{{")
        storage = JsonFileStorage(path)

        assert storage.get_item("key") is None
        storage.set_item("key", "value")
        assert json.loads(path.read_text()) == {"key": "value"}

    def test_write_leaves_no_temporary_files(self, file_storage):
        file_storage.set_item("key", "value")
        file_storage.set_item("key", "other")

        assert [p.name for p in file_storage.path.parent.iterdir()] == [file_storage.path.name]

    def test_unwritable_location_raises_backend_unavailable(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        storage = JsonFileStorage(blocker / "storage.json")

        with pytest.raises(BackendUnavailable):
            storage.set_item("key", "value")

"""
Tests for identifier mapping between model and store records
"""

from litedoc.identifiers import from_store, stringify_id, to_store


class TestToStore:
    """Test outbound mapping"""

    def test_string_id_moved(self):
        assert to_store({"id": "abc", "name": "Rex"}) == {"_id": "abc", "name": "Rex"}

    def test_non_string_id_stringified(self):
        assert to_store({"id": 42, "name": "Rex"}) == {"_id": "42", "name": "Rex"}

    def test_existing_store_id_discarded(self):
        assert to_store({"_id": "stale", "name": "Rex"}) == {"name": "Rex"}
        assert to_store({"_id": "stale", "id": "fresh"}) == {"_id": "fresh"}

    def test_missing_id_left_for_store(self):
        assert to_store({"name": "Rex", "id": None}) == {"name": "Rex"}

    def test_input_not_mutated(self):
        record = {"id": 7, "name": "Rex"}
        to_store(record)
        assert record == {"id": 7, "name": "Rex"}


class TestFromStore:
    """Test inbound mapping"""

    def test_store_id_moved(self):
        assert from_store({"_id": "abc", "name": "Rex"}) == {"id": "abc", "name": "Rex"}

    def test_idempotent(self):
        once = from_store({"_id": "abc", "name": "Rex"})
        assert from_store(once) == once == {"id": "abc", "name": "Rex"}

    def test_input_not_mutated(self):
        document = {"_id": "abc"}
        from_store(document)
        assert document == {"_id": "abc"}


class TestRoundTrip:
    """fromStore(toStore(R)) restores the identifier"""

    def test_string_identifier(self):
        record = {"id": "p-1", "name": "Rex"}
        assert from_store(to_store(record)) == record

    def test_numeric_identifier(self):
        assert from_store(to_store({"id": 5, "name": "Rex"})) == {"id": "5", "name": "Rex"}


def test_stringify_id():
    assert stringify_id(5) == "5"
    assert stringify_id("5") == "5"
    assert stringify_id(None) is None
    assert stringify_id([1, "2"]) == ["1", "2"]

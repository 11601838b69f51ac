from unittest import mock

import pytest
import requests

from shelfscan.errors import PersistenceError
from shelfscan.listing_sink import InMemoryListingSink, ListingSink, SupabaseListingSink
from shelfscan.models import Book, Confidence

BOOKS = [
    Book(title="Piranesi", author="Susanna Clarke", confidence=Confidence.HIGH, evidence="PIRANESI"),
    Book(title="Normal People", author="Sally Rooney", confidence=Confidence.MEDIUM, evidence="ROONEY"),
]
OWNER = "24e38981-b0ab-4209-977e-acecd6f647ed"


def test_in_memory_save():
    sink = InMemoryListingSink()
    result = sink.save(OWNER, BOOKS)
    assert result.saved_count == 2
    assert result.records[0] == {
        "id": 1, "title": "Piranesi", "author": "Susanna Clarke", "price": 0, "user_id": OWNER,
    }
    assert sink.records == result.records


def test_empty_save_is_noop():
    sink = InMemoryListingSink()
    result = sink.save(OWNER, [])
    assert result.saved_count == 0
    assert sink.records == []


def test_owner_required():
    with pytest.raises(ValueError):
        InMemoryListingSink().save("", BOOKS)


def test_unexpected_storage_failure_becomes_persistence_error():
    class BrokenSink(ListingSink):
        def _insert(self, listings):
            raise ConnectionResetError("socket closed")

    with pytest.raises(PersistenceError) as excinfo:
        BrokenSink().save(OWNER, BOOKS)
    assert excinfo.value.user_message == "Save failed"


@pytest.fixture
def supabase():
    sink = SupabaseListingSink(url="https://example.supabase.co/", api_key="anon-key", timeout=3.0)
    sink.session = mock.Mock()
    return sink


def test_supabase_requires_credentials(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    with pytest.raises(ValueError):
        SupabaseListingSink()


def test_supabase_bulk_insert(supabase):
    response = mock.Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = [{"id": 10, "title": "Piranesi"}, {"id": 11, "title": "Normal People"}]
    supabase.session.post.return_value = response

    result = supabase.save(OWNER, BOOKS)

    assert result.saved_count == 2
    args, kwargs = supabase.session.post.call_args
    assert args[0] == "https://example.supabase.co/rest/v1/listings"
    assert kwargs["json"][1] == {"title": "Normal People", "author": "Sally Rooney", "price": 0, "user_id": OWNER}
    assert kwargs["timeout"] == 3.0
    assert supabase.session.post.call_count == 1


def test_supabase_http_error(supabase):
    response = mock.Mock()
    response.status_code = 401
    response.text = '{"message": "Invalid API key"}'
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    supabase.session.post.return_value = response

    with pytest.raises(PersistenceError):
        supabase.save(OWNER, BOOKS)


def test_supabase_timeout(supabase):
    supabase.session.post.side_effect = requests.exceptions.Timeout()
    with pytest.raises(PersistenceError):
        supabase.save(OWNER, BOOKS)

from __future__ import annotations

import asyncio
import json
import random

import httpx
import pytest

from bloodslot.domain import PersistenceError, StoreError
from bloodslot.json_store import JsonFileStore
from bloodslot.realtime_db import RealtimeDatabaseStore
from bloodslot.store import InMemoryStore, PushIdGenerator, push_id_timestamp_ms


def test_push_ids_encode_timestamp_and_sort_chronologically() -> None:
    gen = PushIdGenerator(random.Random(0))
    first = gen(1_700_000_000_000)
    second = gen(1_700_000_000_001)

    assert len(first) == 20
    assert first < second
    assert push_id_timestamp_ms(first) == 1_700_000_000_000


def test_push_ids_in_same_millisecond_stay_unique_and_ordered() -> None:
    gen = PushIdGenerator(random.Random(0))
    ids = [gen(1_700_000_000_000) for _ in range(50)]
    assert len(set(ids)) == 50
    assert ids == sorted(ids)


def test_push_id_timestamp_rejects_foreign_keys() -> None:
    assert push_id_timestamp_ms("case-1") is None
    assert push_id_timestamp_ms("!" * 20) is None


def test_in_memory_store_round_trip() -> None:
    store = InMemoryStore(user_id="u")
    record_id = asyncio.run(store.append_record("donations", {"ticketCode": "ABC"}))
    records = asyncio.run(store.read_many("donations"))
    assert records == [{"ticketCode": "ABC", "id": record_id}]
    assert asyncio.run(store.read_many("missing")) == []


def test_json_store_persists_between_instances(tmp_path) -> None:
    path = tmp_path / "nested" / "store.json"
    record_id = asyncio.run(JsonFileStore(str(path)).append_record("donations", {"ticketCode": "ABC"}))

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw == {"donations": {record_id: {"ticketCode": "ABC"}}}

    records = asyncio.run(JsonFileStore(str(path)).read_many("donations"))
    assert records == [{"ticketCode": "ABC", "id": record_id}]


def test_json_store_refuses_to_overwrite_corrupted_file(tmp_path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileStore(str(path))

    with pytest.raises(StoreError):
        asyncio.run(store.read_many("donations"))
    with pytest.raises(PersistenceError):
        asyncio.run(store.append_record("donations", {"ticketCode": "ABC"}))
    assert path.read_text(encoding="utf-8") == "{not json"


def test_json_store_reads_list_shaped_collections(tmp_path) -> None:
    path = tmp_path / "store.json"
    path.write_text(json.dumps({"donationCases": [None, {"bloodType": "O+"}]}), encoding="utf-8")
    records = asyncio.run(JsonFileStore(str(path)).read_many("donationCases"))
    assert records == [{"bloodType": "O+", "id": "1"}]


def test_realtime_db_read_many_flattens_children() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"k1": {"bloodType": "O+"}, "k2": {"bloodType": "A-"}})

    store = RealtimeDatabaseStore(
        "https://example.firebaseio.com/",
        auth_token="secret",
        transport=httpx.MockTransport(handler),
    )
    records = asyncio.run(store.read_many("donationCases"))

    assert records == [{"bloodType": "O+", "id": "k1"}, {"bloodType": "A-", "id": "k2"}]
    assert seen[0].url.path == "/donationCases.json"
    assert seen[0].url.params["auth"] == "secret"


def test_realtime_db_read_many_of_missing_path_is_empty() -> None:
    store = RealtimeDatabaseStore(
        "https://example.firebaseio.com",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"null")),
    )
    assert asyncio.run(store.read_many("donations")) == []


def test_realtime_db_append_puts_under_generated_id() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=json.loads(request.content))

    store = RealtimeDatabaseStore("https://example.firebaseio.com", transport=httpx.MockTransport(handler))
    record_id = asyncio.run(store.append_record("donations", {"ticketCode": "ABC"}))

    assert seen[0].method == "PUT"
    assert seen[0].url.path == f"/donations/{record_id}.json"
    assert json.loads(seen[0].content) == {"ticketCode": "ABC"}
    assert push_id_timestamp_ms(record_id) is not None


def test_realtime_db_permission_denied_is_not_retried() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(401, json={"error": "Permission denied"})

    store = RealtimeDatabaseStore(
        "https://example.firebaseio.com",
        retry_attempts=3,
        transport=httpx.MockTransport(handler),
    )
    with pytest.raises(PersistenceError, match="HTTPStatusError"):
        asyncio.run(store.append_record("donations", {"ticketCode": "ABC"}))
    assert calls == 1


def test_realtime_db_retries_server_errors() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        if calls == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"ticketCode": "ABC"})

    store = RealtimeDatabaseStore(
        "https://example.firebaseio.com",
        retry_attempts=2,
        transport=httpx.MockTransport(handler),
    )
    asyncio.run(store.append_record("donations", {"ticketCode": "ABC"}))
    assert calls == 2


def test_realtime_db_non_json_body_raises_store_errors() -> None:
    store = RealtimeDatabaseStore(
        "https://example.firebaseio.com",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>maintenance</html>")),
    )
    with pytest.raises(StoreError, match="JSONDecodeError"):
        asyncio.run(store.read_many("donationCases"))
    with pytest.raises(PersistenceError, match="JSONDecodeError"):
        asyncio.run(store.append_record("donations", {"ticketCode": "ABC"}))


def test_realtime_db_read_failure_raises_store_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    store = RealtimeDatabaseStore("https://example.firebaseio.com", transport=httpx.MockTransport(handler))
    with pytest.raises(StoreError, match="ConnectError"):
        asyncio.run(store.read_many("donationCases"))

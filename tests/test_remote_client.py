# tests/test_remote_client.py

from __future__ import annotations

import json

import httpx
import pytest

from task_sync.core.errors import TransportError
from task_sync.sync.remote import RemoteClient
from task_sync.sync.sync_models import ItemStatus, Operation, ProcessedItem, QueueEntry
from task_sync.tasks.task_models import TaskSnapshot


def _entry() -> QueueEntry:
    snap = TaskSnapshot(
        id="t-1",
        title="Buy milk",
        description=None,
        completed=False,
        created_at=1_700_000_000.0,
        updated_at=1_700_000_000.0,
        is_deleted=False,
    )
    return QueueEntry(
        id="q-1",
        seq=1,
        task_id="t-1",
        operation=Operation.CREATE,
        payload=snap,
        created_at=1_700_000_000.0,
    )


def _client(handler) -> RemoteClient:
    return RemoteClient("http://remote.test/api/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_health_ok_and_paths() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(204)

    await _client(handler).health()
    assert seen == ["/api/health"]


@pytest.mark.asyncio
async def test_health_error_status_is_transport_error() -> None:
    client = _client(lambda request: httpx.Response(503))
    with pytest.raises(TransportError):
        await client.health()


@pytest.mark.asyncio
async def test_health_timeout_is_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("slow", request=request)

    with pytest.raises(TransportError):
        await _client(handler).health()


@pytest.mark.asyncio
async def test_post_batch_sends_items_and_parses_results() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "processed_items": [
                    {"client_id": "t-1", "server_id": "srv-1", "status": "success", "resolved_data": {"title": "x"}},
                    {"client_id": "t-2", "status": "weird"},
                    {"status": "success"},
                ]
            },
        )

    items = await _client(handler).post_batch([_entry()])

    assert captured["path"] == "/api/batch"
    body = captured["body"]
    assert "client_timestamp" in body
    assert body["items"][0]["task_id"] == "t-1"
    assert body["items"][0]["operation"] == "create"
    assert body["items"][0]["data"]["title"] == "Buy milk"

    # The item without client_id cannot be matched and is dropped.
    assert len(items) == 2
    assert items[0] == ProcessedItem(
        client_id="t-1", server_id="srv-1", status=ItemStatus.SUCCESS, resolved_data={"title": "x"}
    )
    assert items[1].status == ItemStatus.ERROR
    assert "weird" in (items[1].error or "")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json={"unexpected": True}),
        httpx.Response(200, json=[1, 2, 3]),
    ],
)
async def test_post_batch_unusable_response_is_transport_error(response) -> None:
    with pytest.raises(TransportError):
        await _client(lambda request: response).post_batch([_entry()])


@pytest.mark.asyncio
async def test_post_batch_network_error_is_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError):
        await _client(handler).post_batch([_entry()])

# src/task_sync/sync/remote.py

"""
HTTP client for the remote authority.

Wire contract:
- GET  {base}/health -> any non-error response means "online"
- POST {base}/batch  -> {"items": [...], "client_timestamp": iso}
                     <- {"processed_items": [{client_id, server_id, status, resolved_data?, error?}]}

Everything that prevents a usable per-item answer (connect error, timeout, non-2xx,
bad JSON, missing processed_items) is raised as TransportError.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

import httpx

from ..core.errors import TransportError
from ..tasks.task_models import ts_to_iso
from .sync_models import ProcessedItem, QueueEntry

logger = logging.getLogger(__name__)


class RemoteClient:
    def __init__(
        self,
        base_url: str,
        *,
        health_timeout_seconds: float = 5.0,
        batch_timeout_seconds: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._health_timeout = max(0.1, float(health_timeout_seconds))
        self._batch_timeout = max(0.1, float(batch_timeout_seconds))
        # Injected in tests (httpx.MockTransport); None means real network.
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def _client(self, timeout_s: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout_s),
            transport=self._transport,
        )

    async def health(self) -> None:
        """Raise TransportError unless /health answers without an error status."""
        try:
            async with self._client(self._health_timeout) as client:
                response = await client.get("/health")
        except httpx.TimeoutException as exc:
            raise TransportError(f"health_timeout:{self._base_url}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"health_http_error:{exc.__class__.__name__}") from exc

        if response.is_error:
            raise TransportError(f"health_status:{response.status_code}")

    async def post_batch(self, entries: Sequence[QueueEntry]) -> list[ProcessedItem]:
        body = {
            "items": [e.to_wire() for e in entries],
            "client_timestamp": ts_to_iso(time.time()),
        }

        try:
            async with self._client(self._batch_timeout) as client:
                response = await client.post("/batch", json=body)
        except httpx.TimeoutException as exc:
            raise TransportError("Batch request timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Batch request failed: {exc.__class__.__name__}: {exc}") from exc

        if not response.is_success:
            raise TransportError(f"Batch request failed with status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError("Batch response is not valid JSON") from exc

        raw_items = payload.get("processed_items") if isinstance(payload, dict) else None
        if not isinstance(raw_items, list):
            raise TransportError("Batch response has no processed_items list")

        items: list[ProcessedItem] = []
        for raw in raw_items:
            try:
                items.append(ProcessedItem.from_wire(raw))
            except ValueError:
                logger.warning("Ignoring unmatched processed item: %r", raw)
        return items

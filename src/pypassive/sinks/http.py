"""HTTP sink posting buffered JSON batches."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from typing import Any

import aiohttp

from pypassive.exceptions import SinkError
from pypassive.models._base import PassiveBaseModel

_logger = logging.getLogger(__name__)


class HttpSink:
    """Buffers records and POSTs them as ``{"records": [...]}`` batches.

    ``publish`` only appends to the buffer. :meth:`flush` sends everything
    buffered, ``batch_size`` records per request. A failed batch is put
    back at the front of the buffer so the next flush retries it.

    Parameters
    ----------
    url : str
        Endpoint receiving the batches.
    http_session : aiohttp.ClientSession
        Session owned by the caller.
    batch_size : int
        Maximum records per request.
    headers : Mapping[str, str] or None
        Extra request headers, e.g. authorization.
    """

    def __init__(
        self,
        url: str,
        http_session: aiohttp.ClientSession,
        *,
        batch_size: int = 100,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._url = url
        self._http = http_session
        self._batch_size = batch_size
        self._headers: dict[str, str] = {"content-type": "application/json; charset=UTF-8"}
        if headers:
            self._headers.update(headers)
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._buffer)

    def publish(self, topic: str, record: PassiveBaseModel) -> None:
        entry = {"topic": topic, "value": record.to_payload()}
        with self._lock:
            self._buffer.append(entry)

    async def flush(self) -> int:
        """Send all buffered records; returns how many were delivered.

        Raises
        ------
        SinkError
            On a transport failure or a non-2xx response. Records not
            yet delivered stay buffered.
        """
        delivered = 0
        while True:
            with self._lock:
                batch = self._buffer[: self._batch_size]
                del self._buffer[: len(batch)]
            if not batch:
                return delivered
            try:
                await self._post(batch)
            except BaseException:
                with self._lock:
                    self._buffer[:0] = batch
                raise
            delivered += len(batch)

    async def _post(self, batch: list[dict[str, Any]]) -> None:
        body = json.dumps({"records": batch}, separators=(",", ":"))
        _logger.debug("POST %s (%d records)", self._url, len(batch))
        try:
            async with self._http.post(self._url, data=body, headers=self._headers) as resp:
                if not 200 <= resp.status < 300:
                    text = await resp.text()
                    raise SinkError(
                        f"HTTP {resp.status} from {self._url}: {text[:200]}",
                        status_code=resp.status,
                    )
        except SinkError:
            raise
        except aiohttp.ClientError as exc:
            raise SinkError(f"Request to {self._url} failed: {exc}") from exc
        except TimeoutError as exc:
            raise SinkError(f"Request to {self._url} timed out") from exc

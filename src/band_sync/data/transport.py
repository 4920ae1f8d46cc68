"""Reliable single-request execution over an unreliable link.

``Transport.send`` runs one logical request: each attempt is bounded by a
timeout, transient failures are retried by :class:`RetryPolicy` with
exponential backoff, 4xx answers are terminal, and mutations issued while the
device is offline wait in a FIFO queue until the network comes back.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Set, Tuple, TypeVar

import httpx

from ..domain.errors import ServerRejection, TransientNetworkError, TransportError
from ..domain.models import PendingRequest, utc_now
from ..domain.signals import Signal
from .cache.read_cache import ReadCache
from .network import NetworkMonitor

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]

READ_METHODS = frozenset({"GET", "HEAD"})


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts a request gets and how long to wait between them."""

    max_attempts: int = 3
    base_delay: float = 1.0

    def delay_for(self, attempt: int) -> float:
        """Backoff after failed attempt number ``attempt`` (1-based)."""

        return self.base_delay * (2 ** (attempt - 1))

    async def run(
        self,
        operation: Callable[[int], Awaitable[T]],
        *,
        sleep: Sleep = asyncio.sleep,
        on_failure: Optional[Callable[[int, TransientNetworkError], None]] = None,
    ) -> T:
        """Call ``operation(attempt)`` until it succeeds or attempts run out.

        Only :class:`TransientNetworkError` is retried; anything else propagates
        at once. When attempts are exhausted the last transient error is raised.
        """

        attempt = 1
        while True:
            try:
                return await operation(attempt)
            except TransientNetworkError as exc:
                if on_failure is not None:
                    on_failure(attempt, exc)
                if attempt >= self.max_attempts:
                    raise
                await sleep(self.delay_for(attempt))
                attempt += 1


@dataclass(frozen=True)
class MutationSucceeded:
    endpoint: str
    method: str
    result: Any


@dataclass(frozen=True)
class MutationFailed:
    endpoint: str
    method: str
    error: TransportError


def resource_of(endpoint: str) -> str:
    """``/events/abc?x=1`` -> ``/events``."""

    path = endpoint.split("?", 1)[0].strip("/")
    return "/" + path.split("/", 1)[0]


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.reason_phrase or "Unknown error"


class Transport:
    def __init__(
        self,
        base_url: str,
        *,
        network: Optional[NetworkMonitor] = None,
        cache: Optional[ReadCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        policy: Optional[RetryPolicy] = None,
        timeout: float = 30.0,
        cache_fresh_for: float = 30.0,
        cache_ttl_minutes: float = 5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.network = network or NetworkMonitor()
        self.cache = cache
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self.cache_fresh_for = cache_fresh_for
        self.cache_ttl_minutes = cache_ttl_minutes
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._queue: Deque[Tuple[PendingRequest, asyncio.Future]] = deque()
        self._drain_lock = asyncio.Lock()
        self._background: Set[asyncio.Task] = set()

        self.mutation_succeeded: Signal[MutationSucceeded] = Signal("mutation-succeeded")
        self.mutation_failed: Signal[MutationFailed] = Signal("mutation-failed")
        self.network.restored.connect(self._on_network_restored)

    async def send(
        self,
        endpoint: str,
        method: str = "GET",
        payload: Optional[Dict[str, Any]] = None,
        *,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        method = method.upper()
        if method in READ_METHODS:
            return await self._read(endpoint, method, headers or {})
        if not self.network.is_online:
            return await self._enqueue(endpoint, method, payload, headers or {})
        return await self._mutate(endpoint, method, payload, headers or {})

    async def _read(self, endpoint: str, method: str, headers: Dict[str, str]) -> Any:
        entry = self.cache.entry(endpoint) if self.cache else None
        if entry is not None:
            if not self.network.is_online:
                logger.info("Offline, serving cached %s", endpoint)
                return entry.data
            if self.cache.age(endpoint) < self.cache_fresh_for:
                logger.debug("Using cached %s", endpoint)
                return entry.data
        if not self.network.is_online:
            raise TransportError("Offline and no cached data available", endpoint=endpoint)

        try:
            data = await self._execute(endpoint, method, None, headers)
        except ServerRejection:
            raise
        except TransportError:
            if entry is not None:
                logger.warning("Using stale cached %s due to network error", endpoint)
                return entry.data
            raise
        if self.cache is not None:
            self.cache.set(endpoint, data, self.cache_ttl_minutes)
        return data

    async def _mutate(
        self,
        endpoint: str,
        method: str,
        payload: Optional[Dict[str, Any]],
        headers: Dict[str, str],
    ) -> Any:
        try:
            result = await self._execute(endpoint, method, payload, headers)
        except ServerRejection:
            raise
        except TransportError as exc:
            self.mutation_failed.emit(MutationFailed(endpoint=endpoint, method=method, error=exc))
            raise
        if self.cache is not None:
            self.cache.invalidate(resource_of(endpoint))
        self.mutation_succeeded.emit(MutationSucceeded(endpoint=endpoint, method=method, result=result))
        return result

    async def _execute(
        self,
        endpoint: str,
        method: str,
        payload: Optional[Dict[str, Any]],
        headers: Dict[str, str],
    ) -> Any:
        request_id = secrets.token_hex(5)
        url = f"{self.base_url}{endpoint}"
        request_headers = {"X-Requested-With": "band-sync", "X-Request-Id": request_id, **headers}
        if payload is not None:
            request_headers.setdefault("Content-Type", "application/json")

        async def _attempt(attempt: int) -> Any:
            logger.debug("%s %s (%s) attempt %d", method, endpoint, request_id, attempt)
            try:
                response = await self._client.request(
                    method,
                    url,
                    json=payload,
                    headers=request_headers,
                    timeout=self.timeout,
                )
            except httpx.TimeoutException as exc:
                raise TransientNetworkError("Request timed out", endpoint=endpoint) from exc
            except httpx.TransportError as exc:
                raise TransientNetworkError(str(exc) or "Connection failed", endpoint=endpoint) from exc

            if 400 <= response.status_code < 500:
                raise ServerRejection(response.status_code, _error_text(response), endpoint=endpoint)
            if response.status_code >= 500:
                raise TransientNetworkError(_error_text(response), endpoint=endpoint, status=response.status_code)
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                # Captive portals answer 200 with an HTML page.
                raise TransientNetworkError(
                    "Response body is not JSON", endpoint=endpoint, status=response.status_code
                ) from exc

        def _log_failure(attempt: int, exc: TransientNetworkError) -> None:
            logger.warning(
                "Attempt %d/%d failed for %s %s (%s): %s",
                attempt,
                self.policy.max_attempts,
                method,
                endpoint,
                request_id,
                exc.message,
            )

        try:
            result = await self.policy.run(_attempt, sleep=self._sleep, on_failure=_log_failure)
        except TransientNetworkError as exc:
            raise TransportError(
                f"Request failed after {self.policy.max_attempts} attempts: {exc.message}",
                endpoint=endpoint,
            ) from exc
        logger.debug("%s %s (%s) succeeded", method, endpoint, request_id)
        return result

    async def _enqueue(
        self,
        endpoint: str,
        method: str,
        payload: Optional[Dict[str, Any]],
        headers: Dict[str, str],
    ) -> Any:
        pending = PendingRequest(
            endpoint=endpoint,
            method=method,
            payload=payload,
            enqueued_at=utc_now(),
            headers=dict(headers),
        )
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._queue.append((pending, future))
        logger.info("Queued %s %s while offline (%d pending)", method, endpoint, len(self._queue))
        return await future

    async def drain_queue(self) -> int:
        """Send queued mutations in enqueue order; returns how many were settled."""

        async with self._drain_lock:
            settled = 0
            if self._queue:
                logger.info("Processing %d queued requests", len(self._queue))
            while self._queue and self.network.is_online:
                pending, future = self._queue.popleft()
                if future.done():
                    logger.info("Skipping abandoned queued %s %s", pending.method, pending.endpoint)
                    continue
                try:
                    result = await self._mutate(pending.endpoint, pending.method, pending.payload, pending.headers)
                except TransportError as exc:
                    if not isinstance(exc, ServerRejection) and not self.network.is_online:
                        logger.info("Connection lost while sending %s %s; keeping it queued", pending.method, pending.endpoint)
                        self._queue.appendleft((pending, future))
                        break
                    if not future.done():
                        future.set_exception(exc)
                except Exception as exc:  # noqa: BLE001
                    if not future.done():
                        future.set_exception(exc)
                else:
                    if not future.done():
                        future.set_result(result)
                settled += 1
            return settled

    def _on_network_restored(self, _: datetime) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Network restored outside an event loop; queue left for the next drain")
            return
        task = loop.create_task(self.drain_queue())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def queue_status(self) -> Dict[str, Any]:
        return {
            "queue_length": len(self._queue),
            "is_online": self.network.is_online,
            "oldest_request": self._queue[0][0].enqueued_at if self._queue else None,
        }

    async def aclose(self) -> None:
        for task in list(self._background):
            task.cancel()
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = [
    "MutationFailed",
    "MutationSucceeded",
    "READ_METHODS",
    "RetryPolicy",
    "Transport",
    "resource_of",
]

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import orjson
from fastapi import FastAPI, Header, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ... import __version__
from ...api import AvailabilityPayload, CreatedPayload, ErrorPayload, EventPayload, ServiceInfo
from ...config import AppSettings, get_settings
from ...core import STORE_FILE, AvailabilityUpsertEngine, EventLedger, RecordStore, Validator, resolve_timezone
from ...core.validation import validate_time_range
from ...domain import ErrorReason, PermissionDeniedError, RecordNotFoundError, ValidationError

logger = logging.getLogger(__name__)

ENDPOINTS = [
    "GET/POST /events",
    "DELETE /events/{id}",
    "GET/POST /availability",
]


class RequestRejected(Exception):
    """The request is malformed at the HTTP level (content type, size, JSON)."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(status_code: int, message: str, *, reason: Optional[str] = None, field: Optional[str] = None) -> JSONResponse:
    payload = ErrorPayload(error=message, reason=reason, field=field, timestamp=_timestamp())
    return JSONResponse(payload.model_dump(exclude_none=True), status_code=status_code)


async def _read_json(request: Request, max_bytes: int) -> Dict[str, Any]:
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type:
        raise RequestRejected(415, "Content-Type must be application/json")
    body = await request.body()
    if len(body) > max_bytes:
        raise RequestRejected(413, f"Request body too large. Maximum {max_bytes} bytes allowed.")
    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError as exc:
        raise RequestRejected(400, "Invalid JSON in request body") from exc
    if not isinstance(payload, dict):
        raise RequestRejected(400, "Request body must be a JSON object")
    return payload


def _window(start: Optional[str], end: Optional[str], validator: Validator) -> tuple[datetime, datetime]:
    if not start or not end:
        raise ValidationError(ErrorReason.MISSING_FIELD, "start", "Missing required parameters: start, end")
    return validate_time_range(start, end, tz=validator.tz)


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    store: Optional[RecordStore] = None,
    validator: Optional[Validator] = None,
) -> FastAPI:
    """Build the remote store service over ``store`` (persisted per settings when omitted)."""

    settings = settings or get_settings()
    server_settings = settings.server
    store = store or RecordStore(server_settings.store_path or STORE_FILE)
    validator = validator or Validator(
        tz=resolve_timezone(settings.sync.timezone),
        window_months=settings.sync.window_months,
    )
    ledger = EventLedger(store, validator, privileged_members=server_settings.privileged_members)
    engine = AvailabilityUpsertEngine(store, validator)

    app = FastAPI(title="Band Sync API", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(server_settings.allowed_origins),
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=[
            "Content-Type",
            "Authorization",
            "X-Requested-With",
            "X-Request-Id",
            "X-Band-Member",
            "Idempotency-Key",
        ],
        max_age=86400,
    )
    app.state.store = store
    app.state.ledger = ledger
    app.state.engine = engine

    @app.exception_handler(ValidationError)
    async def _validation_failed(request: Request, exc: ValidationError) -> JSONResponse:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.message)
        return _error(400, exc.message, reason=exc.reason.value, field=exc.field)

    @app.exception_handler(RequestRejected)
    async def _request_rejected(request: Request, exc: RequestRejected) -> JSONResponse:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RecordNotFoundError)
    async def _not_found(request: Request, exc: RecordNotFoundError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(PermissionDeniedError)
    async def _forbidden(request: Request, exc: PermissionDeniedError) -> JSONResponse:
        logger.warning("Forbidden %s %s: %s", request.method, request.url.path, exc)
        return _error(403, str(exc))

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error for %s %s", request.method, request.url.path)
        return _error(500, "Internal Server Error")

    @app.get("/")
    def service_info() -> Dict[str, Any]:
        return ServiceInfo(message="Band Sync API", version=__version__, endpoints=ENDPOINTS).model_dump()

    @app.get("/events")
    def list_events(start: Optional[str] = None, end: Optional[str] = None) -> List[Dict[str, Any]]:
        window_start, window_end = _window(start, end, validator)
        events = ledger.query(window_start, window_end)
        return [EventPayload.from_domain(event).model_dump(by_alias=True) for event in events]

    @app.post("/events")
    async def create_event(
        request: Request,
        idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    ) -> JSONResponse:
        payload = await _read_json(request, server_settings.max_body_bytes)
        # The store takes a thread lock and writes to disk.
        event, created = await run_in_threadpool(ledger.create, payload, idempotency_key=idempotency_key)
        body = CreatedPayload(id=event.id).model_dump()
        return JSONResponse(body, status_code=201 if created else 200)

    @app.delete("/events/{event_id}")
    def delete_event(
        event_id: str,
        member: Optional[str] = Header(default=None, alias="X-Band-Member"),
    ) -> Response:
        if not member or not member.strip():
            raise ValidationError(ErrorReason.MISSING_FIELD, "X-Band-Member", "X-Band-Member header is required")
        ledger.delete(event_id, member.strip())
        return Response(status_code=204)

    @app.get("/availability")
    def list_availability(start: Optional[str] = None, end: Optional[str] = None) -> List[Dict[str, Any]]:
        window_start, window_end = _window(start, end, validator)
        records = engine.query(window_start, window_end)
        return [AvailabilityPayload.from_domain(record).model_dump(by_alias=True) for record in records]

    @app.post("/availability")
    async def upsert_availability(request: Request) -> JSONResponse:
        payload = await _read_json(request, server_settings.max_body_bytes)
        result = await run_in_threadpool(
            engine.upsert,
            payload.get("memberName"),
            payload.get("start"),
            payload.get("end"),
            payload.get("status"),
        )
        body = AvailabilityPayload.from_domain(result.record).model_dump(by_alias=True)
        return JSONResponse(body, status_code=201)

    return app


def run_local_server(
    host: str = "127.0.0.1",
    port: int = 8787,
    *,
    settings: Optional[AppSettings] = None,
) -> None:
    import asyncio

    from hypercorn.asyncio import serve
    from hypercorn.config import Config

    config = Config()
    config.bind = [f"{host}:{port}"]
    logger.info("Serving Band Sync API on %s:%d", host, port)
    asyncio.run(serve(create_app(settings), config))

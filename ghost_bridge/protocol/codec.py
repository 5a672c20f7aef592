"""Wire protocol — codec.

Server side:
  decode_request(raw)       bytes/str  -> Request     (raises DecodeError)
  encode_response(response) Response   -> bytes       (never raises)

Client side mirrors, used by the CLI, tests and any transport:
  encode_request(request)   Request    -> bytes
  decode_response(raw)      bytes/str  -> Response    (raises DecodeError)

Encoded output is compact JSON with keys sorted lexicographically so that
byte-level golden comparisons are stable.  Absent optional fields are
omitted, except the envelope keys ``params`` / ``result`` / ``error`` which
are always present (``null`` when unset).
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ValidationError

from ghost_bridge.exceptions import DecodeError
from ghost_bridge.logging import get_logger
from ghost_bridge.protocol.models import Request
from ghost_bridge.protocol.results import Response

log = get_logger(__name__)

# Truncation applied to payloads echoed back in DecodeError.
_RAW_PREVIEW = 500


def dumps(payload: Any, pretty: bool = False) -> bytes:
    """Serialise *payload* as key-sorted UTF-8 JSON."""
    if pretty:
        text = json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False)
    else:
        text = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return text.encode("utf-8")


def _load_object(raw: str | bytes, what: str) -> dict[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"{what} is not valid UTF-8: {exc}") from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Invalid JSON: {exc}", raw_payload=raw[:_RAW_PREVIEW]) from exc

    if not isinstance(data, dict):
        raise DecodeError(
            f"Expected a JSON object at the top level, got {type(data).__name__}",
            raw_payload=raw[:_RAW_PREVIEW],
        )
    return data


def _validate(model: type[BaseModel], data: dict[str, Any], raw: str | bytes) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg', '')}"
            for e in exc.errors(include_url=False)
        )
        preview = raw[:_RAW_PREVIEW] if isinstance(raw, str) else None
        raise DecodeError(messages, raw_payload=preview) from exc


# ---------------------------------------------------------------------------
# Server side
# ---------------------------------------------------------------------------


def decode_request(raw: str | bytes) -> Request:
    """Parse one request envelope.

    Raises:
        DecodeError: the bytes are not UTF-8 JSON, not an object, or do not
            match ``{method, params?, id}``.
    """
    data = _load_object(raw, "Request")
    return _validate(Request, data, raw)


def encode_response(response: Response) -> bytes:
    """Serialise *response*.  Encoding failures degrade to ``b""``."""
    try:
        payload: dict[str, Any] = {"result": None, "error": None}
        payload.update(response.to_wire())
        return dumps(payload)
    except Exception as exc:
        log.error("response_encode_failed", response_id=response.id, error=str(exc))
        return b""


# ---------------------------------------------------------------------------
# Client side
# ---------------------------------------------------------------------------


def encode_request(request: Request) -> bytes:
    payload: dict[str, Any] = {"params": None}
    payload.update(request.to_wire())
    return dumps(payload)


def decode_response(raw: str | bytes) -> Response:
    """Parse one response envelope.

    Unknown ``result.type`` tags are rejected, as is an envelope carrying
    both or neither of ``result`` / ``error``.
    """
    data = _load_object(raw, "Response")
    return _validate(Response, data, raw)

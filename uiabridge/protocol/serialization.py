"""Serialization helpers for the JSON-lines worker channel."""

from __future__ import annotations

import base64
import dataclasses
import json
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from uiabridge.protocol.envelope import ERROR_DETAILS_KEY, OperationRequest, OperationResponse
from uiabridge.utils.exceptions import ProtocolError, ValidationError


def safe_dict(value: Any) -> dict[str, Any]:
    """Return the value when dict-like, otherwise an empty dict."""
    return value if isinstance(value, dict) else {}


def to_jsonable(value: Any) -> Any:
    """Convert handler results into plain JSON values."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(dataclasses.asdict(value))
    if isinstance(value, Enum):
        return to_jsonable(value.value)
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return str(value)


def encode_request_line(request: OperationRequest) -> str:
    """Encode a request into one line of JSON (no trailing newline)."""
    payload = {"operation": request.operation, "parameters": request.parameters}
    try:
        return json.dumps(payload, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"parameters for {request.operation} are not JSON serializable: {exc}",
            field="parameters",
            operation=request.operation,
        ) from exc


def decode_request_line(line: str) -> OperationRequest:
    """Parse one request line; raise ProtocolError on any malformed input."""
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"Invalid JSON: {exc.msg}", raw=line) from exc
    if not isinstance(payload, dict):
        raise ProtocolError("Request must be a JSON object", raw=line)

    operation = payload.get("operation", payload.get("Operation"))
    if operation is None:
        raise ProtocolError("Missing operation property", raw=line)
    if not isinstance(operation, str):
        raise ProtocolError("Operation property must be a string", raw=line)
    if not operation.strip():
        raise ProtocolError("Empty operation property", raw=line)

    parameters = payload.get("parameters", payload.get("Parameters"))
    if parameters is None:
        parameters = {}
    if not isinstance(parameters, dict):
        raise ProtocolError("Parameters property must be a JSON object", raw=line)
    return OperationRequest(operation=operation.strip(), parameters=parameters)


def _json_default(value: Any) -> Any:
    return to_jsonable(value)


def encode_response_line(response: OperationResponse) -> str:
    """Encode a response into one line of JSON (no trailing newline)."""
    return json.dumps(response.to_payload(), ensure_ascii=False, default=_json_default)


def decode_response_line(line: str) -> OperationResponse:
    """
    Parse one response line from a worker.

    A non-null error is authoritative: the result is treated as a failure and
    its data dropped, whatever the success flag says.
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"Invalid JSON: {exc.msg}", raw=line) from exc
    if not isinstance(payload, dict) or "success" not in payload:
        raise ProtocolError("Response must be an object with a success flag", raw=line)

    error = payload.get("error")
    details = payload.get(ERROR_DETAILS_KEY)
    details = details if isinstance(details, dict) else None
    if error is not None or not payload.get("success"):
        return OperationResponse(
            success=False,
            data=None,
            error=str(error) if error is not None else "operation failed",
            details=details,
        )
    return OperationResponse(success=True, data=payload.get("data"))

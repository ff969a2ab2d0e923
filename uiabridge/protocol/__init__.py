"""Wire protocol shared by the host supervisor and the worker loop."""

from uiabridge.protocol.envelope import ERROR_DETAILS_KEY, OperationRequest, OperationResponse
from uiabridge.protocol.serialization import (
    decode_request_line,
    decode_response_line,
    encode_request_line,
    encode_response_line,
    safe_dict,
    to_jsonable,
)

__all__ = [
    "ERROR_DETAILS_KEY",
    "OperationRequest",
    "OperationResponse",
    "decode_request_line",
    "decode_response_line",
    "encode_request_line",
    "encode_response_line",
    "safe_dict",
    "to_jsonable",
]

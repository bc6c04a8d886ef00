import json
from typing import Any, Dict, Mapping

from .exceptions import CodecError


def encode_json(value: Any) -> bytes:
    try:
        return json.dumps(value, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise CodecError(f"cannot encode request body: {exc}") from exc


def encode_fields_body(fields: Mapping[str, Any]) -> bytes:
    return encode_json({"fields": dict(fields)})


def decode_object(raw: bytes) -> Dict[str, Any]:
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise CodecError("response body is not valid json") from exc
    if not isinstance(data, dict):
        raise CodecError("response body is not a json object")
    return data

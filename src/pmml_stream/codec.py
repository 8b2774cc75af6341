"""
codec.py - Payload Codec

Decodes inbound messages into payload trees and encodes outbound
payloads back in the same representation.

Representations:
    - NATIVE_MAP: payload is already a dict (structured object)
    - JSON_TEXT: payload is UTF-8 JSON text (str or bytes)

Content type lookup order: originalContentType header, contentType header.
Without a content type, a dict is taken as a native map and anything
else is decoded as JSON.
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .errors import DecodeError, ModelEvaluationError

logger = logging.getLogger(__name__)

CONTENT_TYPE_HEADER = "contentType"
ORIGINAL_CONTENT_TYPE_HEADER = "originalContentType"

JSON_CONTENT_TYPE = "application/json"

STRUCTURED_CONTENT_TYPES = (
    "application/x-python-object",
    "application/x-java-object",
    "application/x-spring-tuple",
)

JSON_CONTENT_TYPES = (
    "application/json",
    "text/json",
    "text/plain",
)


class PayloadRepresentation(Enum):
    NATIVE_MAP = "native_map"
    JSON_TEXT = "json_text"


@dataclass
class Message:
    """A payload plus its headers."""
    payload: Any
    headers: Dict[str, Any] = field(default_factory=dict)


def _normalize(content_type):
    if content_type is None:
        return None
    if isinstance(content_type, bytes):
        content_type = content_type.decode("utf-8", errors="replace")
    content_type = str(content_type).split(";", 1)[0].strip().lower()
    return content_type or None


def resolve_content_type(headers: Optional[Dict[str, Any]]) -> Optional[str]:
    """Return the effective content type, original one first."""
    headers = headers or {}
    return (_normalize(headers.get(ORIGINAL_CONTENT_TYPE_HEADER))
            or _normalize(headers.get(CONTENT_TYPE_HEADER)))


def is_json_content_type(content_type):
    return content_type in JSON_CONTENT_TYPES or content_type.endswith("+json")


def _reject_constant(name):
    raise DecodeError(f"Non-finite number {name} is not valid JSON")


def _decode_json(raw):
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Payload is not valid UTF-8: {e}") from e
    if not isinstance(raw, str):
        raise DecodeError(f"Expected JSON text, got {type(raw).__name__}")

    try:
        tree = json.loads(raw, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Malformed JSON payload: {e}") from e

    if not isinstance(tree, dict):
        raise DecodeError(f"JSON payload must be an object, got {type(tree).__name__}")
    return tree


def decode(message: Message) -> Tuple[Dict[str, Any], PayloadRepresentation]:
    """
    Turn a message into a payload tree.

    Args:
        message: inbound Message

    Returns:
        tuple: (payload tree, PayloadRepresentation)

    Raises:
        DecodeError: wrong payload type for the content type, malformed
            JSON, or an unsupported content type
    """
    content_type = resolve_content_type(message.headers)
    payload = message.payload

    if content_type is None:
        if isinstance(payload, dict):
            return payload, PayloadRepresentation.NATIVE_MAP
        logger.debug("No content type, falling back to JSON decoding")
        return _decode_json(payload), PayloadRepresentation.JSON_TEXT

    if content_type in STRUCTURED_CONTENT_TYPES:
        if not isinstance(payload, dict):
            raise DecodeError(
                f"Content type {content_type} requires a map payload, "
                f"got {type(payload).__name__}"
            )
        return payload, PayloadRepresentation.NATIVE_MAP

    if is_json_content_type(content_type):
        return _decode_json(payload), PayloadRepresentation.JSON_TEXT

    raise DecodeError(f"Unsupported content type: {content_type}")


def encode(payload: Dict[str, Any], representation: PayloadRepresentation,
           headers: Optional[Dict[str, Any]] = None) -> Message:
    """
    Encode an outbound payload in the inbound representation.

    Args:
        payload: outbound payload tree
        representation: representation of the inbound message
        headers: inbound headers to carry over

    Returns:
        Message: map-in gives map-out, JSON-in gives JSON bytes out
    """
    headers = dict(headers or {})
    headers.pop(ORIGINAL_CONTENT_TYPE_HEADER, None)

    if representation is PayloadRepresentation.JSON_TEXT:
        try:
            body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False,
                              allow_nan=False).encode("utf-8")
        except ValueError as e:
            raise ModelEvaluationError(f"Outbound payload is not valid JSON: {e}") from e
        headers[CONTENT_TYPE_HEADER] = JSON_CONTENT_TYPE
        return Message(payload=body, headers=headers)

    return Message(payload=copy.deepcopy(payload), headers=headers)

"""
MessagePack wire codec.

Outgoing payloads are plain dicts (usually a pydantic `model_dump`), packed
to bytes; incoming frames are unpacked with size limits and must decode to
a dict.
"""

from typing import Any

import msgpack

# Incoming frame limits. Client messages are small (an action and a few tile ids).
MAX_BUFFER_LEN = 64 * 1024
MAX_STR_LEN = 4 * 1024
MAX_BIN_LEN = 4 * 1024
MAX_ARRAY_LEN = 256
MAX_MAP_LEN = 64
MAX_EXT_LEN = 256


class DecodeError(Exception):
    """Frame is not valid MessagePack, not a map, or over a size limit."""


def _normalize(obj: object) -> object:
    """
    Make a payload packable in strict-map mode.

    Integer dict keys (seat -> score maps) become strings and tuples become
    lists, recursively.
    """
    if isinstance(obj, dict):
        return {str(k) if isinstance(k, int) else k: _normalize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_normalize(item) for item in obj]
    return obj


def encode(data: dict[str, Any]) -> bytes:
    return msgpack.packb(_normalize(data))


def decode(data: bytes) -> dict[str, Any]:
    """
    Unpack one client frame.

    Raises DecodeError if the frame is oversized, malformed, or not a map.
    """
    if len(data) > MAX_BUFFER_LEN:
        raise DecodeError(f"payload too large: {len(data)} bytes (max {MAX_BUFFER_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected map, got {type(result).__name__}")
    return result

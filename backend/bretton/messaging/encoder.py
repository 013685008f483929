"""
MessagePack framing for the game WebSocket.

Every frame in either direction is a single MessagePack map. Outbound
payloads come from pydantic ``model_dump(mode="json")`` and may still carry
integer keys (year-indexed tables), which are stringified before packing.
Inbound frames are size-limited before and during unpacking.
"""

from typing import Any

import msgpack


class DecodeError(Exception):
    """Raised when an inbound frame is not a well-formed, size-limited map."""


# Limits sized for the largest client message (a policy or vote action).
MAX_BUFFER_LEN = 64 * 1024
MAX_STR_LEN = 16 * 1024
MAX_BIN_LEN = 16 * 1024
MAX_ARRAY_LEN = 4096
MAX_MAP_LEN = 512
MAX_EXT_LEN = 1024


def _stringify_keys(obj: object) -> object:
    if isinstance(obj, dict):
        return {str(k) if isinstance(k, int) else k: _stringify_keys(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_stringify_keys(item) for item in obj]
    return obj


def encode(data: dict[str, Any]) -> bytes:
    return msgpack.packb(_stringify_keys(data))


def decode(data: bytes, *, max_buffer_len: int = MAX_BUFFER_LEN) -> dict[str, Any]:
    """
    Decode one frame into a dict.

    Raises DecodeError if the frame is oversized, malformed, or not a map.
    """
    if len(data) > max_buffer_len:
        raise DecodeError(f"payload too large: {len(data)} bytes (max {max_buffer_len})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            strict_map_key=True,
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

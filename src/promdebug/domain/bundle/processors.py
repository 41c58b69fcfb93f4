"""Post-processors applied to fetched payloads before archiving.

A post-processor is any callable ``(payload, entry) -> bytes`` that raises on
failure. :func:`run_post_process` wraps failures as
:class:`~promdebug.infrastructure.errors.PostProcessError`.
"""

from __future__ import annotations

import gzip
import zlib
from collections.abc import Mapping

from promdebug.domain.bundle.models import PostProcessor, ProcessedOutcome, ResourceEntry
from promdebug.infrastructure.errors import PostProcessError

GZIP_MAGIC = b"\x1f\x8b"

_WIRE_VARINT = 0
_WIRE_FIXED64 = 1
_WIRE_LENGTH_DELIMITED = 2
_WIRE_FIXED32 = 5

# Profile.string_table
_STRING_TABLE_FIELD = 6


class ProfileDecodeError(ValueError):
    """The payload is not a decodable pprof profile."""


def passthrough(payload: bytes, entry: ResourceEntry) -> bytes:
    """Store the payload unchanged (plain-text exposition formats)."""
    return payload


def _read_varint(data: bytes, pos: int) -> tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise ProfileDecodeError("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7
        if shift >= 64:
            raise ProfileDecodeError("varint too long")


def _walk_profile(data: bytes) -> int:
    """Walk the top-level protobuf fields of a profile and return their count."""

    pos = 0
    fields = 0
    first_string: bytes | None = None
    while pos < len(data):
        key, pos = _read_varint(data, pos)
        field_number, wire_type = key >> 3, key & 0x07
        if field_number == 0:
            raise ProfileDecodeError(f"invalid field number at offset {pos}")

        if wire_type == _WIRE_VARINT:
            _, pos = _read_varint(data, pos)
        elif wire_type == _WIRE_FIXED64:
            pos += 8
        elif wire_type == _WIRE_FIXED32:
            pos += 4
        elif wire_type == _WIRE_LENGTH_DELIMITED:
            length, pos = _read_varint(data, pos)
            value = data[pos : pos + length]
            pos += length
            if field_number == _STRING_TABLE_FIELD and first_string is None:
                first_string = value
        else:
            raise ProfileDecodeError(f"unsupported wire type {wire_type}")

        if pos > len(data):
            raise ProfileDecodeError("truncated field")
        fields += 1

    if first_string is None:
        raise ProfileDecodeError("profile has no string table")
    if first_string != b"":
        raise ProfileDecodeError("string_table[0] must be the empty string")
    return fields


def decode_profile(payload: bytes) -> bytes:
    """Return the raw protobuf bytes of a gzip-compressed or plain profile."""

    if not payload:
        raise ProfileDecodeError("empty profile payload")
    raw = payload
    if payload.startswith(GZIP_MAGIC):
        try:
            raw = gzip.decompress(payload)
        except (OSError, EOFError, zlib.error) as exc:
            raise ProfileDecodeError(f"invalid gzip stream: {exc}") from exc
    _walk_profile(raw)
    return raw


def pprof_profile(payload: bytes, entry: ResourceEntry) -> bytes:
    """Decode a profile and re-encode it as a gzip-compressed protobuf.

    The gzip header carries no timestamp, so identical profiles produce
    identical archive members.
    """
    return gzip.compress(decode_profile(payload), mtime=0)


def route_by_prefix(
    routes: Mapping[str, PostProcessor],
    default: PostProcessor = passthrough,
) -> PostProcessor:
    """Build a processor that dispatches on the entry's remote path.

    The longest matching prefix wins; unmatched paths use ``default``.
    """

    ordered = sorted(routes.items(), key=lambda item: len(item[0]), reverse=True)

    def _route(payload: bytes, entry: ResourceEntry) -> bytes:
        for prefix, processor in ordered:
            if entry.remote_path.startswith(prefix):
                return processor(payload, entry)
        return default(payload, entry)

    return _route


all_resources = route_by_prefix({"/debug/pprof/": pprof_profile}, default=passthrough)


def run_post_process(entry: ResourceEntry, payload: bytes) -> ProcessedOutcome:
    try:
        result = entry.post_process(payload, entry)
    except Exception as exc:
        return ProcessedOutcome(entry=entry, error=PostProcessError(entry.remote_path, exc))
    if not isinstance(result, (bytes, bytearray)):
        cause = TypeError(f"post-processor returned {type(result).__name__}, expected bytes")
        return ProcessedOutcome(entry=entry, error=PostProcessError(entry.remote_path, cause))
    return ProcessedOutcome(entry=entry, payload=bytes(result))


__all__ = [
    "ProfileDecodeError",
    "passthrough",
    "decode_profile",
    "pprof_profile",
    "route_by_prefix",
    "all_resources",
    "run_post_process",
]

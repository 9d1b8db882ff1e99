"""Byte-oriented LZ77 codec (FastLZ level-1 stream format).

The stream has no header or trailer; it is a sequence of instructions:

- ``000LLLLL`` + ``L+1`` literal bytes (runs of 1..32 bytes)
- ``TTTDDDDD`` + distance byte, ``T`` in 1..6: match of length ``T+2``
- ``111DDDDD`` + extra byte ``E`` + distance byte: match of length ``9+E``

The match distance is ``(DDDDD << 8 | distance byte) + 1``, so matches
reach back at most 8192 bytes.  Overlapping matches are legal and are
copied byte by byte.
"""

from __future__ import annotations

MIN_MATCH = 3
MAX_MATCH = 264
MAX_LITERAL_RUN = 32
MAX_DISTANCE = 8192

_LONG_MATCH = 7


class MalformedInputError(ValueError):
    """Raised when a compressed stream does not follow the codec framing."""


# ---------------------------------------------------------------------------
# Compression
# ---------------------------------------------------------------------------


def _emit_literals(out: bytearray, data: bytes, start: int, end: int) -> None:
    while start < end:
        run = min(MAX_LITERAL_RUN, end - start)
        out.append(run - 1)
        out += data[start:start + run]
        start += run


def _emit_match(out: bytearray, length: int, distance: int) -> None:
    d = distance - 1
    if length < 9:
        out.append(((length - 2) << 5) | (d >> 8))
        out.append(d & 0xFF)
    else:
        out.append((_LONG_MATCH << 5) | (d >> 8))
        out.append(length - 9)
        out.append(d & 0xFF)


def compress(data: bytes) -> bytes:
    """Compress *data*.  Deterministic and total; ``b""`` maps to ``b""``."""
    data = bytes(data)
    n = len(data)
    out = bytearray()
    # Most recent position of each 3-byte sequence
    table: dict[bytes, int] = {}

    literal_start = 0
    i = 0
    while i + MIN_MATCH <= n:
        key = data[i:i + MIN_MATCH]
        candidate = table.get(key)
        table[key] = i

        if candidate is None or i - candidate > MAX_DISTANCE:
            i += 1
            continue

        length = MIN_MATCH
        limit = min(MAX_MATCH, n - i)
        while length < limit and data[candidate + length] == data[i + length]:
            length += 1

        _emit_literals(out, data, literal_start, i)
        _emit_match(out, length, i - candidate)

        for j in range(i + 1, min(i + length, n - MIN_MATCH + 1)):
            table[data[j:j + MIN_MATCH]] = j

        i += length
        literal_start = i

    _emit_literals(out, data, literal_start, n)
    return bytes(out)


# ---------------------------------------------------------------------------
# Decompression
# ---------------------------------------------------------------------------


def decompress(data: bytes) -> bytes:
    """Decompress a stream produced by :func:`compress`.

    Raises
    ------
    MalformedInputError
        If an instruction is truncated or a match reaches before the
        start of the output.
    """
    data = bytes(data)
    n = len(data)
    out = bytearray()
    ip = 0

    while ip < n:
        ctrl = data[ip]
        ip += 1
        kind = ctrl >> 5

        if kind == 0:
            run = ctrl + 1
            if ip + run > n:
                raise MalformedInputError(
                    f"Literal run of {run} bytes at offset {ip - 1} "
                    f"overruns input of {n} bytes"
                )
            out += data[ip:ip + run]
            ip += run
            continue

        if kind == _LONG_MATCH:
            if ip >= n:
                raise MalformedInputError(
                    f"Truncated long match at offset {ip - 1}"
                )
            length = 9 + data[ip]
            ip += 1
        else:
            length = kind + 2

        if ip >= n:
            raise MalformedInputError(f"Truncated match at offset {ip - 1}")
        distance = (((ctrl & 0x1F) << 8) | data[ip]) + 1
        ip += 1

        if distance > len(out):
            raise MalformedInputError(
                f"Match distance {distance} exceeds {len(out)} bytes of output"
            )

        start = len(out) - distance
        if length <= distance:
            out += out[start:start + length]
        else:
            for k in range(length):
                out.append(out[start + k])

    return bytes(out)


def compression_ratio(original_size: int, compressed_size: int) -> float:
    """Return compressed size over original size (``1.0`` for empty input)."""
    if original_size <= 0:
        return 1.0
    return compressed_size / original_size

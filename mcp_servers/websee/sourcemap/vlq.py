"""Base64 VLQ decoding for Source Map v3 `mappings`."""

from __future__ import annotations

_B64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_DECODE = {ch: i for i, ch in enumerate(_B64)}

_SHIFT = 5
_CONTINUATION = 1 << _SHIFT  # 0b100000
_MASK = _CONTINUATION - 1  # 0b011111


class VlqError(ValueError):
    pass


def decode_segment(segment: str) -> list[int]:
    """Decode one comma-separated mappings segment into signed integers."""
    values: list[int] = []
    value = 0
    shift = 0
    for ch in segment:
        digit = _DECODE.get(ch)
        if digit is None:
            raise VlqError(f"invalid base64 VLQ character {ch!r}")
        value += (digit & _MASK) << shift
        if digit & _CONTINUATION:
            shift += _SHIFT
            continue
        # Lowest bit carries the sign.
        values.append(-(value >> 1) if value & 1 else value >> 1)
        value = 0
        shift = 0
    if shift:
        raise VlqError(f"truncated VLQ segment {segment!r}")
    return values


def encode_value(value: int) -> str:
    """Encode one signed integer (used to build synthetic maps in tests and tooling)."""
    vlq = ((-value) << 1) | 1 if value < 0 else value << 1
    out = []
    while True:
        digit = vlq & _MASK
        vlq >>= _SHIFT
        if vlq:
            digit |= _CONTINUATION
        out.append(_B64[digit])
        if not vlq:
            return "".join(out)


def encode_segment(values: list[int]) -> str:
    return "".join(encode_value(v) for v in values)

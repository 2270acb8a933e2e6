"""Prometheus remote write protocol encoding.

Implements the protobuf + snappy format required by the remote_write API.
Fields holding their proto3 default value are omitted, as protobuf encoders
do, so output is byte-compatible with generated code.
"""

import struct
from typing import Iterable

import snappy

from prom_write.remote_write.models import Label, Sample, TimeSeries, WriteRequest

# Protobuf wire types
WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LENGTH_DELIMITED = 2

_UINT64_MASK = (1 << 64) - 1


class EncodingError(RuntimeError):
    """Raised when the encoded request cannot be compressed."""

    pass


def _encode_varint(value: int) -> bytes:
    """Encode an integer as a protobuf varint.

    Negative values use their 64-bit two's complement, as int64 fields do.
    """
    value &= _UINT64_MASK
    result = bytearray()
    while value > 127:
        result.append((value & 0x7F) | 0x80)
        value >>= 7
    result.append(value)
    return bytes(result)


def _encode_field(field_number: int, wire_type: int, data: bytes) -> bytes:
    """Encode a protobuf field."""
    tag = (field_number << 3) | wire_type
    return _encode_varint(tag) + data


def _encode_message(field_number: int, data: bytes) -> bytes:
    """Encode an embedded message field."""
    return _encode_field(
        field_number, WIRE_LENGTH_DELIMITED, _encode_varint(len(data)) + data
    )


def _encode_string(field_number: int, value: str) -> bytes:
    """Encode a string field."""
    if not value:
        return b""
    encoded = value.encode("utf-8")
    return _encode_field(
        field_number, WIRE_LENGTH_DELIMITED, _encode_varint(len(encoded)) + encoded
    )


def _encode_double(field_number: int, value: float) -> bytes:
    """Encode a double field.

    Only positive zero is the proto3 default; -0.0 has a distinct bit
    pattern and is written.
    """
    data = struct.pack("<d", value)
    if data == b"\x00" * 8:
        return b""
    return _encode_field(field_number, WIRE_FIXED64, data)


def _encode_int64(field_number: int, value: int) -> bytes:
    """Encode an int64 field as varint."""
    if value == 0:
        return b""
    return _encode_field(field_number, WIRE_VARINT, _encode_varint(value))


def _encode_label(label: Label) -> bytes:
    return _encode_string(1, label.name) + _encode_string(2, label.value)


def _encode_sample(sample: Sample) -> bytes:
    return _encode_double(1, sample.value) + _encode_int64(2, sample.timestamp)


def _encode_timeseries(series: TimeSeries) -> bytes:
    parts = [_encode_message(1, _encode_label(label)) for label in series.labels]
    parts.extend(_encode_message(2, _encode_sample(sample)) for sample in series.samples)
    return b"".join(parts)


def _encode_write_request(timeseries: Iterable[TimeSeries]) -> bytes:
    return b"".join(_encode_message(1, _encode_timeseries(ts)) for ts in timeseries)


def encode_proto3(request: WriteRequest) -> bytes:
    """Sort the request and encode it as a protobuf WriteRequest message."""
    request.sort()
    return _encode_write_request(request.timeseries)


def compress(data: bytes) -> bytes:
    """Apply raw (unframed) snappy block compression."""
    try:
        return snappy.compress(data)
    except Exception as e:
        raise EncodingError(f"snappy compression failed: {e}") from e


def encode_compressed(request: WriteRequest) -> bytes:
    """Encode a request for remote_write.

    Returns:
        Snappy-compressed protobuf data ready for remote_write.
    """
    return compress(encode_proto3(request))

"""Types and utilities for calling Prometheus remote write API endpoints."""

from prom_write.remote_write.encoder import EncodingError, encode_compressed, encode_proto3
from prom_write.remote_write.models import (
    CONTENT_ENCODING,
    CONTENT_TYPE,
    HEADER_NAME_REMOTE_WRITE_VERSION,
    LABEL_NAME,
    REMOTE_WRITE_VERSION_01,
    Label,
    MetricKind,
    Observation,
    Sample,
    TimeSeries,
    WriteRequest,
)
from prom_write.remote_write.parser import (
    ExpositionParseError,
    UnsupportedMetricTypeError,
    parse_text_format,
)
from prom_write.remote_write.request import (
    HeaderValidationError,
    HttpRequest,
    build_http_request,
)
from prom_write.remote_write.series import (
    ReservedLabelError,
    canonicalize,
    group_observations,
)

__all__ = [
    "CONTENT_ENCODING",
    "CONTENT_TYPE",
    "EncodingError",
    "ExpositionParseError",
    "HEADER_NAME_REMOTE_WRITE_VERSION",
    "HeaderValidationError",
    "HttpRequest",
    "LABEL_NAME",
    "Label",
    "MetricKind",
    "Observation",
    "REMOTE_WRITE_VERSION_01",
    "ReservedLabelError",
    "Sample",
    "TimeSeries",
    "UnsupportedMetricTypeError",
    "WriteRequest",
    "build_http_request",
    "canonicalize",
    "encode_compressed",
    "encode_proto3",
    "group_observations",
    "parse_text_format",
]

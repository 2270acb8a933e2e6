"""Data models for the Prometheus remote write protocol.

See https://prometheus.io/docs/concepts/remote_write_spec/ for the wire
schema these classes mirror.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

# Special label carrying the metric name.
LABEL_NAME = "__name__"

CONTENT_TYPE = "application/x-protobuf"
CONTENT_ENCODING = "snappy"
HEADER_NAME_REMOTE_WRITE_VERSION = "X-Prometheus-Remote-Write-Version"
REMOTE_WRITE_VERSION_01 = "0.1.0"


class MetricKind(str, Enum):
    """Metric types of the text exposition format."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    SUMMARY = "summary"
    UNTYPED = "untyped"

    @property
    def is_supported(self) -> bool:
        """Whether samples of this kind can be written as plain floats."""
        return self in (MetricKind.COUNTER, MetricKind.GAUGE, MetricKind.UNTYPED)


@dataclass
class Observation:
    """A single parsed sample, before grouping into series.

    ``labels`` never contains the metric name label.
    """

    name: str
    labels: Dict[str, str]
    value: float
    timestamp_ms: int


@dataclass
class Label:
    """A label.

    message Label {
        string name = 1;
        string value = 2;
    }
    """

    name: str
    value: str


@dataclass
class Sample:
    """A sample.

    message Sample {
        double value = 1;
        int64 timestamp = 2;
    }
    """

    value: float
    timestamp: int  # milliseconds since epoch


@dataclass
class TimeSeries:
    """A time series.

    message TimeSeries {
        repeated Label labels = 1;
        repeated Sample samples = 2;
    }
    """

    labels: List[Label] = field(default_factory=list)
    samples: List[Sample] = field(default_factory=list)

    @property
    def metric_name(self) -> Optional[str]:
        """Value of the ``__name__`` label, if present."""
        for label in self.labels:
            if label.name == LABEL_NAME:
                return label.value
        return None

    def label_pairs(self) -> List[Tuple[str, str]]:
        return [(label.name, label.value) for label in self.labels]

    def sort_labels_and_samples(self) -> None:
        """Sort labels by name and samples by timestamp.

        Both sorts are stable, so samples sharing a timestamp keep the order
        in which they were appended.
        """
        self.labels.sort(key=lambda label: label.name)
        self.samples.sort(key=lambda sample: sample.timestamp)


@dataclass
class WriteRequest:
    """A write request.

    message WriteRequest {
        repeated TimeSeries timeseries = 1;
        // 2 and 3 are reserved.
    }
    """

    timeseries: List[TimeSeries] = field(default_factory=list)

    def sort(self) -> None:
        """Prepare the request for sending.

        Sorts labels and samples within each series, then the series
        themselves by metric name.
        """
        from prom_write.remote_write.series import canonicalize

        canonicalize(self)

    def sorted(self) -> "WriteRequest":
        self.sort()
        return self

    def encode_proto3(self) -> bytes:
        """Encode as a protobuf message.

        NOTE: The remote write API requires snappy compression on top of this.
        """
        from prom_write.remote_write.encoder import encode_proto3

        return encode_proto3(self)

    def encode_compressed(self) -> bytes:
        """Encode as a snappy-compressed protobuf message."""
        from prom_write.remote_write.encoder import encode_compressed

        return encode_compressed(self)

    @classmethod
    def from_text_format(
        cls, text: str, now_ms: Optional[int] = None
    ) -> "WriteRequest":
        """Parse the Prometheus text format into a sorted write request."""
        from prom_write.remote_write.parser import parse_text_format
        from prom_write.remote_write.series import group_observations

        observations = parse_text_format(text, now_ms=now_ms)
        return cls(timeseries=group_observations(observations)).sorted()

"""Prometheus text exposition format parsing.

Lexing is delegated to prometheus_client; this module only decides which
metric types are acceptable and flattens samples into observations.
"""

import time
from typing import Dict, List, Optional

from prometheus_client.parser import text_string_to_metric_families

from prom_write.remote_write.models import MetricKind, Observation

# prometheus_client reports untyped families as "unknown".
_FAMILY_KINDS: Dict[str, MetricKind] = {
    "counter": MetricKind.COUNTER,
    "gauge": MetricKind.GAUGE,
    "histogram": MetricKind.HISTOGRAM,
    "summary": MetricKind.SUMMARY,
    "untyped": MetricKind.UNTYPED,
    "unknown": MetricKind.UNTYPED,
}


class ExpositionParseError(ValueError):
    """Raised when input is not valid Prometheus text format."""

    pass


class UnsupportedMetricTypeError(ExpositionParseError):
    """Raised for samples of a metric type that cannot be written."""

    def __init__(self, kind: MetricKind):
        self.kind = kind
        super().__init__(f"{kind.value} not supported yet")


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _declared_counters(text: str) -> set:
    """Names declared as counters via ``# TYPE <name> counter``."""
    names = set()
    for line in text.splitlines():
        parts = line.split()
        if len(parts) == 4 and parts[:2] == ["#", "TYPE"] and parts[3] == "counter":
            names.add(parts[2])
    return names


def _family_kind(family_type: str) -> MetricKind:
    try:
        return _FAMILY_KINDS[family_type]
    except KeyError:
        raise ExpositionParseError(f"unknown metric type '{family_type}'") from None


def parse_text_format(text: str, now_ms: Optional[int] = None) -> List[Observation]:
    """Parse Prometheus text format into a flat list of observations.

    Args:
        text: Exposition format text. ``# HELP`` and ``# TYPE`` lines are
            metadata and produce no observations.
        now_ms: Timestamp in milliseconds given to samples that carry none.
            Defaults to the current time, read once per call.

    Returns:
        Observations in input order.

    Raises:
        UnsupportedMetricTypeError: For histogram or summary samples.
        ExpositionParseError: For malformed input.
    """
    text = text.strip()
    if now_ms is None:
        now_ms = _now_ms()

    counters = _declared_counters(text)
    observations: List[Observation] = []

    try:
        for family in text_string_to_metric_families(text):
            kind = _family_kind(family.type)
            if family.samples and not kind.is_supported:
                raise UnsupportedMetricTypeError(kind)

            for sample in family.samples:
                name = sample.name
                # prometheus_client appends "_total" to counters declared
                # without it; keep the name as written.
                if (
                    kind is MetricKind.COUNTER
                    and family.name in counters
                    and name == family.name + "_total"
                ):
                    name = family.name

                if sample.timestamp is None:
                    timestamp_ms = now_ms
                else:
                    # The text parser reports timestamps in seconds.
                    timestamp_ms = int(round(float(sample.timestamp) * 1000))

                observations.append(
                    Observation(
                        name=name,
                        labels=dict(sample.labels),
                        value=float(sample.value),
                        timestamp_ms=timestamp_ms,
                    )
                )
    except ExpositionParseError:
        raise
    except (ValueError, IndexError, KeyError) as e:
        raise ExpositionParseError(
            f"could not parse input as Prometheus text format: {e}"
        ) from e

    return observations

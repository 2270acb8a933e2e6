"""Grouping of observations into series, and canonical ordering.

Remote write receivers treat ordering as part of request validity: labels
must be sorted by name, samples by timestamp. Series are additionally sorted
by metric name so that identical input always yields identical bytes.
"""

from typing import Dict, Iterable, List, Tuple

from prom_write.remote_write.models import (
    LABEL_NAME,
    Label,
    Observation,
    Sample,
    TimeSeries,
    WriteRequest,
)

SeriesKey = Tuple[Tuple[str, str], ...]


class ReservedLabelError(ValueError):
    """Raised when a caller supplies the reserved metric name label."""

    pass


def series_key(observation: Observation) -> SeriesKey:
    """Build the identity key of the series an observation belongs to.

    The key is the full label set, metric name included, sorted by label
    name. Sorting here is what makes grouping independent of label order in
    the input.
    """
    if LABEL_NAME in observation.labels:
        raise ReservedLabelError(
            f"label '{LABEL_NAME}' is reserved for the metric name "
            f"(metric '{observation.name}')"
        )

    pairs = [(LABEL_NAME, observation.name)]
    pairs.extend(observation.labels.items())
    pairs.sort(key=lambda pair: pair[0])
    return tuple(pairs)


def group_observations(observations: Iterable[Observation]) -> List[TimeSeries]:
    """Group observations into series by metric name and label set.

    Args:
        observations: Parsed observations, in any order.

    Returns:
        One TimeSeries per distinct identity, each holding every sample for
        that identity. The order of the returned list is not meaningful;
        run canonicalize() before encoding.

    Raises:
        ReservedLabelError: If an observation carries a ``__name__`` label.
    """
    all_series: Dict[SeriesKey, TimeSeries] = {}

    for observation in observations:
        key = series_key(observation)

        series = all_series.get(key)
        if series is None:
            series = TimeSeries(labels=[Label(name, value) for name, value in key])
            all_series[key] = series

        series.samples.append(Sample(observation.value, observation.timestamp_ms))

    return list(all_series.values())


def _series_sort_key(series: TimeSeries) -> Tuple[str, List[Tuple[str, str]]]:
    # Series sharing a metric name are ordered by their remaining labels.
    return (series.metric_name or "", series.label_pairs())


def canonicalize(request: WriteRequest) -> WriteRequest:
    """Impose the ordering required by the remote write protocol.

    Sorts in place and returns the same request. Python compares strings by
    code point, which matches byte-wise comparison of their UTF-8 encoding.
    Applying this twice is a no-op.
    """
    for series in request.timeseries:
        series.sort_labels_and_samples()

    request.timeseries.sort(key=_series_sort_key)
    return request

"""Shared pytest fixtures for prom-write tests."""

import pytest

from prom_write.remote_write.models import Label, Sample, TimeSeries, WriteRequest

EXAMPLE_TEXT = """
# TYPE mycounter counter
# TYPE mygauge gauge

mygauge 100 100
http_requests_total{method="post",code="200"} 1027 1395066363000
mycounter 100 100
alpha 10 1000
http_requests_total{method="post",code="200"} 50 1000
"""


@pytest.fixture
def example_text():
    """Exposition text with repeated series, out of order."""
    return EXAMPLE_TEXT


@pytest.fixture
def expected_request():
    """The canonical WriteRequest for EXAMPLE_TEXT."""
    return WriteRequest(
        timeseries=[
            TimeSeries(
                labels=[Label("__name__", "alpha")],
                samples=[Sample(10.0, 1000)],
            ),
            TimeSeries(
                labels=[
                    Label("__name__", "http_requests_total"),
                    Label("code", "200"),
                    Label("method", "post"),
                ],
                samples=[Sample(50.0, 1000), Sample(1027.0, 1395066363000)],
            ),
            TimeSeries(
                labels=[Label("__name__", "mycounter")],
                samples=[Sample(100.0, 100)],
            ),
            TimeSeries(
                labels=[Label("__name__", "mygauge")],
                samples=[Sample(100.0, 100)],
            ),
        ]
    )


@pytest.fixture
def isolated_cwd(tmp_path, monkeypatch):
    """Run in an empty directory so no config/config.yaml is picked up."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path

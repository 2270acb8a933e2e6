"""prom-write: write metrics to Prometheus over the remote write API."""

__version__ = "0.1.0"

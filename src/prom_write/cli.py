"""prom-write: write metrics to Prometheus over the remote write API."""

import argparse
import sys
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, TextIO, Union

from prom_write import __version__
from prom_write.remote_write import (
    LABEL_NAME,
    EncodingError,
    ExpositionParseError,
    HeaderValidationError,
    MetricKind,
    Observation,
    ReservedLabelError,
    WriteRequest,
    build_http_request,
    group_observations,
)
from prom_write.remote_write.request import HttpRequest, validate_header
from prom_write.sync.transport import RemoteWriteClient, RemoteWriteError
from prom_write.utils.config import ConfigError, load_config, validate_url
from prom_write.utils.logging import get_logger, setup_logging

log = get_logger(__name__)

USAGE = """prom-write {version}

Write metrics to Prometheus over the remote-write API

Arguments:
  --help
    Print this help message and exit.

  --version
    Print the version and exit.

  -u, --url <url>: required!
    Prometheus remote write endpoint URL

  -h, --header KEY=VALUE
    Specify additional custom headers to send in the http request.

  --timeout <timeout:SECONDS>
    Timeout for the HTTP request. If not specified, the default is 60 seconds.

  -c, --config <path>
    YAML config file. Command line arguments take precedence.

  --log-level <level>
    DEBUG, INFO, WARNING (default), ERROR.

  --dry-run
    Build and encode the request, but do not send it.

Read metrics from file:
  -f, --file <path>:
    Read metrics from a file encoded in the Prometheus text format.
    If the path is '-', read from stdin.

Manually specify metric:
  -n, --name <name:string>: required!
    Metric name

  -v, --value <value:float>: required!
    Metric value

  -t, --type <type:[counter,gauge]>:
    Metric type. Supported types: counter, gauge.
    DEFAULT: counter if name ends with '_total', gauge otherwise.

  -l, --label <key>=<value>:
    Add a label to the metric. Can be specified multiple times.

Examples:

* Write a gauge:
  > prom-write --url http://localhost:9090/api/v1/write --name requests --value 1

* Write a counter:
  > prom-write --url http://localhost:9090/api/v1/write -n requests_total -v 1

* Specify the type:
  > prom-write --url http://localhost:9090/api/v1/write -n requests -t counter -v 1

* Add labels:
  > prom-write --url http://localhost:9090/api/v1/write -n requests -v 1 --label method=GET -l path=/api/v1/write

* Write metrics from a file:
  > prom-write --url http://localhost:9090/api/v1/write --file metrics.txt

* Write metrics from stdin
  > prom-write --url http://localhost:9090/api/v1/write -f -
"""


class UsageError(ConfigError):
    """Raised for invalid command line arguments."""

    pass


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


@dataclass
class MetricInput:
    """A single metric given on the command line."""

    name: str
    value: float
    kind: MetricKind = MetricKind.GAUGE
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class Args:
    """Validated arguments for a write."""

    url: str
    input: Union[MetricInput, str]  # str = file path, '-' for stdin
    headers: Dict[str, str] = field(default_factory=dict)
    timeout_seconds: float = 60.0
    max_attempts: int = 1
    user_agent: str = f"prom-write/{__version__}"
    dry_run: bool = False
    log_level: str = "WARNING"


def _build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog="prom-write", add_help=False)
    parser.add_argument("--help", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("-u", "--url", action="append", default=[])
    parser.add_argument("-h", "--header", action="append", default=[])
    parser.add_argument("--timeout")
    parser.add_argument("-c", "--config")
    parser.add_argument("--log-level")
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("-f", "--file", action="append", default=[])
    parser.add_argument("-n", "--name", action="append", default=[])
    parser.add_argument("-v", "--value", action="append", default=[])
    parser.add_argument("-t", "--type", action="append", default=[])
    parser.add_argument("-l", "--label", action="append", default=[])
    return parser


def _once(values: List[str], flag: str) -> Optional[str]:
    if len(values) > 1:
        raise UsageError(f"argument {flag} can only be specified once")
    return values[0] if values else None


def _split_pair(raw: str, flag: str, what: str) -> tuple:
    key, sep, val = raw.strip().partition("=")
    if not sep:
        raise UsageError(f"{flag} argument requires a key-value pair ({what})")
    return key.strip(), val.strip()


def _check_header(name: str, value: str, source: str = "argument -h/--header") -> None:
    try:
        validate_header(name, value)
    except HeaderValidationError as e:
        raise UsageError(f"{source}: {e}") from e


def parse_headers(raw_headers: List[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for raw in raw_headers:
        key, val = _split_pair(raw, "-h/--header", "X=Y")
        if not key:
            raise UsageError(
                f"argument -h/--header requires a non-empty key: '{key}={val}'"
            )
        _check_header(key, val)
        headers[key] = val
    return headers


def parse_labels(raw_labels: List[str]) -> Dict[str, str]:
    labels: Dict[str, str] = {}
    for raw in raw_labels:
        key, val = _split_pair(raw, "-l/--label", "X=Y")
        if not key:
            raise UsageError(
                f"argument -l/--label requires a non-empty key: '{key}={val}'"
            )
        if not val:
            raise UsageError(
                f"argument -l/--label requires a non-empty value: '{key}={val}'"
            )
        if key == LABEL_NAME:
            raise UsageError(f"argument -l/--label: label '{LABEL_NAME}' is reserved")
        labels[key] = val
    return labels


def parse_metric_type(value: str) -> MetricKind:
    value = value.strip()
    if value in (MetricKind.COUNTER.value, MetricKind.GAUGE.value):
        return MetricKind(value)
    if value in (MetricKind.HISTOGRAM.value, MetricKind.SUMMARY.value):
        raise UsageError(f"metric type '{value}' is not supported yet")
    raise UsageError(f"unknown metric type '{value}'")


def parse_args(argv: List[str]) -> Union[str, Args]:
    """Parse command line arguments.

    Returns:
        "help", "version", or validated Args for a write.

    Raises:
        UsageError: For invalid arguments.
        ConfigError: For an invalid config file.
    """
    ns = _build_parser().parse_args(argv)

    if ns.help:
        return "help"
    if ns.version:
        return "version"

    config = load_config(ns.config)
    rw = config.remote_write

    url = _once(ns.url, "-u/--url") or rw.url
    if not url:
        raise UsageError("missing required argument -u/--url")
    try:
        validate_url(url)
    except ConfigError as e:
        raise UsageError(f"argument -u/--url: {e}") from e

    timeout_seconds = rw.timeout_seconds
    if ns.timeout is not None:
        try:
            timeout_seconds = int(ns.timeout.strip())
        except ValueError:
            raise UsageError(
                "--timeout argument requires a number (timeout in seconds)"
            ) from None
        if timeout_seconds <= 0:
            raise UsageError("--timeout argument must be positive")

    for key, val in rw.headers.items():
        _check_header(key, val, source="config remote_write.headers")
    headers = dict(rw.headers)
    headers.update(parse_headers(ns.header))

    input_file = _once(ns.file, "-f/--file")
    name = _once(ns.name, "-n/--name")
    raw_value = _once(ns.value, "-v/--value")
    raw_type = _once(ns.type, "-t/--type")

    metric_input: Union[MetricInput, str]
    if input_file is not None:
        for flag, given in (
            ("-n/--name", name is not None),
            ("-t/--type", raw_type is not None),
            ("-v/--value", raw_value is not None),
            ("-l/--label", bool(ns.label)),
        ):
            if given:
                raise UsageError(f"argument {flag} cannot be used with -f/--file")
        metric_input = input_file
    else:
        if name is None:
            raise UsageError("missing required argument -n/--name")
        name = name.strip()
        if not name:
            raise UsageError("argument -n/--name requires a non-empty value")
        if raw_value is None:
            raise UsageError("missing required argument -v/--value")
        try:
            value = float(raw_value.strip())
        except ValueError:
            raise UsageError("-v/--value argument requires a number") from None

        if raw_type is not None:
            kind = parse_metric_type(raw_type)
        elif name.endswith("_total"):
            kind = MetricKind.COUNTER
        else:
            kind = MetricKind.GAUGE

        metric_input = MetricInput(
            name=name, value=value, kind=kind, labels=parse_labels(ns.label)
        )

    return Args(
        url=url,
        input=metric_input,
        headers=headers,
        timeout_seconds=timeout_seconds,
        max_attempts=rw.max_attempts,
        user_agent=rw.user_agent or f"prom-write/{__version__}",
        dry_run=ns.dry_run,
        log_level=ns.log_level or config.app.log_level,
    )


def build_write_request(args: Args, stdin: Optional[TextIO] = None) -> WriteRequest:
    """Build the write request for the metric or file given on the command line."""
    if isinstance(args.input, MetricInput):
        metric = args.input
        # The type is validated but not part of the remote write 0.1.0 payload.
        log.debug("metric_from_arguments", metric=metric.name, kind=metric.kind.value)
        observation = Observation(
            name=metric.name,
            labels=dict(metric.labels),
            value=metric.value,
            timestamp_ms=time.time_ns() // 1_000_000,
        )
        return WriteRequest(timeseries=group_observations([observation])).sorted()

    path = args.input
    if path == "-":
        contents = (stdin or sys.stdin).read()
    else:
        try:
            with open(path) as f:
                contents = f.read()
        except OSError as e:
            raise ConfigError(f"could not read file '{path}': {e}") from e

    return WriteRequest.from_text_format(contents)


def build_http_req(args: Args, stdin: Optional[TextIO] = None) -> HttpRequest:
    return build_http_request(
        build_write_request(args, stdin=stdin),
        args.url,
        args.user_agent,
        headers=args.headers,
    )


def run(
    argv: List[str],
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
    stdin: Optional[TextIO] = None,
    client: Optional[RemoteWriteClient] = None,
) -> int:
    """Run the command line tool and return the exit code."""
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    try:
        cmd = parse_args(argv)
        if cmd == "help":
            stdout.write(USAGE.format(version=__version__) + "\n")
            return 0
        if cmd == "version":
            stdout.write(f"prom-write {__version__}\n")
            return 0

        setup_logging(cmd.log_level)
        req = build_http_req(cmd, stdin=stdin)

        if cmd.dry_run:
            log.info("remote_write_dry_run", url=req.url, payload_bytes=len(req.body))
            stderr.write(f"Dry run: {len(req.body)} bytes not sent to {req.url}\n")
            return 0

        client = client or RemoteWriteClient(
            timeout_seconds=cmd.timeout_seconds,
            max_attempts=cmd.max_attempts,
        )
        client.send(req)
    except UsageError as e:
        stderr.write(f"error: {e}\n\nRun 'prom-write --help' for usage.\n")
        return 2
    except (
        ExpositionParseError,
        ConfigError,
        ReservedLabelError,
        HeaderValidationError,
        EncodingError,
        RemoteWriteError,
    ) as e:
        stderr.write(f"error: {e}\n")
        return 1

    stderr.write("Metrics written successfully\n")
    return 0


def main() -> None:
    """Entry point for the prom-write command."""
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()

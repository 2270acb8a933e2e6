"""Tests for the HTTP remote write client."""

from unittest.mock import MagicMock

import pytest
import requests
from tenacity import wait_none

from prom_write.remote_write.request import build_http_request
from prom_write.sync.transport import RemoteWriteClient, RemoteWriteError

URL = "http://localhost:9090/api/v1/write"


def _response(status: int, text: str = "") -> MagicMock:
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    response.text = text
    response.headers = {"X-Request-Id": "abc", "Server": "prom"}
    return response


def _client(session: MagicMock, attempts: int = 1) -> RemoteWriteClient:
    return RemoteWriteClient(
        timeout_seconds=5, max_attempts=attempts, session=session, wait=wait_none()
    )


@pytest.fixture
def http_request():
    return build_http_request(b"payload", URL, "test/1.0")


def test_send_success(http_request) -> None:
    """A 2xx response is returned; the prepared request carries the body."""
    session = MagicMock(spec=requests.Session)
    session.send.return_value = _response(204)

    response = _client(session).send(http_request)

    assert response.status_code == 204
    prepared = session.send.call_args.args[0]
    assert prepared.body == b"payload"
    assert prepared.headers["Content-Encoding"] == "snappy"
    assert session.send.call_args.kwargs["timeout"] == 5


def test_client_error_not_retried(http_request) -> None:
    """4xx responses fail immediately with the status code."""
    session = MagicMock(spec=requests.Session)
    session.send.return_value = _response(400, "out of order sample")

    with pytest.raises(RemoteWriteError, match="400") as exc:
        _client(session, attempts=3).send(http_request)

    assert exc.value.status_code == 400
    assert exc.value.response_text == "out of order sample"
    assert session.send.call_count == 1


def test_server_error_retried_until_exhausted(http_request) -> None:
    """5xx responses are retried up to max_attempts, then raised."""
    session = MagicMock(spec=requests.Session)
    session.send.return_value = _response(503, "unavailable")

    with pytest.raises(RemoteWriteError) as exc:
        _client(session, attempts=3).send(http_request)

    assert exc.value.status_code == 503
    assert session.send.call_count == 3


def test_server_error_then_success(http_request) -> None:
    """A retry that succeeds returns the successful response."""
    session = MagicMock(spec=requests.Session)
    session.send.side_effect = [_response(500), _response(200)]

    response = _client(session, attempts=2).send(http_request)

    assert response.status_code == 200
    assert session.send.call_count == 2


def test_connection_error_wrapped(http_request) -> None:
    """Transport exceptions become RemoteWriteError without a status."""
    session = MagicMock(spec=requests.Session)
    session.send.side_effect = requests.ConnectionError("refused")

    with pytest.raises(RemoteWriteError, match="could not send HTTP request") as exc:
        _client(session).send(http_request)

    assert exc.value.status_code is None
    assert exc.value.retryable
    assert session.send.call_count == 1


def test_single_attempt_by_default(http_request) -> None:
    """Without max_attempts the client does not retry."""
    session = MagicMock(spec=requests.Session)
    session.send.return_value = _response(502)

    with pytest.raises(RemoteWriteError):
        RemoteWriteClient(session=session).send(http_request)

    assert session.send.call_count == 1

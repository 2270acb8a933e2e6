"""HTTP transport for remote write requests."""

import time
from typing import Optional

import requests
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from prom_write.remote_write.request import HttpRequest
from prom_write.utils.logging import get_logger

log = get_logger(__name__)


class RemoteWriteError(RuntimeError):
    """Raised when a remote write request fails or is rejected."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text

    @property
    def retryable(self) -> bool:
        """Connection failures and 5xx responses may succeed on retry."""
        return self.status_code is None or self.status_code >= 500


def _should_retry(exc: BaseException) -> bool:
    return isinstance(exc, RemoteWriteError) and exc.retryable


class RemoteWriteClient:
    """Send prepared remote write requests over HTTP.

    The pipeline that builds requests never retries; retrying is the
    client's decision and is off unless max_attempts > 1.
    """

    def __init__(
        self,
        timeout_seconds: float = 60.0,
        max_attempts: int = 1,
        session: Optional[requests.Session] = None,
        wait: Optional[wait_base] = None,
    ):
        """Initialise the client.

        Args:
            timeout_seconds: Per-attempt request timeout.
            max_attempts: Total attempts for retryable failures.
            session: Session to send with. A new one is created if omitted.
            wait: Backoff between attempts (default exponential, 2-30 s).
        """
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.session = session or requests.Session()
        self.wait = wait or wait_exponential(multiplier=1, min=2, max=30)

    def send(self, request: HttpRequest) -> requests.Response:
        """Send a request, retrying retryable failures.

        Raises:
            RemoteWriteError: If the request could not be sent or the server
                returned a non-2xx status.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.wait,
            retry=retry_if_exception(_should_retry),
            reraise=True,
        )

        for attempt in retrying:
            with attempt:
                return self._send_once(
                    request, attempt.retry_state.attempt_number
                )

        # Unreachable: Retrying either returns or reraises.
        raise RemoteWriteError("remote write was not attempted")

    def _send_once(self, request: HttpRequest, attempt: int) -> requests.Response:
        log.info(
            "remote_write_attempt",
            attempt=attempt,
            payload_bytes=len(request.body),
            url=request.url,
        )

        t0 = time.monotonic()
        try:
            response = self.session.send(
                request.prepare(), timeout=self.timeout_seconds
            )
        except requests.RequestException as e:
            duration_ms = round((time.monotonic() - t0) * 1000, 1)
            log.error(
                "remote_write_request_error",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration_ms,
                attempt=attempt,
            )
            raise RemoteWriteError(f"could not send HTTP request: {e}") from e

        duration_ms = round((time.monotonic() - t0) * 1000, 1)

        # Extract useful response headers for debugging
        resp_headers = {
            k: v
            for k, v in response.headers.items()
            if k.lower().startswith("x-") or k.lower() == "retry-after"
        }

        if not 200 <= response.status_code <= 299:
            response_text = response.text[:500] if response.text else ""
            log.error(
                "remote_write_http_error",
                status_code=response.status_code,
                response_text=response_text,
                duration_ms=duration_ms,
                attempt=attempt,
                response_headers=resp_headers,
            )
            raise RemoteWriteError(
                f"server returned error status code {response.status_code}",
                status_code=response.status_code,
                response_text=response_text,
            )

        log.info(
            "remote_write_success",
            status_code=response.status_code,
            duration_ms=duration_ms,
            attempt=attempt,
            response_headers=resp_headers,
        )
        return response

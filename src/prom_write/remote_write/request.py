"""HTTP request descriptors for remote write endpoints."""

from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

import requests
from requests.exceptions import InvalidHeader
from requests.structures import CaseInsensitiveDict
from requests.utils import check_header_validity

from prom_write.remote_write.encoder import encode_compressed
from prom_write.remote_write.models import (
    CONTENT_ENCODING,
    CONTENT_TYPE,
    HEADER_NAME_REMOTE_WRITE_VERSION,
    REMOTE_WRITE_VERSION_01,
    WriteRequest,
)

METHOD = "POST"


class HeaderValidationError(ValueError):
    """Raised for malformed caller-supplied header names or values."""

    pass


@dataclass
class HttpRequest:
    """A fully prepared request, independent of any HTTP client.

    Header lookups are case-insensitive. Each header name holds one value:
    setting a name again, in any case, replaces the earlier value, so
    caller headers override the protocol headers instead of being added
    alongside them.
    """

    url: str
    body: bytes
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    method: str = METHOD

    def prepare(self) -> requests.PreparedRequest:
        """Convert to a requests PreparedRequest for sending."""
        return requests.Request(
            method=self.method,
            url=self.url,
            headers=dict(self.headers),
            data=self.body,
        ).prepare()


def validate_header(name: str, value: str) -> None:
    """Reject header names and values that cannot go on the wire.

    Raises:
        HeaderValidationError: If the name is empty or either part is invalid.
    """
    if not name or not name.strip():
        raise HeaderValidationError("header name must not be empty")
    try:
        check_header_validity((name, value))
    except InvalidHeader as e:
        raise HeaderValidationError(f"invalid header '{name}': {e}") from e


def build_http_request(
    request: Union[WriteRequest, bytes],
    endpoint: str,
    user_agent: str,
    headers: Optional[Mapping[str, str]] = None,
) -> HttpRequest:
    """Build a request that can be sent to a remote write endpoint.

    Caller headers are applied after the protocol headers and replace any
    of them with the same (case-insensitive) name. Overriding protocol
    headers will usually make the endpoint reject the request.

    Args:
        request: A write request, or an already compressed payload.
        endpoint: Remote write URL.
        user_agent: Value of the User-Agent header.
        headers: Additional headers.

    Raises:
        HeaderValidationError: If a caller header is malformed.
    """
    extra = dict(headers or {})
    for name, value in extra.items():
        validate_header(name, value)
    validate_header("User-Agent", user_agent)

    if isinstance(request, WriteRequest):
        body = encode_compressed(request)
    else:
        body = bytes(request)

    merged = CaseInsensitiveDict()
    merged["Content-Type"] = CONTENT_TYPE
    merged[HEADER_NAME_REMOTE_WRITE_VERSION] = REMOTE_WRITE_VERSION_01
    merged["Content-Encoding"] = CONTENT_ENCODING
    merged["User-Agent"] = user_agent
    merged.update(extra)

    return HttpRequest(url=endpoint, body=body, headers=merged)

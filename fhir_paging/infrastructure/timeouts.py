from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import requests

from ..domain.errors import RemoteUnavailable
from .config import env_str


def http_timeout_seconds() -> float:
    try:
        value = float(env_str("FIS_HTTP_TIMEOUT", "15"))
    except ValueError:
        return 15.0
    return value if value > 0 else 15.0


@contextmanager
def operation_timeout(operation: str) -> Iterator[float]:
    """
    Yield the HTTP timeout to use for ``operation``.

    Any ``requests`` transport error raised inside the block surfaces as RemoteUnavailable,
    which aborts the whole page resolution.
    """
    timeout = http_timeout_seconds()
    try:
        yield timeout
    except requests.Timeout as ex:
        raise RemoteUnavailable(f"{operation} timed out after {timeout:g}s") from ex
    except requests.ConnectionError as ex:
        raise RemoteUnavailable(f"{operation} could not reach the FHIR server: {ex}") from ex
    except requests.RequestException as ex:
        raise RemoteUnavailable(f"{operation} failed in transport: {ex}") from ex

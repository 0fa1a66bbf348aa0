"""HTTP delivery of log events to the sink."""

import logging

import requests

logger = logging.getLogger(__name__)


class HttpTransport:
    """Posts JSON payloads to the sink's /debug/log endpoint.

    Every failure (timeout, refused connection, non-2xx status) is reported
    as a False return value; nothing is raised to the caller.
    """

    def __init__(self, url: str, timeout: float = 2.0, session: requests.Session | None = None):
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def url(self) -> str:
        return self._url

    def send(self, payload: dict) -> bool:
        """POST one payload. Returns True on a 2xx response."""
        try:
            response = self._session.post(self._url, json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            logger.debug("Delivery to %s failed: %s", self._url, e)
            return False

        if not 200 <= response.status_code < 300:
            logger.debug("Sink responded with %d", response.status_code)
            return False
        return True

    def close(self):
        self._session.close()

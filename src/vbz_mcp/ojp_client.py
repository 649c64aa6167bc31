"""OJP API client for posting stop-event requests."""

import logging

import httpx

from . import __version__
from .config import DEFAULT_API_URL

logger = logging.getLogger(__name__)

USER_AGENT = f"vbz-mcp/{__version__}"
DEFAULT_TIMEOUT = 5.0  # seconds
MAX_ERROR_BODY = 500  # characters of an error response kept for diagnostics


class OjpError(Exception):
    """Base class for failures talking to the OJP API."""


class OjpTransportError(OjpError):
    """The endpoint could not be reached (DNS, refused connection, timeout)."""


class OjpApiError(OjpError):
    """The API answered with a non-success status."""

    def __init__(self, status_code: int, reason: str = "", body: str = ""):
        self.status_code = status_code
        self.reason = reason
        self.body = body
        message = f"API Error: {status_code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


def authorization_header(api_key: str) -> str:
    """Return the Authorization value, adding the Bearer scheme if missing."""
    api_key = api_key.strip()
    if api_key.lower().startswith("bearer "):
        return api_key
    return f"Bearer {api_key}"


class OjpClient:
    """Client for the OJP 2020 endpoint of opentransportdata.swiss."""

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.client: httpx.AsyncClient | None = None
        self._transport = transport

    async def __aenter__(self):
        """Async context manager entry."""
        self.client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": USER_AGENT},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    async def post_stop_event_request(self, body: str) -> str:
        """Send a StopEventRequest and return the raw XML answer.

        Raises:
            OjpApiError: the API returned a non-success status.
            OjpTransportError: the request never got an answer.
        """
        if not self.client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        headers = {
            "Authorization": authorization_header(self.api_key),
            "Content-Type": "application/xml",
        }

        try:
            response = await self.client.post(
                self.api_url, content=body.encode("utf-8"), headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            error_body = e.response.text[:MAX_ERROR_BODY]
            logger.error(
                "API request failed. Status: %d. Response: %s", status, error_body
            )
            raise OjpApiError(status, e.response.reason_phrase, error_body) from e
        except httpx.TimeoutException as e:
            logger.error("API request timed out after %.1fs", self.timeout)
            raise OjpTransportError(
                f"Connection error: request to OJP API timed out ({type(e).__name__})"
            ) from e
        except httpx.TransportError as e:
            logger.error("API request failed: %s", e)
            raise OjpTransportError(
                f"Connection error: unable to reach OJP API ({type(e).__name__})"
            ) from e

        return response.text

"""Base for keyless public JSON APIs reached over httpx.

Each request is a zero-argument operation handed to a ResilientInvoker
built without a credential pool, so 5xx/429 and network failures are
retried with backoff but nothing is rotated.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from zestislam.domain.models.errors import TerminalRemoteFailure
from zestislam.infrastructure.resilience.resilient_invoker import ResilientInvoker

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
USER_AGENT = "zestislam-cli"


class JsonApiClient:
    """Fetches JSON documents from one base URL."""

    BASE_URL = ""

    def __init__(
        self,
        invoker: ResilientInvoker,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initializes the client.

        Args:
            invoker: Keyless invoker used for every request.
            base_url: Overrides BASE_URL.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
        """
        self.invoker = invoker
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None,
                        headers: Optional[Dict[str, str]] = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        request_headers = {"User-Agent": USER_AGENT}
        if headers:
            request_headers.update(headers)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            logger.debug(f"GET {url} params={params}")
            response = await client.get(url, params=params, headers=request_headers)
            response.raise_for_status()
            try:
                return response.json()
            except ValueError as e:
                raise TerminalRemoteFailure(f"Invalid JSON from {url}: {e}", status_code=response.status_code) from e

    @staticmethod
    def _unwrap(payload: Any, source: str) -> Any:
        """Returns payload['data'] for envelope-style responses ({"code": 200, "data": ...})."""
        if not isinstance(payload, dict) or payload.get("code") != 200 or "data" not in payload:
            status = payload.get("status") if isinstance(payload, dict) else None
            raise TerminalRemoteFailure(f"{source} API error: {status or 'unexpected response'}")
        return payload["data"]

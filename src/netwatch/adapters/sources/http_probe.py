"""Live source backed by a remote probe or third-party metrics API."""

from collections.abc import Mapping
from typing import Any

import httpx

from netwatch.adapters.sources.retry import Backoff, exponential_backoff, with_retry
from netwatch.core.errors import LiveSourceError

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS
    return isinstance(exc, httpx.TransportError)


class HTTPProbeSource:
    """Implementation of LiveSourcePort over HTTP.

    Issues ``GET {base_url}/metrics?interface=<name>`` and returns the JSON
    body untouched; the normalizer takes care of field names.

    Args:
        base_url: Root URL of the probe API.
        api_key: Optional bearer token.
        client: Shared httpx.AsyncClient; one is created when omitted.
        max_retries: Retries on 429/5xx and transport errors.
        backoff: Delay function for retries.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        max_retries: int = 2,
        backoff: Backoff | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()
        self._url = f"{base_url.rstrip('/')}/metrics"
        self._headers = headers
        self._max_retries = max_retries
        self._backoff = backoff or exponential_backoff(base=0.5)

    async def _get(self, interface: str) -> httpx.Response:
        response = await self._client.get(
            self._url, params={"interface": interface}, headers=self._headers
        )
        response.raise_for_status()
        return response

    async def fetch(self, interface: str) -> Mapping[str, Any] | None:
        """Fetch the probe's current reading for an interface.

        Raises:
            LiveSourceError: On HTTP errors after retries or a non-JSON body.
        """
        try:
            response = await with_retry(
                lambda: self._get(interface),
                max_retries=self._max_retries,
                backoff=self._backoff,
                retry_on=_is_retryable,
            )
        except httpx.HTTPError as exc:
            raise LiveSourceError(f"Probe request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise LiveSourceError("Probe returned a non-JSON body") from exc
        if body is None:
            return None
        if not isinstance(body, Mapping):
            raise LiveSourceError(
                f"Probe returned {type(body).__name__}, not an object"
            )
        return body

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

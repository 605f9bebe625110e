"""HTTP transport for the PostgREST-style estimates API."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyturnout._redact import redact_for_log
from pyturnout.config import TurnoutConfig
from pyturnout.exceptions import TurnoutApiError, TurnoutTransportError

_logger = logging.getLogger(__name__)

USER_AGENT = "pyturnout"


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`RestTransport`) concrete.
    """

    async def get_json(self, endpoint: str, params: Mapping[str, str] | None = None) -> Any: ...

    async def post_json(self, endpoint: str, payload: Any) -> Any: ...


class RestTransport:
    """JSON over HTTP with API-key headers and uniform error mapping.

    Network failures, timeouts, 5xx responses and undecodable bodies
    raise :class:`TurnoutTransportError`. 4xx responses raise
    :class:`TurnoutApiError` carrying the API's error code.
    """

    def __init__(self, config: TurnoutConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._config.api_key:
            headers["apikey"] = self._config.api_key
            headers["authorization"] = f"Bearer {self._config.api_key}"
        return headers

    async def get_json(self, endpoint: str, params: Mapping[str, str] | None = None) -> Any:
        return await self._request("GET", endpoint, params=params)

    async def post_json(self, endpoint: str, payload: Any) -> Any:
        headers = {"prefer": "return=representation"}
        return await self._request("POST", endpoint, payload=payload, extra_headers=headers)

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        payload: Any = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> Any:
        url = f"{self._config.api_url.rstrip('/')}{endpoint}"
        headers = self._headers()
        if extra_headers:
            headers.update(extra_headers)
        body = json.dumps(payload, separators=(",", ":")) if payload is not None else None

        _logger.debug("%s %s params=%s body=%s", method, url, params, redact_for_log(payload))

        try:
            async with self._http.request(
                method,
                url,
                params=params,
                data=body,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except aiohttp.ClientError as exc:
            raise TurnoutTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc
        except asyncio.TimeoutError as exc:
            raise TurnoutTransportError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc

        if status >= 500:
            raise TurnoutTransportError(
                f"HTTP {status} from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            )
        if status >= 400:
            code, message = _error_details(text)
            raise TurnoutApiError(
                f"{endpoint} rejected: HTTP {status} code={code} message={message}",
                code=code or str(status),
                endpoint=endpoint,
            )

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise TurnoutTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            ) from exc


def _error_details(text: str) -> tuple[str, str]:
    try:
        body = json.loads(text)
    except json.JSONDecodeError:
        return "", text[:200]
    if not isinstance(body, dict):
        return "", text[:200]
    return str(body.get("code") or ""), str(body.get("message") or body.get("error") or "")

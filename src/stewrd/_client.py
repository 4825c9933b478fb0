from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Iterator

import httpx

from stewrd._errors import StewrdAPIError

USER_AGENT = "stewrd-python/1.0.0"


@dataclass(frozen=True, slots=True)
class HttpConfig:
    base_url: str
    timeout_s: float = 120.0


def _parse_error_response(
    status_code: int,
    body_text: str,
    reason: str = "",
) -> StewrdAPIError:
    """
    Parsea una respuesta de error del API.

    El body esperado es {"code": ..., "message": ..., "docs": ...}. Si no es
    JSON o le faltan campos, se usa code="unknown_error" y el reason phrase.
    """
    message = reason or "HTTP error"
    code = "unknown_error"
    docs: str | None = None

    try:
        data = json.loads(body_text) if body_text else None
    except (json.JSONDecodeError, ValueError):
        data = None

    if isinstance(data, dict):
        # Algunos gateways envuelven el error: {"error": {"code": ..., "message": ...}}
        if isinstance(data.get("error"), dict):
            data = data["error"]

        c = data.get("code")
        if isinstance(c, str) and c.strip():
            code = c.strip()

        msg = data.get("message")
        if isinstance(msg, str) and msg.strip():
            message = msg.strip()

        d = data.get("docs")
        if isinstance(d, str) and d.strip():
            docs = d.strip()
    elif not reason and body_text and body_text.strip():
        message = body_text.strip()

    return StewrdAPIError(
        status_code=status_code,
        message=message,
        code=code,
        docs=docs,
        body=body_text or None,
    )


class StewrdHttpClient:
    """
    Wrapper HTTPX ligero con:
    - POST JSON con respuesta SSE en streaming (sync y async)
    - Errores HTTP y timeouts mapeados a StewrdAPIError
    - Debug logging opcional (STEWRD_HTTP_DEBUG)
    """

    def __init__(self, *, config: HttpConfig, api_key: str) -> None:
        self._config = config
        self._api_key = api_key
        self._debug_http = os.getenv("STEWRD_HTTP_DEBUG", "").lower() in {"1", "true", "yes", "on"}

        def _redact_headers(headers: dict[str, Any]) -> dict[str, Any]:
            out = dict(headers)
            for k in ("authorization", "Authorization"):
                if k in out:
                    out[k] = "Bearer ***REDACTED***"
            return out

        def _log_request(request: httpx.Request) -> None:
            if not self._debug_http:
                return
            logging.warning("HTTPX REQUEST %s %s", request.method, request.url)
            logging.warning("HTTPX REQUEST headers=%s", _redact_headers(dict(request.headers)))
            if request.content:
                logging.warning("HTTPX REQUEST body=%s", request.content.decode("utf-8", "replace"))

        def _log_response(response: httpx.Response) -> None:
            if not self._debug_http:
                return
            req = response.request
            logging.warning("HTTPX RESPONSE %s %s -> %s", req.method, req.url, response.status_code)
            logging.warning("HTTPX RESPONSE headers=%s", dict(response.headers))

        async def _log_request_async(request: httpx.Request) -> None:
            _log_request(request)

        async def _log_response_async(response: httpx.Response) -> None:
            _log_response(response)

        EventHooksDict = dict[str, list[Callable[..., Any]]]

        hooks_sync: EventHooksDict = {"request": [_log_request], "response": [_log_response]}
        hooks_async: EventHooksDict = {"request": [_log_request_async], "response": [_log_response_async]}

        self._client = httpx.Client(timeout=httpx.Timeout(config.timeout_s), event_hooks=hooks_sync)
        self._aclient = httpx.AsyncClient(timeout=httpx.Timeout(config.timeout_s), event_hooks=hooks_async)

    def close(self) -> None:
        self._client.close()

    async def aclose(self) -> None:
        await self._aclient.aclose()

    def _url(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}{path}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            "User-Agent": USER_AGENT,
        }

    def _timeout_error(self) -> StewrdAPIError:
        return StewrdAPIError(
            status_code=408,
            code="request_timeout",
            message=f"Request timed out after {self._config.timeout_s}s",
        )

    @staticmethod
    def raise_for_status(resp: httpx.Response) -> None:
        """Verifica status y levanta StewrdAPIError estructurado."""
        if 200 <= resp.status_code < 300:
            return

        try:
            body_text = resp.text
        except httpx.ResponseNotRead:
            body_text = ""

        raise _parse_error_response(
            status_code=resp.status_code,
            body_text=body_text or "",
            reason=getattr(resp, "reason_phrase", "") or "",
        )

    def open_stream(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        """
        POST a JSON body and return the still-open streaming response.

        The caller owns the response and must close it.

        Raises:
            StewrdAPIError: For non-2xx statuses and timeouts.
        """
        request = self._client.build_request("POST", self._url(path), headers=self._headers(), json=payload)
        try:
            resp = self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise self._timeout_error() from e

        if not 200 <= resp.status_code < 300:
            try:
                resp.read()
            finally:
                resp.close()
            self.raise_for_status(resp)
        return resp

    async def aopen_stream(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        request = self._aclient.build_request("POST", self._url(path), headers=self._headers(), json=payload)
        try:
            resp = await self._aclient.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise self._timeout_error() from e

        if not 200 <= resp.status_code < 300:
            try:
                await resp.aread()
            finally:
                await resp.aclose()
            self.raise_for_status(resp)
        return resp

    def iter_bytes(self, resp: httpx.Response) -> Iterator[bytes]:
        """Body chunks of a streaming response; read timeouts become StewrdAPIError."""
        try:
            yield from resp.iter_bytes()
        except httpx.TimeoutException as e:
            raise self._timeout_error() from e

    async def aiter_bytes(self, resp: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.aiter_bytes():
                yield chunk
        except httpx.TimeoutException as e:
            raise self._timeout_error() from e

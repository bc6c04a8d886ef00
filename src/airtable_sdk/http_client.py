import json
from typing import Mapping, Optional, Tuple

import httpx

from .exceptions import HTTPRequestError


def _raise_for_status(response: httpx.Response) -> None:
    if response.status_code < 400:
        return
    error_type, error_message = _parse_error_body(response.text)
    message = f"http request failed: {response.status_code}"
    if error_type:
        message = f"{message} {error_type}"
    raise HTTPRequestError(
        message,
        status_code=response.status_code,
        response_text=response.text,
        response_headers=dict(response.headers),
        error_type=error_type,
        error_message=error_message,
    )


def _parse_error_body(text: str) -> Tuple[Optional[str], Optional[str]]:
    # {"error": {"type": ..., "message": ...}} or {"error": "NOT_FOUND"}
    try:
        data = json.loads(text)
    except ValueError:
        return None, None
    if not isinstance(data, Mapping):
        return None, None
    error = data.get("error")
    if isinstance(error, str):
        return error, None
    if isinstance(error, Mapping):
        error_type = error.get("type")
        error_message = error.get("message")
        return (
            error_type if isinstance(error_type, str) else None,
            error_message if isinstance(error_message, str) else None,
        )
    return None, None


class HttpClient:
    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        session: Optional[httpx.Client] = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._session = session or httpx.Client()

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, object]] = None,
        content: Optional[bytes] = None,
        timeout_seconds: Optional[float] = None,
    ) -> bytes:
        response = self._session.request(
            method.upper(),
            url,
            headers=dict(headers or {}),
            params=dict(params or {}),
            content=content,
            timeout=timeout_seconds or self._timeout_seconds,
        )
        _raise_for_status(response)
        return response.content

    def close(self) -> None:
        self._session.close()


class AsyncHttpClient:
    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._client = client or httpx.AsyncClient()

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, object]] = None,
        content: Optional[bytes] = None,
        timeout_seconds: Optional[float] = None,
    ) -> bytes:
        response = await self._client.request(
            method.upper(),
            url,
            headers=dict(headers or {}),
            params=dict(params or {}),
            content=content,
            timeout=timeout_seconds or self._timeout_seconds,
        )
        _raise_for_status(response)
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()

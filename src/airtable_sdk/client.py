import logging
from typing import Dict, Optional
from urllib.parse import quote

from .config import AirtableConfig
from .http_client import AsyncHttpClient, HttpClient
from .options import ListOptions


logger = logging.getLogger(__name__)


class AirtableClient:
    def __init__(
        self,
        config: AirtableConfig,
        *,
        http_client: Optional[HttpClient] = None,
    ) -> None:
        config.require_credentials()
        self._config = config
        self._http = http_client or HttpClient(timeout_seconds=config.timeout_seconds)

    @property
    def config(self) -> AirtableConfig:
        return self._config

    def request(
        self,
        method: str,
        path: str,
        options: Optional[ListOptions] = None,
    ) -> bytes:
        return self._send(method, path, options, None)

    def request_with_body(
        self,
        method: str,
        path: str,
        options: Optional[ListOptions],
        body: bytes,
    ) -> bytes:
        return self._send(method, path, options, body)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "AirtableClient":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def _send(
        self,
        method: str,
        path: str,
        options: Optional[ListOptions],
        body: Optional[bytes],
    ) -> bytes:
        method_upper = method.upper()
        params = options.to_params() if options is not None else {}
        logger.debug("airtable request %s %s params=%s", method_upper, path, params)
        return self._http.request(
            method_upper,
            _build_url(self._config, path),
            headers=_build_headers(self._config, body is not None),
            params=params,
            content=body,
            timeout_seconds=self._config.timeout_seconds,
        )


class AsyncAirtableClient:
    def __init__(
        self,
        config: AirtableConfig,
        *,
        http_client: Optional[AsyncHttpClient] = None,
    ) -> None:
        config.require_credentials()
        self._config = config
        self._http = http_client or AsyncHttpClient(timeout_seconds=config.timeout_seconds)

    @property
    def config(self) -> AirtableConfig:
        return self._config

    async def request(
        self,
        method: str,
        path: str,
        options: Optional[ListOptions] = None,
    ) -> bytes:
        return await self._send(method, path, options, None)

    async def request_with_body(
        self,
        method: str,
        path: str,
        options: Optional[ListOptions],
        body: bytes,
    ) -> bytes:
        return await self._send(method, path, options, body)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "AsyncAirtableClient":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        options: Optional[ListOptions],
        body: Optional[bytes],
    ) -> bytes:
        method_upper = method.upper()
        params = options.to_params() if options is not None else {}
        logger.debug("airtable request %s %s params=%s", method_upper, path, params)
        return await self._http.request(
            method_upper,
            _build_url(self._config, path),
            headers=_build_headers(self._config, body is not None),
            params=params,
            content=body,
            timeout_seconds=self._config.timeout_seconds,
        )


def _build_url(config: AirtableConfig, path: str) -> str:
    base_id = quote(str(config.base_id), safe="")
    return f"{config.base_url}/{base_id}/{path.lstrip('/')}"


def _build_headers(config: AirtableConfig, has_body: bool) -> Dict[str, str]:
    headers = {"Authorization": f"Bearer {config.api_key}"}
    if has_body:
        headers["Content-Type"] = "application/json"
    return headers


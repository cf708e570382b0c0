"""Async HTTP client for the DashScope generation API.

Forwards generation requests with the server-held credential, looks up
asynchronous tasks by id, and downloads generated artifacts.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx
from rich.console import Console

logger = logging.getLogger(__name__)
_console = Console()

DEFAULT_BASE_URL = "https://dashscope.aliyuncs.com"
_DEFAULT_TIMEOUT = 60.0
_DOWNLOAD_TIMEOUT = 300.0
_ASYNC_HEADER = "X-DashScope-Async"


class DashScopeError(Exception):
    """Base class for errors raised by the DashScope client."""


class ConfigurationError(DashScopeError):
    """Raised when the API credential is not configured."""


class UpstreamError(DashScopeError):
    """Raised when the DashScope API returns a non-2xx response or cannot be reached.

    ``status_code`` is None when no usable response arrived (connect errors,
    timeouts, undecodable content, redirect loops).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        body: Any = None,
    ):
        self.status_code = status_code
        self.code = code
        self.body = body
        super().__init__(message)


class UnsupportedModelError(DashScopeError):
    """Raised when a model name is not registered or does not support a flow."""


class DryRunInterrupt(Exception):
    """Raised instead of making an HTTP call in dry-run mode."""


class DashScopeClient:
    """Async gateway to the DashScope API.

    Usage::

        async with DashScopeClient(api_key="sk-...") as client:
            body = await client.forward(url, {"model": ..., "input": ...}, is_async=True)
            task = await client.lookup(body["output"]["task_id"])
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = _DEFAULT_TIMEOUT,
        dry_run: bool = False,
        echo: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.dry_run = dry_run
        self.echo = echo
        self._transport = transport
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> DashScopeClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _auth_headers(self) -> dict[str, str]:
        if not self.api_key:
            raise ConfigurationError(
                "DashScope API key is not configured. Set DASHSCOPE_API_KEY "
                "or 'api.api_key' in config.yaml."
            )
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        if "json" in kwargs and (self.echo or self.dry_run):
            _console.print(f"[cyan bold]── {method} {url}[/cyan bold]")
            _console.print_json(json.dumps(kwargs["json"], ensure_ascii=False))
            _console.print()
        if self.dry_run:
            raise DryRunInterrupt()
        headers = {**self._auth_headers(), **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise _upstream_error(exc.response) from exc
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"Request timeout: {exc}") from exc
        except httpx.RequestError as exc:
            raise UpstreamError(f"Network error: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"Invalid JSON in response from {url}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def forward(self, api_url: str, payload: dict[str, Any], is_async: bool = False) -> Any:
        """POST a generation payload to an upstream DashScope endpoint.

        Args:
            api_url: Absolute endpoint URL (or a path relative to base_url).
            payload: JSON-serialisable request body.
            is_async: Request asynchronous processing (task creation).

        Returns:
            The parsed upstream JSON body.

        Raises:
            ValueError: If api_url is empty.
            ConfigurationError: If no API key is configured.
            UpstreamError: On non-2xx responses or transport failures.
            DryRunInterrupt: In dry-run mode, after echoing the body.
        """
        if not api_url:
            raise ValueError("api_url is required")
        headers = {_ASYNC_HEADER: "enable"} if is_async else {}
        logger.debug("POST %s (async=%s)", api_url, is_async)
        return await self._request("POST", api_url, json=payload, headers=headers)

    async def lookup(self, task_id: str) -> Any:
        """GET the current state of an asynchronous task."""
        if not task_id:
            raise ValueError("task_id is required")
        return await self._request("GET", f"/api/v1/tasks/{task_id}")

    async def download_file(self, url: str, output_path: str | Path) -> Path:
        """Download a generated artifact to a local path."""
        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)

        logger.info("Downloading %s -> %s", url, output)
        try:
            async with httpx.AsyncClient(
                timeout=_DOWNLOAD_TIMEOUT, transport=self._transport,
            ) as dl_client:
                async with dl_client.stream("GET", url) as response:
                    response.raise_for_status()
                    with open(output, "wb") as f:
                        async for chunk in response.aiter_bytes(chunk_size=8192):
                            f.write(chunk)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Download failed for {url}: {exc}") from exc

        logger.info("Downloaded: %s (%.1f KB)", output, output.stat().st_size / 1024)
        return output


def _upstream_error(response: httpx.Response) -> UpstreamError:
    """Build an UpstreamError, keeping the upstream code/message when the body is JSON."""
    code: str | None = None
    message: str | None = None
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        code = data.get("code")
        message = data.get("message")

    text = f"HTTP {response.status_code}"
    if code:
        text += f" {code}"
    text += f": {message or response.reason_phrase or response.text}"
    return UpstreamError(
        text,
        status_code=response.status_code,
        code=code,
        body=data if data is not None else response.text,
    )

"""Druid supervisor control API client."""

import asyncio
import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from config.config import ProviderConfig
from core.errors import DruidApiError, ResponseDecodeError, TransportError
from core.logging.context import get_log_context
from provider.schemas.status import SupervisorStatus
from provider.spec_builder import extract_status

logger = logging.getLogger(__name__)

SUPERVISOR_PATH = "/druid/indexer/v1/supervisor"

# Error bodies are logged truncated; the raised error keeps the full text
_LOG_BODY_LIMIT = 500


class DruidSupervisorClient:
    """Async client for the supervisor endpoints of a Druid router/overlord.

    Implements ``core.types.SupervisorApi``. Each call is a single request:
    no retries, no caching. Cancelling the calling task or wrapping a call in
    ``asyncio.timeout`` aborts the in-flight request and the cancellation or
    timeout propagates unchanged.
    """

    def __init__(
        self,
        endpoint: str,
        username: str = "",
        password: str = "",
        timeout_seconds: int = 30,
    ):
        self.endpoint = endpoint.rstrip("/") if endpoint else ""

        if not self.endpoint:
            raise ValueError(
                "DruidSupervisorClient requires 'endpoint'. "
                "Set DRUID_ENDPOINT environment variable or configure druid.endpoint in config."
            )

        if not self.endpoint.startswith(("http://", "https://")):
            raise ValueError(
                f"DruidSupervisorClient endpoint must start with http:// or https://, "
                f"got: {self.endpoint!r}"
            )

        # Basic auth only when both halves are configured
        self._auth = (
            aiohttp.BasicAuth(username, password) if username and password else None
        )
        self.timeout_seconds = timeout_seconds

        self._session: aiohttp.ClientSession | None = None
        self._closed = False

        logger.debug(
            "DruidSupervisorClient initialized",
            extra={
                "endpoint": self.endpoint,
                "timeout_seconds": self.timeout_seconds,
                "auth_enabled": self._auth is not None,
            },
        )

    @classmethod
    def from_config(cls, config: ProviderConfig) -> "DruidSupervisorClient":
        return cls(
            endpoint=config.endpoint,
            username=config.username,
            password=config.password,
            timeout_seconds=config.timeout_seconds,
        )

    @property
    def auth_enabled(self) -> bool:
        return self._auth is not None

    async def __aenter__(self) -> "DruidSupervisorClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> None:
        if self._closed:
            raise RuntimeError("DruidSupervisorClient is closed, cannot create new session")
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Accept": "application/json"},
                auth=self._auth,
            )

    async def close(self) -> None:
        self._closed = True
        if self._session and not self._session.closed:
            await self._session.close()
            await asyncio.sleep(0)
        self._session = None

    @staticmethod
    def _get_context_ids() -> dict[str, str]:
        return {k: v for k, v in get_log_context().items() if v}

    def _url(self, supervisor_id: str | None = None, action: str | None = None) -> str:
        url = f"{self.endpoint}{SUPERVISOR_PATH}"
        if supervisor_id is not None:
            # One path segment: "?", "#" and "/" in ids must not leak into the URL
            url = f"{url}/{quote(supervisor_id, safe='')}"
        if action is not None:
            url = f"{url}/{action}"
        return url

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        json_body: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> tuple[int, str]:
        """Send one request and return (status, body text).

        Raises:
            DruidApiError: Status >= 400, except 404 when ``allow_not_found``
            TransportError: Connection-level failure
        """
        await self._ensure_session()
        if self._session is None:
            raise RuntimeError("HTTP session not initialized - call _ensure_session() first")

        ctx = self._get_context_ids()
        logger.debug(
            "API request starting",
            extra={**ctx, "http_method": method, "http_url": url, "api_endpoint": operation},
        )

        loop = asyncio.get_running_loop()
        start_time = loop.time()
        data = None
        headers = None
        if json_body is not None:
            data = json.dumps(json_body)
            headers = {"Content-Type": "application/json"}

        try:
            async with self._session.request(
                method,
                url,
                data=data,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                body = await response.text()
                duration_ms = round((loop.time() - start_time) * 1000, 2)
                status = response.status
        except aiohttp.ClientError as e:
            logger.warning(
                "API connection error",
                extra={
                    **ctx,
                    "http_method": method,
                    "http_url": url,
                    "api_endpoint": operation,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
            raise TransportError(f"{operation}: request to {url} failed", cause=e) from e

        if status == 404 and allow_not_found:
            logger.debug(
                "API request found nothing",
                extra={**ctx, "api_endpoint": operation, "http_status": status, "duration_ms": duration_ms},
            )
            return status, body

        if status >= 400:
            logger.warning(
                "API request failed",
                extra={
                    **ctx,
                    "http_method": method,
                    "http_url": url,
                    "api_endpoint": operation,
                    "http_status": status,
                    "response_body": (
                        body[:_LOG_BODY_LIMIT] + "..." if len(body) > _LOG_BODY_LIMIT else body
                    ),
                    "duration_ms": duration_ms,
                },
            )
            raise DruidApiError(status, body, operation, context={"url": url})

        logger.debug(
            "API request succeeded",
            extra={**ctx, "api_endpoint": operation, "http_status": status, "duration_ms": duration_ms},
        )
        return status, body

    @staticmethod
    def _decode(body: str, operation: str) -> Any:
        try:
            return json.loads(body)
        except ValueError as e:
            raise ResponseDecodeError(
                f"{operation}: response body is not valid JSON", cause=e, context={"body": body}
            ) from e

    # =========================================================================
    # SupervisorApi
    # =========================================================================

    async def create_or_update(self, spec: dict[str, Any]) -> str:
        """Submit a supervisor spec; returns the id the server assigned."""
        _, body = await self._request("POST", self._url(), "create_or_update", json_body=spec)
        payload = self._decode(body, "create_or_update")
        if not isinstance(payload, dict) or not payload.get("id"):
            raise ResponseDecodeError(
                "create_or_update: response has no supervisor id", context={"body": body}
            )
        return str(payload["id"])

    async def get_status(self, supervisor_id: str) -> SupervisorStatus | None:
        """Fetch supervisor status, or None when the supervisor does not exist."""
        status, body = await self._request(
            "GET", self._url(supervisor_id, "status"), "get_status", allow_not_found=True
        )
        if status == 404:
            return None
        return extract_status(self._decode(body, "get_status"), supervisor_id)

    async def terminate(self, supervisor_id: str) -> None:
        await self._request(
            "POST", self._url(supervisor_id, "terminate"), "terminate", allow_not_found=True
        )

    async def suspend(self, supervisor_id: str) -> None:
        await self._request("POST", self._url(supervisor_id, "suspend"), "suspend")

    async def resume(self, supervisor_id: str) -> None:
        await self._request("POST", self._url(supervisor_id, "resume"), "resume")


__all__ = ["DruidSupervisorClient", "SUPERVISOR_PATH"]

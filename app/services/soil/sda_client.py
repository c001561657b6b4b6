"""
USDA Soil Data Access (SDA) tabular query client.

POSTs SQL text to the SDA REST endpoint and returns the decoded JSON payload
untouched ({"Table": [...]} on success, or {} when the query matched nothing).
SDA has no parameter binding, so callers inline literals with sql_literal().
"""
import asyncio
import json
import logging
from typing import Any, Optional

import httpx

from app.services.soil.exceptions import SdaConnectionError, SdaServiceError, SdaTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


def sql_literal(value: Any) -> str:
    """Quote a value as a T-SQL string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def sql_literal_list(values) -> str:
    return ",".join(sql_literal(v) for v in values)


class SdaClient:
    """
    Thin async client for the SDA tabular service.

    Each query gets a hard wall-clock timeout; hitting it cancels the request
    and raises SdaTimeoutError. Queries are read-only and safe to retry, but
    nothing here retries.
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def execute(self, query: str) -> Any:
        try:
            return await asyncio.wait_for(self._post(query), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise SdaTimeoutError(f"SDA API request timed out after {self.timeout}s") from exc

    async def _post(self, query: str) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    self.url,
                    data={"query": query, "format": "JSON"},
                    headers={"Accept": "application/json"},
                )
            except httpx.TimeoutException:
                raise
            except httpx.RequestError as exc:
                raise SdaConnectionError(f"Network error: {exc}") from exc

        if not response.is_success:
            raise SdaServiceError(response.status_code, response.text)

        if not response.content.strip():
            return {}

        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise SdaConnectionError(f"Invalid JSON response: {exc}") from exc

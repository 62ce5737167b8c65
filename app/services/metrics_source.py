"""Local metrics provider client."""

import logging
import math
from abc import ABC, abstractmethod
from typing import Iterable, Optional
import httpx

from app.core.exceptions import MetricReadError, MetricUnavailableError
from app.models.domain import Metric, MetricType

logger = logging.getLogger(__name__)


class MetricsSource(ABC):
    """Read-only accessor for today's cumulative metric values."""

    @abstractmethod
    async def read_sum(self, metric: Metric) -> Optional[float]:
        """
        Return the cumulative sum of `metric` over its window.

        Returns None when the provider has no samples for the window.

        Raises:
            MetricUnavailableError: the metric type cannot be resolved.
            MetricReadError: the query ran but failed.
        """

    async def authorize(self, types: Iterable[MetricType]) -> bool:
        """Request read access to the given types. Default: nothing to do."""
        return True

    async def close(self) -> None:
        pass


class HttpMetricsSource(MetricsSource):
    """Async client for the local metrics provider HTTP API."""

    def __init__(self, base_url: str, api_key: str | None = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self.client is None:
            headers = {"X-API-Key": self.api_key} if self.api_key else {}
            self.client = httpx.AsyncClient(headers=headers, timeout=self.timeout)
        return self.client

    async def close(self):
        """Close the HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None

    async def authorize(self, types: Iterable[MetricType]) -> bool:
        identifiers = [t.identifier for t in types]
        try:
            client = await self._get_client()
            response = await client.post(
                f"{self.base_url}/api/authorization",
                json={"read": identifiers},
            )
            response.raise_for_status()
            success = bool(response.json().get("success", False))
        except Exception as e:
            logger.error(f"Metrics authorization failed: {e}")
            return False

        logger.info(f"Metrics authorization: success={success} types={identifiers}")
        return success

    async def read_sum(self, metric: Metric) -> Optional[float]:
        identifier = metric.type.identifier
        client = await self._get_client()
        try:
            response = await client.get(
                f"{self.base_url}/api/statistics/{identifier}",
                params={
                    "start": metric.window.start.isoformat(),
                    "end": metric.window.end.isoformat(),
                    "unit": metric.type.unit,
                },
            )
        except httpx.HTTPError as e:
            raise MetricReadError(str(e) or type(e).__name__) from e

        if response.status_code == 404:
            raise MetricUnavailableError(f"{identifier} is not provided")

        try:
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise MetricReadError(f"HTTP {e.response.status_code}: {e.response.text[:200]}") from e
        except ValueError as e:
            raise MetricReadError(f"invalid JSON: {response.text[:200]}") from e

        value = payload.get("sum") if isinstance(payload, dict) else None
        if value is None:
            logger.debug(f"No {identifier} samples between {metric.window.start} and {metric.window.end}")
            return None

        try:
            total = float(value)
        except (TypeError, ValueError) as e:
            raise MetricReadError(f"non-numeric sum {value!r}") from e

        if not math.isfinite(total):
            raise MetricReadError(f"non-finite sum {value!r}")
        return total

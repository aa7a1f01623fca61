"""Revenue oracle client with exponential backoff retry logic"""

import asyncio
import httpx
from typing import Optional
from revbond_gateway.config import settings
from revbond_gateway.domain.exceptions import ChainRelayError
from revbond_gateway.domain.models import OracleSnapshot
from revbond_gateway.infrastructure.observability.metrics import relay_latency_histogram, relay_failure_counter
from revbond_gateway.utils.units import from_usdc_units, to_usdc_units


class RevenueOracleClient:
    """Client for the revenue oracle contract, reached through the chain relay"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.chain_relay_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.oracle_max_retries
        self.backoff_base = settings.oracle_backoff_base
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def update(self, business_id: str, mrr: int, customers: int, churn: int | None = None) -> None:
        """
        Publish revenue figures for a business.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s (base * 2^attempt)
        - Retries on HTTP errors and network failures

        Raises:
            ChainRelayError: After the final failed attempt
        """
        payload = {
            "business": business_id,
            "mrr": to_usdc_units(mrr),
            "customers": customers,
            "churn": settings.oracle_churn_bps if churn is None else churn,
        }

        attempt = 0
        async with self._client() as client:
            while attempt < self.max_retries:
                try:
                    with relay_latency_histogram.labels(operation="oracle_update").time():
                        response = await client.post("/oracle/update", json=payload)
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    relay_failure_counter.labels(operation="oracle_update").inc()

                    if attempt >= self.max_retries:
                        raise ChainRelayError(f"Oracle update failed after {attempt} attempts: {e}") from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)

    async def get(self, business_id: str) -> OracleSnapshot:
        """
        Read the oracle record for a business.

        Raises:
            ChainRelayError: On timeout, HTTP errors, or invalid response
        """
        async with self._client() as client:
            try:
                with relay_latency_histogram.labels(operation="oracle_get").time():
                    response = await client.get(f"/oracle/{business_id}")
                response.raise_for_status()
                data = response.json()

                return OracleSnapshot(
                    mrr=from_usdc_units(int(data["mrr"])),
                    customers=int(data["customers"]),
                    churn=int(data["churn"]),
                    updated_at=int(data["ts"]),
                    verified=bool(data["verified"]),
                )

            except httpx.TimeoutException as e:
                relay_failure_counter.labels(operation="oracle_get").inc()
                raise ChainRelayError(f"Chain relay timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                relay_failure_counter.labels(operation="oracle_get").inc()
                raise ChainRelayError(f"Chain relay error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                relay_failure_counter.labels(operation="oracle_get").inc()
                raise ChainRelayError(f"Chain relay unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise ChainRelayError(f"Invalid oracle data from relay: {e}") from e

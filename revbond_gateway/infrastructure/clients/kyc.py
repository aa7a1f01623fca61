"""KYC registry client for on-chain business verification"""

import httpx
from typing import Optional
from revbond_gateway.config import settings
from revbond_gateway.domain.exceptions import ChainRelayError
from revbond_gateway.infrastructure.observability.metrics import relay_latency_histogram, relay_failure_counter


class KYCRegistryClient:
    """Client for the KYC registry contract"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.chain_relay_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def verify_business(self, business_id: str, verified: bool = True) -> None:
        """
        Set the business's verified flag, unlocking vault withdrawals.

        Raises:
            ChainRelayError: On timeout or HTTP errors
        """
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                with relay_latency_histogram.labels(operation="kyc_verify").time():
                    response = await client.post(
                        "/kyc/verify",
                        json={"business": business_id, "verified": verified},
                    )
                response.raise_for_status()

            except httpx.TimeoutException as e:
                relay_failure_counter.labels(operation="kyc_verify").inc()
                raise ChainRelayError(f"Chain relay timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                relay_failure_counter.labels(operation="kyc_verify").inc()
                raise ChainRelayError(f"KYC verification rejected: {e.response.status_code}") from e
            except httpx.RequestError as e:
                relay_failure_counter.labels(operation="kyc_verify").inc()
                raise ChainRelayError(f"Chain relay unreachable: {e}") from e

    async def is_verified(self, business_id: str) -> bool:
        """
        Read the business's verified flag.

        Raises:
            ChainRelayError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                with relay_latency_histogram.labels(operation="kyc_status").time():
                    response = await client.get(f"/kyc/{business_id}")
                response.raise_for_status()
                return bool(response.json()["verified"])

            except httpx.TimeoutException as e:
                relay_failure_counter.labels(operation="kyc_status").inc()
                raise ChainRelayError(f"Chain relay timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                relay_failure_counter.labels(operation="kyc_status").inc()
                raise ChainRelayError(f"Chain relay error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                relay_failure_counter.labels(operation="kyc_status").inc()
                raise ChainRelayError(f"Chain relay unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise ChainRelayError(f"Invalid KYC data from relay: {e}") from e

"""Escrow vault client for raised funds and business withdrawals"""

import httpx
from typing import Optional
from revbond_gateway.config import settings
from revbond_gateway.domain.exceptions import ChainRelayError
from revbond_gateway.domain.models import VaultStatus
from revbond_gateway.infrastructure.observability.metrics import relay_latency_histogram, relay_failure_counter
from revbond_gateway.utils.units import from_usdc_units


class EscrowVaultClient:
    """Client for a bond's escrow vault, reached through the chain relay"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.chain_relay_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def _call(self, operation: str, method: str, path: str) -> dict:
        async with self._client() as client:
            try:
                with relay_latency_histogram.labels(operation=operation).time():
                    response = await client.request(method, path)
                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                relay_failure_counter.labels(operation=operation).inc()
                raise ChainRelayError(f"Chain relay timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                relay_failure_counter.labels(operation=operation).inc()
                raise ChainRelayError(f"Vault call rejected: {e.response.status_code}") from e
            except httpx.RequestError as e:
                relay_failure_counter.labels(operation=operation).inc()
                raise ChainRelayError(f"Chain relay unreachable: {e}") from e
            except ValueError as e:
                raise ChainRelayError(f"Invalid vault data from relay: {e}") from e

    async def status(self, vault_address: str) -> VaultStatus:
        """
        Read raised and withdrawn totals.

        Raises:
            ChainRelayError: On timeout, HTTP errors, or invalid response
        """
        data = await self._call("vault_status", "GET", f"/vaults/{vault_address}")
        try:
            return VaultStatus(
                vault_address=vault_address,
                total_raised=from_usdc_units(int(data["raised"])),
                total_withdrawn=from_usdc_units(int(data["withdrawn"])),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise ChainRelayError(f"Invalid vault data from relay: {e}") from e

    async def withdraw(self, vault_address: str) -> float:
        """
        Release every available dollar to the business.

        Returns:
            Amount withdrawn

        Raises:
            ChainRelayError: On timeout, HTTP errors, or invalid response
        """
        data = await self._call("vault_withdraw", "POST", f"/vaults/{vault_address}/withdraw")
        try:
            return from_usdc_units(int(data["amount"]))
        except (KeyError, ValueError, TypeError) as e:
            raise ChainRelayError(f"Invalid vault data from relay: {e}") from e

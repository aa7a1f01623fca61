"""Bond factory client for minting revenue-backed bonds"""

import httpx
from typing import Optional
from revbond_gateway.config import settings
from revbond_gateway.domain.exceptions import ChainRelayError
from revbond_gateway.domain.models import BondReceipt
from revbond_gateway.infrastructure.observability.metrics import relay_latency_histogram, relay_failure_counter
from revbond_gateway.utils.units import to_usdc_units


class BondFactoryClient:
    """Client for the bond factory contract, reached through the chain relay"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.chain_relay_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def create(
        self,
        business_id: str,
        amount_usd: float,
        metrics: tuple[int, int, int, int],
    ) -> BondReceipt:
        """
        Mint a bond backed by the business's scored metrics (g, r, c, s).

        Raises:
            ChainRelayError: On timeout, HTTP errors, or invalid response
        """
        g, r, c, s = metrics
        payload = {
            "business": business_id,
            "amount": to_usdc_units(amount_usd),
            "g": g,
            "r": r,
            "c": c,
            "s": s,
        }

        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                with relay_latency_histogram.labels(operation="bond_create").time():
                    response = await client.post("/bonds", json=payload)
                response.raise_for_status()
                data = response.json()
                return BondReceipt(token_address=data["token"], vault_address=data["vault"])

            except httpx.TimeoutException as e:
                relay_failure_counter.labels(operation="bond_create").inc()
                raise ChainRelayError(f"Chain relay timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                relay_failure_counter.labels(operation="bond_create").inc()
                raise ChainRelayError(f"Bond creation rejected: {e.response.status_code}") from e
            except httpx.RequestError as e:
                relay_failure_counter.labels(operation="bond_create").inc()
                raise ChainRelayError(f"Chain relay unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise ChainRelayError(f"Invalid bond data from relay: {e}") from e

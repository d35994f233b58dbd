"""
Flow REST Access API client: real network implementation of FlowClient.

Translates REST v1 responses into the dataclasses in client.py. Uses an
injectable transport (HttpTransport) so the HTTP layer can be swapped for
test fakes without changing parsing logic.

No retry loops. No secrets. No transaction logic beyond response parsing.

Endpoints:
    - GET  /v1/accounts/{address}?expand=keys
    - GET  /v1/blocks/{id}
    - GET  /v1/blocks?height=h1,h2
    - GET  /v1/blocks?height=sealed
    - POST /v1/transactions
    - GET  /v1/transaction_results/{id}
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from flow_kms.client import Account, Block, SubmitResult, TransactionResult
from flow_kms.transport import HttpTransport, HttpxTransport


class Network(StrEnum):
    """Known access node endpoints."""

    LOCALHOST = "LOCALHOST"
    TESTNET = "TESTNET"
    MAINNET = "MAINNET"

    @property
    def url(self) -> str:
        return _NETWORK_URLS[self]


_NETWORK_URLS: dict[Network, str] = {
    Network.LOCALHOST: "http://localhost:8888",
    Network.TESTNET: "https://rest-testnet.onflow.org",
    Network.MAINNET: "https://rest-mainnet.onflow.org",
}


def resolve_api_url(api: Network | str) -> str:
    """Map a Network name (case-insensitive) or explicit URL to a base URL."""
    if isinstance(api, Network):
        return api.url
    if api.upper() in Network.__members__:
        return Network[api.upper()].url
    if not api.startswith(("http://", "https://")):
        raise ValueError(f"unknown network {api!r}: use a Network name or an http(s) URL")
    return api.rstrip("/")


class FlowRestClient:
    """Flow REST client implementing the FlowClient protocol.

    Args:
        api: Network name or access node base URL
            (e.g. "http://localhost:8888").
        transport: Injectable transport. Defaults to HttpxTransport.
            Pass a FakeTransport for testing.
    """

    def __init__(
        self,
        api: Network | str = Network.LOCALHOST,
        transport: HttpTransport | None = None,
    ) -> None:
        self._base_url = resolve_api_url(api)
        self._transport = transport or HttpxTransport()

    @property
    def base_url(self) -> str:
        """The access node base URL."""
        return self._base_url

    def _url(self, path: str) -> str:
        return f"{self._base_url}/v1/{path}"

    # -----------------------------------------------------------------
    # FlowClient protocol methods
    # -----------------------------------------------------------------

    async def get_account(self, address: str) -> Account:
        """Fetch an account with its keys expanded."""
        data = await self._transport.get_json(
            self._url(f"accounts/{address}"), {"expand": "keys"}
        )
        return Account.from_json(data)

    async def get_block(self, block_id: str) -> list[Block]:
        """Fetch a block by id."""
        data = await self._transport.get_json(self._url(f"blocks/{block_id}"))
        return _parse_blocks(data)

    async def get_block_height(self, heights: list[int]) -> list[Block]:
        """Fetch blocks at the given heights."""
        data = await self._transport.get_json(
            self._url("blocks"), {"height": ",".join(str(h) for h in heights)}
        )
        return _parse_blocks(data)

    async def get_latest_block(self) -> list[Block]:
        """Fetch the latest sealed block."""
        data = await self._transport.get_json(self._url("blocks"), {"height": "sealed"})
        return _parse_blocks(data)

    async def submit_transaction(self, body: dict[str, Any]) -> SubmitResult:
        """POST a transaction body and return its id."""
        data = await self._transport.post_json(self._url("transactions"), body)
        tx_id = data.get("id") if isinstance(data, dict) else None
        if not tx_id:
            raise ValueError(f"submit response has no transaction id: {data!r}")
        return SubmitResult(id=tx_id)

    async def get_transaction_result(self, tx_id: str) -> TransactionResult:
        """Fetch the result of a transaction by id."""
        data = await self._transport.get_json(self._url(f"transaction_results/{tx_id}"))
        return TransactionResult.from_json(data)


# =====================================================================
# Response parsing (pure functions, no I/O)
# =====================================================================


def _parse_blocks(data: Any) -> list[Block]:
    """Blocks endpoints return a list; tolerate a bare object too."""
    if isinstance(data, dict):
        data = [data]
    return [Block.from_json(item) for item in data or ()]

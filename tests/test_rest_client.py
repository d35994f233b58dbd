"""
Tests for FlowRestClient: canned REST responses, no network.

Uses a FakeTransport that returns pre-built response bodies, exercising
the URL building and parsing logic in rest_client.py.

Test plan:
- Accounts: URL and expand=keys, keys parsed with string index and int
  sequence number (including 0)
- Blocks: by id, by height list, latest uses height=sealed, header parsed
- Transactions: submit posts body and returns id, missing id rejected,
  result status upper-cased, events parsed in order
- Network: names map to URLs, explicit URLs pass through, junk rejected
- Transport: exceptions propagate to the caller
"""

from typing import Any

import pytest

from flow_kms.client import FlowClient, TransactionStatus
from flow_kms.rest_client import FlowRestClient, Network, resolve_api_url

# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------


class FakeTransport:
    """Returns a canned response and records every call."""

    def __init__(self, response: Any) -> None:
        self._response = response
        self.calls: list[tuple[str, str, Any]] = []

    async def get_json(self, url: str, params: dict[str, str] | None = None) -> Any:
        self.calls.append(("GET", url, params))
        return self._response

    async def post_json(self, url: str, payload: dict[str, Any]) -> Any:
        self.calls.append(("POST", url, payload))
        return self._response


class ErrorTransport:
    """Raises on every call to simulate transport failures."""

    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    async def get_json(self, url: str, params: dict[str, str] | None = None) -> Any:
        raise self._exc

    async def post_json(self, url: str, payload: dict[str, Any]) -> Any:
        raise self._exc


def make_client(response: Any) -> tuple[FlowRestClient, FakeTransport]:
    transport = FakeTransport(response)
    return FlowRestClient("http://localhost:8888", transport), transport


# ---------------------------------------------------------------------------
# Canned responses
# ---------------------------------------------------------------------------

ACCOUNT = {
    "address": "f8d6e0586b0a20c7",
    "balance": "100000",
    "keys": [
        {
            "index": "0",
            "public_key": "0xabcd",
            "signing_algorithm": "ECDSA_P256",
            "hashing_algorithm": "SHA2_256",
            "sequence_number": "0",
            "weight": "1000",
            "revoked": False,
        },
        {
            "index": "1",
            "public_key": "0xef01",
            "signing_algorithm": "ECDSA_P256",
            "hashing_algorithm": "SHA3_256",
            "sequence_number": "17",
            "weight": "500",
            "revoked": True,
        },
    ],
    "contracts": {},
}

BLOCKS = [
    {
        "header": {
            "id": "7bc42fe85d32ca513769a74f97f7e1a7bad6c9407f0d934c2aa645ef9cf613c7",
            "parent_id": "1" * 64,
            "height": "10",
            "timestamp": "2024-01-15T12:00:00Z",
        },
        "payload": {},
    }
]

TX_RESULT_SEALED = {
    "block_id": "2" * 64,
    "status": "Sealed",
    "status_code": 0,
    "error_message": "",
    "execution": "Success",
    "events": [
        {"type": "flow.AccountKeyAdded", "transaction_id": "t", "event_index": "0", "payload": "e30="},
        {"type": "flow.AccountCreated", "transaction_id": "t", "event_index": "1", "payload": "e30="},
    ],
}


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class TestGetAccount:
    @pytest.mark.asyncio
    async def test_url_and_params(self) -> None:
        client, transport = make_client(ACCOUNT)
        await client.get_account("f8d6e0586b0a20c7")
        assert transport.calls == [
            ("GET", "http://localhost:8888/v1/accounts/f8d6e0586b0a20c7", {"expand": "keys"})
        ]

    @pytest.mark.asyncio
    async def test_parses_keys(self) -> None:
        client, _ = make_client(ACCOUNT)
        account = await client.get_account("f8d6e0586b0a20c7")
        assert account.address == "f8d6e0586b0a20c7"
        assert account.balance == 100000
        assert [k.index for k in account.keys] == ["0", "1"]
        assert account.keys[0].sequence_number == 0
        assert account.keys[1].sequence_number == 17
        assert account.keys[1].weight == 500
        assert account.keys[1].revoked is True

    @pytest.mark.asyncio
    async def test_account_without_keys(self) -> None:
        client, _ = make_client({"address": "01"})
        account = await client.get_account("01")
        assert account.keys == ()


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


class TestBlocks:
    @pytest.mark.asyncio
    async def test_by_id(self) -> None:
        client, transport = make_client(BLOCKS)
        blocks = await client.get_block("abc")
        assert transport.calls[0][:2] == ("GET", "http://localhost:8888/v1/blocks/abc")
        assert blocks[0].height == 10

    @pytest.mark.asyncio
    async def test_by_height(self) -> None:
        client, transport = make_client(BLOCKS)
        await client.get_block_height([10])
        assert transport.calls[0] == ("GET", "http://localhost:8888/v1/blocks", {"height": "10"})

    @pytest.mark.asyncio
    async def test_latest_uses_sealed(self) -> None:
        client, transport = make_client(BLOCKS)
        blocks = await client.get_latest_block()
        assert transport.calls[0][2] == {"height": "sealed"}
        assert blocks[0].id == BLOCKS[0]["header"]["id"]
        assert blocks[0].parent_id == "1" * 64
        assert blocks[0].timestamp == "2024-01-15T12:00:00Z"

    @pytest.mark.asyncio
    async def test_empty_list(self) -> None:
        client, _ = make_client([])
        assert await client.get_latest_block() == []


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class TestSubmitTransaction:
    @pytest.mark.asyncio
    async def test_posts_body(self) -> None:
        client, transport = make_client({"id": "tx1"})
        body = {"script": "c2NyaXB0"}
        result = await client.submit_transaction(body)
        assert result.id == "tx1"
        assert transport.calls == [("POST", "http://localhost:8888/v1/transactions", body)]

    @pytest.mark.asyncio
    async def test_missing_id(self) -> None:
        client, _ = make_client({"code": 400})
        with pytest.raises(ValueError, match="no transaction id"):
            await client.submit_transaction({})


class TestTransactionResult:
    @pytest.mark.asyncio
    async def test_url(self) -> None:
        client, transport = make_client(TX_RESULT_SEALED)
        await client.get_transaction_result("tx1")
        assert transport.calls[0][1] == "http://localhost:8888/v1/transaction_results/tx1"

    @pytest.mark.asyncio
    async def test_status_upper_cased(self) -> None:
        client, _ = make_client(TX_RESULT_SEALED)
        result = await client.get_transaction_result("tx1")
        assert result.status == TransactionStatus.SEALED

    @pytest.mark.asyncio
    async def test_events_in_order(self) -> None:
        client, _ = make_client(TX_RESULT_SEALED)
        result = await client.get_transaction_result("tx1")
        assert [e.type for e in result.events] == ["flow.AccountKeyAdded", "flow.AccountCreated"]
        assert result.events[1].event_index == 1
        assert result.find_event("flow.AccountCreated") is result.events[1]
        assert result.find_event("flow.Nope") is None

    @pytest.mark.asyncio
    async def test_missing_status_is_unknown(self) -> None:
        client, _ = make_client({"events": None})
        result = await client.get_transaction_result("tx1")
        assert result.status == "UNKNOWN"
        assert result.events == ()


# ---------------------------------------------------------------------------
# Network selection
# ---------------------------------------------------------------------------


class TestNetwork:
    def test_enum_url(self) -> None:
        assert resolve_api_url(Network.TESTNET) == "https://rest-testnet.onflow.org"

    def test_name_case_insensitive(self) -> None:
        assert resolve_api_url("mainnet") == "https://rest-mainnet.onflow.org"

    def test_explicit_url_trailing_slash(self) -> None:
        assert resolve_api_url("http://node:8888/") == "http://node:8888"

    def test_unknown_name(self) -> None:
        with pytest.raises(ValueError, match="unknown network"):
            resolve_api_url("moonnet")

    def test_default_is_localhost(self) -> None:
        assert FlowRestClient(transport=FakeTransport({})).base_url == "http://localhost:8888"

    def test_satisfies_protocol(self) -> None:
        assert isinstance(FlowRestClient(transport=FakeTransport({})), FlowClient)


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------


class TestTransportError:
    @pytest.mark.asyncio
    async def test_get_propagates(self) -> None:
        client = FlowRestClient("http://localhost:8888", ErrorTransport(ConnectionError("refused")))
        with pytest.raises(ConnectionError, match="refused"):
            await client.get_account("01")

    @pytest.mark.asyncio
    async def test_post_propagates(self) -> None:
        client = FlowRestClient("http://localhost:8888", ErrorTransport(TimeoutError("slow")))
        with pytest.raises(TimeoutError, match="slow"):
            await client.submit_transaction({})

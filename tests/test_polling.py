"""
Tests for submit_and_await() and await_transaction().

All tests use a scripted fake client and a recording sleep: no network,
no real waiting.

Test plan:
- Happy path: [PENDING, EXECUTED, SEALED] -> Ok at SEALED, three queries,
  waits of 200/400/600ms
- Non-terminal statuses: UNKNOWN, FINALIZED and unrecognised values keep
  polling
- Expiry: EXPIRED -> "Transaction Expired" error, no further queries
- Errors: submit failure and status query failure come back as Err with
  the original exception; no status query after a failed submit
- Policy: max_backoff_ms caps waits, deadline_s ends with PollTimeoutError,
  invalid policies rejected
- Submission: the REST body of the transaction is what gets submitted
"""

from typing import Any

import pytest

from flow_kms.client import SubmitResult, TransactionResult
from flow_kms.errors import PollTimeoutError, TransactionExpiredError
from flow_kms.polling import PollPolicy, await_transaction, submit_and_await
from flow_kms.tx import ProposalKey, Transaction, build_transaction

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class ScriptedClient:
    """Returns transaction results from a fixed status script."""

    def __init__(
        self,
        statuses: list[str],
        *,
        submit_should_raise: Exception | None = None,
        query_should_raise: Exception | None = None,
    ) -> None:
        self._statuses = list(statuses)
        self._submit_should_raise = submit_should_raise
        self._query_should_raise = query_should_raise
        self.submitted: list[dict[str, Any]] = []
        self.queries: list[str] = []

    async def submit_transaction(self, body: dict[str, Any]) -> SubmitResult:
        self.submitted.append(body)
        if self._submit_should_raise is not None:
            raise self._submit_should_raise
        return SubmitResult(id="tx1")

    async def get_transaction_result(self, tx_id: str) -> TransactionResult:
        self.queries.append(tx_id)
        if self._query_should_raise is not None:
            raise self._query_should_raise
        return TransactionResult(status=self._statuses.pop(0))


class RecordingSleep:
    """Async sleep that records requested durations instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def ms(self) -> list[int]:
        return [round(s * 1000) for s in self.calls]


class FakeClock:
    """Monotonic clock that advances by ``step`` seconds per read."""

    def __init__(self, step: float) -> None:
        self._now = 0.0
        self._step = step

    def __call__(self) -> float:
        current = self._now
        self._now += self._step
        return current


def _tx() -> Transaction:
    return build_transaction(
        "transaction {}",
        [],
        reference_block_id="ab" * 32,
        proposal_key=ProposalKey("f8d6e0586b0a20c7", 0, 5),
        payer="f8d6e0586b0a20c7",
        authorizers=["f8d6e0586b0a20c7"],
    )


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestSealed:
    @pytest.mark.asyncio
    async def test_returns_sealed_result(self) -> None:
        client = ScriptedClient(["PENDING", "EXECUTED", "SEALED"])
        result = await submit_and_await(client, _tx(), sleep=RecordingSleep())
        assert result.ok
        assert result.value.status == "SEALED"

    @pytest.mark.asyncio
    async def test_three_queries(self) -> None:
        client = ScriptedClient(["PENDING", "EXECUTED", "SEALED"])
        await submit_and_await(client, _tx(), sleep=RecordingSleep())
        assert client.queries == ["tx1", "tx1", "tx1"]

    @pytest.mark.asyncio
    async def test_linear_backoff(self) -> None:
        sleep = RecordingSleep()
        client = ScriptedClient(["PENDING", "EXECUTED", "SEALED"])
        await submit_and_await(client, _tx(), sleep=sleep)
        assert sleep.ms == [200, 400, 600]

    @pytest.mark.asyncio
    async def test_submits_rest_body(self) -> None:
        tx = _tx()
        client = ScriptedClient(["SEALED"])
        await submit_and_await(client, tx, sleep=RecordingSleep())
        assert client.submitted == [tx.to_dict()]


class TestNonTerminal:
    @pytest.mark.asyncio
    async def test_all_non_terminal_keep_polling(self) -> None:
        client = ScriptedClient(["UNKNOWN", "PENDING", "FINALIZED", "EXECUTED", "SEALED"])
        result = await await_transaction(client, "tx1", sleep=RecordingSleep())
        assert result.ok
        assert len(client.queries) == 5

    @pytest.mark.asyncio
    async def test_unrecognised_status_keeps_polling(self) -> None:
        client = ScriptedClient(["SOMETHING_NEW", "SEALED"])
        result = await await_transaction(client, "tx1", sleep=RecordingSleep())
        assert result.ok
        assert len(client.queries) == 2


# ---------------------------------------------------------------------------
# Failure paths
# ---------------------------------------------------------------------------


class TestExpired:
    @pytest.mark.asyncio
    async def test_expired_is_error(self) -> None:
        client = ScriptedClient(["PENDING", "EXPIRED", "SEALED"])
        result = await submit_and_await(client, _tx(), sleep=RecordingSleep())
        assert not result.ok
        assert isinstance(result.error, TransactionExpiredError)
        assert str(result.error) == "Transaction Expired"
        assert result.error.tx_id == "tx1"

    @pytest.mark.asyncio
    async def test_no_queries_after_expired(self) -> None:
        client = ScriptedClient(["PENDING", "EXPIRED", "SEALED"])
        await submit_and_await(client, _tx(), sleep=RecordingSleep())
        assert len(client.queries) == 2


class TestErrors:
    @pytest.mark.asyncio
    async def test_submit_error_returned_verbatim(self) -> None:
        exc = ConnectionError("refused")
        client = ScriptedClient([], submit_should_raise=exc)
        result = await submit_and_await(client, _tx(), sleep=RecordingSleep())
        assert not result.ok
        assert result.error is exc
        assert client.queries == []

    @pytest.mark.asyncio
    async def test_query_error_returned_verbatim(self) -> None:
        exc = TimeoutError("slow")
        client = ScriptedClient([], query_should_raise=exc)
        result = await submit_and_await(client, _tx(), sleep=RecordingSleep())
        assert result.error is exc  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_unwrap_raises(self) -> None:
        client = ScriptedClient(["EXPIRED"])
        result = await await_transaction(client, "tx1", sleep=RecordingSleep())
        with pytest.raises(TransactionExpiredError):
            result.unwrap()


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


class TestPolicy:
    @pytest.mark.asyncio
    async def test_max_backoff_caps_waits(self) -> None:
        sleep = RecordingSleep()
        client = ScriptedClient(["PENDING"] * 4 + ["SEALED"])
        policy = PollPolicy(max_backoff_ms=500)
        await await_transaction(client, "tx1", policy=policy, sleep=sleep)
        assert sleep.ms == [200, 400, 500, 500, 500]

    @pytest.mark.asyncio
    async def test_custom_schedule(self) -> None:
        sleep = RecordingSleep()
        client = ScriptedClient(["PENDING", "SEALED"])
        policy = PollPolicy(initial_backoff_ms=50, step_ms=10)
        await await_transaction(client, "tx1", policy=policy, sleep=sleep)
        assert sleep.ms == [50, 60]

    @pytest.mark.asyncio
    async def test_deadline(self) -> None:
        client = ScriptedClient(["PENDING"] * 10)
        policy = PollPolicy(deadline_s=2.5)
        result = await await_transaction(
            client, "tx1", policy=policy, sleep=RecordingSleep(), now_fn=FakeClock(1.0)
        )
        assert not result.ok
        assert isinstance(result.error, PollTimeoutError)
        assert result.error.last_status == "PENDING"
        assert len(client.queries) < 10

    @pytest.mark.asyncio
    async def test_deadline_not_hit_when_sealed(self) -> None:
        client = ScriptedClient(["PENDING", "SEALED"])
        policy = PollPolicy(deadline_s=60)
        result = await await_transaction(
            client, "tx1", policy=policy, sleep=RecordingSleep(), now_fn=FakeClock(1.0)
        )
        assert result.ok

    def test_rejects_negative_backoff(self) -> None:
        with pytest.raises(ValueError):
            PollPolicy(initial_backoff_ms=-1)

    def test_rejects_zero_deadline(self) -> None:
        with pytest.raises(ValueError):
            PollPolicy(deadline_s=0)

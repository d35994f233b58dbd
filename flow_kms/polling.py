"""
Submission and status polling.

Submits a transaction, then polls its result with linear backoff until
the network reports a terminal status:

    UNKNOWN, PENDING, FINALIZED, EXECUTED, <anything else>  -> keep polling
    SEALED                                                  -> Ok(result)
    EXPIRED                                                 -> Err(TransactionExpiredError)

Each iteration sleeps first, then grows the backoff, then queries. With
the default policy the waits are 200ms, 400ms, 600ms, ... with no cap
and no deadline. ``PollPolicy`` can add both.

Errors raised by the client (submit or status query) end the loop and
come back as ``Err`` carrying the original exception.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from flow_kms.client import FlowClient, TransactionResult, TransactionStatus
from flow_kms.errors import PollTimeoutError, TransactionExpiredError
from flow_kms.result import Err, Ok, Result
from flow_kms.tx import Transaction

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PollPolicy:
    """Backoff schedule for status polling.

    Attributes:
        initial_backoff_ms: First wait before the first status query.
        step_ms: Added to the wait after every iteration.
        max_backoff_ms: Ceiling for a single wait. None means no ceiling.
        deadline_s: Give up with PollTimeoutError once this much time has
            passed since polling began. None means wait indefinitely.
    """

    initial_backoff_ms: int = 200
    step_ms: int = 200
    max_backoff_ms: int | None = None
    deadline_s: float | None = None

    def __post_init__(self) -> None:
        if self.initial_backoff_ms < 0 or self.step_ms < 0:
            raise ValueError("backoff values must be non-negative")
        if self.max_backoff_ms is not None and self.max_backoff_ms < 0:
            raise ValueError("max_backoff_ms must be non-negative")
        if self.deadline_s is not None and self.deadline_s <= 0:
            raise ValueError("deadline_s must be positive")

    def next_backoff(self, current_ms: int) -> int:
        grown = current_ms + self.step_ms
        if self.max_backoff_ms is not None:
            return min(grown, self.max_backoff_ms)
        return grown

    def first_backoff(self) -> int:
        if self.max_backoff_ms is not None:
            return min(self.initial_backoff_ms, self.max_backoff_ms)
        return self.initial_backoff_ms


DEFAULT_POLICY = PollPolicy()


async def await_transaction(
    client: FlowClient,
    tx_id: str,
    *,
    policy: PollPolicy = DEFAULT_POLICY,
    sleep: SleepFn | None = None,
    now_fn: Callable[[], float] | None = None,
) -> Result[TransactionResult]:
    """Poll ``tx_id`` until it is sealed or expired.

    Args:
        client: Flow client used for status queries.
        tx_id: Id returned by submission.
        policy: Backoff schedule.
        sleep: Async sleep taking seconds. Defaults to asyncio.sleep.
            Inject for tests.
        now_fn: Monotonic clock in seconds, used only with a deadline.

    Returns:
        Ok(TransactionResult) once SEALED, Err otherwise.
    """
    sleep = sleep or asyncio.sleep
    now_fn = now_fn or time.monotonic
    started = now_fn()
    backoff = policy.first_backoff()
    last_status: str | None = None

    while True:
        await sleep(backoff / 1000)
        backoff = policy.next_backoff(backoff)

        try:
            result = await client.get_transaction_result(tx_id)
        except Exception as exc:
            logger.error("status query for %s failed: %s", tx_id, exc)
            return Err(exc)

        if result.status != last_status:
            logger.debug("transaction %s status %s", tx_id, result.status)
        last_status = result.status

        if result.status == TransactionStatus.SEALED:
            logger.info("transaction %s sealed", tx_id)
            return Ok(result)
        if result.status == TransactionStatus.EXPIRED:
            logger.warning("transaction %s expired", tx_id)
            return Err(TransactionExpiredError(tx_id))

        if policy.deadline_s is not None and now_fn() - started >= policy.deadline_s:
            logger.warning("gave up on transaction %s at status %s", tx_id, last_status)
            return Err(PollTimeoutError(tx_id, last_status))


async def submit_and_await(
    client: FlowClient,
    tx: Transaction,
    *,
    policy: PollPolicy = DEFAULT_POLICY,
    sleep: SleepFn | None = None,
    now_fn: Callable[[], float] | None = None,
) -> Result[TransactionResult]:
    """Submit ``tx`` and wait for it to seal.

    Returns:
        Ok(TransactionResult) once SEALED. Err with the submission error,
        the status query error, TransactionExpiredError or
        PollTimeoutError otherwise.
    """
    try:
        submitted = await client.submit_transaction(tx.to_dict())
    except Exception as exc:
        logger.error("transaction submission failed: %s", exc)
        return Err(exc)

    logger.info("submitted transaction %s", submitted.id)
    return await await_transaction(
        client, submitted.id, policy=policy, sleep=sleep, now_fn=now_fn
    )

"""
High-level Flow client backed by a Cloud KMS key.

Composes the pure layer (arguments.py, tx.py) with the impure network
boundaries (client.py, signer.py, polling.py):

    - ``get_account()``, ``get_block()``: pass-through queries.
    - ``get_public_key()``: integrity-checked KMS public key.
    - ``send_transaction()``: assemble, sign the envelope with KMS,
      submit, wait for SEALED.
    - ``create_account()``: send the account-creation script and return
      the new account.

Every operation returns ``Ok`` or ``Err`` and never raises for network,
integrity or missing-data failures. Secrets never appear in results or
logs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from flow_kms.arguments import decode_argument
from flow_kms.client import Account, Block, FlowClient, TransactionResult
from flow_kms.config import ClientConfig, strip_address_prefix
from flow_kms.errors import MissingDataError, SigningError
from flow_kms.polling import DEFAULT_POLICY, PollPolicy, SleepFn, await_transaction, submit_and_await
from flow_kms.rest_client import FlowRestClient
from flow_kms.result import Err, Ok, Result
from flow_kms.signer import KmsSigner, PublicKeyMaterial, RemoteSigner, der_to_raw_signature
from flow_kms.tx import (
    ACCOUNT_CREATED_EVENT,
    CREATE_ACCOUNT_TEMPLATE,
    DEFAULT_GAS_LIMIT,
    ProposalKey,
    Signature,
    Transaction,
    build_transaction,
    envelope_message,
    find_sequence_number,
    with_envelope_signature,
)

logger = logging.getLogger(__name__)


def account_address_from_event(payload: str) -> str:
    """Extract the new account address from an AccountCreated payload.

    The payload is base64 JSON-Cadence:
    ``{"type": "Event", "value": {"fields": [{"name": "address",
    "value": {"type": "Address", "value": "0x..."}}]}}``.

    Raises:
        ValueError: If the payload does not have that shape.
    """
    decoded = decode_argument(payload)
    try:
        address = decoded["value"]["fields"][0]["value"]["value"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ValueError(f"unexpected AccountCreated payload: {decoded!r}") from exc
    return str(address).replace("0x", "")


class FlowKms:
    """Flow client whose service account key lives in Cloud KMS.

    Args:
        config: Client configuration.
        client: Flow network client. Defaults to a FlowRestClient for
            ``config.network``.
        signer: Remote signer. Defaults to a KmsSigner built from config.
        poll_policy: Status polling schedule.
        sleep: Async sleep used while polling. Inject for tests.
        now_fn: Monotonic clock used for polling deadlines.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        client: FlowClient | None = None,
        signer: RemoteSigner | None = None,
        poll_policy: PollPolicy = DEFAULT_POLICY,
        sleep: SleepFn | None = None,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        self.config = config
        self.client = client or FlowRestClient(config.network)
        self.signer = signer or KmsSigner.from_config(config)
        self._poll_policy = poll_policy
        self._sleep = sleep
        self._now_fn = now_fn

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    async def get_account(self, address: str) -> Result[Account]:
        try:
            return Ok(await self.client.get_account(strip_address_prefix(address)))
        except Exception as exc:
            return Err(exc)

    async def get_block(
        self, id: str | None = None, height: int | None = None
    ) -> Result[list[Block]]:
        """Block by id, else by height, else the latest sealed block."""
        try:
            if id:
                return Ok(await self.client.get_block(id))
            if height is not None:
                return Ok(await self.client.get_block_height([height]))
            return Ok(await self.client.get_latest_block())
        except Exception as exc:
            return Err(exc)

    async def get_public_key(self) -> Result[PublicKeyMaterial]:
        try:
            return Ok(await self.signer.fetch_public_key())
        except Exception as exc:
            logger.error("fetching public key failed: %s", exc)
            return Err(exc)

    async def get_transaction_result(self, tx_id: str) -> Result[TransactionResult]:
        """Current result of a transaction, without waiting."""
        try:
            return Ok(await self.client.get_transaction_result(tx_id))
        except Exception as exc:
            return Err(exc)

    async def wait_for_seal(self, tx_id: str) -> Result[TransactionResult]:
        """Poll an already submitted transaction until SEALED or EXPIRED."""
        return await await_transaction(
            self.client, tx_id, policy=self._poll_policy, sleep=self._sleep, now_fn=self._now_fn
        )

    # -----------------------------------------------------------------
    # Transactions
    # -----------------------------------------------------------------

    async def _proposal_key(self) -> Result[ProposalKey]:
        svc = await self.get_account(self.config.svc_account)
        if not svc.ok:
            return svc
        seq_no = find_sequence_number(svc.value, self.config.key_index)
        if seq_no is None:
            return Err(
                MissingDataError(
                    f"could not obtain sequence number for key at index {self.config.key_index}"
                )
            )
        return Ok(
            ProposalKey(
                address=self.config.svc_account,
                key_index=int(self.config.key_index),
                sequence_number=seq_no,
            )
        )

    async def _reference_block(self) -> Result[Block]:
        blocks = await self.get_block()
        if not blocks.ok:
            return blocks
        if not blocks.value:
            return Err(MissingDataError("could not retrieve latest block"))
        return Ok(blocks.value[0])

    async def sign_envelope(self, tx: Transaction) -> Result[Transaction]:
        """Sign ``tx`` as payer with the KMS key and attach the signature."""
        try:
            der = await self.signer.sign(envelope_message(tx))
        except Exception as exc:
            logger.error("envelope signing failed: %s", exc)
            return Err(exc)
        try:
            raw = der_to_raw_signature(der)
        except (ValueError, OverflowError) as exc:
            logger.error("signer returned a non-ECDSA signature: %s", exc)
            return Err(SigningError(f"signature is not a DER-encoded ECDSA signature: {exc}"))
        signature = Signature(
            address=self.config.svc_account,
            key_index=int(self.config.key_index),
            signature=raw,
        )
        return Ok(with_envelope_signature(tx, signature))

    async def send_transaction(
        self,
        script: str,
        arguments: Sequence[Any] = (),
        *,
        gas_limit: int = DEFAULT_GAS_LIMIT,
    ) -> Result[TransactionResult]:
        """Run ``script`` with the service account as proposer, payer and authorizer.

        Looks up the proposal key sequence number and latest block,
        assembles the transaction, signs the envelope through the remote
        signer, submits and waits for SEALED.
        """
        proposal_key = await self._proposal_key()
        if not proposal_key.ok:
            return proposal_key
        block = await self._reference_block()
        if not block.ok:
            return block

        try:
            tx = build_transaction(
                script,
                arguments,
                reference_block_id=block.value.id,
                proposal_key=proposal_key.value,
                payer=self.config.svc_account,
                authorizers=[self.config.svc_account],
                gas_limit=gas_limit,
            )
        except ValueError as exc:
            return Err(exc)

        signed = await self.sign_envelope(tx)
        if not signed.ok:
            return signed

        return await submit_and_await(
            self.client,
            signed.value,
            policy=self._poll_policy,
            sleep=self._sleep,
            now_fn=self._now_fn,
        )

    async def create_account(self, public_keys: Sequence[str] | None = None) -> Result[Account]:
        """Create an account holding ``public_keys`` and return it.

        Args:
            public_keys: Hex RLP-encoded account keys (see
                ``tx.encode_account_key``). Defaults to none.
        """
        if public_keys is None:
            public_keys = []

        sealed = await self.send_transaction(CREATE_ACCOUNT_TEMPLATE, [list(public_keys)])
        if not sealed.ok:
            return sealed

        event = sealed.value.find_event(ACCOUNT_CREATED_EVENT)
        if event is None:
            detail = sealed.value.error_message or "no error reported"
            return Err(MissingDataError(f"transaction sealed without {ACCOUNT_CREATED_EVENT} event ({detail})"))
        try:
            address = account_address_from_event(event.payload)
        except ValueError as exc:
            return Err(exc)

        logger.info("created account %s", address)
        return await self.get_account(address)

"""
Flow transaction assembly and signing messages.

Builds the transaction record the REST API accepts and the exact byte
strings a signer must sign. Pure, deterministic, no secrets, no network
calls. Sequence number and reference block are looked up by the caller
and passed in.

Signing messages follow the Flow transaction encoding:

    payload  = RLP([script, [arg, ...], reference_block_id, gas_limit,
                    proposer, key_index, sequence_number, payer,
                    [authorizer, ...]])
    envelope = RLP([payload, [[signer_index, key_index, signature], ...]])
    message  = DOMAIN_TAG || payload-or-envelope

Addresses are 8 bytes and block ids 32 bytes, left-padded.
"""

from __future__ import annotations

import base64
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any

import rlp

from flow_kms.arguments import build_arguments, build_script
from flow_kms.client import Account

# "FLOW-V0.0-transaction" right-padded with zeros to 32 bytes.
TRANSACTION_DOMAIN_TAG = b"FLOW-V0.0-transaction".ljust(32, b"\x00")

DEFAULT_GAS_LIMIT = 9999

ACCOUNT_CREATED_EVENT = "flow.AccountCreated"

CREATE_ACCOUNT_TEMPLATE = """
transaction(publicKeys: [String]) {
    prepare(signer: AuthAccount) {
        let acct = AuthAccount(payer: signer)
        for key in publicKeys {
            acct.addPublicKey(key.decodeHex())
        }
    }
}"""

# Account key algorithm codes used by encode_account_key.
SIGN_ALGO_ECDSA_P256 = 2
SIGN_ALGO_ECDSA_SECP256K1 = 3
HASH_ALGO_SHA2_256 = 1
HASH_ALGO_SHA3_256 = 3

_ADDRESS_BYTES = 8
_BLOCK_ID_BYTES = 32


# =========================================================================
# Records
# =========================================================================


@dataclass(frozen=True)
class ProposalKey:
    """Key and nonce authorizing the transaction.

    ``sequence_number`` must be the key's next unused value when the
    transaction is submitted. A stale one is rejected by the network.
    """

    address: str
    key_index: int
    sequence_number: int


@dataclass(frozen=True)
class Signature:
    """A signature over the payload or envelope, raw ``r || s`` bytes."""

    address: str
    key_index: int
    signature: bytes

    def to_dict(self) -> dict[str, str]:
        return {
            "address": self.address,
            "key_index": str(self.key_index),
            "signature": base64.b64encode(self.signature).decode("ascii"),
        }


@dataclass(frozen=True)
class Transaction:
    """A transaction ready for signing and submission.

    ``script`` and ``arguments`` hold the base64 encodings the REST API
    expects. Instances are immutable; adding a signature returns a copy.
    """

    script: str
    arguments: tuple[str, ...]
    reference_block_id: str
    gas_limit: int
    proposal_key: ProposalKey
    payer: str
    authorizers: tuple[str, ...]
    payload_signatures: tuple[Signature, ...] = field(default=())
    envelope_signatures: tuple[Signature, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        """REST request body for POST /v1/transactions."""
        return {
            "script": self.script,
            "arguments": list(self.arguments),
            "reference_block_id": self.reference_block_id,
            "gas_limit": str(self.gas_limit),
            "proposal_key": {
                "address": self.proposal_key.address,
                "key_index": str(self.proposal_key.key_index),
                "sequence_number": str(self.proposal_key.sequence_number),
            },
            "payer": self.payer,
            "authorizers": list(self.authorizers),
            "payload_signatures": [s.to_dict() for s in self.payload_signatures],
            "envelope_signatures": [s.to_dict() for s in self.envelope_signatures],
        }

    def signers(self) -> list[str]:
        """Distinct signer addresses in canonical order: proposer, payer, authorizers."""
        seen: list[str] = []
        for address in (self.proposal_key.address, self.payer, *self.authorizers):
            if address not in seen:
                seen.append(address)
        return seen


# =========================================================================
# Assembly
# =========================================================================


def find_sequence_number(account: Account, key_index: int | str) -> int | None:
    """Sequence number of the key at ``key_index``, or None if absent.

    A present sequence number of 0 is returned as 0.
    """
    wanted = str(key_index)
    for key in account.keys:
        if key.index == wanted:
            return key.sequence_number
    return None


def build_transaction(
    script: str,
    arguments: Sequence[Any],
    *,
    reference_block_id: str,
    proposal_key: ProposalKey,
    payer: str,
    authorizers: Sequence[str],
    gas_limit: int = DEFAULT_GAS_LIMIT,
) -> Transaction:
    """Encode script and arguments and assemble an unsigned transaction.

    Args:
        script: Cadence source text.
        arguments: Native values, encoded positionally with
            ``arguments.build_arguments``.
        reference_block_id: Hex id of a recent block.
        proposal_key: Proposer address, key index and sequence number.
        payer: Address paying the fees.
        authorizers: Addresses whose accounts the script may access.
        gas_limit: Computation limit.

    Raises:
        ValueError: If the reference block id is empty or gas_limit < 1.
    """
    if not reference_block_id:
        raise ValueError("reference_block_id must be non-empty")
    if gas_limit < 1:
        raise ValueError(f"gas_limit must be positive, got {gas_limit}")

    return Transaction(
        script=build_script(script),
        arguments=tuple(build_arguments(arguments)),
        reference_block_id=reference_block_id,
        gas_limit=gas_limit,
        proposal_key=proposal_key,
        payer=payer,
        authorizers=tuple(authorizers),
    )


def with_envelope_signature(tx: Transaction, signature: Signature) -> Transaction:
    """Copy of ``tx`` with ``signature`` appended to the envelope signatures."""
    return replace(tx, envelope_signatures=(*tx.envelope_signatures, signature))


def with_payload_signature(tx: Transaction, signature: Signature) -> Transaction:
    """Copy of ``tx`` with ``signature`` appended to the payload signatures."""
    return replace(tx, payload_signatures=(*tx.payload_signatures, signature))


# =========================================================================
# Signing messages
# =========================================================================


def _hex_bytes(value: str, width: int) -> bytes:
    raw = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    if len(raw) > width:
        raise ValueError(f"{value!r} is longer than {width} bytes")
    return raw.rjust(width, b"\x00")


def _payload_fields(tx: Transaction) -> list[Any]:
    return [
        base64.b64decode(tx.script),
        [base64.b64decode(a) for a in tx.arguments],
        _hex_bytes(tx.reference_block_id, _BLOCK_ID_BYTES),
        tx.gas_limit,
        _hex_bytes(tx.proposal_key.address, _ADDRESS_BYTES),
        tx.proposal_key.key_index,
        tx.proposal_key.sequence_number,
        _hex_bytes(tx.payer, _ADDRESS_BYTES),
        [_hex_bytes(a, _ADDRESS_BYTES) for a in tx.authorizers],
    ]


def payload_message(tx: Transaction) -> bytes:
    """Bytes signed by proposers and authorizers who are not the payer."""
    return TRANSACTION_DOMAIN_TAG + rlp.encode(_payload_fields(tx))


def envelope_message(tx: Transaction) -> bytes:
    """Bytes signed by the payer: payload plus the payload signatures."""
    signers = tx.signers()
    payload_sigs = [
        [signers.index(s.address), s.key_index, s.signature]
        for s in tx.payload_signatures
    ]
    return TRANSACTION_DOMAIN_TAG + rlp.encode([_payload_fields(tx), payload_sigs])


def encode_account_key(
    public_key_hex: str,
    *,
    sign_algo: int = SIGN_ALGO_ECDSA_P256,
    hash_algo: int = HASH_ALGO_SHA2_256,
    weight: int = 1000,
) -> str:
    """RLP-encode an account key for ``AuthAccount.addPublicKey``.

    Returns the hex string the account-creation script decodes with
    ``decodeHex()``. Defaults match a KMS ECDSA P-256 / SHA-256 key.
    """
    key_bytes = bytes.fromhex(public_key_hex[2:] if public_key_hex.startswith("0x") else public_key_hex)
    return rlp.encode([key_bytes, sign_algo, hash_algo, weight]).hex()

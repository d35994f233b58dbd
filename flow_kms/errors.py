"""
Error taxonomy for flow-kms.

Four families:
    - Integrity: a KMS response failed its checksum or identity check.
      Always fatal to the current operation, never retried.
    - Missing data: something the flow needs was absent (sequence number,
      latest block, signature, AccountCreated event).
    - Terminal failure: the network reported the transaction EXPIRED.
    - Configuration: required settings are missing or malformed.

Network errors are not part of this module. Exceptions raised by the
HTTP transport or the KMS client travel to the caller unchanged, inside
an ``Err`` when they cross a ``FlowKms`` operation.
"""

from __future__ import annotations


class FlowKmsError(Exception):
    """Base class for errors raised by this package."""


class IntegrityError(FlowKmsError):
    """A KMS request or response was corrupted in transit."""


class SigningError(FlowKmsError):
    """The remote signer did not produce a signature."""


class MissingDataError(FlowKmsError):
    """Data required to continue an operation was not available."""


class TransactionExpiredError(FlowKmsError):
    """The network reported the transaction as EXPIRED."""

    def __init__(self, tx_id: str) -> None:
        self.tx_id = tx_id
        super().__init__("Transaction Expired")


class PollTimeoutError(FlowKmsError):
    """Polling passed its configured deadline before a terminal status."""

    def __init__(self, tx_id: str, last_status: str | None) -> None:
        self.tx_id = tx_id
        self.last_status = last_status
        super().__init__(
            f"transaction {tx_id} not sealed before deadline "
            f"(last status: {last_status or 'none'})"
        )


class ConfigError(FlowKmsError):
    """Client configuration is incomplete or invalid."""

"""
flow-kms: sign and submit Flow transactions with a Cloud KMS key.

Public API:

    Pure layer (no I/O):
        - ``encode()``, ``build_arguments()``, ``build_script()``: JSON-Cadence
          argument and script encoding.
        - ``build_transaction()``, ``Transaction``, ``ProposalKey``: assembly.
        - ``envelope_message()``, ``payload_message()``: bytes to sign.
        - ``encode_account_key()``: account key for ``create_account``.

    Impure layer (network I/O):
        - ``FlowKms``: high-level client (queries, send_transaction,
          create_account). Returns ``Ok``/``Err``.
        - ``submit_and_await()``: submit and poll until SEALED/EXPIRED.

    Protocols (for dependency injection):
        - ``FlowClient``: access node boundary.
        - ``RemoteSigner``: secrets boundary.
        - ``HttpTransport``: HTTP seam under FlowRestClient.

    Concrete implementations:
        - ``FlowRestClient``, ``HttpxTransport``, ``KmsSigner``.
"""

from flow_kms.arguments import Int64, ValueType, build_arguments, build_script, decode_argument, encode
from flow_kms.client import (
    Account,
    AccountKey,
    Block,
    Event,
    FlowClient,
    SubmitResult,
    TransactionResult,
    TransactionStatus,
)
from flow_kms.config import ClientConfig
from flow_kms.errors import (
    ConfigError,
    FlowKmsError,
    IntegrityError,
    MissingDataError,
    PollTimeoutError,
    SigningError,
    TransactionExpiredError,
)
from flow_kms.flow import FlowKms, account_address_from_event
from flow_kms.polling import PollPolicy, await_transaction, submit_and_await
from flow_kms.rest_client import FlowRestClient, Network
from flow_kms.result import Err, Ok, Result
from flow_kms.signer import (
    KmsSigner,
    PublicKeyMaterial,
    RemoteSigner,
    der_to_raw_signature,
    public_key_hex,
)
from flow_kms.transport import HttpTransport, HttpxTransport
from flow_kms.tx import (
    ACCOUNT_CREATED_EVENT,
    CREATE_ACCOUNT_TEMPLATE,
    DEFAULT_GAS_LIMIT,
    ProposalKey,
    Signature,
    Transaction,
    build_transaction,
    encode_account_key,
    envelope_message,
    find_sequence_number,
    payload_message,
)

__version__ = "0.1.0"

__all__ = [
    "ACCOUNT_CREATED_EVENT",
    "Account",
    "AccountKey",
    "Block",
    "CREATE_ACCOUNT_TEMPLATE",
    "ClientConfig",
    "ConfigError",
    "DEFAULT_GAS_LIMIT",
    "Err",
    "Event",
    "FlowClient",
    "FlowKms",
    "FlowKmsError",
    "FlowRestClient",
    "HttpTransport",
    "HttpxTransport",
    "Int64",
    "IntegrityError",
    "KmsSigner",
    "MissingDataError",
    "Network",
    "Ok",
    "PollPolicy",
    "PollTimeoutError",
    "ProposalKey",
    "PublicKeyMaterial",
    "RemoteSigner",
    "Result",
    "Signature",
    "SigningError",
    "SubmitResult",
    "Transaction",
    "TransactionExpiredError",
    "TransactionResult",
    "TransactionStatus",
    "ValueType",
    "account_address_from_event",
    "await_transaction",
    "build_arguments",
    "build_script",
    "build_transaction",
    "decode_argument",
    "der_to_raw_signature",
    "encode",
    "encode_account_key",
    "envelope_message",
    "find_sequence_number",
    "payload_message",
    "public_key_hex",
    "submit_and_await",
]

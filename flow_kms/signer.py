"""
Remote signer: the secrets boundary.

Private keys never leave Cloud KMS. The signer hashes a message locally,
sends only the SHA-256 digest to KMS, and gets back an ECDSA signature.
Key material this process ever sees is the public key PEM.

Data integrity follows the Cloud KMS guidelines
(https://cloud.google.com/kms/docs/data-integrity-guidelines):

    get_public_key:
        - response name must equal the requested key version name
        - CRC32C(pem) must equal the returned pem_crc32c
    asymmetric_sign (checksums enabled):
        - CRC32C(digest) is sent with the request
        - KMS must report verified_digest_crc32c
        - CRC32C(signature) must equal the returned signature_crc32c

Any mismatch raises IntegrityError. A missing signature raises
SigningError.

Only ECDSA P-256 over a SHA-256 digest is supported. If the KMS key is
configured for another algorithm, KMS rejects the request and the
client's exception propagates unchanged.

Concrete implementations:
    - KmsSigner (google-cloud-kms async client)
    - FakeSigner (tests)
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import google_crc32c
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature
from cryptography.hazmat.primitives.serialization import load_pem_public_key

from flow_kms.errors import IntegrityError, SigningError

if TYPE_CHECKING:
    from flow_kms.config import ClientConfig

logger = logging.getLogger(__name__)

# Checksum over raw bytes, e.g. google_crc32c.value.
ChecksumFn = Callable[[bytes], int]

# P-256 scalar size in bytes; r and s are each padded to this width.
P256_SCALAR_BYTES = 32


@dataclass(frozen=True)
class PublicKeyMaterial:
    """Public key returned by the remote signer.

    Attributes:
        name: Key version resource name echoed by KMS.
        pem: PEM-encoded public key.
        pem_checksum: CRC32C of the PEM as reported by KMS.
    """

    name: str
    pem: str
    pem_checksum: int | None


@runtime_checkable
class RemoteSigner(Protocol):
    """Interface for signing with a key held by a remote service.

    Properties:
        key_id: Public identifier of the signing key (safe for logging).
    """

    @property
    def key_id(self) -> str:
        """Public identifier of the signing key (safe for logging)."""
        ...

    async def fetch_public_key(self) -> PublicKeyMaterial:
        """Fetch and integrity-check the public key."""
        ...

    async def sign(self, message: bytes) -> bytes:
        """Sign ``message``; returns the signature bytes from the service."""
        ...



class KmsSigner:
    """Cloud KMS implementation of RemoteSigner.

    Args:
        kms_client: ``google.cloud.kms.KeyManagementServiceAsyncClient``
            or any object with async ``get_public_key`` and
            ``asymmetric_sign`` methods taking ``request=`` dicts.
        key_version_name: Full crypto key version resource name.
        checksum: CRC32C function used for integrity checks. Defaults to
            ``google_crc32c.value``.
        sign_checksums: Send and verify CRC32C checksums on sign
            requests. The public key checksum is always verified.
    """

    def __init__(
        self,
        kms_client: Any,
        key_version_name: str,
        checksum: ChecksumFn | None = None,
        *,
        sign_checksums: bool = True,
    ) -> None:
        self._kms = kms_client
        self._name = key_version_name
        self._checksum = checksum or google_crc32c.value
        self._sign_checksums = sign_checksums

    @classmethod
    def from_config(cls, config: ClientConfig, kms_client: Any = None) -> KmsSigner:
        """Build a signer from client configuration.

        Creates a KMS async client from ``config.credentials_file`` (or
        application default credentials) unless one is supplied.
        """
        from google.cloud import kms

        if kms_client is None:
            if config.credentials_file:
                kms_client = kms.KeyManagementServiceAsyncClient.from_service_account_file(
                    config.credentials_file
                )
            else:
                kms_client = kms.KeyManagementServiceAsyncClient()
        return cls(kms_client, config.key_version_name)

    @property
    def key_id(self) -> str:
        return self._name

    async def fetch_public_key(self) -> PublicKeyMaterial:
        """Fetch the public key for the configured key version.

        Raises:
            IntegrityError: If the echoed name or the PEM checksum does
                not match.
        """
        response = await self._kms.get_public_key(request={"name": self._name})

        if response.name != self._name:
            raise IntegrityError("GetPublicKey: request corrupted in transit")
        pem_checksum = response.pem_crc32c
        if self._checksum(response.pem.encode("utf-8")) != pem_checksum:
            raise IntegrityError("GetPublicKey: response corrupted in transit")

        logger.debug("public key pem for %s: %s", self._name, response.pem)
        return PublicKeyMaterial(
            name=response.name,
            pem=response.pem,
            pem_checksum=pem_checksum,
        )

    async def sign(self, message: bytes) -> bytes:
        """Sign the SHA-256 digest of ``message`` with the KMS key.

        Returns:
            DER-encoded ECDSA signature as returned by KMS. Use
            :func:`der_to_raw_signature` for Flow's fixed-width form.

        Raises:
            SigningError: If KMS returns no signature.
            IntegrityError: If checksums are enabled and the request or
                response failed verification.
        """
        digest = hashlib.sha256(message).digest()
        request: dict[str, Any] = {
            "name": self._name,
            "digest": {"sha256": digest},
        }
        if self._sign_checksums:
            request["digest_crc32c"] = self._checksum(digest)

        response = await self._kms.asymmetric_sign(request=request)

        signature = bytes(response.signature or b"")
        if not signature:
            raise SigningError("AsymmetricSign: signature was not returned from KMS")

        if self._sign_checksums:
            if not response.verified_digest_crc32c:
                raise IntegrityError("AsymmetricSign: request corrupted in transit")
            if response.name and response.name != self._name:
                raise IntegrityError("AsymmetricSign: request corrupted in transit")
            if self._checksum(signature) != response.signature_crc32c:
                raise IntegrityError("AsymmetricSign: response corrupted in transit")

        logger.debug("signed %d-byte message with %s", len(message), self._name)
        return signature


# =========================================================================
# Key and signature format helpers
# =========================================================================


def der_to_raw_signature(der: bytes, size: int = P256_SCALAR_BYTES) -> bytes:
    """Convert a DER ECDSA signature to fixed-width ``r || s``.

    Flow expects the raw form; KMS returns DER.
    """
    r, s = decode_dss_signature(der)
    return r.to_bytes(size, "big") + s.to_bytes(size, "big")


def public_key_hex(pem: str) -> str:
    """Flow-format public key: hex of the 64-byte uncompressed ``X || Y``.

    Raises:
        ValueError: If the PEM is not an elliptic-curve public key.
    """
    key = load_pem_public_key(pem.encode("utf-8"))
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError(f"expected an EC public key, got {type(key).__name__}")
    numbers = key.public_numbers()
    size = (key.curve.key_size + 7) // 8
    return (numbers.x.to_bytes(size, "big") + numbers.y.to_bytes(size, "big")).hex()

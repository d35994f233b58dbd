"""Client configuration: network selector, KMS key identifiers, service account."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from flow_kms.errors import ConfigError
from flow_kms.rest_client import Network

ENV_PREFIX = "FLOW_KMS_"

# field name -> required
_FIELDS: dict[str, bool] = {
    "network": False,
    "project_id": True,
    "location_id": True,
    "key_ring_id": True,
    "key_id": True,
    "version_id": True,
    "svc_account": True,
    "key_index": False,
    "credentials_file": False,
}


@dataclass(frozen=True)
class ClientConfig:
    """Everything needed to reach the access node and the KMS key.

    Attributes:
        network: Network name (LOCALHOST, TESTNET, MAINNET) or access node URL.
        project_id: GCP project holding the key ring.
        location_id: KMS location, e.g. "us-east1".
        key_ring_id: KMS key ring.
        key_id: KMS crypto key.
        version_id: KMS crypto key version.
        svc_account: Flow address of the service (payer) account, no "0x".
        key_index: Index of the KMS-backed key on the service account.
        credentials_file: Service account JSON for KMS. Empty means
            application default credentials.
    """

    project_id: str
    location_id: str
    key_ring_id: str
    key_id: str
    version_id: str
    svc_account: str
    key_index: str = "0"
    network: Network | str = Network.LOCALHOST
    credentials_file: str = ""

    def __post_init__(self) -> None:
        missing = [name for name, required in _FIELDS.items() if required and not getattr(self, name)]
        if missing:
            raise ConfigError(f"missing configuration: {', '.join(missing)}")
        object.__setattr__(self, "svc_account", strip_address_prefix(self.svc_account))
        key_index = str(self.key_index).strip()
        if not key_index.isdecimal():
            raise ConfigError(f"key_index must be a non-negative integer, got {self.key_index!r}")
        object.__setattr__(self, "key_index", str(int(key_index)))

    @property
    def key_version_name(self) -> str:
        """KMS crypto key version resource name."""
        return (
            f"projects/{self.project_id}/locations/{self.location_id}"
            f"/keyRings/{self.key_ring_id}/cryptoKeys/{self.key_id}"
            f"/cryptoKeyVersions/{self.version_id}"
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientConfig:
        """Load configuration from ``FLOW_KMS_*`` environment variables.

        e.g. ``FLOW_KMS_PROJECT_ID``, ``FLOW_KMS_SVC_ACCOUNT``,
        ``FLOW_KMS_NETWORK``.

        Raises:
            ConfigError: Naming every required variable that is unset.
        """
        env = os.environ if environ is None else environ
        values = {
            name: env[ENV_PREFIX + name.upper()]
            for name in _FIELDS
            if env.get(ENV_PREFIX + name.upper())
        }
        missing = [
            ENV_PREFIX + name.upper()
            for name, required in _FIELDS.items()
            if required and name not in values
        ]
        if missing:
            raise ConfigError(f"missing environment variables: {', '.join(missing)}")
        return cls(**values)


def strip_address_prefix(address: str) -> str:
    """Drop a leading "0x" from a Flow address."""
    return address[2:] if address.startswith("0x") else address

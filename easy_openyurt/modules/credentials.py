"""Join credentials handed from the master node to workers.

``kube master init`` writes the advertise address, port, bootstrap token and
CA cert hash to ``masterKey.yaml``. Worker operations take the same values as
CLI parameters, from that file, or both; explicit parameters win.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from jsonschema import ValidationError, validate

from ..config import Config
from ..exceptions import CredentialError

logger = logging.getLogger("easy_openyurt.credentials")

FIELD_KEYS = {
    "advertise_address": "apiserverAdvertiseAddress",
    "port": "apiserverPort",
    "token": "apiserverToken",
    "ca_cert_hash": "apiserverTokenHash",
}

FIELD_LABELS = {
    "advertise_address": "apiserver advertise address",
    "port": "apiserver port",
    "token": "apiserver token",
    "ca_cert_hash": "apiserver token hash",
}

CREDENTIAL_SCHEMA = {
    "type": "object",
    "properties": {
        key: {"type": ["string", "integer"]} for key in FIELD_KEYS.values()
    },
    "required": ["apiserverAdvertiseAddress", "apiserverPort", "apiserverToken"],
}


@dataclass(frozen=True)
class ClusterJoinCredential:
    """Identity of the control plane a node joins."""
    advertise_address: str
    port: str
    token: str
    ca_cert_hash: Optional[str] = None

    def missing_fields(self, require_hash: bool = True) -> List[str]:
        names = ["advertise_address", "port", "token"]
        if require_hash:
            names.append("ca_cert_hash")
        return [name for name in names if not getattr(self, name)]

    def validate(self, require_hash: bool = True) -> "ClusterJoinCredential":
        """Reject a partial credential.

        Raises:
            CredentialError: Naming the first missing field
        """
        missing = self.missing_fields(require_hash)
        if missing:
            raise CredentialError(f"{FIELD_LABELS[missing[0]]} required")
        return self

    @property
    def endpoint(self) -> str:
        return f"{self.advertise_address}:{self.port}"

    def to_dict(self) -> Dict[str, str]:
        return {key: getattr(self, name) or "" for name, key in FIELD_KEYS.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "ClusterJoinCredential":
        values = {name: data.get(key) for name, key in FIELD_KEYS.items()}
        return cls(**{name: "" if value is None else str(value) for name, value in values.items()})


def write_credential(path: Union[str, Path], credential: ClusterJoinCredential, mode: int = 0o600) -> Path:
    """Write a credential as flat ``key: value`` YAML.

    Raises:
        IOError: If the file cannot be written
    """
    path = Path(path).expanduser().absolute()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(credential.to_dict(), f, default_flow_style=False, sort_keys=False)
        os.chmod(path, mode)
    except (IOError, OSError) as e:
        logger.error(f"Failed to write credential file {path}: {e}")
        raise
    return path


def read_credential(path: Union[str, Path]) -> ClusterJoinCredential:
    """Load a credential written by :func:`write_credential`.

    Raises:
        CredentialError: If the file is missing, not YAML or lacks a field
    """
    path = Path(path).expanduser()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise CredentialError(f"Credential file not found: {path}") from None
    except yaml.YAMLError as e:
        raise CredentialError(f"Invalid YAML in {path}: {e}") from e

    try:
        validate(instance=data, schema=CREDENTIAL_SCHEMA)
    except ValidationError as ve:
        raise CredentialError(f"Malformed credential file {path}: {ve.message}") from ve

    return ClusterJoinCredential.from_dict(data)


def resolve_credential(
    advertise_address: Optional[str] = None,
    port: Optional[str] = None,
    token: Optional[str] = None,
    ca_cert_hash: Optional[str] = None,
    credential_file: Optional[Union[str, Path]] = None,
    require_hash: bool = True,
) -> ClusterJoinCredential:
    """Combine explicit parameters with an optional stored credential file.

    Explicit values take precedence, then the file, then the default port.

    Raises:
        CredentialError: If a required field is still empty
    """
    stored = read_credential(credential_file) if credential_file else None

    def pick(explicit: Optional[str], name: str) -> str:
        if explicit:
            return explicit
        if stored is not None:
            return getattr(stored, name) or ""
        return ""

    credential = ClusterJoinCredential(
        advertise_address=pick(advertise_address, "advertise_address"),
        port=pick(port, "port") or Config.APISERVER_PORT,
        token=pick(token, "token"),
        ca_cert_hash=pick(ca_cert_hash, "ca_cert_hash") or None,
    )
    return credential.validate(require_hash=require_hash)

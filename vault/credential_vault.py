from __future__ import annotations

import base64
import logging
import os
from typing import Any, Mapping, Optional, Protocol

import boto3
from botocore.exceptions import ClientError
from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class CredentialVaultProtocol(Protocol):
    def encrypt(self, plaintext: str) -> str: ...

    def decrypt(self, token: str) -> Optional[str]: ...


class FernetCredentialVault(CredentialVaultProtocol):
    """Local symmetric vault; ``key`` is a urlsafe base64 Fernet key."""

    def __init__(self, key: str | bytes) -> None:
        if not key:
            raise ValueError("an encryption key is required for FernetCredentialVault")
        raw = key.encode("ascii") if isinstance(key, str) else key
        self._fernet = Fernet(raw)

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("ascii")

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(str(plaintext).encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> Optional[str]:
        text = str(token or "").strip()
        if not text:
            return None
        try:
            return self._fernet.decrypt(text.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as exc:
            logger.warning("credential-decrypt-failed backend=fernet error=%s", type(exc).__name__)
            return None


class KmsCredentialVault(CredentialVaultProtocol):
    def __init__(
        self,
        key_id: str,
        region_name: str | None = None,
        kms_client: Any | None = None,
    ) -> None:
        if not key_id:
            raise ValueError("key_id is required for KmsCredentialVault")
        self.key_id = key_id
        self._client = kms_client or boto3.client("kms", region_name=region_name)

    def encrypt(self, plaintext: str) -> str:
        response = self._client.encrypt(KeyId=self.key_id, Plaintext=str(plaintext).encode("utf-8"))
        return base64.b64encode(response["CiphertextBlob"]).decode("ascii")

    def decrypt(self, token: str) -> Optional[str]:
        text = str(token or "").strip()
        if not text:
            return None
        try:
            blob = base64.b64decode(text, validate=True)
            response = self._client.decrypt(CiphertextBlob=blob, KeyId=self.key_id)
            return response["Plaintext"].decode("utf-8")
        except (ValueError, ClientError) as exc:
            logger.warning("credential-decrypt-failed backend=kms error=%s", type(exc).__name__)
            return None


def create_credential_vault(
    config: dict[str, Any],
    environ: Mapping[str, str] | None = None,
) -> CredentialVaultProtocol:
    env = os.environ if environ is None else environ
    vault_conf = config.get("vault", {}) if isinstance(config, dict) else {}
    backend = str(vault_conf.get("backend", "fernet") or "fernet").strip().lower()

    if backend == "kms":
        return KmsCredentialVault(
            key_id=str(vault_conf.get("kms_key_id") or ""),
            region_name=_as_optional_str(vault_conf.get("region")) or _as_optional_str(env.get("AWS_REGION")),
        )
    if backend != "fernet":
        raise ValueError(f"unsupported vault backend: {backend}")

    key = _as_optional_str(vault_conf.get("key")) or _as_optional_str(env.get("ENCRYPTION_KEY"))
    if key is None:
        raise ValueError("vault.key or ENCRYPTION_KEY must be set for the fernet vault")
    return FernetCredentialVault(key)


def _as_optional_str(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None

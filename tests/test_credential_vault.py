from __future__ import annotations

import base64
import unittest
from unittest import mock

from botocore.exceptions import ClientError

from vault.credential_vault import FernetCredentialVault, KmsCredentialVault, create_credential_vault


class FernetCredentialVaultTest(unittest.TestCase):
    def test_round_trip(self) -> None:
        vault = FernetCredentialVault(FernetCredentialVault.generate_key())
        token = vault.encrypt("jira-pat-123")
        self.assertNotIn("jira-pat-123", token)
        self.assertEqual(vault.decrypt(token), "jira-pat-123")

    def test_wrong_key_or_garbage_returns_none(self) -> None:
        token = FernetCredentialVault(FernetCredentialVault.generate_key()).encrypt("secret")
        other = FernetCredentialVault(FernetCredentialVault.generate_key())
        self.assertIsNone(other.decrypt(token))
        self.assertIsNone(other.decrypt("not-a-token"))
        self.assertIsNone(other.decrypt(""))

    def test_factory_requires_key(self) -> None:
        with self.assertRaises(ValueError):
            create_credential_vault({"vault": {"backend": "fernet"}}, environ={})
        key = FernetCredentialVault.generate_key()
        vault = create_credential_vault({"vault": {"backend": "fernet"}}, environ={"ENCRYPTION_KEY": key})
        self.assertIsInstance(vault, FernetCredentialVault)

    def test_factory_rejects_unknown_backend(self) -> None:
        with self.assertRaises(ValueError):
            create_credential_vault({"vault": {"backend": "plaintext"}}, environ={})


class KmsCredentialVaultTest(unittest.TestCase):
    def setUp(self) -> None:
        self.client = mock.Mock()
        self.vault = KmsCredentialVault(key_id="alias/timelogger", kms_client=self.client)

    def test_encrypt_returns_base64_ciphertext(self) -> None:
        self.client.encrypt.return_value = {"CiphertextBlob": b"\x01\x02cipher"}
        token = self.vault.encrypt("secret")
        self.assertEqual(base64.b64decode(token), b"\x01\x02cipher")
        self.client.encrypt.assert_called_once_with(KeyId="alias/timelogger", Plaintext=b"secret")

    def test_decrypt(self) -> None:
        self.client.decrypt.return_value = {"Plaintext": b"secret"}
        token = base64.b64encode(b"cipher").decode("ascii")
        self.assertEqual(self.vault.decrypt(token), "secret")
        self.client.decrypt.assert_called_once_with(CiphertextBlob=b"cipher", KeyId="alias/timelogger")

    def test_decrypt_failures_return_none(self) -> None:
        self.client.decrypt.side_effect = ClientError(
            {"Error": {"Code": "InvalidCiphertextException", "Message": "bad"}},
            "Decrypt",
        )
        self.assertIsNone(self.vault.decrypt(base64.b64encode(b"cipher").decode("ascii")))
        self.assertIsNone(self.vault.decrypt("%%%"))
        self.assertIsNone(self.vault.decrypt(""))

    def test_factory_builds_kms(self) -> None:
        with mock.patch("vault.credential_vault.KmsCredentialVault") as constructor:
            _ = create_credential_vault({"vault": {"backend": "kms", "kms_key_id": "alias/x", "region": "us-east-1"}}, environ={})
        constructor.assert_called_once_with(key_id="alias/x", region_name="us-east-1")


if __name__ == "__main__":
    unittest.main()

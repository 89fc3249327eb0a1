"""
Unit tests for the credential codec.
"""

import json

import pytest
from cryptography.fernet import Fernet

from sourcelink.exceptions import DecryptionError
from sourcelink.security.credentials import CredentialCodec, decrypt_datasource_params, encrypt_params


@pytest.mark.unit
class TestCredentialCodec:
    """Tests for CredentialCodec"""

    def test_round_trip_preserves_params(self):
        """Decrypting an encrypted params dict returns an equal dict"""
        codec = CredentialCodec("passphrase")
        params = {"host": "db.internal", "port": 5432, "ssl": True, "password": "s3cr3t", "extra": None}

        assert codec.decrypt(codec.encrypt(params)) == params

    def test_ciphertext_does_not_contain_secrets(self):
        codec = CredentialCodec("passphrase")

        ciphertext = codec.encrypt({"password": "s3cr3t"})

        assert isinstance(ciphertext, str)
        assert "s3cr3t" not in ciphertext

    def test_serializes_canonical_json(self):
        """Key order does not change the decrypted payload"""
        key = Fernet.generate_key()
        codec = CredentialCodec(key)

        token = codec.encrypt({"b": 1, "a": 2})
        plaintext = Fernet(key).decrypt(token.encode()).decode()

        assert plaintext == json.dumps({"a": 2, "b": 1}, separators=(",", ":"))

    def test_accepts_a_real_fernet_key(self):
        key = Fernet.generate_key()
        token = Fernet(key).encrypt(b'{"user":"me"}').decode()

        assert CredentialCodec(key.decode()).decrypt(token) == {"user": "me"}

    def test_wrong_key_raises_decryption_error(self):
        ciphertext = CredentialCodec("first-key").encrypt({"password": "s3cr3t"})

        with pytest.raises(DecryptionError):
            CredentialCodec("second-key").decrypt(ciphertext)

    @pytest.mark.parametrize("ciphertext", ["", "not-a-token", "gAAAAABtampered"])
    def test_malformed_ciphertext_raises_decryption_error(self, ciphertext):
        with pytest.raises(DecryptionError):
            CredentialCodec("passphrase").decrypt(ciphertext)

    def test_non_object_payload_raises_decryption_error(self):
        key = Fernet.generate_key()
        token = Fernet(key).encrypt(b"[1, 2, 3]").decode()

        with pytest.raises(DecryptionError, match="not a JSON object"):
            CredentialCodec(key).decrypt(token)

    def test_generates_key_when_none_configured(self):
        codec = CredentialCodec(None)

        assert codec.decrypt(codec.encrypt({"a": 1})) == {"a": 1}


@pytest.mark.unit
def test_module_helpers_share_the_process_wide_key():
    params = {"account": "acme", "password": "pw"}

    assert decrypt_datasource_params(encrypt_params(params)) == params

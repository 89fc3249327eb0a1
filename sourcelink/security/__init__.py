from sourcelink.security.credentials import (
    CredentialCodec,
    decrypt_datasource_params,
    encrypt_params,
    get_credential_codec,
)

__all__ = [
    "CredentialCodec",
    "decrypt_datasource_params",
    "encrypt_params",
    "get_credential_codec",
]

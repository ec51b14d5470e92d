"""
cryption — hybrid envelope encryption and JWT inspection
========================================================
Two independent codecs:

    ENVELOPE  — RSA-OAEP wrapped AES-256-CBC over JSON, one base64 string
    TOKEN     — unverified JWT decode, expiry helpers, unsigned mock tokens

Neither codec authenticates anything. Envelopes carry no integrity tag
and tokens are never signature-checked.
"""

__version__ = "1.0.0"

from .exceptions import (
    CryptionError,
    KeyMaterialError,
    KeyMissingError,
    KeyParseError,
    EnvelopeError,
    EnvelopeFormatError,
    WrapError,
    UnwrapError,
    SymmetricCipherError,
    PayloadParseError,
    PayloadSerializeError,
    TokenError,
    TokenFormatError,
    TokenDecodeError,
)
from .codecs.aes_cbc  import AESCBCCipher
from .codecs.rsa_oaep import RSACipher
from .codecs.envelope import (
    Envelope,
    encrypt_envelope,
    decrypt_envelope,
    encrypt_data_with_rsa_aes,
    decrypt_data_with_rsa_aes,
)
from .codecs.tokens import (
    TokenSummary,
    TokenUser,
    base64url_decode,
    base64url_encode,
    create_mock_access_token,
    create_mock_refresh_token,
    decode_jwt,
    decode_token,
    decode_token_header,
    describe_expiration,
    encode_jwt,
    encode_token,
    generate_random_id,
    get_token_expiration,
    get_token_expiry_date,
    get_token_summary,
    get_token_time_remaining,
    get_user_from_token,
    has_compliance_user_role,
    is_token_expired,
    parse_token,
)

__all__ = [
    "CryptionError",
    "KeyMaterialError",
    "KeyMissingError",
    "KeyParseError",
    "EnvelopeError",
    "EnvelopeFormatError",
    "WrapError",
    "UnwrapError",
    "SymmetricCipherError",
    "PayloadParseError",
    "PayloadSerializeError",
    "TokenError",
    "TokenFormatError",
    "TokenDecodeError",
    "AESCBCCipher",
    "RSACipher",
    "Envelope",
    "encrypt_envelope",
    "decrypt_envelope",
    "encrypt_data_with_rsa_aes",
    "decrypt_data_with_rsa_aes",
    "TokenSummary",
    "TokenUser",
    "base64url_decode",
    "base64url_encode",
    "create_mock_access_token",
    "create_mock_refresh_token",
    "decode_jwt",
    "decode_token",
    "decode_token_header",
    "describe_expiration",
    "encode_jwt",
    "encode_token",
    "generate_random_id",
    "get_token_expiration",
    "get_token_expiry_date",
    "get_token_summary",
    "get_token_time_remaining",
    "get_user_from_token",
    "has_compliance_user_role",
    "is_token_expired",
    "parse_token",
]

"""
Error taxonomy for cryption.

Every failure carries a stable ``code`` so callers can render a
human-readable message ("wrong key" vs "corrupted data") without
inspecting the text. Messages never include key material or plaintext.
"""

from typing import Optional


class CryptionError(Exception):
    """Base exception for all envelope and token failures."""

    code = "CRYPTION_ERROR"
    default_message = "Cryptographic operation failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def __repr__(self):
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ── Key material ─────────────────────────────────────────────────────────────
class KeyMaterialError(CryptionError):
    code = "KEY_ERROR"
    default_message = "Key material is unusable."


class KeyMissingError(KeyMaterialError):
    code = "KEY_MISSING"
    default_message = "Key is not defined."


class KeyParseError(KeyMaterialError):
    code = "KEY_PARSE_ERROR"
    default_message = "Key could not be parsed as an RSA PEM block."


# ── Envelope ─────────────────────────────────────────────────────────────────
class EnvelopeError(CryptionError):
    code = "ENVELOPE_ERROR"
    default_message = "Envelope operation failed."


class EnvelopeFormatError(EnvelopeError):
    code = "ENVELOPE_FORMAT_ERROR"
    default_message = "Encrypted data format is invalid."


class WrapError(EnvelopeError):
    code = "WRAP_ERROR"
    default_message = "Key material could not be wrapped with the public key."


class UnwrapError(EnvelopeError):
    code = "UNWRAP_ERROR"
    default_message = "Key material could not be unwrapped (wrong private key or corrupted data)."


class SymmetricCipherError(EnvelopeError):
    code = "SYMMETRIC_CIPHER_ERROR"
    default_message = "AES decryption failed (wrong key or corrupted ciphertext)."


class PayloadParseError(EnvelopeError):
    code = "PAYLOAD_PARSE_ERROR"
    default_message = "Decrypted data is not valid JSON."


class PayloadSerializeError(EnvelopeError):
    code = "PAYLOAD_SERIALIZE_ERROR"
    default_message = "Payload cannot be serialized to JSON."


# ── Token ────────────────────────────────────────────────────────────────────
class TokenError(CryptionError):
    code = "TOKEN_ERROR"
    default_message = "Token could not be decoded."


class TokenFormatError(TokenError):
    code = "TOKEN_FORMAT_ERROR"
    default_message = "Invalid JWT format."

    def __init__(self, message: Optional[str] = None, looks_encrypted: bool = False):
        super().__init__(message)
        self.looks_encrypted = looks_encrypted


class TokenDecodeError(TokenError):
    code = "TOKEN_DECODE_ERROR"
    default_message = "Token segment is not valid base64url JSON."

"""
Envelope Codec: RSA-OAEP + AES-256-CBC (hybrid encryption)
==========================================================
Encrypt arbitrary JSON data for the holder of an RSA private key.

The DATA is encrypted with a one-time AES-256 key and IV, then THAT key
and IV are wrapped with the recipient's RSA public key. The recipient
unwraps key and IV with the private key, then decrypts the data.

Transport format (every field is standard base64, so ':' never appears
inside a field):

    base64( base64(wrap(base64(key))) ":" base64(wrap(base64(iv))) ":" base64(aes_cbc(json)) )

The key and IV are base64-encoded BEFORE wrapping. That double encoding
is what existing clients produce and expect; removing it breaks
round-trips with envelopes already in circulation.

No integrity tag: corruption is detected only when it breaks base64,
OAEP or PKCS7 padding. Otherwise the result is silently wrong.

Dependencies: cryptography >= 41.0
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any

from .aes_cbc import AESCBCCipher
from .rsa_oaep import PEM, RSACipher
from ..exceptions import (
    EnvelopeFormatError,
    KeyMissingError,
    KeyParseError,
    PayloadParseError,
    PayloadSerializeError,
    UnwrapError,
)

logger = logging.getLogger(__name__)

DELIMITER = ":"


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(text, error=EnvelopeFormatError, what="field") -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise error(f"Envelope {what} is not valid base64.") from exc


def _require_pem(pem, kind: str):
    if pem is None:
        raise KeyMissingError(f"{kind} key is not defined")
    if not isinstance(pem, (str, bytes)):
        raise KeyParseError(f"{kind} key must be PEM text, not {type(pem).__name__}.")
    if not pem.strip():
        raise KeyMissingError(f"{kind} key is not defined")


@dataclass(frozen=True)
class Envelope:
    """The three base64 fields of a transport string."""

    wrapped_key: str
    wrapped_iv: str
    ciphertext: str

    def serialize(self) -> str:
        combined = DELIMITER.join((self.wrapped_key, self.wrapped_iv, self.ciphertext))
        return _b64encode(combined.encode("ascii"))

    @classmethod
    def parse(cls, text: str) -> "Envelope":
        """
        Undo the outer framing. Raises EnvelopeFormatError unless the
        decoded string has exactly three non-empty ':'-separated fields.
        """
        if not isinstance(text, (str, bytes)):
            raise EnvelopeFormatError("Encrypted data must be text.")
        if isinstance(text, str):
            text = text.strip()
        raw = _b64decode(text, what="wrapper")
        try:
            combined = raw.decode("ascii")
        except UnicodeDecodeError as exc:
            raise EnvelopeFormatError() from exc

        parts = combined.split(DELIMITER)
        if len(parts) != 3 or not all(parts):
            raise EnvelopeFormatError(
                f"Expected 3 ':'-separated fields, found {len(parts)}."
            )
        return cls(*parts)


def encrypt_envelope(payload: Any, public_key_pem: PEM) -> str:
    """
    Encrypt a JSON-serializable value for the holder of the private key
    matching ``public_key_pem``. Returns the base64 transport string.

    Two calls with identical inputs never return the same string.
    """
    _require_pem(public_key_pem, "Public")
    rsa_cipher = RSACipher.from_pem(public_pem=public_key_pem)

    try:
        plaintext = json.dumps(
            payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False
        ).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise PayloadSerializeError() from exc

    # 1. Fresh AES-256 key and IV for this call only
    key = AESCBCCipher.generate_key()
    iv  = AESCBCCipher.generate_iv()

    # 2. Encrypt the data with AES-256-CBC
    ciphertext = AESCBCCipher(key).encrypt(plaintext, iv)

    # 3. Wrap base64(key) and base64(iv) with RSA-OAEP
    wrapped_key = rsa_cipher.wrap(_b64encode(key).encode("ascii"))
    wrapped_iv  = rsa_cipher.wrap(_b64encode(iv).encode("ascii"))

    envelope = Envelope(
        wrapped_key=_b64encode(wrapped_key),
        wrapped_iv=_b64encode(wrapped_iv),
        ciphertext=_b64encode(ciphertext),
    )
    transport = envelope.serialize()
    logger.debug(
        f"Envelope: rsa={rsa_cipher.key_size}b payload={len(plaintext)}B "
        f"ct={len(ciphertext)}B transport={len(transport)} chars"
    )
    return transport


def _unwrap_field(rsa_cipher: RSACipher, field: str, size: int, what: str) -> bytes:
    wrapped = _b64decode(field, what=what)
    encoded = rsa_cipher.unwrap(wrapped)
    material = _b64decode(encoded, error=UnwrapError, what=f"unwrapped {what}")
    if len(material) != size:
        raise UnwrapError(f"Unwrapped {what} must be {size} bytes, got {len(material)}.")
    return material


def decrypt_envelope(envelope: str, private_key_pem: PEM) -> Any:
    """
    Decrypt a transport string produced by encrypt_envelope().
    Returns the original JSON value.
    """
    _require_pem(private_key_pem, "Private")
    rsa_cipher = RSACipher.from_pem(private_pem=private_key_pem)

    parsed = Envelope.parse(envelope)

    # 1. Recover AES key and IV with the RSA private key
    key = _unwrap_field(rsa_cipher, parsed.wrapped_key, AESCBCCipher.KEY_SIZE, "key")
    iv  = _unwrap_field(rsa_cipher, parsed.wrapped_iv, AESCBCCipher.IV_SIZE, "IV")

    # 2. Decrypt data with AES-256-CBC
    ciphertext = _b64decode(parsed.ciphertext, what="ciphertext")
    plaintext  = AESCBCCipher(key).decrypt(ciphertext, iv)

    try:
        payload = json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise PayloadParseError() from exc

    logger.debug(f"Envelope opened: ct={len(ciphertext)}B payload={len(plaintext)}B")
    return payload


# Legacy names, kept for existing callers.
encrypt_data_with_rsa_aes = encrypt_envelope
decrypt_data_with_rsa_aes = decrypt_envelope

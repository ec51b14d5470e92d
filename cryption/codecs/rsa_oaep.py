"""
Asymmetric layer: RSA + OAEP key wrapping
=========================================
RSA public-key encryption with OAEP padding, used only to wrap the small
AES key / IV material of an envelope.

OAEP hash: SHA-1 for both the label hash and MGF1. That is the default
of the JavaScript (node-forge "RSA-OAEP") clients that produced the
envelopes already in circulation, so it is what this layer speaks on the
wire. OAEP-SHA1 is still considered safe for encryption; set
``RSACipher.HASH`` to move to SHA-256 once every peer agrees.

Capacity: k - 2*hLen - 2 bytes, i.e. 214 bytes for RSA-2048 with SHA-1.
The envelope wraps 44-byte (key) and 24-byte (IV) base64 strings.

PEM input is accepted as str or bytes and trimmed before parsing; keys
are never cached or logged.

Dependencies: cryptography >= 41.0
"""

from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..exceptions import KeyMissingError, KeyParseError, UnwrapError, WrapError

PEM = Union[str, bytes]


def _pem_bytes(pem: PEM) -> bytes:
    if isinstance(pem, str):
        pem = pem.encode("utf-8")
    return pem.strip()


class RSACipher:
    """RSA-OAEP key wrapping / unwrapping."""

    KEY_SIZE = 2048
    HASH     = hashes.SHA1

    def __init__(self, private_key=None, public_key=None):
        """
        Pass loaded cryptography key objects, or use from_pem() /
        generate_keypair().
        """
        self._private_key = private_key
        self._public_key  = public_key

    @classmethod
    def generate_keypair(cls, key_size: int = None) -> "RSACipher":
        """Generate a fresh RSA keypair (default 2048-bit)."""
        private_key = rsa.generate_private_key(
            public_exponent=65537,
            key_size=key_size or cls.KEY_SIZE,
        )
        return cls(private_key=private_key, public_key=private_key.public_key())

    @classmethod
    def from_pem(cls, private_pem: PEM = None,
                 public_pem: PEM = None) -> "RSACipher":
        """
        Load keys from PEM text. Leading/trailing whitespace is ignored.
        Raises KeyParseError if a block is malformed or not RSA.
        """
        priv = cls._load_private(private_pem) if private_pem else None
        pub  = cls._load_public(public_pem) if public_pem else None
        if priv and not pub:
            pub = priv.public_key()
        return cls(private_key=priv, public_key=pub)

    @staticmethod
    def _load_private(pem: PEM):
        try:
            key = serialization.load_pem_private_key(_pem_bytes(pem), password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise KeyParseError("Private key could not be parsed as PEM.") from exc
        if not isinstance(key, rsa.RSAPrivateKey):
            raise KeyParseError("Private key is not an RSA key.")
        return key

    @staticmethod
    def _load_public(pem: PEM):
        try:
            key = serialization.load_pem_public_key(_pem_bytes(pem))
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise KeyParseError("Public key could not be parsed as PEM.") from exc
        if not isinstance(key, rsa.RSAPublicKey):
            raise KeyParseError("Public key is not an RSA key.")
        return key

    @property
    def key_size(self) -> int:
        key = self._public_key or self._private_key
        return key.key_size if key is not None else 0

    def export_public_pem(self) -> str:
        return self._public_key.public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo
        ).decode("ascii")

    def export_private_pem(self) -> str:
        return self._private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption()
        ).decode("ascii")

    def _oaep(self):
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=self.HASH()),
            algorithm=self.HASH(),
            label=None
        )

    def wrap(self, data: bytes) -> bytes:
        """Encrypt small key material with the recipient's public key."""
        if self._public_key is None:
            raise KeyMissingError("Public key is not defined")
        try:
            return self._public_key.encrypt(data, self._oaep())
        except ValueError as exc:
            raise WrapError(
                f"Cannot wrap {len(data)} bytes with a {self.key_size}-bit key."
            ) from exc

    def unwrap(self, data: bytes) -> bytes:
        """Decrypt key material with the private key."""
        if self._private_key is None:
            raise KeyMissingError("Private key is not defined")
        try:
            return self._private_key.decrypt(data, self._oaep())
        except ValueError as exc:
            raise UnwrapError() from exc

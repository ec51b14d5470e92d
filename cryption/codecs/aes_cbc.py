"""
Symmetric layer: AES-256-CBC + PKCS7
====================================
AES-256 in Cipher Block Chaining mode with PKCS7 padding.

CBC gives confidentiality only. There is NO authentication tag: a
tampered ciphertext either fails the padding check on decryption or
decrypts to wrong plaintext. The envelope format predates any MAC and
adding one would break existing envelopes.

Key size: 256 bits (32 bytes).
IV:       128 bits (16 bytes), one AES block, random per message.

Unlike a GCM bundle the IV is NOT prepended here; the envelope layer
wraps it separately with RSA.

Dependencies: cryptography >= 41.0
"""

import os
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..exceptions import SymmetricCipherError


class AESCBCCipher:
    """AES-256-CBC encryption with PKCS7 padding."""

    KEY_SIZE   = 32   # 256-bit key
    IV_SIZE    = 16   # one AES block
    BLOCK_BITS = algorithms.AES.block_size

    def __init__(self, key: bytes = None):
        """
        Pass a 32-byte key, or omit to auto-generate one.
        """
        if key is None:
            key = self.generate_key()
        if len(key) != self.KEY_SIZE:
            raise ValueError(f"AES-256 key must be {self.KEY_SIZE} bytes.")
        self._key = key

    @property
    def key(self) -> bytes:
        return self._key

    @classmethod
    def generate_key(cls) -> bytes:
        return os.urandom(cls.KEY_SIZE)

    @classmethod
    def generate_iv(cls) -> bytes:
        return os.urandom(cls.IV_SIZE)

    def _cipher(self, iv: bytes) -> Cipher:
        if len(iv) != self.IV_SIZE:
            raise SymmetricCipherError(f"IV must be {self.IV_SIZE} bytes.")
        return Cipher(algorithms.AES(self._key), modes.CBC(iv))

    def encrypt(self, plaintext: bytes, iv: bytes) -> bytes:
        """Pad and encrypt. Returns raw ciphertext (a multiple of 16 bytes)."""
        padder    = padding.PKCS7(self.BLOCK_BITS).padder()
        padded    = padder.update(plaintext) + padder.finalize()
        encryptor = self._cipher(iv).encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, ciphertext: bytes, iv: bytes) -> bytes:
        """
        Decrypt and strip padding.
        Raises SymmetricCipherError on bad length or bad padding, which
        almost always means the wrong key/IV or corrupted ciphertext.
        """
        block = self.BLOCK_BITS // 8
        if not ciphertext or len(ciphertext) % block:
            raise SymmetricCipherError(
                f"Ciphertext length must be a non-zero multiple of {block} bytes."
            )
        decryptor = self._cipher(iv).decryptor()
        padded    = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder  = padding.PKCS7(self.BLOCK_BITS).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            raise SymmetricCipherError() from exc

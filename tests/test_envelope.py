"""
cryption — Envelope Codec Test Suite
====================================
Run with:  python -m pytest tests/ -v
       or:  python tests/test_envelope.py
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import base64
import functools

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from cryption.codecs.aes_cbc  import AESCBCCipher
from cryption.codecs.rsa_oaep import RSACipher
from cryption.codecs.envelope import (
    Envelope,
    decrypt_data_with_rsa_aes,
    decrypt_envelope,
    encrypt_data_with_rsa_aes,
    encrypt_envelope,
)
from cryption.exceptions import (
    CryptionError,
    EnvelopeFormatError,
    KeyMissingError,
    KeyParseError,
    PayloadParseError,
    PayloadSerializeError,
    SymmetricCipherError,
    UnwrapError,
    WrapError,
)

PAYLOAD = {
    "patient": "Jane Doe",
    "facilities": ["FAC-001", "FAC-002"],
    "active": True,
    "score": 4.5,
    "notes": None,
    "name_local": "Zoë – 東京",
}


@functools.lru_cache(maxsize=None)
def _keys(name="a", key_size=2048):
    r = RSACipher.generate_keypair(key_size)
    return r.export_public_pem(), r.export_private_pem()


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _seal_raw(plaintext: bytes, pub: str) -> str:
    """Build an envelope around arbitrary bytes (bypasses JSON encoding)."""
    rsa = RSACipher.from_pem(public_pem=pub)
    key, iv = AESCBCCipher.generate_key(), AESCBCCipher.generate_iv()
    return Envelope(
        wrapped_key=_b64(rsa.wrap(_b64(key).encode())),
        wrapped_iv=_b64(rsa.wrap(_b64(iv).encode())),
        ciphertext=_b64(AESCBCCipher(key).encrypt(plaintext, iv)),
    ).serialize()


# ── Symmetric layer ──────────────────────────────────────────────────────────
def test_aes_cbc_roundtrip():
    a  = AESCBCCipher()
    iv = a.generate_iv()
    ct = a.encrypt(b"sixteen byte msg", iv)
    assert len(ct) == 32   # full block of padding added
    assert a.decrypt(ct, iv) == b"sixteen byte msg"

def test_aes_cbc_rejects_bad_key_length():
    with pytest.raises(ValueError):
        AESCBCCipher(b"short")

def test_aes_cbc_rejects_partial_block():
    a = AESCBCCipher()
    with pytest.raises(SymmetricCipherError):
        a.decrypt(b"x" * 17, a.generate_iv())
    with pytest.raises(SymmetricCipherError):
        a.decrypt(b"", a.generate_iv())

def test_aes_cbc_rejects_bad_iv_length():
    with pytest.raises(SymmetricCipherError):
        AESCBCCipher().decrypt(b"x" * 16, b"short")

# ── Asymmetric layer ─────────────────────────────────────────────────────────
def test_rsa_wrap_unwrap():
    r = RSACipher.generate_keypair()
    assert r.unwrap(r.wrap(b"key material")) == b"key material"

def test_rsa_pem_export_import():
    pub, priv = _keys("a")
    r = RSACipher.from_pem(private_pem=priv, public_pem=pub)
    assert r.key_size == 2048
    assert r.unwrap(r.wrap(b"round trip via PEM")) == b"round trip via PEM"

def test_rsa_private_only_derives_public():
    _, priv = _keys("a")
    r = RSACipher.from_pem(private_pem=priv.encode())
    assert r.unwrap(r.wrap(b"x")) == b"x"

def test_rsa_rejects_non_rsa_key():
    ec_pub = ec.generate_private_key(ec.SECP256R1()).public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    with pytest.raises(KeyParseError):
        RSACipher.from_pem(public_pem=ec_pub)

# ── Envelope round-trip ──────────────────────────────────────────────────────
def test_envelope_concrete_roundtrip():
    pub, priv = _keys("a")
    assert decrypt_envelope(encrypt_envelope({"a": 1}, pub), priv) == {"a": 1}

def test_envelope_structured_roundtrip():
    pub, priv = _keys("a")
    assert decrypt_envelope(encrypt_envelope(PAYLOAD, pub), priv) == PAYLOAD

@pytest.mark.parametrize("value", [[1, 2, 3], "text", 42, None, {}])
def test_envelope_non_object_payloads(value):
    pub, priv = _keys("a")
    assert decrypt_envelope(encrypt_envelope(value, pub), priv) == value

def test_envelope_large_payload():
    pub, priv = _keys("a")
    big = {"blob": "X" * 100_000}
    assert decrypt_envelope(encrypt_envelope(big, pub), priv) == big

def test_envelope_is_non_deterministic():
    pub, _ = _keys("a")
    assert encrypt_envelope(PAYLOAD, pub) != encrypt_envelope(PAYLOAD, pub)

def test_envelope_accepts_padded_pem():
    pub, priv = _keys("a")
    sealed = encrypt_envelope({"a": 1}, "\n  " + pub + "  \n\n")
    assert decrypt_envelope(sealed, "\t" + priv + "\n") == {"a": 1}

def test_envelope_transport_layout():
    pub, _ = _keys("a")
    combined = base64.b64decode(encrypt_envelope({"a": 1}, pub)).decode("ascii")
    wrapped_key, wrapped_iv, ciphertext = combined.split(":")
    assert len(base64.b64decode(wrapped_key)) == 256   # RSA-2048 block
    assert len(base64.b64decode(wrapped_iv)) == 256
    assert len(base64.b64decode(ciphertext)) == 16     # '{"a":1}' + padding

def test_envelope_key_is_base64_before_wrapping():
    pub, priv = _keys("a")
    env = Envelope.parse(encrypt_envelope({"a": 1}, pub))
    rsa = RSACipher.from_pem(private_pem=priv)
    assert len(base64.b64decode(rsa.unwrap(base64.b64decode(env.wrapped_key)))) == 32
    assert len(base64.b64decode(rsa.unwrap(base64.b64decode(env.wrapped_iv)))) == 16

def test_legacy_names():
    pub, priv = _keys("a")
    assert decrypt_data_with_rsa_aes(encrypt_data_with_rsa_aes({"a": 1}, pub), priv) == {"a": 1}

# ── Envelope failures ────────────────────────────────────────────────────────
@pytest.mark.parametrize("key", [None, "", "   \n"])
def test_missing_public_key(key):
    with pytest.raises(KeyMissingError):
        encrypt_envelope({"a": 1}, key)

@pytest.mark.parametrize("key", [None, "", "   \n"])
def test_missing_private_key(key):
    with pytest.raises(KeyMissingError):
        decrypt_envelope("Zm9v", key)

def test_malformed_public_key():
    with pytest.raises(KeyParseError):
        encrypt_envelope({"a": 1}, "-----BEGIN PUBLIC KEY-----\nnope\n-----END PUBLIC KEY-----")

def test_malformed_private_key():
    with pytest.raises(KeyParseError):
        decrypt_envelope("Zm9v", "not a pem")

@pytest.mark.parametrize("key", [42, ["pem"], {"pem": "x"}])
def test_non_text_keys(key):
    with pytest.raises(KeyParseError):
        encrypt_envelope({"a": 1}, key)
    with pytest.raises(KeyParseError):
        decrypt_envelope("Zm9v", key)

def test_unserializable_payload():
    pub, _ = _keys("a")
    with pytest.raises(PayloadSerializeError):
        encrypt_envelope({"when": object()}, pub)

def test_wrap_failure(monkeypatch):
    # SHA-512 OAEP leaves no room in a 1024-bit modulus.
    monkeypatch.setattr(RSACipher, "HASH", hashes.SHA512)
    pub, _ = _keys("small", 1024)
    with pytest.raises(WrapError):
        encrypt_envelope({"a": 1}, pub)

def test_wrong_private_key():
    pub_a, _ = _keys("a")
    _, priv_b = _keys("b")
    with pytest.raises((UnwrapError, SymmetricCipherError)):
        decrypt_envelope(encrypt_envelope({"a": 1}, pub_a), priv_b)

@pytest.mark.parametrize("combined", [b"onlyone", b"a:b", b"a:b:c:d", b"a::c", b"!!:??:##"])
def test_bad_field_layout(combined):
    _, priv = _keys("a")
    with pytest.raises(EnvelopeFormatError):
        decrypt_envelope(_b64(combined), priv)

def test_transport_not_base64():
    _, priv = _keys("a")
    with pytest.raises(EnvelopeFormatError):
        decrypt_envelope("this is *not* base64", priv)

def test_truncated_ciphertext():
    pub, priv = _keys("a")
    env = Envelope.parse(encrypt_envelope({"a": 1}, pub))
    broken = Envelope(env.wrapped_key, env.wrapped_iv, _b64(b"x" * 15)).serialize()
    with pytest.raises(SymmetricCipherError):
        decrypt_envelope(broken, priv)

@pytest.mark.parametrize("key_len, iv_len", [(31, 16), (32, 15)])
def test_unwrapped_material_wrong_length(key_len, iv_len):
    pub, priv = _keys("a")
    rsa = RSACipher.from_pem(public_pem=pub)
    sealed = Envelope(
        wrapped_key=_b64(rsa.wrap(_b64(os.urandom(key_len)).encode())),
        wrapped_iv=_b64(rsa.wrap(_b64(os.urandom(iv_len)).encode())),
        ciphertext=_b64(b"x" * 16),
    ).serialize()
    with pytest.raises(UnwrapError):
        decrypt_envelope(sealed, priv)

def test_non_json_plaintext():
    pub, priv = _keys("a")
    with pytest.raises(PayloadParseError):
        decrypt_envelope(_seal_raw(b"\xff not json", pub), priv)

def test_corruption_never_crashes():
    pub, priv = _keys("a")
    sealed = encrypt_envelope(PAYLOAD, pub)
    for pos in range(0, len(sealed), max(1, len(sealed) // 40)):
        flipped = "A" if sealed[pos] != "A" else "B"
        tampered = sealed[:pos] + flipped + sealed[pos + 1:]
        try:
            decrypt_envelope(tampered, priv)
        except CryptionError:
            pass

def test_errors_do_not_leak_key_material():
    pub_a, _ = _keys("a")
    _, priv_b = _keys("b")
    sealed = encrypt_envelope({"secret": "value"}, pub_a)
    with pytest.raises(CryptionError) as info:
        decrypt_envelope(sealed, priv_b)
    text = str(info.value)
    assert "PRIVATE KEY" not in text
    assert "value" not in text
    assert info.value.code in ("UNWRAP_ERROR", "SYMMETRIC_CIPHER_ERROR")

# ── run directly ─────────────────────────────────────────────────────────────
if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))

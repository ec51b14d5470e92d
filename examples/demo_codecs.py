"""
cryption — Live Demo: Envelope + Token codecs
=============================================
Run:  python examples/demo_codecs.py

Seals a JSON payload for an RSA key pair and opens it again, then
builds, decodes and inspects an unsigned mock token.
"""

import sys, os, time, json, logging
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cryption import (
    CryptionError,
    RSACipher,
    create_mock_refresh_token,
    decode_token,
    decode_token_header,
    decrypt_envelope,
    describe_expiration,
    encode_token,
    encrypt_envelope,
    get_token_summary,
    is_token_expired,
)

LINE    = "═" * 70
PAYLOAD = {"patient_id": "P-1024", "facility": "FAC-001", "allergies": ["penicillin"]}

def header(step, name):
    print(f"\n{LINE}")
    print(f"  Step {step} — {name}")
    print(LINE)

def ok(label, value=""):
    print(f"  ✓  {label}{f': {value}' if value else ''}")

logging.basicConfig(level=logging.INFO, format=" %(levelname)s %(name)s: %(message)s")

print(f"\n{LINE}")
print("  cryption — Envelope + Token Demo")
print(LINE)
print(f"  Payload: {json.dumps(PAYLOAD)}\n")

# ── STEP 1 ───────────────────────────────────────────────────────────────────
header(1, "KEYS — RSA-2048 keypair (PEM)")
t0   = time.perf_counter()
r    = RSACipher.generate_keypair()
pub  = r.export_public_pem()
priv = r.export_private_pem()
ok("Key size",   f"{r.key_size} bits")
ok("Generated",  f"{(time.perf_counter() - t0)*1000:.0f} ms")

# ── STEP 2 ───────────────────────────────────────────────────────────────────
header(2, "ENVELOPE — RSA-OAEP + AES-256-CBC")
t0     = time.perf_counter()
sealed = encrypt_envelope(PAYLOAD, pub)
opened = decrypt_envelope(sealed, priv)
elapsed = time.perf_counter() - t0
ok("Transport",  f"{len(sealed)} chars  {sealed[:40]}...")
ok("Fresh key",  str(sealed != encrypt_envelope(PAYLOAD, pub)))
ok("Round-trip", f"{elapsed*1000:.1f} ms")
ok("Decrypted",  json.dumps(opened))

# ── STEP 3 ───────────────────────────────────────────────────────────────────
header(3, "ENVELOPE — wrong private key")
other = RSACipher.generate_keypair().export_private_pem()
try:
    decrypt_envelope(sealed, other)
except CryptionError as e:
    ok("Rejected", f"{e.code} — {e.message}")

# ── STEP 4 ───────────────────────────────────────────────────────────────────
header(4, "TOKEN — mock access + refresh tokens")
access  = encode_token({"user_id": "u1", "role_profile": "Auditor"})
refresh = create_mock_refresh_token("u1")
ok("Header",      json.dumps(decode_token_header(access)))
ok("Claims",      json.dumps(decode_token(access))[:60] + "...")
ok("Expired?",    str(is_token_expired(access)))
ok("Access",      describe_expiration(access))
ok("Refresh",     describe_expiration(refresh))
summary = get_token_summary(access)
ok("Summary",     f"valid={summary.valid} expires_in={summary.expires_in} at={summary.expires_at}")

# ── STEP 5 ───────────────────────────────────────────────────────────────────
header(5, "TOKEN — inputs that are not JWTs")
for candidate in ("not-a-jwt", "a.b", sealed):
    ok(f"{candidate[:24]!r}", str(decode_token(candidate)))

print(f"\n{LINE}")
print("  Done.")
print(f"{LINE}\n")

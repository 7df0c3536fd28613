"""
hybrid_envelope — Live Demo: every stage of one envelope
=========================================================
Run:  python examples/demo_envelope.py

Generates a throwaway RSA-2048 recipient key, seals a text message and a
binary blob, then plays the recipient and opens both, printing timing and
field sizes along the way.
"""

import sys, os, time, asyncio, logging
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cryptography.hazmat.primitives import hashes, padding as sym_padding
from cryptography.hazmat.primitives.asymmetric import rsa, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from hybrid_envelope import EnvelopeSealer, KeyImportError, export_public_key, encrypt_data

LINE = "═" * 70
MSG  = "hello"


def header(step, name):
    print(f"\n{LINE}")
    print(f"  {step} — {name}")
    print(LINE)

def ok(label, value=""):
    print(f"  ✓  {label}{f': {value}' if value else ''}")

def open_envelope(envelope, private_key) -> bytes:
    ciphertext, iv, wrapped_key = envelope.raw()
    key = private_key.decrypt(wrapped_key, padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None
    ))
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    unpadder  = sym_padding.PKCS7(128).unpadder()
    padded    = decryptor.update(ciphertext) + decryptor.finalize()
    return unpadder.update(padded) + unpadder.finalize()


logging.basicConfig(level=logging.INFO, format=" %(name)s: %(message)s")

print(f"\n{LINE}")
print("  hybrid_envelope — RSA-OAEP + AES-256-CBC Demo")
print(LINE)

# ── RECIPIENT ────────────────────────────────────────────────────────────────
header("Recipient", "RSA-2048 keypair (normally lives on the server)")
private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
public_b64  = export_public_key(private_key.public_key())
ok("Published key", f"{public_b64[:40]}... ({len(public_b64)} chars)")

# ── TEXT ─────────────────────────────────────────────────────────────────────
header("Text", "seal a short message")
t0     = time.perf_counter()
sealer = EnvelopeSealer(public_b64)
env    = sealer.seal(MSG)
elapsed = time.perf_counter() - t0
ok("ciphertext",  f"{env.ciphertext} ({len(env.raw()[0])} bytes)")
ok("iv",          f"{env.iv} ({len(env.iv)} chars)")
ok("wrappedKey",  f"{env.wrapped_key[:40]}... ({len(env.wrapped_key)} chars)")
ok("Sealed in",   f"{elapsed*1000:.2f} ms")
ok("Opened",      open_envelope(env, private_key).decode())

# ── FILE ─────────────────────────────────────────────────────────────────────
header("File", "seal 1 MB of binary data (async)")
blob = os.urandom(1024 * 1024)
t0   = time.perf_counter()
env  = asyncio.run(encrypt_data(blob, public_b64))
elapsed = time.perf_counter() - t0
fields = env.as_upload_fields("blob.bin")
ok("Upload part", f"{fields['file'][0]} ({len(fields['file'][1])} bytes)")
ok("Sealed in",   f"{elapsed*1000:.2f} ms")
ok("Round-trip",  str(open_envelope(env, private_key) == blob))

# ── FAILURE ──────────────────────────────────────────────────────────────────
header("Failure", "truncated public key")
try:
    EnvelopeSealer(public_b64[:100])
except KeyImportError as err:
    ok("KeyImportError", str(err))

print(f"\n{LINE}\n")

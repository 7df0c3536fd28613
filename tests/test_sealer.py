"""
hybrid_envelope — End-to-End Sealing Tests
===========================================
Run with:  python -m pytest tests/ -v
"""

import asyncio
import base64
import threading
import time

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

import hybrid_envelope.sealer as sealer_mod
from hybrid_envelope.stages import stage2_session_key
from hybrid_envelope import (EnvelopeConfig, EnvelopeSealer, KeyImportError,
                             KeyWrapError, EncryptionError, KeyGenerationError,
                             seal, encrypt_data)
from hybrid_envelope.stages.stage1_public_key import import_public_key, export_public_key

from conftest import unwrap

MSG = b"Envelope encryption - RSA wraps the key, AES carries the data."

# ── Scenarios ─────────────────────────────────────────────────────────────────
def test_hello_scenario(public_key_b64, open_envelope, config):
    env = seal("hello", public_key_b64, config)
    ciphertext, iv, wrapped_key = env.raw()
    assert len(ciphertext) == 16
    assert len(iv) == 16 and len(env.iv) == 24
    assert len(wrapped_key) == 256 and len(env.wrapped_key) == 344
    assert open_envelope(env) == b"hello"

def test_empty_plaintext(public_key_b64, open_envelope, config):
    env = seal(b"", public_key_b64, config)
    assert len(env.raw()[0]) == 16
    assert open_envelope(env) == b""

def test_malformed_key_never_encrypts(monkeypatch, config):
    def must_not_run(*args, **kwargs):
        raise AssertionError("payload encryption attempted")
    monkeypatch.setattr(sealer_mod, "encrypt_payload", must_not_run)
    monkeypatch.setattr(sealer_mod, "wrap_session_key", must_not_run)
    with pytest.raises(KeyImportError):
        seal(b"secret", "MIIBIjANBgkqhkiG9w0B", config)
    with pytest.raises(KeyImportError):
        asyncio.run(encrypt_data(b"secret", "MIIBIjANBgkqhkiG9w0B", config))

# ── Properties ────────────────────────────────────────────────────────────────
def test_roundtrip_binary(public_key_b64, open_envelope, config):
    data = bytes(range(256)) * 7
    assert open_envelope(seal(data, public_key_b64, config)) == data

def test_roundtrip_large_payload(public_key_b64, open_envelope, config):
    big = b"X" * 100_000
    env = seal(big, public_key_b64, config)
    assert len(env.raw()[2]) == 256
    assert open_envelope(env) == big

def test_non_deterministic(public_key_b64, open_envelope, config):
    a = seal(MSG, public_key_b64, config)
    b = seal(MSG, public_key_b64, config)
    assert a.ciphertext != b.ciphertext
    assert a.iv != b.iv
    assert a.wrapped_key != b.wrapped_key
    assert open_envelope(a) == open_envelope(b) == MSG

@pytest.mark.parametrize("size", [0, 1, 15, 16, 31, 32, 33, 4096])
def test_ciphertext_block_multiple(size, public_key_b64, config):
    ct = seal(b"\xab" * size, public_key_b64, config).raw()[0]
    assert len(ct) > 0
    assert len(ct) % 16 == 0
    assert len(ct) >= -(-size // 16) * 16

def test_session_key_not_in_output(private_key, public_key_b64, config):
    env = seal(MSG, public_key_b64, config)
    ciphertext, iv, wrapped_key = env.raw()
    session_key = unwrap(wrapped_key, private_key)
    assert len(session_key) == 32
    assert session_key not in ciphertext
    assert session_key not in iv

def test_unicode_text_utf8(public_key_b64, open_envelope, config):
    env = seal("Привет, мир €", public_key_b64, config)
    assert open_envelope(env).decode("utf-8") == "Привет, мир €"

def test_latin1_text_policy(public_key_b64, open_envelope):
    cfg = EnvelopeConfig(text_encoding="latin-1")
    assert open_envelope(seal("café", public_key_b64, cfg)) == b"caf\xe9"
    with pytest.raises(EncryptionError):
        seal("Привет", public_key_b64, cfg)

# ── Failure handling ──────────────────────────────────────────────────────────
def _capture_keys(monkeypatch):
    created = []
    original = sealer_mod.generate_session_key
    def capturing():
        key = original()
        created.append(key)
        return key
    monkeypatch.setattr(sealer_mod, "generate_session_key", capturing)
    return created

def test_session_key_destroyed_after_seal(public_key_b64, config, monkeypatch):
    created = _capture_keys(monkeypatch)
    seal(MSG, public_key_b64, config)
    asyncio.run(encrypt_data(MSG, public_key_b64, config))
    assert len(created) == 2
    assert all(k.destroyed and k.exported for k in created)

def test_wrap_failure_aborts(public_key_b64, config, monkeypatch):
    created = _capture_keys(monkeypatch)
    def broken(key, public_key):
        raise KeyWrapError("wrap failed")
    monkeypatch.setattr(sealer_mod, "wrap_session_key", broken)
    with pytest.raises(KeyWrapError):
        seal(MSG, public_key_b64, config)
    with pytest.raises(KeyWrapError):
        asyncio.run(encrypt_data(MSG, public_key_b64, config))
    assert all(k.destroyed for k in created)

def test_encryption_failure_aborts(public_key_b64, config):
    with pytest.raises(EncryptionError):
        seal(object(), public_key_b64, config)
    with pytest.raises(EncryptionError):
        asyncio.run(encrypt_data(object(), public_key_b64, config))

def test_import_failure_destroys_generated_key(config, monkeypatch):
    created = _capture_keys(monkeypatch)
    with pytest.raises(KeyImportError):
        asyncio.run(encrypt_data(MSG, "AAAA", config))
    assert len(created) == 1
    assert created[0].destroyed
    assert not created[0].exported

def test_generation_failure_aborts(public_key_b64, config, monkeypatch):
    def broken(n):
        raise OSError("no entropy")
    monkeypatch.setattr(stage2_session_key.os, "urandom", broken)
    with pytest.raises(KeyGenerationError):
        seal(MSG, public_key_b64, config)
    with pytest.raises(KeyGenerationError):
        asyncio.run(encrypt_data(MSG, public_key_b64, config))

def test_cancel_destroys_key_after_workers_finish(public_key_b64, config, monkeypatch):
    created  = _capture_keys(monkeypatch)
    started  = threading.Event()
    finished = threading.Event()
    seen     = []
    original = sealer_mod.encrypt_payload
    def slow(plaintext, key, cfg):
        started.set()
        time.sleep(0.2)
        seen.append(key.destroyed)
        try:
            return original(plaintext, key, cfg)
        finally:
            finished.set()
    monkeypatch.setattr(sealer_mod, "encrypt_payload", slow)

    async def run():
        task = asyncio.create_task(encrypt_data(MSG, public_key_b64, config))
        assert await asyncio.to_thread(started.wait, 5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert await asyncio.to_thread(finished.wait, 5)
        for _ in range(100):
            if created[0].destroyed:
                break
            await asyncio.sleep(0.01)

    asyncio.run(run())
    assert seen == [False]
    assert created[0].destroyed

# ── Async ─────────────────────────────────────────────────────────────────────
def test_encrypt_data_roundtrip(public_key_b64, open_envelope, config):
    env = asyncio.run(encrypt_data("hello", public_key_b64, config))
    assert len(env.raw()[0]) == 16
    assert open_envelope(env) == b"hello"

def test_encrypt_data_concurrent(public_key_b64, open_envelope, config):
    async def many():
        return await asyncio.gather(*(
            encrypt_data(f"message {i}", public_key_b64, config) for i in range(8)
        ))
    envelopes = asyncio.run(many())
    assert len({e.iv for e in envelopes}) == 8
    for i, env in enumerate(envelopes):
        assert open_envelope(env) == f"message {i}".encode()

def test_encrypt_data_with_imported_key(public_key_b64, open_envelope, config):
    wrapping_key = import_public_key(public_key_b64, config)
    env = asyncio.run(encrypt_data(MSG, wrapping_key, config))
    assert open_envelope(env) == MSG

# ── EnvelopeSealer ────────────────────────────────────────────────────────────
def test_sealer_roundtrip(public_key_b64, open_envelope, config):
    s = EnvelopeSealer(public_key_b64, config)
    assert open_envelope(s.seal(MSG)) == MSG
    assert open_envelope(asyncio.run(s.encrypt_data("text body"))) == b"text body"

def test_sealer_caches_imported_key(public_key_b64, config):
    s = EnvelopeSealer(public_key_b64, config)
    first = s.public_key
    assert s.update_public_key(public_key_b64 + "\n") is first
    assert s.update_public_key(public_key_b64.encode()) is first
    assert s.update_public_key(bytearray(public_key_b64, "ascii")) is first

def test_sealer_keeps_key_on_bad_update(public_key_b64, config):
    s = EnvelopeSealer(public_key_b64, config)
    first = s.public_key
    with pytest.raises(KeyImportError):
        s.update_public_key("garbage!")
    assert s.public_key is first

def test_sealer_holds_only_current_key(public_key_b64, config):
    other = export_public_key(
        rsa.generate_private_key(public_exponent=65537, key_size=2048).public_key())
    s = EnvelopeSealer(public_key_b64, config)
    first = s.public_key
    second = s.update_public_key(other)
    assert second is not first
    assert s.public_key is second
    again = s.update_public_key(public_key_b64)
    assert again is not first
    assert again.key_size == 2048

def test_sealer_without_key(config):
    s = EnvelopeSealer(config=config)
    with pytest.raises(KeyImportError):
        s.seal(MSG)
    with pytest.raises(KeyImportError):
        s.update_public_key(None)

def test_sealer_text_payload(public_key_b64, private_key, config):
    payload = EnvelopeSealer(public_key_b64, config).seal("hello").as_text_payload()
    assert set(payload) == {"message", "key", "iv"}
    assert len(unwrap(base64.b64decode(payload["key"]), private_key)) == 32

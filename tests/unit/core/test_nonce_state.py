"""
Unit tests for nonce, PKCE and state (CSRF) helpers.

These tests are CI-safe (no network), cover:
* Raw nonce generation and digest stability
* Code-verifier / S256 challenge generation
* State build / parse happy-path, tamper detection and expiry
"""

from __future__ import annotations

import base64
import re
from hashlib import sha256

import pytest

from authkit.core.clock import Clock, default_clock, elapsed_since
from authkit.core.nonce import NonceGenerator, code_challenge_s256, generate_code_verifier
from authkit.core.state import InvalidStateError, build_state, parse_state

ALLOWED_CHARS_RE = re.compile(r"^[A-Za-z0-9\-._~]+$")


# --------------------------------------------------------------------------- #
# Nonces                                                                      #
# --------------------------------------------------------------------------- #
def test_generate_default_length_and_alphabet() -> None:
    nonce = NonceGenerator().generate()
    assert len(nonce) == 32
    assert ALLOWED_CHARS_RE.match(nonce)
    assert len(set(NonceGenerator.alphabet)) >= 60


def test_generate_custom_length() -> None:
    assert len(NonceGenerator().generate(64)) == 64


def test_generate_rejects_non_positive_length() -> None:
    with pytest.raises(ValueError):
        NonceGenerator().generate(0)


def test_generate_never_repeats() -> None:
    gen = NonceGenerator()
    nonces = {gen.generate(32) for _ in range(10_000)}
    assert len(nonces) == 10_000


def test_digest_is_sha256_hex_and_stable() -> None:
    gen = NonceGenerator()
    raw = gen.generate()
    assert gen.digest(raw) == gen.digest(raw)
    assert gen.digest(raw) == sha256(raw.encode()).hexdigest()
    assert NonceGenerator.digest("abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


# --------------------------------------------------------------------------- #
# PKCE                                                                        #
# --------------------------------------------------------------------------- #
def test_generate_code_verifier_default_length() -> None:
    verifier = generate_code_verifier()
    assert 43 <= len(verifier) <= 128
    assert ALLOWED_CHARS_RE.match(verifier), "Verifier contains non-RFC chars"


def test_generate_code_verifier_invalid_len() -> None:
    with pytest.raises(ValueError):
        generate_code_verifier(20)
    with pytest.raises(ValueError):
        generate_code_verifier(200)


def test_code_challenge_s256_matches_reference() -> None:
    verifier = "test_verifier_1234567890"
    digest = sha256(verifier.encode("ascii")).digest()
    expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    assert code_challenge_s256(verifier) == expected


# --------------------------------------------------------------------------- #
# STATE BUILD / PARSE                                                         #
# --------------------------------------------------------------------------- #
def fake_clock() -> float:  # frozen at 2023-01-01T00:00:00Z
    return 1_672_531_200.0


def test_state_round_trip() -> None:
    state = build_state("txn-abc", "super-secret", clock=fake_clock)
    txn_id, ts = parse_state(state, "super-secret")
    assert txn_id == "txn-abc"
    assert ts == int(fake_clock())


def test_state_tamper_detection() -> None:
    raw_state = build_state("txn-abc", "super-secret", clock=fake_clock)
    # modify a signature character that carries full 6 bits (not trailing padding bits)
    idx = len(raw_state) - 3
    tampered = raw_state[:idx] + ("A" if raw_state[idx] != "A" else "B") + raw_state[idx + 1 :]
    with pytest.raises(InvalidStateError):
        parse_state(tampered, "super-secret")


def test_state_wrong_secret() -> None:
    state = build_state("txn-abc", "super-secret", clock=fake_clock)
    with pytest.raises(InvalidStateError):
        parse_state(state, "other-secret")


def test_state_expiry() -> None:
    state = build_state("txn-abc", "s", clock=fake_clock)
    later = lambda: fake_clock() + 601  # noqa: E731
    assert parse_state(state, "s", max_age=601, clock=later)[0] == "txn-abc"
    with pytest.raises(InvalidStateError, match="expired"):
        parse_state(state, "s", max_age=600, clock=later)


def test_elapsed_since_uses_injected_clock() -> None:
    assert isinstance(fake_clock, Clock)
    assert elapsed_since(fake_clock() - 30, clock=fake_clock) == 30
    assert elapsed_since(fake_clock() + 5, clock=fake_clock) == -5
    assert elapsed_since(default_clock() - 60) >= 60


def test_state_garbage_input() -> None:
    with pytest.raises(InvalidStateError):
        parse_state("%%%not-base64%%%", "s")
    with pytest.raises(InvalidStateError):
        parse_state(base64.urlsafe_b64encode(b"only:two").decode(), "s")


def test_build_state_rejects_separator_in_txn_id() -> None:
    with pytest.raises(ValueError):
        build_state("bad:id", "s")

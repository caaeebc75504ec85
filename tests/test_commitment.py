# tests/test_commitment.py

import pytest

from envelope_crypto import compute_commitments, keccak256, normalize_commitment_hash, to_hex
from errors import ValidationError


def test_keccak256_known_vector():
    # Ethereum keccak256("") differs from NIST SHA3-256("")
    assert keccak256(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"


def test_compute_commitments_are_pure():
    blob, wrapped = b"blob-bytes", b"wrapped-key"

    first = compute_commitments(blob, wrapped)
    second = compute_commitments(blob, wrapped)

    assert first == second
    assert first[0] == to_hex(keccak256(blob))
    assert first[1] == to_hex(keccak256(wrapped))
    assert all(len(h) == 66 and h.startswith("0x") for h in first)


def test_compute_commitments_uses_injected_hash():
    blob_hash, key_commitment = compute_commitments(b"a", b"b", hash_fn=lambda data: b"\x00" * 32)

    assert blob_hash == key_commitment == "0x" + "00" * 32


def test_normalize_commitment_hash_forms():
    raw = "AB" * 32

    assert normalize_commitment_hash(raw) == "0x" + "ab" * 32
    assert normalize_commitment_hash("0x" + raw) == "0x" + "ab" * 32


@pytest.mark.parametrize("value", ["not-hex", "", "0x1234", "0x" + "g" * 64, None, 123])
def test_normalize_commitment_hash_rejects_malformed(value):
    with pytest.raises(ValidationError):
        normalize_commitment_hash(value)

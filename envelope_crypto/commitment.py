# envelope_crypto/commitment.py
import re
from typing import Callable, Tuple

from Crypto.Hash import keccak

from errors import ValidationError

HashFunction = Callable[[bytes], bytes]

_COMMITMENT_HASH_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


def keccak256(data: bytes) -> bytes:
    """Keccak-256 (the EVM variant, not NIST SHA3-256). Same digest the ledger verifier uses."""
    return keccak.new(data=data, digest_bits=256).digest()


def to_hex(digest: bytes) -> str:
    return "0x" + digest.hex()


def hex_to_bytes(value: str) -> bytes:
    clean = value[2:] if value.startswith("0x") else value
    return bytes.fromhex(clean)


def compute_commitments(blob: bytes, wrapped_key: bytes, hash_fn: HashFunction = keccak256) -> Tuple[str, str]:
    """
    Returns (blob_hash, key_commitment) as 0x-prefixed hex.
    key_commitment binds the wrapped key bytes, never the raw symmetric key.
    """
    return to_hex(hash_fn(blob)), to_hex(hash_fn(wrapped_key))


def normalize_commitment_hash(value) -> str:
    """Accepts 64 hex chars with or without 0x; returns lowercase 0x form."""
    if not isinstance(value, str) or not _COMMITMENT_HASH_RE.match(value.strip()):
        raise ValidationError("commitmentHash must be a 32-byte hex string.")
    value = value.strip().lower()
    return value if value.startswith("0x") else "0x" + value

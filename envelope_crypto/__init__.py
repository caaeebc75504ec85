# envelope_crypto/__init__.py

"""
Envelope Crypto Package (Using PyCryptodome)
This package provides the cryptographic primitives of the remittance envelope:
- Symmetric encryption/decryption using AES-256-GCM, blob format nonce || ciphertext || tag
- Key wrapping of the one-time AES key using RSA-OAEP (SHA-256)
- RSA key pair generation for receiving banks
- Keccak-256 commitment hashes anchored on the ledger
"""
import logging

from .commitment import compute_commitments, hex_to_bytes, keccak256, normalize_commitment_hash, to_hex
from .key_generation import generate_rsa_keypair
from .key_wrapping import import_private_key, import_public_key, unwrap_symmetric_key, wrap_symmetric_key
from .symmetric_ciphers import aes_gcm_decrypt, aes_gcm_encrypt

logger = logging.getLogger(__name__)

__all__ = [
    "aes_gcm_encrypt",
    "aes_gcm_decrypt",
    "wrap_symmetric_key",
    "unwrap_symmetric_key",
    "import_public_key",
    "import_private_key",
    "generate_rsa_keypair",
    "keccak256",
    "compute_commitments",
    "normalize_commitment_hash",
    "to_hex",
    "hex_to_bytes",
]

logger.debug("Envelope Crypto Package Initialized (Using PyCryptodome)")

# envelope_crypto/key_wrapping.py
import base64
import binascii
import logging
from typing import Union

from Crypto.Cipher import PKCS1_OAEP
from Crypto.Hash import SHA256
from Crypto.PublicKey import RSA

from errors import AuthenticationError, KeyImportError

logger = logging.getLogger(__name__)

KeyMaterial = Union[str, bytes, RSA.RsaKey]


def _load_rsa_key(key_material: KeyMaterial) -> RSA.RsaKey:
    """Imports PEM (or a bare base64 DER body, as pasted from a PEM file) into an RsaKey."""
    if isinstance(key_material, RSA.RsaKey):
        return key_material
    if isinstance(key_material, bytes):
        key_material = key_material.decode("utf-8")
    if not isinstance(key_material, str) or not key_material.strip():
        raise ValueError("empty key material")

    text = key_material.strip()
    if text.startswith("-----BEGIN"):
        return RSA.import_key(text)
    der_bytes = base64.b64decode("".join(text.split()), validate=True)
    return RSA.import_key(der_bytes)


def import_public_key(key_material: KeyMaterial) -> RSA.RsaKey:
    """Imports a recipient public key (SPKI or PKCS#1). A private key is reduced to its public half."""
    try:
        key = _load_rsa_key(key_material)
    except (ValueError, IndexError, TypeError, UnicodeDecodeError, binascii.Error):
        logger.error("Public key import failed.")
        raise KeyImportError("Invalid public key format.") from None
    return key.publickey() if key.has_private() else key


def import_private_key(key_material: KeyMaterial) -> RSA.RsaKey:
    """Imports a recipient private key (PKCS#8 or PKCS#1)."""
    try:
        key = _load_rsa_key(key_material)
    except (ValueError, IndexError, TypeError, UnicodeDecodeError, binascii.Error):
        logger.error("Private key import failed.")
        raise KeyImportError("Invalid private key format.") from None
    if not key.has_private():
        logger.error("Private key import failed: public key supplied.")
        raise KeyImportError("Invalid private key format.")
    return key


def wrap_symmetric_key(symmetric_key_bytes: bytes, recipient_public_key: KeyMaterial) -> bytes:
    """
    Wraps a symmetric key for the recipient using RSA-OAEP with SHA-256 (MGF1-SHA256).
    """
    public_key = import_public_key(recipient_public_key)
    cipher = PKCS1_OAEP.new(public_key, hashAlgo=SHA256)
    try:
        wrapped_key_bytes = cipher.encrypt(symmetric_key_bytes)
    except ValueError:
        # OAEP-SHA256 needs a modulus of at least 2 * 32 + 2 bytes plus the key itself
        logger.error(f"RSA-OAEP wrap failed for a {public_key.size_in_bits()}-bit key.")
        raise KeyImportError("Recipient public key is too small for key wrapping.") from None
    logger.debug(f"Wrapped {len(symmetric_key_bytes)}-byte key into {len(wrapped_key_bytes)} bytes.")
    return wrapped_key_bytes


def unwrap_symmetric_key(wrapped_key_bytes: bytes, recipient_private_key: KeyMaterial) -> bytes:
    """
    Recovers the symmetric key with the recipient private key.
    The key is imported (and KeyImportError raised) before any decryption is attempted.
    """
    private_key = import_private_key(recipient_private_key)
    cipher = PKCS1_OAEP.new(private_key, hashAlgo=SHA256)
    try:
        return cipher.decrypt(wrapped_key_bytes)
    except (ValueError, TypeError):
        logger.debug("RSA-OAEP unwrap failed.")
        raise AuthenticationError("Authentication failed") from None

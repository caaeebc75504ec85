# envelope_crypto/symmetric_ciphers.py
import logging
from typing import Tuple

from Crypto.Cipher import AES
from Crypto.Random import get_random_bytes

from errors import AuthenticationError, KeyFormatError

logger = logging.getLogger(__name__)

AES_KEY_BYTES = 32   # AES-256
GCM_NONCE_BYTES = 12 # 96-bit nonce, recommended for GCM
GCM_TAG_BYTES = 16
VALID_AES_KEY_LENGTHS = (16, 24, 32)


def aes_gcm_encrypt(plaintext_bytes: bytes) -> Tuple[bytes, bytes]:
    """
    Encrypts plaintext under a fresh AES-256 key and 96-bit nonce.

    Returns:
        tuple: (blob, aes_key_bytes) where blob is ``nonce || ciphertext || tag``.
        The caller owns the raw key and must wrap and discard it.
    """
    aes_key_bytes = get_random_bytes(AES_KEY_BYTES)
    nonce_bytes = get_random_bytes(GCM_NONCE_BYTES)

    cipher = AES.new(aes_key_bytes, AES.MODE_GCM, nonce=nonce_bytes, mac_len=GCM_TAG_BYTES)
    ciphertext_bytes, tag_bytes = cipher.encrypt_and_digest(plaintext_bytes)

    blob = nonce_bytes + ciphertext_bytes + tag_bytes
    logger.debug(f"AES-GCM encrypted {len(plaintext_bytes)} bytes into a {len(blob)}-byte blob.")
    return blob, aes_key_bytes


def aes_gcm_decrypt(blob: bytes, aes_key_bytes: bytes) -> bytes:
    """
    Splits ``nonce || ciphertext || tag`` and authenticated-decrypts it.
    Raises KeyFormatError for a bad key length (checked before any decryption)
    and AuthenticationError if the blob is truncated or the tag does not verify.
    """
    if not isinstance(aes_key_bytes, (bytes, bytearray)) or len(aes_key_bytes) not in VALID_AES_KEY_LENGTHS:
        raise KeyFormatError("Symmetric key must be 16, 24 or 32 bytes long.")

    if len(blob) < GCM_NONCE_BYTES + GCM_TAG_BYTES:
        logger.debug("AES-GCM blob shorter than nonce plus tag.")
        raise AuthenticationError("Authentication failed")

    nonce_bytes = blob[:GCM_NONCE_BYTES]
    ciphertext_bytes = blob[GCM_NONCE_BYTES:-GCM_TAG_BYTES]
    tag_bytes = blob[-GCM_TAG_BYTES:]

    try:
        cipher = AES.new(bytes(aes_key_bytes), AES.MODE_GCM, nonce=nonce_bytes, mac_len=GCM_TAG_BYTES)
        plaintext_bytes = cipher.decrypt_and_verify(ciphertext_bytes, tag_bytes)
    except (TypeError, ValueError) as crypto_error:
        # tag mismatch surfaces as ValueError("MAC check failed")
        logger.debug(f"AES-GCM decryption failed: {type(crypto_error).__name__}")
        raise AuthenticationError("Authentication failed") from None

    return plaintext_bytes

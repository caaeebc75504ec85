# envelope_crypto/key_generation.py
import logging
from typing import Tuple

from Crypto.PublicKey import RSA

logger = logging.getLogger(__name__)

DEFAULT_RSA_BITS = 2048


def generate_rsa_keypair(bits: int = DEFAULT_RSA_BITS) -> Tuple[str, str]:
    """
    Generates an RSA key pair for a receiving bank.
    Returns:
        tuple: (public_key_pem, private_key_pem). Public key is SPKI, private key PKCS#8.
    """
    logger.info(f"Generating RSA-{bits} keypair...")
    key = RSA.generate(bits)
    public_key_pem = key.publickey().export_key(format="PEM").decode("utf-8")
    private_key_pem = key.export_key(format="PEM", pkcs=8).decode("utf-8")
    return public_key_pem, private_key_pem

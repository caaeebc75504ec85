# --- File: security/key_manager.py ---
import json
import os
import logging
from typing import Dict, Optional

import config
from envelope_crypto import generate_rsa_keypair

logger = logging.getLogger(__name__)

# Receiving banks reachable through a corridor. Each needs a long-lived RSA key pair.
KNOWN_BANK_CODES = [
    "J_BANK",
]
DEFAULT_KEY_FILE = config.RAILX_BANK_KEYS_FILE

class KeyManager:
    """
    Holds RSA key pairs and destination identities for the known receiving banks.
    Keys come from environment PEM overrides first, then the key file; missing pairs are
    generated only when ``generate_missing`` is set (development).
    """
    def __init__(
        self,
        key_file_path: str = DEFAULT_KEY_FILE,
        generate_missing: bool = config.RAILX_GENERATE_MISSING_KEYS,
        bank_keys: Optional[Dict[str, Dict[str, str]]] = None,
        bank_addresses: Optional[Dict[str, str]] = None,
    ):
        self.key_file_path = key_file_path
        self.generate_missing = generate_missing
        self.bank_keys: Dict[str, Dict[str, str]] = {}
        self.bank_addresses: Dict[str, str] = bank_addresses if bank_addresses is not None else {
            "J_BANK": config.RAILX_J_BANK_ADDRESS,
        }
        self._is_dirty = False # Flag to track if keys were generated and need saving
        if bank_keys is not None:
            self.bank_keys = {code: dict(pair) for code, pair in bank_keys.items()}
        else:
            self._load_or_generate_keys()

    def _load_or_generate_keys(self):
        """Loads keys from the key file, applies env overrides, and generates missing pairs if allowed."""
        if os.path.exists(self.key_file_path):
            try:
                with open(self.key_file_path, 'r') as f:
                    loaded_keys = json.load(f)
                if isinstance(loaded_keys, dict):
                    self.bank_keys = loaded_keys
                    logger.info(f"Successfully loaded bank keys from {self.key_file_path}")
                else:
                    logger.error(f"Key file {self.key_file_path} does not hold a JSON object; ignoring it.")
                    self.bank_keys = {}
            except (IOError, json.JSONDecodeError) as e:
                logger.error(f"Error loading keys from {self.key_file_path}: {e}.")
                self.bank_keys = {}

        if config.RAILX_J_BANK_RSA_PUBLIC_KEY_PEM:
            self.bank_keys.setdefault("J_BANK", {})["public_pem"] = config.RAILX_J_BANK_RSA_PUBLIC_KEY_PEM
        if config.RAILX_J_BANK_RSA_PRIVATE_KEY_PEM:
            self.bank_keys.setdefault("J_BANK", {})["private_pem"] = config.RAILX_J_BANK_RSA_PRIVATE_KEY_PEM

        for bank_code in KNOWN_BANK_CODES:
            if self.bank_keys.get(bank_code, {}).get("public_pem"):
                continue
            if self.generate_missing:
                logger.warning(f"Keys not found for bank '{bank_code}'. Generating new RSA key pair.")
                public_pem, private_pem = generate_rsa_keypair()
                self.bank_keys[bank_code] = {"public_pem": public_pem, "private_pem": private_pem}
                self._is_dirty = True
            else:
                logger.error(f"No public key configured for bank '{bank_code}'.")

        if self._is_dirty:
            self._save_keys()

    def _save_keys(self):
        """Saves the current bank keys to the JSON file."""
        try:
            key_dir = os.path.dirname(self.key_file_path)
            if key_dir and not os.path.exists(key_dir):
                os.makedirs(key_dir, exist_ok=True)
                logger.info(f"Created directory for key file: {key_dir}")

            with open(self.key_file_path, 'w') as f:
                json.dump(self.bank_keys, f, indent=4)
            os.chmod(self.key_file_path, 0o600)
            logger.info(f"Bank keys saved to {self.key_file_path}")
            self._is_dirty = False
        except IOError as e:
            logger.error(f"CRITICAL: Error saving bank keys to {self.key_file_path}: {e}")

    def register_bank(self, bank_code: str, public_pem: str, private_pem: Optional[str] = None, address: Optional[str] = None):
        pair = {"public_pem": public_pem}
        if private_pem:
            pair["private_pem"] = private_pem
        self.bank_keys[bank_code] = pair
        if address:
            self.bank_addresses[bank_code] = address

    def get_public_key_pem(self, bank_code: str) -> Optional[str]:
        """Retrieves the RSA public key (PEM) for a bank code."""
        keys = self.bank_keys.get(bank_code)
        if keys and keys.get("public_pem"):
            return keys["public_pem"]
        logger.warning(f"Public key not found for bank: {bank_code}")
        return None

    def get_private_key_pem(self, bank_code: str) -> Optional[str]:
        """Retrieves the RSA private key (PEM) for a bank code. Only used in server-side decrypt mode."""
        keys = self.bank_keys.get(bank_code)
        if keys and keys.get("private_pem"):
            return keys["private_pem"]
        logger.warning(f"Private key not found for bank: {bank_code}")
        return None

    def destination_identity(self, bank_code: str) -> str:
        """Ledger address that receives commitment events for this corridor."""
        return self.bank_addresses.get(bank_code, config.ZERO_ADDRESS)

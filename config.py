# --- File: config.py ---
import os
from dotenv import load_dotenv
import logging

load_dotenv()

LOG_LEVEL_FROM_ENV = os.getenv("LOG_LEVEL", "INFO").upper()
numeric_level = getattr(logging, LOG_LEVEL_FROM_ENV, logging.INFO)

logging.basicConfig(
    level=numeric_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# --- Storage Settings ---
RAILX_DB_PATH = os.getenv("RAILX_DB_PATH", "./railx_records.db")
RAILX_OBJECT_STORE_PATH = os.getenv("RAILX_OBJECT_STORE_PATH", "./railx_messages") # Ensure this path is writable

# --- Key Material ---
RAILX_BANK_KEYS_FILE = os.getenv("RAILX_BANK_KEYS_FILE", "railx_bank_keys.json")
RAILX_J_BANK_RSA_PUBLIC_KEY_PEM = os.getenv("RAILX_J_BANK_RSA_PUBLIC_KEY_PEM", "")
RAILX_J_BANK_RSA_PRIVATE_KEY_PEM = os.getenv("RAILX_J_BANK_RSA_PRIVATE_KEY_PEM", "")
# Generate missing bank key pairs on startup. Development only.
RAILX_GENERATE_MISSING_KEYS = os.getenv("RAILX_GENERATE_MISSING_KEYS", "false").lower() == 'true'

# --- Destination Identities ---
RAILX_J_BANK_ADDRESS = os.getenv("RAILX_J_BANK_ADDRESS", ZERO_ADDRESS)

# --- Read Path ---
# "caller": private key PEM arrives in the request body.
# "config": the server-side key registered for the destination bank is used.
RAILX_DECRYPT_KEY_SOURCE = os.getenv("RAILX_DECRYPT_KEY_SOURCE", "caller").lower()
RAILX_DEFAULT_BANK_CODE = os.getenv("RAILX_DEFAULT_BANK_CODE", "J_BANK")

# --- Payload / Ledger Settings ---
RAILX_PAYLOAD_VERSION = os.getenv("RAILX_PAYLOAD_VERSION", "railx-omp-v0.1")
RAILX_ORDER_TTL_SECONDS = int(os.getenv("RAILX_ORDER_TTL_SECONDS", "3600"))


# --- Basic Validation ---
if RAILX_DECRYPT_KEY_SOURCE not in ("caller", "config"):
    logger.warning(f"Unknown RAILX_DECRYPT_KEY_SOURCE '{RAILX_DECRYPT_KEY_SOURCE}'. Falling back to 'caller'.")
    RAILX_DECRYPT_KEY_SOURCE = "caller"

if RAILX_J_BANK_ADDRESS == ZERO_ADDRESS:
    logger.warning("RAILX_J_BANK_ADDRESS not set. J_BANK orders will be routed to the zero address.")

if not RAILX_J_BANK_RSA_PUBLIC_KEY_PEM and not os.path.exists(RAILX_BANK_KEYS_FILE) and not RAILX_GENERATE_MISSING_KEYS:
    logger.critical("No J_BANK public key configured (RAILX_J_BANK_RSA_PUBLIC_KEY_PEM or RAILX_BANK_KEYS_FILE). Remittance submission will fail.")

if RAILX_DECRYPT_KEY_SOURCE == "config" and not RAILX_J_BANK_RSA_PRIVATE_KEY_PEM:
    logger.warning("RAILX_DECRYPT_KEY_SOURCE is 'config' but RAILX_J_BANK_RSA_PRIVATE_KEY_PEM is not set. Falling back to the key file.")
elif RAILX_DECRYPT_KEY_SOURCE == "caller":
    logger.info("Decrypt requests must supply the recipient private key.")

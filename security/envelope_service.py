# --- File: security/envelope_service.py ---
import enum
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

import config
from core.payload import RemittanceRequest, build_payload, deserialize_payload, serialize_payload
from envelope_crypto import (
    aes_gcm_decrypt, aes_gcm_encrypt,
    wrap_symmetric_key, unwrap_symmetric_key,
    import_public_key, import_private_key,
    compute_commitments, hex_to_bytes, keccak256, normalize_commitment_hash, to_hex,
)
from envelope_crypto.commitment import HashFunction
from envelope_crypto.key_wrapping import KeyMaterial
from errors import AuthenticationError, EnvelopeError, KeyFormatError, KeyImportError, ValidationError
from .key_manager import KeyManager
from .secure_envelope import EnvelopeRecord, SubmitResult

logger = logging.getLogger(__name__)


class WriteState(str, enum.Enum):
    VALIDATING = "Validating"
    SERIALIZING = "Serializing"
    ENCRYPTING = "Encrypting"
    KEY_WRAPPING = "KeyWrapping"
    HASHING = "Hashing"
    PERSISTING = "Persisting"
    DONE = "Done"


class ReadState(str, enum.Enum):
    LOOKUP = "Lookup"
    FETCH = "Fetch"
    UNWRAP = "Unwrap"
    DECRYPT = "Decrypt"
    DESERIALIZE = "Deserialize"
    DONE = "Done"


class EnvelopeService:
    """
    Write path: payload -> AES-GCM blob -> RSA-OAEP wrapped key -> keccak commitments -> store.
    Read path: commitment hash -> record -> blob -> unwrap -> decrypt -> payload.

    Holds no key material between calls; the recipient private key is always passed in.
    Writes are not idempotent: every submission carries a fresh txId, key and nonce, so a
    retried request produces new commitment hashes.
    """
    def __init__(
        self,
        store,
        key_manager: Optional[KeyManager] = None,
        hash_fn: HashFunction = keccak256,
        payload_version: str = config.RAILX_PAYLOAD_VERSION,
    ):
        self.store = store
        self.key_manager = key_manager
        self.hash_fn = hash_fn
        self.payload_version = payload_version

    # --- Write path ---

    def submit(
        self,
        request: Union[RemittanceRequest, Dict[str, Any]],
        recipient_public_key: Optional[KeyMaterial] = None,
        tx_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SubmitResult:
        state = WriteState.VALIDATING
        try:
            payload = build_payload(request, tx_id=tx_id, now=now, version=self.payload_version)
            bank_code = payload.corridorBankCode
            public_key = self._resolve_public_key(bank_code, recipient_public_key)
            logger.info(f"SUBMIT (corridor {bank_code}): Request validated.")

            state = WriteState.SERIALIZING
            plaintext_bytes = serialize_payload(payload)

            state = WriteState.ENCRYPTING
            blob, aes_key_bytes = aes_gcm_encrypt(plaintext_bytes)

            state = WriteState.KEY_WRAPPING
            try:
                wrapped_key_bytes = wrap_symmetric_key(aes_key_bytes, public_key)
            except KeyImportError:
                if recipient_public_key is not None:
                    raise
                raise EnvelopeError(f"Recipient key for corridor '{bank_code}' is misconfigured.", kind="configuration_error") from None
            finally:
                del aes_key_bytes

            state = WriteState.HASHING
            blob_hash, key_commitment = compute_commitments(blob, wrapped_key_bytes, self.hash_fn)

            state = WriteState.PERSISTING
            record = EnvelopeRecord(
                commitment_hash=blob_hash,
                auxiliary_hash=key_commitment,
                blob_location=self.store.new_blob_location(),
                wrapped_key_hex=to_hex(wrapped_key_bytes),
            )
            self.store.put(record, blob)
        except EnvelopeError as e:
            logger.error(f"SUBMIT: Failed at {state.value}: {e.kind}")
            raise

        state = WriteState.DONE
        logger.info(f"SUBMIT (corridor {bank_code}): {state.value}. blobHash={blob_hash[:18]}...")
        return SubmitResult(
            destination_identity=self._destination_identity(bank_code),
            blob_hash=blob_hash,
            key_commitment=key_commitment,
            blob_location=record.blob_location,
        )

    def _resolve_public_key(self, bank_code: str, recipient_public_key: Optional[KeyMaterial]):
        if recipient_public_key is not None:
            return import_public_key(recipient_public_key)
        public_pem = self.key_manager.get_public_key_pem(bank_code) if self.key_manager else None
        if not public_pem:
            raise ValidationError(f"No recipient key registered for corridor '{bank_code}'.")
        try:
            return import_public_key(public_pem)
        except KeyImportError:
            # configured server-side; not something the caller can correct
            raise EnvelopeError(f"Recipient key for corridor '{bank_code}' is misconfigured.", kind="configuration_error") from None

    def _destination_identity(self, bank_code: str) -> str:
        if self.key_manager:
            return self.key_manager.destination_identity(bank_code)
        return config.ZERO_ADDRESS

    # --- Read path ---

    def open(self, commitment_hash: str, recipient_private_key: KeyMaterial) -> Dict[str, Any]:
        """
        Resolves a commitment hash to its decrypted payload.
        Unwrap and decrypt failures collapse into one generic AuthenticationError.
        """
        commitment_hash = normalize_commitment_hash(commitment_hash)
        private_key = import_private_key(recipient_private_key)

        state = ReadState.LOOKUP
        try:
            record = self.store.get(commitment_hash)

            state = ReadState.FETCH
            blob = self.store.fetch_blob(record.blob_location)

            state = ReadState.UNWRAP
            try:
                wrapped_key_bytes = hex_to_bytes(record.wrapped_key_hex)
            except ValueError:
                raise AuthenticationError("Authentication failed") from None
            if to_hex(self.hash_fn(blob)) != record.commitment_hash:
                raise AuthenticationError("Authentication failed")
            if to_hex(self.hash_fn(wrapped_key_bytes)) != record.auxiliary_hash:
                raise AuthenticationError("Authentication failed")
            aes_key_bytes = unwrap_symmetric_key(wrapped_key_bytes, private_key)

            state = ReadState.DECRYPT
            try:
                plaintext_bytes = aes_gcm_decrypt(blob, aes_key_bytes)
            except KeyFormatError:
                raise AuthenticationError("Authentication failed") from None
            finally:
                del aes_key_bytes

            state = ReadState.DESERIALIZE
            payload = deserialize_payload(plaintext_bytes)
        except EnvelopeError as e:
            logger.error(f"OPEN ({commitment_hash[:18]}...): Failed at {state.value}: {e.kind}")
            raise
        finally:
            del private_key

        state = ReadState.DONE
        logger.info(f"OPEN ({commitment_hash[:18]}...): {state.value}. Payload version {payload.get('version')}.")
        return payload

    def open_for_bank(self, commitment_hash: str, bank_code: str = config.RAILX_DEFAULT_BANK_CODE) -> Dict[str, Any]:
        """Server-side key variant: the bank's registered private key is read here and passed explicitly."""
        private_pem = self.key_manager.get_private_key_pem(bank_code) if self.key_manager else None
        if not private_pem:
            logger.error(f"OPEN: No server-side private key for bank '{bank_code}'.")
            raise EnvelopeError("Server-side decrypt key is not configured.", kind="configuration_error")
        try:
            return self.open(commitment_hash, private_pem)
        except KeyImportError:
            raise EnvelopeError("Server-side decrypt key is not configured.", kind="configuration_error") from None

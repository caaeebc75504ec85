# security/__init__.py
from .key_manager import KeyManager, KNOWN_BANK_CODES
from .secure_envelope import EnvelopeRecord, SubmitResult
from .envelope_service import EnvelopeService, ReadState, WriteState

__all__ = ["KeyManager", "KNOWN_BANK_CODES", "EnvelopeRecord", "SubmitResult", "EnvelopeService", "ReadState", "WriteState"]

# --- File: errors.py ---
from typing import Optional


class EnvelopeError(Exception):
    """Base class for every failure surfaced by the envelope subsystem."""
    kind = "envelope_error"
    http_status = 500

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if kind:
            self.kind = kind

    def to_dict(self):
        return {"error": self.message, "kind": self.kind}


class ValidationError(EnvelopeError):
    """Raised when request input has the wrong shape or values."""
    kind = "validation_error"
    http_status = 400


class KeyFormatError(EnvelopeError):
    """Raised when an unwrapped symmetric key has an unusable length."""
    kind = "key_format_error"
    http_status = 400


class KeyImportError(EnvelopeError):
    """Raised when PEM/DER key material cannot be imported."""
    kind = "key_import_error"
    http_status = 400


class AuthenticationError(EnvelopeError):
    """Raised when a tag/padding check fails. Deliberately generic."""
    kind = "authentication_error"
    http_status = 500


class DuplicateCommitmentError(EnvelopeError):
    """Raised when a commitment hash is already present in the lookup table."""
    kind = "duplicate_commitment"
    http_status = 409


class NotFoundError(EnvelopeError):
    """Raised when no record matches a commitment hash."""
    kind = "not_found"
    http_status = 404


class StorageError(EnvelopeError):
    """Raised on I/O failure against the object area or the lookup table. Transient."""
    kind = "storage_error"
    http_status = 500

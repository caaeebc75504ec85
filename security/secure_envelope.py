from pydantic import BaseModel, ConfigDict, Field


class EnvelopeRecord(BaseModel):
    """
    Lookup-table row for one envelope. The blob itself (nonce || ciphertext || tag) lives in
    the object store at ``blob_location``; this record is what a commitment hash resolves to.
    """
    model_config = ConfigDict(frozen=True)

    commitment_hash: str = Field(..., description="keccak256(blob), 0x-prefixed hex. Primary lookup key.")
    auxiliary_hash: str = Field(..., description="keccak256(wrapped AES key), 0x-prefixed hex.")
    blob_location: str = Field(..., description="Object-store path of the encrypted blob.")
    wrapped_key_hex: str = Field(..., description="AES key wrapped with the recipient's RSA public key (RSA-OAEP/SHA-256), 0x-prefixed hex.")


class SubmitResult(BaseModel):
    """What the write path hands back to the caller for anchoring on the ledger."""
    model_config = ConfigDict(frozen=True)

    destination_identity: str
    blob_hash: str
    key_commitment: str
    blob_location: str
